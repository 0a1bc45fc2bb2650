"""Everything a page needs to render a trip's timeline."""

from dataclasses import dataclass, field
from datetime import date

from travel_itinerary.models.booking import Booking
from travel_itinerary.models.details import TripDetails
from travel_itinerary.models.trip import Trip
from travel_itinerary.views.timeline import TimelineViewModel, build_timeline

DEFAULT_EMPTY_STATE_MESSAGE = (
    "No itinerary entries yet. Use the quick actions to start planning this trip."
)
SHARED_EMPTY_STATE_MESSAGE = "This trip has no itinerary entries yet."


def build_booking_lookup(bookings: list[Booking]) -> dict[str, Booking]:
    """First booking per linked entry, keyed by case-folded entry id."""
    lookup: dict[str, Booking] = {}
    for booking in bookings:
        if booking.entry_id and booking.entry_id.strip():
            lookup.setdefault(booking.entry_id.strip().casefold(), booking)
    return lookup


@dataclass(frozen=True)
class TripTimelineDisplay:
    """Timeline plus the switches that decide what a viewer may do or see."""

    trip: Trip
    timeline: TimelineViewModel
    bookings_by_entry: dict[str, Booking] = field(default_factory=dict)
    allow_entry_editing: bool = False
    allow_booking_creation: bool = False
    allow_booking_viewing: bool = False
    show_booking_confirmations: bool = True
    show_booking_metadata: bool = True
    show_empty_state_message: bool = True
    empty_state_message: str = DEFAULT_EMPTY_STATE_MESSAGE

    def get_booking_for_entry(self, entry_id: str | None) -> Booking | None:
        if entry_id is None or not entry_id.strip():
            return None
        return self.bookings_by_entry.get(entry_id.strip().casefold())

    @classmethod
    def from_details(cls, details: TripDetails, today: date | None = None) -> "TripTimelineDisplay":
        """Build the display for a trip loaded by id, slug or share code."""
        share_link = details.share_link
        can_edit = details.current_user_permission.can_edit

        if share_link is None:
            return cls(
                trip=details.trip,
                timeline=build_timeline(details, today),
                bookings_by_entry=build_booking_lookup(details.bookings),
                allow_entry_editing=can_edit,
                allow_booking_creation=can_edit,
                allow_booking_viewing=True,
            )

        return cls(
            trip=details.trip,
            timeline=build_timeline(details, today),
            bookings_by_entry=build_booking_lookup(details.bookings),
            allow_booking_viewing=not share_link.mask_bookings,
            show_booking_confirmations=share_link.show_booking_confirmations,
            show_booking_metadata=share_link.show_booking_metadata,
            empty_state_message=SHARED_EMPTY_STATE_MESSAGE,
        )
