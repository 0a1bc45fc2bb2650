"""Trip details composite - what a viewer is allowed to see of one trip."""

from pydantic import BaseModel, ConfigDict

from travel_itinerary.models.booking import Booking
from travel_itinerary.models.common import TripPermission
from travel_itinerary.models.entry import ItineraryEntry
from travel_itinerary.models.sharing import ShareLink
from travel_itinerary.models.trip import Trip


class TripDetails(BaseModel):
    """Trip with its entries and bookings, after masking.

    Not persisted. ``share_link`` is set only when the trip was resolved
    through a share code.
    """

    model_config = ConfigDict(frozen=True)

    trip: Trip
    entries: list[ItineraryEntry]
    bookings: list[Booking]
    share_link: ShareLink | None = None
    current_user_permission: TripPermission = TripPermission.read_only

    def get_entry(self, entry_id: str) -> ItineraryEntry | None:
        for entry in self.entries:
            if entry.entry_id == entry_id:
                return entry
        return None
