"""Common types and enums shared across all models."""

import math
from enum import Enum

from pydantic import BaseModel, ConfigDict

MAX_LATITUDE = 90.0
MAX_LONGITUDE = 180.0


def is_valid_coordinate(value: float | None, limit: float) -> bool:
    """True for a finite coordinate within +/- limit."""
    return value is not None and math.isfinite(value) and -limit <= value <= limit


class ItemFamily(str, Enum):
    """Coarse grouping of timeline item types."""

    transport = "transport"
    lodging = "lodging"
    activity = "activity"
    dining = "dining"
    note = "note"
    other = "other"


class TimelineItemType(str, Enum):
    """Type of itinerary entry.

    Values are the lower-cased canonical names written to storage. Member
    order is significant: it is the secondary sort key inside a day.
    """

    flight = "flight"
    train = "train"
    coach = "coach"
    ferry = "ferry"
    taxi = "taxi"
    private_car = "privatecar"
    rental_car = "rentalcar"
    parking = "parking"
    hotel = "hotel"
    flat = "flat"
    house = "house"
    tour = "tour"
    museum = "museum"
    park = "park"
    dining = "dining"
    note = "note"
    other = "other"

    @property
    def rank(self) -> int:
        """Declaration index, used for ordering."""
        return _ITEM_TYPE_RANKS[self]

    @property
    def family(self) -> ItemFamily:
        return _ITEM_TYPE_FAMILIES[self]

    @property
    def display_name(self) -> str:
        return _ITEM_TYPE_DISPLAY_NAMES.get(self, self.name.capitalize())

    @property
    def is_stay(self) -> bool:
        return self.family is ItemFamily.lodging


_ITEM_TYPE_RANKS = {item_type: index for index, item_type in enumerate(TimelineItemType)}

_ITEM_TYPE_FAMILIES = {
    TimelineItemType.flight: ItemFamily.transport,
    TimelineItemType.train: ItemFamily.transport,
    TimelineItemType.coach: ItemFamily.transport,
    TimelineItemType.ferry: ItemFamily.transport,
    TimelineItemType.taxi: ItemFamily.transport,
    TimelineItemType.private_car: ItemFamily.transport,
    TimelineItemType.rental_car: ItemFamily.transport,
    TimelineItemType.parking: ItemFamily.transport,
    TimelineItemType.hotel: ItemFamily.lodging,
    TimelineItemType.flat: ItemFamily.lodging,
    TimelineItemType.house: ItemFamily.lodging,
    TimelineItemType.tour: ItemFamily.activity,
    TimelineItemType.museum: ItemFamily.activity,
    TimelineItemType.park: ItemFamily.activity,
    TimelineItemType.dining: ItemFamily.dining,
    TimelineItemType.note: ItemFamily.note,
    TimelineItemType.other: ItemFamily.other,
}

_ITEM_TYPE_DISPLAY_NAMES = {
    TimelineItemType.private_car: "Private car",
    TimelineItemType.rental_car: "Rental car",
}


class TripPermission(str, Enum):
    """Permission level a user holds on a trip."""

    owner = "owner"
    full_control = "full_control"
    read_only = "read_only"

    @property
    def can_edit(self) -> bool:
        """Create/update/delete entries, bookings and share links."""
        return self in (TripPermission.owner, TripPermission.full_control)

    @property
    def can_manage_access(self) -> bool:
        return self is TripPermission.owner

    @property
    def can_delete_trip(self) -> bool:
        return self is TripPermission.owner


class LocationInfo(BaseModel):
    """Place attached to an itinerary entry.

    Coordinates are range-checked when written, not when read back.
    """

    model_config = ConfigDict(frozen=True)

    label: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    url: str | None = None
    notes: str | None = None
    place_id: str | None = None

    @property
    def has_content(self) -> bool:
        return any(
            value is not None
            for value in (
                self.label,
                self.latitude,
                self.longitude,
                self.url,
                self.notes,
                self.place_id,
            )
        )
