"""Models package - re-exports for convenience."""

from travel_itinerary.models.booking import Booking, BookingMutation
from travel_itinerary.models.common import (
    ItemFamily,
    LocationInfo,
    TimelineItemType,
    TripPermission,
)
from travel_itinerary.models.details import TripDetails
from travel_itinerary.models.entry import ItineraryEntry, ItineraryEntryMutation
from travel_itinerary.models.metadata import (
    BookingMetadata,
    FlightMetadata,
    SegmentMetadata,
    StayBookingMetadata,
    StayMetadata,
    TravelMetadata,
)
from travel_itinerary.models.sharing import (
    SavedShareLink,
    ShareLink,
    ShareLinkMutation,
    TripAccess,
    TripAccessMutation,
)
from travel_itinerary.models.trip import Trip, TripMutation, slugify

__all__ = [
    # Common
    "ItemFamily",
    "LocationInfo",
    "TimelineItemType",
    "TripPermission",
    # Metadata
    "BookingMetadata",
    "FlightMetadata",
    "SegmentMetadata",
    "StayBookingMetadata",
    "StayMetadata",
    "TravelMetadata",
    # Trip
    "Trip",
    "TripMutation",
    "slugify",
    # Entries and bookings
    "ItineraryEntry",
    "ItineraryEntryMutation",
    "Booking",
    "BookingMutation",
    # Sharing
    "ShareLink",
    "ShareLinkMutation",
    "TripAccess",
    "TripAccessMutation",
    "SavedShareLink",
    # Details
    "TripDetails",
]
