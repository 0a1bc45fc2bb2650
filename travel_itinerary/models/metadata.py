"""Structured metadata stored as JSON blobs on entries and bookings.

Blobs use camelCase keys and omit null fields. A model whose fields are all
empty has no content and is never written.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _MetadataModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    @property
    def has_content(self) -> bool:
        for value in self.__dict__.values():
            if isinstance(value, _MetadataModel):
                if value.has_content:
                    return True
            elif isinstance(value, str):
                if value.strip():
                    return True
            elif isinstance(value, list):
                if value:
                    return True
            elif value is not None:
                return True
        return False


class FlightMetadata(_MetadataModel):
    """Flight details for a flight entry."""

    airline: str | None = None
    flight_number: str | None = None
    departure_airport: str | None = None
    departure_time: str | None = None
    arrival_airport: str | None = None
    arrival_time: str | None = None


class StayMetadata(_MetadataModel):
    """Property details for a lodging entry."""

    property_name: str | None = None
    property_link: str | None = None


class SegmentMetadata(_MetadataModel):
    """Departure and arrival places of a travel segment."""

    departure_place_id: str | None = None
    departure_label: str | None = None
    arrival_place_id: str | None = None
    arrival_label: str | None = None

    @property
    def has_places(self) -> bool:
        return any(
            place is not None and place.strip()
            for place in (self.departure_place_id, self.arrival_place_id)
        )


class TravelMetadata(_MetadataModel):
    """Entry metadata blob (``MetadataJson``)."""

    flight: FlightMetadata | None = None
    stay: StayMetadata | None = None
    segment: SegmentMetadata | None = None


class StayBookingMetadata(_MetadataModel):
    """Stay-specific booking details."""

    check_in_time: str | None = None
    check_out_time: str | None = None
    room_type: str | None = None
    includes: list[str] | None = None


class BookingMetadata(_MetadataModel):
    """Booking metadata blob (``BookingMetadataJson``)."""

    stay: StayBookingMetadata | None = None
