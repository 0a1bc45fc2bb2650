"""Booking models."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from travel_itinerary.models.common import TimelineItemType
from travel_itinerary.models.metadata import BookingMetadata


class Booking(BaseModel):
    """Payment/confirmation record, optionally linked to one entry.

    ``item_type`` mirrors the linked entry and is never set independently.
    """

    model_config = ConfigDict(frozen=True)

    trip_id: str
    booking_id: str
    entry_id: str | None = None
    item_type: TimelineItemType = TimelineItemType.other
    vendor: str | None = None
    reference: str | None = None
    cost: Decimal | None = None
    currency: str | None = None
    is_refundable: bool = False
    is_paid: bool | None = None
    cancellation_policy: str | None = None
    cancellation_date: date | None = None
    confirmation_details: str | None = None
    confirmation_url: str | None = None
    metadata: BookingMetadata | None = None
    etag: str | None = None

    @property
    def label(self) -> str:
        return self.vendor or self.item_type.display_name


class BookingMutation(BaseModel):
    """Payload for creating or updating a booking.

    There is deliberately no item type: it is resolved from the linked entry.
    """

    model_config = ConfigDict(frozen=True)

    entry_id: str | None = None
    vendor: str | None = Field(default=None, max_length=200)
    reference: str | None = Field(default=None, max_length=100)
    cost: Decimal | None = None
    currency: str | None = None
    is_refundable: bool = False
    is_paid: bool = False
    cancellation_policy: str | None = Field(default=None, max_length=500)
    cancellation_date: date | None = None
    confirmation_details: str | None = None
    confirmation_url: str | None = None
    metadata: BookingMetadata | None = None

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str | None) -> str | None:
        """Upper-case currency codes."""
        if v is None or not v.strip():
            return None
        return v.strip().upper()
