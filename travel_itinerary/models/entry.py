"""Itinerary entry models."""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from travel_itinerary.models.common import (
    MAX_LATITUDE,
    MAX_LONGITUDE,
    LocationInfo,
    TimelineItemType,
    is_valid_coordinate,
)
from travel_itinerary.models.metadata import TravelMetadata


def format_date_label(start: dt.date | None, end: dt.date | None, is_multi_day: bool) -> str:
    """Short human label for an entry's dates."""
    if is_multi_day and start is not None and end is not None:
        return f"{start:%b %d} - {end:%b %d}"
    if start is not None:
        return f"{start:%b %d, %Y}"
    return "Date TBD"


class ItineraryEntry(BaseModel):
    """A dated activity or segment within a trip."""

    model_config = ConfigDict(frozen=True)

    trip_id: str
    entry_id: str
    date: dt.date | None = None
    end_date: dt.date | None = None
    is_multi_day: bool = False
    item_type: TimelineItemType = TimelineItemType.other
    title: str
    details: str | None = None
    location: LocationInfo | None = None
    tags: str | None = None
    metadata: TravelMetadata | None = None
    sort_order: int | None = None
    etag: str | None = None

    @property
    def is_span(self) -> bool:
        """True when the entry occupies a date range on the timeline."""
        return (
            self.is_multi_day
            and self.date is not None
            and self.end_date is not None
            and self.end_date != self.date
        )

    @property
    def date_label(self) -> str:
        return format_date_label(self.date, self.end_date, self.is_multi_day)

    @property
    def tag_list(self) -> list[str]:
        if not self.tags:
            return []
        return [tag.strip() for tag in self.tags.split(",") if tag.strip()]

    def occurs_on(self, day: dt.date) -> bool:
        """Check whether the entry falls on (or spans) the given day."""
        if self.date is None:
            return False
        if self.date == day:
            return True
        return self.is_multi_day and self.date <= day and (
            self.end_date is None or self.end_date >= day
        )


class ItineraryEntryMutation(BaseModel):
    """Payload for creating or updating an itinerary entry."""

    model_config = ConfigDict(frozen=True)

    date: dt.date | None = None
    end_date: dt.date | None = None
    is_multi_day: bool = False
    item_type: TimelineItemType = TimelineItemType.tour
    title: str = Field(..., max_length=200)
    details: str | None = None
    location: LocationInfo | None = None
    tags: str | None = None
    metadata: TravelMetadata | None = None
    sort_order: int | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Blank titles become a placeholder."""
        return v.strip() or "Untitled entry"

    @field_validator("end_date")
    @classmethod
    def validate_end_after_start(cls, v: dt.date | None, info: ValidationInfo) -> dt.date | None:
        """Ensure end >= start for multi-day entries."""
        start = info.data.get("date")
        if v is not None and start is not None and v < start:
            raise ValueError("end_date must be >= date")
        return v

    @field_validator("location")
    @classmethod
    def validate_coordinates(cls, v: LocationInfo | None) -> LocationInfo | None:
        """Reject coordinates that are not finite or out of range."""
        if v is None:
            return v
        if v.latitude is not None and not is_valid_coordinate(v.latitude, MAX_LATITUDE):
            raise ValueError("latitude must be between -90 and 90")
        if v.longitude is not None and not is_valid_coordinate(v.longitude, MAX_LONGITUDE):
            raise ValueError("longitude must be between -180 and 180")
        return v
