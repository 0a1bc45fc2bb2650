"""Trip models."""

import re
import uuid
from datetime import date

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

_SLUG_INVALID = re.compile(r"[^a-z0-9-]")
_SLUG_DASHES = re.compile(r"-+")


def slugify(value: str | None) -> str:
    """Make a URL-safe slug; falls back to a random id when nothing survives."""
    slug = _SLUG_INVALID.sub("-", (value or "").strip().lower())
    slug = _SLUG_DASHES.sub("-", slug).strip("-")
    return slug or uuid.uuid4().hex


def normalize_text(value: str | None) -> str | None:
    """Trim a string; blank becomes None."""
    if value is None or not value.strip():
        return None
    return value.strip()


class Trip(BaseModel):
    """Top-level planning unit owned by a user."""

    model_config = ConfigDict(frozen=True)

    trip_id: str
    user_id: str
    name: str
    slug: str
    start_date: date | None = None
    end_date: date | None = None
    home_time_zone: str | None = None
    default_currency: str | None = None
    etag: str | None = None

    def is_past(self, today: date) -> bool:
        return self.end_date is not None and self.end_date < today

    def is_in_progress(self, today: date) -> bool:
        if self.start_date is None or self.start_date > today:
            return False
        return self.end_date is None or self.end_date >= today


class TripMutation(BaseModel):
    """Payload for creating or updating a trip."""

    model_config = ConfigDict(frozen=True)

    name: str
    slug: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    home_time_zone: str | None = None
    default_currency: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Ensure the trip has a name."""
        if not v.strip():
            raise ValueError("name must not be blank")
        return v.strip()

    @field_validator("end_date")
    @classmethod
    def validate_end_after_start(cls, v: date | None, info: ValidationInfo) -> date | None:
        """Ensure end >= start."""
        start = info.data.get("start_date")
        if v is not None and start is not None and v < start:
            raise ValueError("end_date must be >= start_date")
        return v

    @field_validator("default_currency")
    @classmethod
    def validate_currency(cls, v: str | None) -> str | None:
        """Normalize to an upper-case 3-letter code."""
        v = normalize_text(v)
        if v is None:
            return None
        if len(v) != 3 or not v.isalpha():
            raise ValueError("default_currency must be a 3-letter ISO code")
        return v.upper()

    @property
    def resolved_slug(self) -> str:
        return slugify(self.slug if normalize_text(self.slug) else self.name)
