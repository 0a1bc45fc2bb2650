"""Share link, access grant and saved link models."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

from travel_itinerary.models.common import TripPermission


class ShareLink(BaseModel):
    """Code granting anonymous, masked, time-limited read access to a trip."""

    model_config = ConfigDict(frozen=True)

    trip_id: str
    share_code: str
    owner_user_id: str
    created_on: datetime | None = None
    created_by: str | None = None
    expires_on: datetime | None = None
    mask_bookings: bool = False
    include_cost: bool = True
    show_booking_confirmations: bool = True
    show_booking_metadata: bool = True
    notes: str | None = None
    etag: str | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_on is None:
            return False
        return self.expires_on < (now or datetime.now(timezone.utc))


class ShareLinkMutation(BaseModel):
    """Payload for creating or updating a share link."""

    model_config = ConfigDict(frozen=True)

    expires_on: datetime | None = None
    mask_bookings: bool = False
    include_cost: bool = True
    show_booking_confirmations: bool = True
    show_booking_metadata: bool = True
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("expires_on")
    @classmethod
    def validate_expires_on(cls, v: datetime | None) -> datetime | None:
        """Naive expiry times are taken as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class TripAccess(BaseModel):
    """Grant of a permission level on a trip to a collaborator."""

    model_config = ConfigDict(frozen=True)

    trip_id: str
    access_id: str
    email: str
    permission: TripPermission
    user_id: str | None = None
    granted_on: datetime | None = None
    granted_by: str | None = None
    etag: str | None = None


class TripAccessMutation(BaseModel):
    """Payload for granting or changing a collaborator's access."""

    model_config = ConfigDict(frozen=True)

    email: str
    permission: TripPermission = TripPermission.full_control

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Trim and lower-case; require something that looks like an address."""
        v = v.strip().lower()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("email must be a valid address")
        return v


class SavedShareLink(BaseModel):
    """A user's bookmark of someone else's share code."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    saved_link_id: str
    share_code: str
    trip_name: str | None = None
    trip_slug: str | None = None
    saved_on: datetime | None = None
    etag: str | None = None
