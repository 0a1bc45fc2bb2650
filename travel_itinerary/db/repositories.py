"""Repository protocol interface for itinerary data access."""

from datetime import date, datetime
from typing import Protocol

from travel_itinerary.db.context import RequestContext
from travel_itinerary.models.booking import Booking, BookingMutation
from travel_itinerary.models.details import TripDetails
from travel_itinerary.models.entry import ItineraryEntry, ItineraryEntryMutation
from travel_itinerary.models.sharing import (
    SavedShareLink,
    ShareLink,
    ShareLinkMutation,
    TripAccess,
    TripAccessMutation,
)
from travel_itinerary.models.trip import Trip, TripMutation


class ItineraryRepository(Protocol):
    """Repository for trips and everything scoped to them.

    Every trip-scoped call resolves the acting user's permission first.
    Reads collapse "not found" and "not allowed" into None; writes raise
    TripAccessDeniedError. Blank identifiers raise InvalidArgumentError
    before the store is touched.
    """

    # Trips
    async def list_trips(self, ctx: RequestContext) -> list[Trip]:
        """List trips the user owns or has been granted.

        Args:
            ctx: Request context with the acting user

        Returns:
            Trips in no guaranteed order
        """
        ...

    async def get_trip(self, ctx: RequestContext, trip_id: str) -> TripDetails | None:
        """Get a trip with its entries and bookings.

        Args:
            ctx: Request context (enforces ownership or grant)
            trip_id: Trip ID

        Returns:
            Trip details or None if not found or not visible
        """
        ...

    async def get_trip_by_slug(self, ctx: RequestContext, slug: str) -> TripDetails | None:
        """Get a visible trip by its slug.

        Args:
            ctx: Request context (enforces ownership or grant)
            slug: Trip slug

        Returns:
            Trip details or None if not found or not visible
        """
        ...

    async def get_trip_by_share_code(
        self, share_code: str, now: datetime | None = None
    ) -> TripDetails | None:
        """Resolve a share code anonymously.

        Args:
            share_code: Share code (case-insensitive)
            now: Reference time for the expiry check (default: current UTC time)

        Returns:
            Masked, read-only trip details, or None if the code is unknown,
            expired or its trip is gone

        Raises:
            ShareLinkIntegrityError: The share row has no owner reference
        """
        ...

    async def create_trip(self, ctx: RequestContext, mutation: TripMutation) -> Trip:
        """Create a trip owned by the acting user."""
        ...

    async def update_trip(
        self,
        ctx: RequestContext,
        trip_id: str,
        mutation: TripMutation,
        etag: str | None = None,
    ) -> Trip | None:
        """Update a trip.

        Args:
            ctx: Request context (owner or full control)
            trip_id: Trip ID
            mutation: New trip values
            etag: Version tag the caller read; defaults to the current one

        Returns:
            Updated trip or None if the row vanished

        Raises:
            TripAccessDeniedError: Trip not visible or not editable
            ConcurrencyConflictError: Trip changed since ``etag`` was read
        """
        ...

    async def delete_trip(self, ctx: RequestContext, trip_id: str) -> bool:
        """Delete a trip row. Entries, bookings, grants and links are left in place.

        Returns:
            True if deleted, False if not found or not visible

        Raises:
            TripAccessDeniedError: Visible but the user is not the owner
        """
        ...

    # Itinerary entries
    async def create_itinerary_entry(
        self, ctx: RequestContext, trip_id: str, mutation: ItineraryEntryMutation
    ) -> ItineraryEntry:
        """Add an entry to a trip."""
        ...

    async def update_itinerary_entry(
        self,
        ctx: RequestContext,
        trip_id: str,
        entry_id: str,
        mutation: ItineraryEntryMutation,
        etag: str | None = None,
    ) -> ItineraryEntry | None:
        """Update an entry.

        Returns:
            Updated entry or None if the entry does not exist
        """
        ...

    async def delete_itinerary_entry(
        self, ctx: RequestContext, trip_id: str, entry_id: str
    ) -> bool:
        """Delete an entry. Returns False if it did not exist."""
        ...

    async def reorder_itinerary_entries(
        self, ctx: RequestContext, trip_id: str, day: date, entry_ids: list[str]
    ) -> int:
        """Persist a one-based order for the entries of one day.

        Args:
            ctx: Request context (owner or full control)
            trip_id: Trip ID
            day: Only entries dated on this day are touched
            entry_ids: Desired order; unknown IDs are ignored

        Returns:
            Number of entries written
        """
        ...

    # Bookings
    async def create_booking(
        self, ctx: RequestContext, trip_id: str, mutation: BookingMutation
    ) -> Booking:
        """Add a booking.

        Raises:
            BookingEntryMissingError: Linked entry does not exist
            DuplicateBookingError: Linked entry already has a booking
        """
        ...

    async def update_booking(
        self,
        ctx: RequestContext,
        trip_id: str,
        booking_id: str,
        mutation: BookingMutation,
        etag: str | None = None,
    ) -> Booking | None:
        """Update a booking; it may keep its own entry link.

        Returns:
            Updated booking or None if the booking does not exist
        """
        ...

    async def delete_booking(self, ctx: RequestContext, trip_id: str, booking_id: str) -> bool:
        """Delete a booking. Returns False if it did not exist."""
        ...

    # Access grants
    async def get_trip_access_list(self, ctx: RequestContext, trip_id: str) -> list[TripAccess]:
        """List grants on a trip (owner only)."""
        ...

    async def grant_trip_access(
        self, ctx: RequestContext, trip_id: str, mutation: TripAccessMutation
    ) -> TripAccess:
        """Grant access by email; re-granting an email changes its level.

        Raises:
            InvalidArgumentError: Owner permission requested
            TripAccessDeniedError: Acting user is not the owner
        """
        ...

    async def update_trip_access(
        self,
        ctx: RequestContext,
        trip_id: str,
        access_id: str,
        mutation: TripAccessMutation,
        etag: str | None = None,
    ) -> TripAccess | None:
        """Change a grant. Returns None if it does not exist."""
        ...

    async def revoke_trip_access(self, ctx: RequestContext, trip_id: str, access_id: str) -> bool:
        """Remove a grant. Returns False if it did not exist."""
        ...

    # Share links
    async def get_share_links(self, ctx: RequestContext, trip_id: str) -> list[ShareLink]:
        """List a trip's share links (owner or full control)."""
        ...

    async def create_share_link(
        self,
        ctx: RequestContext,
        trip_id: str,
        mutation: ShareLinkMutation,
        custom_share_code: str | None = None,
    ) -> ShareLink:
        """Create a share link with a generated or custom code.

        Raises:
            ShareCodeUnavailableError: Custom code malformed or taken, or no
                free code could be generated
        """
        ...

    async def update_share_link(
        self,
        ctx: RequestContext,
        trip_id: str,
        share_code: str,
        mutation: ShareLinkMutation,
        etag: str | None = None,
    ) -> ShareLink | None:
        """Change a share link's expiry, masking flags or notes."""
        ...

    async def delete_share_link(self, ctx: RequestContext, trip_id: str, share_code: str) -> bool:
        """Delete a share link. Returns False if it did not exist."""
        ...

    # Saved share links
    async def list_saved_share_links(self, ctx: RequestContext) -> list[SavedShareLink]:
        """List the user's bookmarks, newest first."""
        ...

    async def save_share_link(
        self, ctx: RequestContext, share_code: str
    ) -> SavedShareLink | None:
        """Bookmark a share code.

        Returns:
            The bookmark, or None if the code does not resolve to a trip
        """
        ...

    async def delete_saved_share_link(self, ctx: RequestContext, saved_link_id: str) -> bool:
        """Remove a bookmark. Returns False if it did not exist."""
        ...
