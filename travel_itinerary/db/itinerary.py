"""Table store implementation of ItineraryRepository."""

import asyncio
import logging
import secrets
import uuid
from collections.abc import Callable
from datetime import date, datetime, timezone

from travel_itinerary.config import Settings, get_settings
from travel_itinerary.db.context import RequestContext
from travel_itinerary.db.instrumented import InstrumentedTableClient
from travel_itinerary.db.mapper import (
    apply_booking,
    apply_itinerary_entry,
    apply_saved_share_link,
    apply_share_link,
    apply_trip,
    apply_trip_access,
    stamp_share_link,
    to_booking,
    to_itinerary_entry,
    to_saved_share_link,
    to_share_link,
    to_trip,
    to_trip_access,
)
from travel_itinerary.db.tables import TableContext, TableEntity
from travel_itinerary.errors import (
    BookingEntryMissingError,
    ConcurrencyConflictError,
    DuplicateBookingError,
    EntityAlreadyExistsError,
    EntityNotFoundError,
    InvalidArgumentError,
    ShareCodeUnavailableError,
    ShareLinkIntegrityError,
    TripAccessDeniedError,
)
from travel_itinerary.models.booking import Booking, BookingMutation
from travel_itinerary.models.common import TimelineItemType, TripPermission
from travel_itinerary.models.details import TripDetails
from travel_itinerary.models.entry import ItineraryEntry, ItineraryEntryMutation
from travel_itinerary.models.sharing import (
    SavedShareLink,
    ShareLink,
    ShareLinkMutation,
    TripAccess,
    TripAccessMutation,
)
from travel_itinerary.models.trip import Trip, TripMutation, normalize_text
from travel_itinerary.utils.logging import StructuredStoreLogger
from travel_itinerary.utils.metrics import PrometheusStoreMetrics

logger = logging.getLogger(__name__)

SHARE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CUSTOM_SHARE_CODE_MIN_LENGTH = 4
CUSTOM_SHARE_CODE_MAX_LENGTH = 32

_PERMISSION_STRENGTH = {
    TripPermission.read_only: 0,
    TripPermission.full_control: 1,
    TripPermission.owner: 2,
}

_UNORDERED = 2**31 - 1


def _require(value: str | None, name: str) -> str:
    """Reject blank identifiers before any store access."""
    if value is None or not value.strip():
        raise InvalidArgumentError(f"{name} must not be blank")
    return value.strip()


def _strongest(current: TripPermission | None, candidate: TripPermission) -> TripPermission:
    if current is None or _PERMISSION_STRENGTH[candidate] > _PERMISSION_STRENGTH[current]:
        return candidate
    return current


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_share_code(length: int) -> str:
    """Random share code from the unambiguous alphabet."""
    return "".join(secrets.choice(SHARE_CODE_ALPHABET) for _ in range(length))


def normalize_custom_share_code(value: str) -> str:
    """Upper-case a custom code and check its shape.

    Raises:
        ShareCodeUnavailableError: Wrong length or characters outside the alphabet
    """
    code = value.strip().upper()
    if not CUSTOM_SHARE_CODE_MIN_LENGTH <= len(code) <= CUSTOM_SHARE_CODE_MAX_LENGTH:
        raise ShareCodeUnavailableError(
            f"Share code must be {CUSTOM_SHARE_CODE_MIN_LENGTH}-"
            f"{CUSTOM_SHARE_CODE_MAX_LENGTH} characters long."
        )
    if any(char not in SHARE_CODE_ALPHABET for char in code):
        raise ShareCodeUnavailableError(
            "Share code may only use letters and digits other than I, O, 0 and 1."
        )
    return code


def apply_share_masking(bookings: list[Booking], share_link: ShareLink) -> list[Booking]:
    """Redact bookings for an anonymous viewer.

    Cost fields are stripped first; ``mask_bookings`` then hides everything.
    """
    if not share_link.include_cost:
        bookings = [
            booking.model_copy(
                update={
                    "cost": None,
                    "currency": None,
                    "is_paid": None,
                    "confirmation_url": None,
                }
            )
            for booking in bookings
        ]
    if share_link.mask_bookings:
        return []
    return bookings


def _entry_sort_key(entry: ItineraryEntry) -> tuple:
    return (
        entry.date or date.max,
        entry.sort_order if entry.sort_order is not None else _UNORDERED,
        entry.title.casefold(),
    )


class TableItineraryRepository:
    """Table store implementation of ItineraryRepository.

    Trips are partitioned by owner user id; entries, bookings, grants and
    share links by trip id; saved links by the bookmarking user id.
    """

    def __init__(
        self,
        tables: TableContext,
        settings: Settings | None = None,
        metrics: PrometheusStoreMetrics | None = None,
        store_logger: StructuredStoreLogger | None = None,
    ) -> None:
        self._settings = settings or get_settings()

        def instrument(client):
            return InstrumentedTableClient(client, metrics=metrics, logger=store_logger)

        self._trips = instrument(tables.trips)
        self._entries = instrument(tables.itinerary_entries)
        self._bookings = instrument(tables.bookings)
        self._share_links = instrument(tables.share_links)
        self._access = instrument(tables.trip_access)
        self._saved_links = instrument(tables.saved_share_links)

    # Permission resolution
    async def _find_trip_row(self, trip_id: str) -> TableEntity | None:
        """Locate a trip by id regardless of owner."""
        rows = await self._trips.query(row_key=trip_id, limit=1)
        return rows[0] if rows else None

    async def _stamp_grantee(self, row: TableEntity, user_id: str) -> None:
        """Record the user id on a grant that was matched by email."""
        properties = dict(row.properties)
        properties["UserId"] = user_id
        try:
            await self._access.update_entity(row.with_properties(properties), match_etag=row.etag)
        except (ConcurrencyConflictError, EntityNotFoundError):
            # The grant changed under us; it is re-resolved on the next read
            logger.info(
                "Skipped stamping grantee user id",
                extra={"structured": {"trip_id": row.partition_key, "access_id": row.row_key}},
            )

    def _grant_matches(self, grant: TripAccess, ctx: RequestContext) -> bool:
        if grant.user_id is not None and grant.user_id == ctx.user_id:
            return True
        email = ctx.normalized_email
        return email is not None and grant.email == email

    async def _resolve_grant(self, ctx: RequestContext, trip_id: str) -> TripPermission | None:
        """Strongest permission granted to the user on a trip, if any."""
        best: TripPermission | None = None

        for row in await self._access.query(trip_id):
            grant = to_trip_access(row)
            if not self._grant_matches(grant, ctx):
                continue
            if grant.user_id is None:
                await self._stamp_grantee(row, ctx.user_id)
            best = _strongest(best, grant.permission)

        return best

    async def _resolve_trip(
        self, ctx: RequestContext, trip_id: str
    ) -> tuple[TableEntity, TripPermission] | None:
        """Find a trip the user may see, with their permission on it."""
        owned = await self._trips.get_entity(ctx.user_id, trip_id)
        if owned is not None:
            return owned, TripPermission.owner

        permission = await self._resolve_grant(ctx, trip_id)
        if permission is None:
            return None

        row = await self._find_trip_row(trip_id)
        if row is None:
            return None
        return row, permission

    async def _require_permission(
        self,
        ctx: RequestContext,
        trip_id: str,
        allowed: Callable[[TripPermission], bool],
    ) -> tuple[TableEntity, TripPermission]:
        """Resolve the trip for a write, or raise TripAccessDeniedError."""
        resolved = await self._resolve_trip(ctx, trip_id)
        if resolved is None or not allowed(resolved[1]):
            logger.warning(
                "Trip access denied",
                extra={"structured": {"trip_id": trip_id, "user_id": ctx.user_id}},
            )
            raise TripAccessDeniedError()
        return resolved

    async def _granted_trips(self, ctx: RequestContext) -> list[tuple[TableEntity, TripPermission]]:
        """Trips shared with the user through access grants."""
        if ctx.normalized_email is None:
            rows = await self._access.query(where={"UserId": ctx.user_id})
        else:
            # Stored emails may differ in case, so match on the decoded grant
            rows = await self._access.query()

        permissions: dict[str, TripPermission] = {}
        for row in rows:
            grant = to_trip_access(row)
            if not self._grant_matches(grant, ctx):
                continue
            if grant.user_id is None:
                await self._stamp_grantee(row, ctx.user_id)
            permissions[grant.trip_id] = _strongest(permissions.get(grant.trip_id), grant.permission)

        results: list[tuple[TableEntity, TripPermission]] = []
        for trip_id, permission in permissions.items():
            row = await self._find_trip_row(trip_id)
            if row is not None and row.partition_key != ctx.user_id:
                results.append((row, permission))
        return results

    async def _load_details(
        self,
        trip_row: TableEntity,
        permission: TripPermission,
        share_link: ShareLink | None = None,
    ) -> TripDetails:
        trip = to_trip(trip_row)
        entry_rows, booking_rows = await asyncio.gather(
            self._entries.query(trip.trip_id),
            self._bookings.query(trip.trip_id),
        )

        entries = sorted((to_itinerary_entry(row) for row in entry_rows), key=_entry_sort_key)
        bookings = [to_booking(row) for row in booking_rows]
        if share_link is not None:
            bookings = apply_share_masking(bookings, share_link)

        return TripDetails(
            trip=trip,
            entries=entries,
            bookings=bookings,
            share_link=share_link,
            current_user_permission=permission,
        )

    # Trips
    async def list_trips(self, ctx: RequestContext) -> list[Trip]:
        """List trips the user owns or has been granted."""
        user_id = _require(ctx.user_id, "user_id")

        owned = await self._trips.query(user_id)
        granted = await self._granted_trips(ctx)

        return [to_trip(row) for row in owned] + [to_trip(row) for row, _ in granted]

    async def get_trip(self, ctx: RequestContext, trip_id: str) -> TripDetails | None:
        """Get a trip with its entries and bookings."""
        _require(ctx.user_id, "user_id")
        trip_id = _require(trip_id, "trip_id")

        resolved = await self._resolve_trip(ctx, trip_id)
        if resolved is None:
            return None

        row, permission = resolved
        return await self._load_details(row, permission)

    async def get_trip_by_slug(self, ctx: RequestContext, slug: str) -> TripDetails | None:
        """Get a visible trip by its slug."""
        user_id = _require(ctx.user_id, "user_id")
        slug = _require(slug, "slug").lower()

        owned = await self._trips.query(user_id, where={"Slug": slug}, limit=1)
        if owned:
            return await self._load_details(owned[0], TripPermission.owner)

        for row, permission in await self._granted_trips(ctx):
            if to_trip(row).slug == slug:
                return await self._load_details(row, permission)
        return None

    async def get_trip_by_share_code(
        self, share_code: str, now: datetime | None = None
    ) -> TripDetails | None:
        """Resolve a share code anonymously."""
        share_code = _require(share_code, "share_code").upper()

        rows = await self._share_links.query(row_key=share_code, limit=1)
        if not rows:
            return None

        share_link = to_share_link(rows[0])
        if not share_link.owner_user_id:
            logger.error(
                "Share link has no owner",
                extra={"structured": {"trip_id": share_link.trip_id, "share_code": share_code}},
            )
            raise ShareLinkIntegrityError(f"Share link '{share_code}' is missing its owner.")

        if share_link.is_expired(now):
            return None

        trip_row = await self._trips.get_entity(share_link.owner_user_id, share_link.trip_id)
        if trip_row is None:
            return None

        return await self._load_details(trip_row, TripPermission.read_only, share_link=share_link)

    async def create_trip(self, ctx: RequestContext, mutation: TripMutation) -> Trip:
        """Create a trip owned by the acting user."""
        user_id = _require(ctx.user_id, "user_id")

        entity = TableEntity(
            partition_key=user_id,
            row_key=_new_id(),
            properties=apply_trip({}, mutation),
        )
        stored = await self._trips.add_entity(entity)

        logger.info(
            "Trip created",
            extra={"structured": {"trip_id": stored.row_key, "user_id": user_id}},
        )
        return to_trip(stored)

    async def update_trip(
        self,
        ctx: RequestContext,
        trip_id: str,
        mutation: TripMutation,
        etag: str | None = None,
    ) -> Trip | None:
        """Update a trip."""
        _require(ctx.user_id, "user_id")
        trip_id = _require(trip_id, "trip_id")

        row, _ = await self._require_permission(ctx, trip_id, lambda p: p.can_edit)
        properties = apply_trip(dict(row.properties), mutation)

        try:
            stored = await self._trips.update_entity(
                row.with_properties(properties), match_etag=etag or row.etag
            )
        except EntityNotFoundError:
            return None
        return to_trip(stored)

    async def delete_trip(self, ctx: RequestContext, trip_id: str) -> bool:
        """Delete a trip row. Entries, bookings, grants and links are left in place."""
        _require(ctx.user_id, "user_id")
        trip_id = _require(trip_id, "trip_id")

        resolved = await self._resolve_trip(ctx, trip_id)
        if resolved is None:
            return False

        row, permission = resolved
        if not permission.can_delete_trip:
            raise TripAccessDeniedError()

        return await self._trips.delete_entity(row.partition_key, row.row_key)

    # Itinerary entries
    async def create_itinerary_entry(
        self, ctx: RequestContext, trip_id: str, mutation: ItineraryEntryMutation
    ) -> ItineraryEntry:
        """Add an entry to a trip."""
        _require(ctx.user_id, "user_id")
        trip_id = _require(trip_id, "trip_id")
        await self._require_permission(ctx, trip_id, lambda p: p.can_edit)

        entity = TableEntity(
            partition_key=trip_id,
            row_key=_new_id(),
            properties=apply_itinerary_entry({}, mutation),
        )
        return to_itinerary_entry(await self._entries.add_entity(entity))

    async def update_itinerary_entry(
        self,
        ctx: RequestContext,
        trip_id: str,
        entry_id: str,
        mutation: ItineraryEntryMutation,
        etag: str | None = None,
    ) -> ItineraryEntry | None:
        """Update an entry; an absent sort order keeps the stored one."""
        _require(ctx.user_id, "user_id")
        trip_id = _require(trip_id, "trip_id")
        entry_id = _require(entry_id, "entry_id")
        await self._require_permission(ctx, trip_id, lambda p: p.can_edit)

        existing = await self._entries.get_entity(trip_id, entry_id)
        if existing is None:
            return None

        properties = apply_itinerary_entry(dict(existing.properties), mutation)
        if mutation.sort_order is None and "SortOrder" in existing.properties:
            properties["SortOrder"] = existing.properties["SortOrder"]

        try:
            stored = await self._entries.update_entity(
                existing.with_properties(properties), match_etag=etag or existing.etag
            )
        except EntityNotFoundError:
            return None
        return to_itinerary_entry(stored)

    async def delete_itinerary_entry(
        self, ctx: RequestContext, trip_id: str, entry_id: str
    ) -> bool:
        """Delete an entry."""
        _require(ctx.user_id, "user_id")
        trip_id = _require(trip_id, "trip_id")
        entry_id = _require(entry_id, "entry_id")
        await self._require_permission(ctx, trip_id, lambda p: p.can_edit)

        return await self._entries.delete_entity(trip_id, entry_id)

    async def reorder_itinerary_entries(
        self, ctx: RequestContext, trip_id: str, day: date, entry_ids: list[str]
    ) -> int:
        """Persist a one-based order for the entries of one day.

        Every listed row is re-read and its version tag checked before any
        write, so an entry edited since the day was loaded raises
        ConcurrencyConflictError with nothing renumbered. Rows are still
        written one at a time: a conflict that lands between those writes
        leaves the earlier entries renumbered.

        Raises:
            ConcurrencyConflictError: If a listed entry changed or vanished.
        """
        _require(ctx.user_id, "user_id")
        trip_id = _require(trip_id, "trip_id")
        await self._require_permission(ctx, trip_id, lambda p: p.can_edit)

        on_day = {
            row.row_key: row
            for row in await self._entries.query(trip_id)
            if to_itinerary_entry(row).date == day
        }

        updates: list[TableEntity] = []
        seen: set[str] = set()
        for entry_id in entry_ids:
            row = on_day.get(entry_id.strip()) if entry_id else None
            if row is None or row.row_key in seen:
                continue
            seen.add(row.row_key)

            properties = dict(row.properties)
            properties["SortOrder"] = len(updates) + 1
            updates.append(row.with_properties(properties))

        for row in updates:
            current = await self._entries.get_entity(trip_id, row.row_key)
            if current is None or current.etag != row.etag:
                raise ConcurrencyConflictError(self._entries.name, trip_id, row.row_key)

        for row in updates:
            await self._entries.update_entity(row, match_etag=row.etag)
        return len(updates)

    # Bookings
    async def _resolve_booking_item_type(
        self, trip_id: str, entry_id: str | None, booking_id: str | None = None
    ) -> TimelineItemType:
        """Item type of the linked entry, checking the one-booking-per-entry rule."""
        if entry_id is None:
            return TimelineItemType.other

        entry_row = await self._entries.get_entity(trip_id, entry_id)
        if entry_row is None:
            logger.warning(
                "Booking links to a missing entry",
                extra={"structured": {"trip_id": trip_id, "entry_id": entry_id}},
            )
            raise BookingEntryMissingError(entry_id)

        # Read-check-write: concurrent writers can still both pass this check
        for row in await self._bookings.query(trip_id, where={"EntryId": entry_id}):
            if row.row_key != booking_id:
                logger.warning(
                    "Entry already has a booking",
                    extra={
                        "structured": {
                            "trip_id": trip_id,
                            "entry_id": entry_id,
                            "existing_booking_id": row.row_key,
                        }
                    },
                )
                raise DuplicateBookingError(entry_id, row.row_key)

        return to_itinerary_entry(entry_row).item_type

    async def create_booking(
        self, ctx: RequestContext, trip_id: str, mutation: BookingMutation
    ) -> Booking:
        """Add a booking."""
        _require(ctx.user_id, "user_id")
        trip_id = _require(trip_id, "trip_id")
        await self._require_permission(ctx, trip_id, lambda p: p.can_edit)

        item_type = await self._resolve_booking_item_type(trip_id, normalize_text(mutation.entry_id))

        entity = TableEntity(
            partition_key=trip_id,
            row_key=_new_id(),
            properties=apply_booking({}, mutation, item_type),
        )
        return to_booking(await self._bookings.add_entity(entity))

    async def update_booking(
        self,
        ctx: RequestContext,
        trip_id: str,
        booking_id: str,
        mutation: BookingMutation,
        etag: str | None = None,
    ) -> Booking | None:
        """Update a booking."""
        _require(ctx.user_id, "user_id")
        trip_id = _require(trip_id, "trip_id")
        booking_id = _require(booking_id, "booking_id")
        await self._require_permission(ctx, trip_id, lambda p: p.can_edit)

        existing = await self._bookings.get_entity(trip_id, booking_id)
        if existing is None:
            return None

        item_type = await self._resolve_booking_item_type(
            trip_id, normalize_text(mutation.entry_id), booking_id=booking_id
        )
        properties = apply_booking(dict(existing.properties), mutation, item_type)

        try:
            stored = await self._bookings.update_entity(
                existing.with_properties(properties), match_etag=etag or existing.etag
            )
        except EntityNotFoundError:
            return None
        return to_booking(stored)

    async def delete_booking(self, ctx: RequestContext, trip_id: str, booking_id: str) -> bool:
        """Delete a booking."""
        _require(ctx.user_id, "user_id")
        trip_id = _require(trip_id, "trip_id")
        booking_id = _require(booking_id, "booking_id")
        await self._require_permission(ctx, trip_id, lambda p: p.can_edit)

        return await self._bookings.delete_entity(trip_id, booking_id)

    # Access grants
    async def get_trip_access_list(self, ctx: RequestContext, trip_id: str) -> list[TripAccess]:
        """List grants on a trip."""
        _require(ctx.user_id, "user_id")
        trip_id = _require(trip_id, "trip_id")
        await self._require_permission(ctx, trip_id, lambda p: p.can_manage_access)

        grants = [to_trip_access(row) for row in await self._access.query(trip_id)]
        return sorted(grants, key=lambda grant: grant.email)

    @staticmethod
    def _check_grantable(mutation: TripAccessMutation) -> None:
        if mutation.permission is TripPermission.owner:
            raise InvalidArgumentError("Owner permission cannot be granted.")

    async def grant_trip_access(
        self, ctx: RequestContext, trip_id: str, mutation: TripAccessMutation
    ) -> TripAccess:
        """Grant access by email; re-granting an email changes its level."""
        user_id = _require(ctx.user_id, "user_id")
        trip_id = _require(trip_id, "trip_id")
        self._check_grantable(mutation)
        await self._require_permission(ctx, trip_id, lambda p: p.can_manage_access)

        existing = await self._access.query(trip_id, where={"Email": mutation.email}, limit=1)
        if existing:
            row = existing[0]
            properties = apply_trip_access(dict(row.properties), mutation)
            stored = await self._access.update_entity(
                row.with_properties(properties), match_etag=row.etag
            )
            return to_trip_access(stored)

        properties = apply_trip_access({}, mutation)
        properties["GrantedOn"] = _utcnow()
        properties["GrantedBy"] = user_id

        stored = await self._access.add_entity(
            TableEntity(partition_key=trip_id, row_key=_new_id(), properties=properties)
        )
        logger.info(
            "Trip access granted",
            extra={
                "structured": {
                    "trip_id": trip_id,
                    "access_id": stored.row_key,
                    "permission": mutation.permission.value,
                }
            },
        )
        return to_trip_access(stored)

    async def update_trip_access(
        self,
        ctx: RequestContext,
        trip_id: str,
        access_id: str,
        mutation: TripAccessMutation,
        etag: str | None = None,
    ) -> TripAccess | None:
        """Change a grant."""
        _require(ctx.user_id, "user_id")
        trip_id = _require(trip_id, "trip_id")
        access_id = _require(access_id, "access_id")
        self._check_grantable(mutation)
        await self._require_permission(ctx, trip_id, lambda p: p.can_manage_access)

        existing = await self._access.get_entity(trip_id, access_id)
        if existing is None:
            return None

        properties = apply_trip_access(dict(existing.properties), mutation)
        try:
            stored = await self._access.update_entity(
                existing.with_properties(properties), match_etag=etag or existing.etag
            )
        except EntityNotFoundError:
            return None
        return to_trip_access(stored)

    async def revoke_trip_access(self, ctx: RequestContext, trip_id: str, access_id: str) -> bool:
        """Remove a grant."""
        _require(ctx.user_id, "user_id")
        trip_id = _require(trip_id, "trip_id")
        access_id = _require(access_id, "access_id")
        await self._require_permission(ctx, trip_id, lambda p: p.can_manage_access)

        return await self._access.delete_entity(trip_id, access_id)

    # Share links
    async def get_share_links(self, ctx: RequestContext, trip_id: str) -> list[ShareLink]:
        """List a trip's share links, oldest first."""
        _require(ctx.user_id, "user_id")
        trip_id = _require(trip_id, "trip_id")
        await self._require_permission(ctx, trip_id, lambda p: p.can_edit)

        links = [to_share_link(row) for row in await self._share_links.query(trip_id)]
        oldest = datetime.min.replace(tzinfo=timezone.utc)
        return sorted(links, key=lambda link: (link.created_on or oldest, link.share_code))

    async def _share_code_in_use(self, share_code: str) -> bool:
        return bool(await self._share_links.query(row_key=share_code, limit=1))

    async def _add_share_link(self, trip_id: str, share_code: str, properties: dict) -> TableEntity:
        entity = TableEntity(partition_key=trip_id, row_key=share_code, properties=properties)
        return await self._share_links.add_entity(entity)

    async def create_share_link(
        self,
        ctx: RequestContext,
        trip_id: str,
        mutation: ShareLinkMutation,
        custom_share_code: str | None = None,
    ) -> ShareLink:
        """Create a share link with a generated or custom code."""
        user_id = _require(ctx.user_id, "user_id")
        trip_id = _require(trip_id, "trip_id")
        trip_row, _ = await self._require_permission(ctx, trip_id, lambda p: p.can_edit)

        properties = apply_share_link({}, mutation)
        # Anonymous resolution loads the trip from its owner's partition
        stamp_share_link(properties, trip_row.partition_key, user_id, _utcnow())

        if normalize_text(custom_share_code) is not None:
            share_code = normalize_custom_share_code(custom_share_code)
            if await self._share_code_in_use(share_code):
                raise ShareCodeUnavailableError(f"Share code '{share_code}' is already in use.")
            try:
                stored = await self._add_share_link(trip_id, share_code, properties)
            except EntityAlreadyExistsError as e:
                raise ShareCodeUnavailableError(
                    f"Share code '{share_code}' is already in use."
                ) from e
            return to_share_link(stored)

        for _ in range(self._settings.share_code_attempts):
            share_code = generate_share_code(self._settings.share_code_length)
            if await self._share_code_in_use(share_code):
                continue
            try:
                stored = await self._add_share_link(trip_id, share_code, properties)
            except EntityAlreadyExistsError:
                continue
            return to_share_link(stored)

        logger.warning(
            "Share code generation exhausted",
            extra={"structured": {"trip_id": trip_id}},
        )
        raise ShareCodeUnavailableError("Could not allocate a unique share code.")

    async def update_share_link(
        self,
        ctx: RequestContext,
        trip_id: str,
        share_code: str,
        mutation: ShareLinkMutation,
        etag: str | None = None,
    ) -> ShareLink | None:
        """Change a share link's expiry, masking flags or notes."""
        _require(ctx.user_id, "user_id")
        trip_id = _require(trip_id, "trip_id")
        share_code = _require(share_code, "share_code").upper()
        await self._require_permission(ctx, trip_id, lambda p: p.can_edit)

        existing = await self._share_links.get_entity(trip_id, share_code)
        if existing is None:
            return None

        properties = apply_share_link(dict(existing.properties), mutation)
        try:
            stored = await self._share_links.update_entity(
                existing.with_properties(properties), match_etag=etag or existing.etag
            )
        except EntityNotFoundError:
            return None
        return to_share_link(stored)

    async def delete_share_link(self, ctx: RequestContext, trip_id: str, share_code: str) -> bool:
        """Delete a share link."""
        _require(ctx.user_id, "user_id")
        trip_id = _require(trip_id, "trip_id")
        share_code = _require(share_code, "share_code").upper()
        await self._require_permission(ctx, trip_id, lambda p: p.can_edit)

        return await self._share_links.delete_entity(trip_id, share_code)

    # Saved share links
    async def list_saved_share_links(self, ctx: RequestContext) -> list[SavedShareLink]:
        """List the user's bookmarks, newest first."""
        user_id = _require(ctx.user_id, "user_id")

        saved = [to_saved_share_link(row) for row in await self._saved_links.query(user_id)]
        oldest = datetime.min.replace(tzinfo=timezone.utc)
        return sorted(saved, key=lambda link: link.saved_on or oldest, reverse=True)

    async def save_share_link(
        self, ctx: RequestContext, share_code: str
    ) -> SavedShareLink | None:
        """Bookmark a share code; saving it again refreshes the cached trip name."""
        user_id = _require(ctx.user_id, "user_id")
        share_code = _require(share_code, "share_code").upper()

        details = await self.get_trip_by_share_code(share_code)
        if details is None:
            return None

        existing = await self._saved_links.query(user_id, where={"ShareCode": share_code}, limit=1)
        if existing:
            row = existing[0]
            saved_on = to_saved_share_link(row).saved_on or _utcnow()
            properties = apply_saved_share_link(
                dict(row.properties), share_code, details.trip, saved_on
            )
            stored = await self._saved_links.update_entity(
                row.with_properties(properties), match_etag=row.etag
            )
            return to_saved_share_link(stored)

        properties = apply_saved_share_link({}, share_code, details.trip, _utcnow())
        stored = await self._saved_links.add_entity(
            TableEntity(partition_key=user_id, row_key=_new_id(), properties=properties)
        )
        return to_saved_share_link(stored)

    async def delete_saved_share_link(self, ctx: RequestContext, saved_link_id: str) -> bool:
        """Remove a bookmark."""
        user_id = _require(ctx.user_id, "user_id")
        saved_link_id = _require(saved_link_id, "saved_link_id")

        return await self._saved_links.delete_entity(user_id, saved_link_id)
