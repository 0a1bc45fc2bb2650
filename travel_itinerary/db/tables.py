"""Table store abstraction: partitioned, schema-less rows with version tags."""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Protocol

from travel_itinerary.config import Settings


@dataclass(frozen=True)
class TableEntity:
    """A single row in a table.

    ``partition_key`` and ``row_key`` together form the row identity.
    ``etag`` is an opaque version tag assigned by the store on every write;
    callers pass it back unmodified and never inspect it.
    """

    partition_key: str
    row_key: str
    properties: dict[str, Any] = field(default_factory=dict)
    etag: str | None = None
    timestamp: datetime | None = None

    def get(self, name: str) -> Any:
        return self.properties.get(name)

    def with_properties(self, properties: Mapping[str, Any]) -> "TableEntity":
        return replace(self, properties=dict(properties))


class TableClient(Protocol):
    """Async client for one table.

    Every method may suspend on the remote store. Cancellation of the
    awaiting task aborts the call and surfaces as ``asyncio.CancelledError``.
    """

    name: str

    async def get_entity(self, partition_key: str, row_key: str) -> TableEntity | None:
        """Get a row by identity.

        Returns:
            The row or None if it does not exist
        """
        ...

    async def query(
        self,
        partition_key: str | None = None,
        *,
        row_key: str | None = None,
        where: Mapping[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[TableEntity]:
        """Query rows.

        Args:
            partition_key: Restrict to one partition (None scans all)
            row_key: Restrict to one row key across the scanned partitions
            where: Property equality filters
            limit: Maximum number of rows

        Returns:
            Matching rows in no guaranteed order
        """
        ...

    async def add_entity(self, entity: TableEntity) -> TableEntity:
        """Insert a new row.

        Raises:
            EntityAlreadyExistsError: If the identity is taken
        """
        ...

    async def update_entity(
        self, entity: TableEntity, *, match_etag: str | None = None
    ) -> TableEntity:
        """Replace an existing row's properties.

        Args:
            entity: Row with the new property set
            match_etag: Reject the write unless the stored tag equals this

        Raises:
            EntityNotFoundError: If the row does not exist
            ConcurrencyConflictError: If ``match_etag`` does not match
        """
        ...

    async def upsert_entity(self, entity: TableEntity) -> TableEntity:
        """Insert or replace a row unconditionally."""
        ...

    async def delete_entity(self, partition_key: str, row_key: str) -> bool:
        """Delete a row.

        Returns:
            True if a row was deleted, False if none existed
        """
        ...


def matches(entity: TableEntity, where: Mapping[str, Any] | None) -> bool:
    """Check property equality filters against a row."""
    if not where:
        return True
    return all(entity.properties.get(name) == value for name, value in where.items())


@dataclass(frozen=True)
class TableContext:
    """The set of tables backing the itinerary repository."""

    trips: TableClient
    itinerary_entries: TableClient
    bookings: TableClient
    share_links: TableClient
    trip_access: TableClient
    saved_share_links: TableClient


def table_names(settings: Settings) -> dict[str, str]:
    """Map TableContext field names to configured table names."""
    return {
        "trips": settings.trips_table,
        "itinerary_entries": settings.itinerary_entries_table,
        "bookings": settings.bookings_table,
        "share_links": settings.share_links_table,
        "trip_access": settings.trip_access_table,
        "saved_share_links": settings.saved_share_links_table,
    }
