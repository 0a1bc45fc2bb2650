"""In-memory implementation of the table store."""

import copy
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from travel_itinerary.config import Settings, get_settings
from travel_itinerary.db.tables import TableContext, TableEntity, matches, table_names
from travel_itinerary.errors import (
    ConcurrencyConflictError,
    EntityAlreadyExistsError,
    EntityNotFoundError,
)


def _new_etag() -> str:
    return f'W/"{uuid.uuid4().hex}"'


class InMemoryTableClient:
    """In-memory implementation of TableClient.

    Rows keep native Python values (date, datetime, Decimal, bool), which is
    how a typed table store hands them back.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._rows: dict[tuple[str, str], TableEntity] = {}

    def _stamp(self, entity: TableEntity) -> TableEntity:
        stored = TableEntity(
            partition_key=entity.partition_key,
            row_key=entity.row_key,
            properties=copy.deepcopy(entity.properties),
            etag=_new_etag(),
            timestamp=datetime.now(timezone.utc),
        )
        self._rows[(entity.partition_key, entity.row_key)] = stored
        return self._copy(stored)

    @staticmethod
    def _copy(entity: TableEntity) -> TableEntity:
        return entity.with_properties(copy.deepcopy(entity.properties))

    async def get_entity(self, partition_key: str, row_key: str) -> TableEntity | None:
        """Get a row by identity."""
        entity = self._rows.get((partition_key, row_key))
        return self._copy(entity) if entity is not None else None

    async def query(
        self,
        partition_key: str | None = None,
        *,
        row_key: str | None = None,
        where: Mapping[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[TableEntity]:
        """Query rows."""
        results: list[TableEntity] = []

        for (pk, rk), entity in self._rows.items():
            if partition_key is not None and pk != partition_key:
                continue
            if row_key is not None and rk != row_key:
                continue
            if not matches(entity, where):
                continue

            results.append(self._copy(entity))
            if limit is not None and len(results) >= limit:
                break

        return results

    async def add_entity(self, entity: TableEntity) -> TableEntity:
        """Insert a new row."""
        if (entity.partition_key, entity.row_key) in self._rows:
            raise EntityAlreadyExistsError(
                f"Row {entity.partition_key}/{entity.row_key} already exists in {self.name}."
            )
        return self._stamp(entity)

    async def update_entity(
        self, entity: TableEntity, *, match_etag: str | None = None
    ) -> TableEntity:
        """Replace an existing row's properties."""
        current = self._rows.get((entity.partition_key, entity.row_key))

        if current is None:
            raise EntityNotFoundError(
                f"Row {entity.partition_key}/{entity.row_key} not found in {self.name}."
            )

        # Optimistic concurrency
        if match_etag is not None and current.etag != match_etag:
            raise ConcurrencyConflictError(self.name, entity.partition_key, entity.row_key)

        return self._stamp(entity)

    async def upsert_entity(self, entity: TableEntity) -> TableEntity:
        """Insert or replace a row unconditionally."""
        return self._stamp(entity)

    async def delete_entity(self, partition_key: str, row_key: str) -> bool:
        """Delete a row."""
        return self._rows.pop((partition_key, row_key), None) is not None


def create_inmemory_tables(settings: Settings | None = None) -> TableContext:
    """Build a TableContext of empty in-memory tables."""
    names = table_names(settings or get_settings())
    return TableContext(**{field: InMemoryTableClient(name) for field, name in names.items()})
