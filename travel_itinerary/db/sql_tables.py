"""SQL implementation of the table store."""

import uuid
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from travel_itinerary.config import Settings, get_settings
from travel_itinerary.db.models import TableRow
from travel_itinerary.db.tables import TableContext, TableEntity, matches, table_names
from travel_itinerary.errors import (
    ConcurrencyConflictError,
    EntityAlreadyExistsError,
    EntityNotFoundError,
    TransientStoreError,
)


def _new_etag() -> str:
    return f'W/"{uuid.uuid4().hex}"'


def _to_json_value(value: Any) -> Any:
    """Flatten scalars JSON cannot carry natively.

    Dates and datetimes become ISO-8601 strings and decimals numeric
    strings; the entity codec reads both representations back.
    """
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def _encode_properties(properties: Mapping[str, Any]) -> dict[str, Any]:
    return {name: _to_json_value(value) for name, value in properties.items()}


@asynccontextmanager
async def _translate_errors(table: str) -> AsyncIterator[None]:
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        raise TransientStoreError(f"Table store call on {table} failed: {e}") from e


class SqlTableClient:
    """SQL implementation of TableClient.

    All logical tables share the ``table_entity`` relation and are told apart
    by ``table_name``. Each call runs in its own short-lived session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], name: str) -> None:
        self._session_factory = session_factory
        self.name = name

    def _to_entity(self, row: TableRow) -> TableEntity:
        return TableEntity(
            partition_key=row.partition_key,
            row_key=row.row_key,
            properties=dict(row.properties or {}),
            etag=row.etag,
            timestamp=row.updated_at,
        )

    def _key_filter(self, partition_key: str, row_key: str) -> tuple:
        return (
            TableRow.table_name == self.name,
            TableRow.partition_key == partition_key,
            TableRow.row_key == row_key,
        )

    async def get_entity(self, partition_key: str, row_key: str) -> TableEntity | None:
        """Get a row by identity."""
        async with _translate_errors(self.name), self._session_factory() as session:
            row = await session.get(TableRow, (self.name, partition_key, row_key))

            if row is None:
                return None

            return self._to_entity(row)

    async def query(
        self,
        partition_key: str | None = None,
        *,
        row_key: str | None = None,
        where: Mapping[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[TableEntity]:
        """Query rows.

        Property filters are evaluated after the identity filters so the same
        semantics hold on every dialect.
        """
        stmt = select(TableRow).where(TableRow.table_name == self.name)
        if partition_key is not None:
            stmt = stmt.where(TableRow.partition_key == partition_key)
        if row_key is not None:
            stmt = stmt.where(TableRow.row_key == row_key)

        async with _translate_errors(self.name), self._session_factory() as session:
            result = await session.execute(stmt)
            rows = result.scalars().all()

        results: list[TableEntity] = []
        for row in rows:
            entity = self._to_entity(row)
            if not matches(entity, where):
                continue

            results.append(entity)
            if limit is not None and len(results) >= limit:
                break

        return results

    async def add_entity(self, entity: TableEntity) -> TableEntity:
        """Insert a new row."""
        row = TableRow(
            table_name=self.name,
            partition_key=entity.partition_key,
            row_key=entity.row_key,
            properties=_encode_properties(entity.properties),
            etag=_new_etag(),
            updated_at=datetime.now(timezone.utc),
        )

        async with _translate_errors(self.name), self._session_factory() as session:
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise EntityAlreadyExistsError(
                    f"Row {entity.partition_key}/{entity.row_key} already exists in {self.name}."
                ) from e

            return self._to_entity(row)

    async def update_entity(
        self, entity: TableEntity, *, match_etag: str | None = None
    ) -> TableEntity:
        """Replace an existing row's properties."""
        etag = _new_etag()
        now = datetime.now(timezone.utc)
        properties = _encode_properties(entity.properties)

        stmt = (
            update(TableRow)
            .where(*self._key_filter(entity.partition_key, entity.row_key))
            .values(properties=properties, etag=etag, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if match_etag is not None:
            stmt = stmt.where(TableRow.etag == match_etag)

        async with _translate_errors(self.name), self._session_factory() as session:
            result = await session.execute(stmt)

            if result.rowcount == 0:
                exists = await session.get(
                    TableRow, (self.name, entity.partition_key, entity.row_key)
                )
                await session.rollback()
                if exists is None:
                    raise EntityNotFoundError(
                        f"Row {entity.partition_key}/{entity.row_key} not found in {self.name}."
                    )
                raise ConcurrencyConflictError(self.name, entity.partition_key, entity.row_key)

            await session.commit()

        return TableEntity(
            partition_key=entity.partition_key,
            row_key=entity.row_key,
            properties=properties,
            etag=etag,
            timestamp=now,
        )

    async def upsert_entity(self, entity: TableEntity) -> TableEntity:
        """Insert or replace a row unconditionally."""
        row = TableRow(
            table_name=self.name,
            partition_key=entity.partition_key,
            row_key=entity.row_key,
            properties=_encode_properties(entity.properties),
            etag=_new_etag(),
            updated_at=datetime.now(timezone.utc),
        )

        async with _translate_errors(self.name), self._session_factory() as session:
            merged = await session.merge(row)
            await session.commit()
            return self._to_entity(merged)

    async def delete_entity(self, partition_key: str, row_key: str) -> bool:
        """Delete a row."""
        stmt = delete(TableRow).where(*self._key_filter(partition_key, row_key))

        async with _translate_errors(self.name), self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount > 0


def create_sql_tables(
    session_factory: async_sessionmaker[AsyncSession], settings: Settings | None = None
) -> TableContext:
    """Build a TableContext backed by the ``table_entity`` relation."""
    names = table_names(settings or get_settings())
    return TableContext(
        **{field: SqlTableClient(session_factory, name) for field, name in names.items()}
    )
