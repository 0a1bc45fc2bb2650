"""Table client wrapper that times, counts and logs every store call."""

import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from travel_itinerary.db.tables import TableClient, TableEntity
from travel_itinerary.errors import (
    ConcurrencyConflictError,
    EntityAlreadyExistsError,
    EntityNotFoundError,
    TransientStoreError,
)
from travel_itinerary.utils.logging import StructuredStoreLogger
from travel_itinerary.utils.metrics import PrometheusStoreMetrics

T = TypeVar("T")


class InstrumentedTableClient:
    """TableClient decorator recording latency, errors and conflicts.

    Errors are re-raised unchanged. ``asyncio.CancelledError`` is not an
    ``Exception`` and passes through without being recorded.
    """

    def __init__(
        self,
        inner: TableClient,
        metrics: PrometheusStoreMetrics | None = None,
        logger: StructuredStoreLogger | None = None,
    ) -> None:
        self._inner = inner
        self._metrics = metrics or PrometheusStoreMetrics()
        self._logger = logger or StructuredStoreLogger()
        self.name = inner.name

    def _record(
        self, operation: str, outcome: str, started: float, error_reason: str | None = None
    ) -> None:
        elapsed_ms = (time.monotonic() - started) * 1000
        self._metrics.record_latency(self.name, operation, outcome, elapsed_ms)
        self._logger.log_operation(
            self.name, operation, outcome, elapsed_ms, error_reason=error_reason
        )

    async def _call(
        self,
        operation: str,
        fn: Callable[[], Awaitable[T]],
        is_miss: Callable[[T], bool] | None = None,
    ) -> T:
        started = time.monotonic()

        try:
            result = await fn()
        except ConcurrencyConflictError:
            self._metrics.inc_conflict(self.name)
            self._record(operation, "conflict", started, error_reason="etag_mismatch")
            raise
        except EntityNotFoundError:
            self._record(operation, "not_found", started)
            raise
        except EntityAlreadyExistsError:
            self._metrics.inc_error(self.name, "already_exists")
            self._record(operation, "already_exists", started, error_reason="already_exists")
            raise
        except TransientStoreError:
            self._metrics.inc_error(self.name, "transient")
            self._record(operation, "transient", started, error_reason="transient")
            raise
        except Exception as e:
            self._metrics.inc_error(self.name, "store_error")
            self._record(operation, "error", started, error_reason=type(e).__name__)
            raise

        outcome = "not_found" if is_miss is not None and is_miss(result) else "success"
        self._record(operation, outcome, started)
        return result

    async def get_entity(self, partition_key: str, row_key: str) -> TableEntity | None:
        return await self._call(
            "get",
            lambda: self._inner.get_entity(partition_key, row_key),
            is_miss=lambda result: result is None,
        )

    async def query(
        self,
        partition_key: str | None = None,
        *,
        row_key: str | None = None,
        where: Mapping[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[TableEntity]:
        return await self._call(
            "query",
            lambda: self._inner.query(partition_key, row_key=row_key, where=where, limit=limit),
        )

    async def add_entity(self, entity: TableEntity) -> TableEntity:
        return await self._call("add", lambda: self._inner.add_entity(entity))

    async def update_entity(
        self, entity: TableEntity, *, match_etag: str | None = None
    ) -> TableEntity:
        return await self._call(
            "update", lambda: self._inner.update_entity(entity, match_etag=match_etag)
        )

    async def upsert_entity(self, entity: TableEntity) -> TableEntity:
        return await self._call("upsert", lambda: self._inner.upsert_entity(entity))

    async def delete_entity(self, partition_key: str, row_key: str) -> bool:
        return await self._call(
            "delete",
            lambda: self._inner.delete_entity(partition_key, row_key),
            is_miss=lambda result: not result,
        )
