"""
Base Repository.

Provides shared infrastructure for all repositories:
- RecordStore reference
- Logger reference
- Row <-> model conversion at the store boundary
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

from brand_connect.logger import StructuredLogger
from brand_connect.store.base import ColumnValue, Filters, OrderBy, RecordStore, Row

M = TypeVar("M", bound=BaseModel)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_column(value: object) -> ColumnValue:
    """Convert a Python value into something every store can persist."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: to_column(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_column(item) for item in value]
    return value


def to_row(fields: dict[str, object]) -> Row:
    return {key: to_column(value) for key, value in fields.items()}


class BaseRepository(Generic[M]):
    """Base class for all repositories. Receives dependencies via __init__.

    Subclasses set ``TABLE`` (the store entity name) and ``MODEL`` (the
    Pydantic model rows are parsed into).  No untyped row escapes a
    repository.
    """

    TABLE: str = ""
    MODEL: type[M]

    def __init__(self, store: RecordStore, logger: StructuredLogger) -> None:
        self._store = store
        self._logger = logger

    @property
    def store(self) -> RecordStore:
        """Returns the underlying record store."""
        return self._store

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def _parse(self, row: Optional[Row]) -> Optional[M]:
        if row is None:
            return None
        return self.MODEL.model_validate(row)

    def _parse_many(self, rows: list[Row]) -> list[M]:
        return [self.MODEL.model_validate(row) for row in rows]

    # ------------------------------------------------------------------
    # Shared operations
    # ------------------------------------------------------------------

    async def get_by_id(self, record_id: str) -> Optional[M]:
        """Fetch by primary key; ``None`` when absent."""
        return self._parse(await self._store.get_by_id(self.TABLE, record_id))

    async def _find_one(self, filters: Filters) -> Optional[M]:
        rows = await self._store.query(self.TABLE, filters, limit=1)
        return self._parse(rows[0]) if rows else None

    async def _find(
        self,
        filters: Optional[Filters] = None,
        order: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> list[M]:
        rows = await self._store.query(self.TABLE, filters, order=order, limit=limit)
        return self._parse_many(rows)

    async def _insert(self, fields: dict[str, object]) -> M:
        row = await self._store.insert(self.TABLE, to_row(fields))
        return self.MODEL.model_validate(row)

    async def _update(
        self,
        record_id: str,
        fields: dict[str, object],
        expected: Optional[dict[str, object]] = None,
    ) -> M:
        row = await self._store.update(
            self.TABLE,
            record_id,
            to_row(fields),
            expected=to_row(expected) if expected is not None else None,
        )
        return self.MODEL.model_validate(row)
