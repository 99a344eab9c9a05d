"""
Find-or-create for reference entities (event types and event tags).
"""
from __future__ import annotations

from enum import Enum
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple

from lifelog.core.errors import ConstraintViolationError, LifelogError
from lifelog.core.logger import setup_logger
from .gateway import RowStoreGateway
from .schema import EventTagRecord, EventTypeRecord, ReferenceRecord

logger = setup_logger(__name__, include_location=True)


class ReferenceKind(str, Enum):
    TYPE = "type"
    TAG = "tag"


class ReferenceResolver:
    """
    Resolve a reference value to its stored row, inserting it when absent.

    There is no application-level locking. Two concurrent creates of the same
    value race on the unique index; the loser sees a constraint violation,
    re-queries once and returns the winner's row.
    """

    def __init__(self, gateway: RowStoreGateway, kind: ReferenceKind):
        self._gateway = gateway
        self.kind = ReferenceKind(kind)
        self._find: Callable[[str], Awaitable[Optional[ReferenceRecord]]]
        self._insert: Callable[[str], Awaitable[int]]
        if self.kind == ReferenceKind.TYPE:
            self._find = gateway.find_type_by_value
            self._insert = gateway.insert_type
            self._record_class = EventTypeRecord
        else:
            self._find = gateway.find_tag_by_value
            self._insert = gateway.insert_tag
            self._record_class = EventTagRecord

    @property
    def operation(self) -> str:
        return f"resolve_event_{self.kind.value}"

    async def resolve(self, value: str) -> Tuple[ReferenceRecord, bool]:
        """Return ``(record, created)`` for ``value`` (case-sensitive exact match)."""
        try:
            return await self._resolve(value)
        except LifelogError as e:
            raise e.wrap(self.operation) from e

    async def _resolve(self, value: str) -> Tuple[ReferenceRecord, bool]:
        found = await self._find(value)
        if found is not None:
            return found, False

        try:
            row_id = await self._insert(value)
        except ConstraintViolationError:
            found = await self._find(value)
            if found is None:
                raise
            logger.info(f"Event {self.kind.value} '{value}' was created concurrently; using row {found.row_id}")
            return found, False

        logger.debug(f"Created event {self.kind.value} '{value}' (row {row_id})")
        return self._record_class(row_id=row_id, value=value), True

    async def resolve_many(self, values: Iterable[str]) -> List[ReferenceRecord]:
        """Resolve values in input order; repeated values resolve once."""
        records = []
        for value in dict.fromkeys(values):
            record, _ = await self.resolve(value)
            records.append(record)
        return records
