"""
Row store gateway for the event tables.

Wraps one psycopg ``AsyncConnection`` and an injected ``EventStatements`` set.
Two primitives (``insert_row``, ``query_rows``) carry every statement; the
typed operations above them decode rows field by field into records.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import psycopg
from psycopg.rows import dict_row

from lifelog.core.errors import ErrorInfo, ErrorKind, StorageError
from lifelog.core.logger import setup_logger
from lifelog.database.sqlcmd import (
    EVENTS_TABLE,
    EVENT_TAGS_TABLE,
    EVENT_TAG_MAPPINGS_TABLE,
    EVENT_TYPES_TABLE,
    STATEMENTS,
    STATUS_ACTIVE,
    EventStatements,
    build_insert,
)
from .schema import EventRecord, EventTagRecord, EventTypeRecord, ReferenceRecord

logger = setup_logger(__name__, include_location=True)

Params = Union[Mapping[str, Any], Sequence[Any], None]


# =============================================================================
# Row decoding
# =============================================================================

def decode_event_row(row: Mapping[str, Any]) -> EventRecord:
    return EventRecord(
        row_id=int(row["row_id"]),
        external_id=str(row["external_id"]),
        title=row["title"],
        note=row["note"] or "",
        user_created_at=row["user_created_at"],
        type_row_id=int(row["type_row_id"]),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
        status=row.get("status") or STATUS_ACTIVE,
    )


def decode_reference_row(row: Mapping[str, Any], record_class: type[ReferenceRecord]) -> ReferenceRecord:
    return record_class(
        row_id=int(row["row_id"]),
        value=row["value"],
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
        status=row.get("status") or STATUS_ACTIVE,
    )


def decode_tag_pair_row(row: Mapping[str, Any]) -> Tuple[EventTagRecord, int]:
    """A tag row joined with the row ID of the event that owns the mapping."""
    return decode_reference_row(row, EventTagRecord), int(row["event_row_id"])


# =============================================================================
# Gateway
# =============================================================================

class RowStoreGateway:
    """Parameterized reads and inserts against the event tables."""

    def __init__(self, conn: psycopg.AsyncConnection, statements: EventStatements = STATEMENTS):
        self._conn = conn
        self._statements = statements

    # ---------------------------------------------------------------- primitives

    async def insert_row(self, table: str, columns: Sequence[str], values: Sequence[Any]) -> int:
        """
        Insert one row and return its generated row_id.

        The insert runs in a nested transaction: a savepoint when the caller
        holds a transaction open, so a constraint violation leaves the outer
        transaction usable.

        Raises:
            ConstraintViolationError: unique or foreign key violation
            StorageError: any other driver failure
            ValueError: unknown table or column
        """
        operation = f"insert_row({table})"
        columns = tuple(columns)
        if len(columns) != len(values):
            raise ValueError(f"{operation}: {len(columns)} columns but {len(values)} values")
        query = build_insert(table, columns)
        try:
            async with self._conn.transaction():
                async with self._conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(query, tuple(values))
                    row = await cur.fetchone()
        except psycopg.Error as e:
            raise StorageError.from_exception(operation, e) from e
        if not row or row.get("row_id") is None:
            message = f"{operation}: no row_id returned"
            raise StorageError(message, info=ErrorInfo(kind=ErrorKind.DB_INTEGRITY, code="NO_ROW_ID", message=message))
        return int(row["row_id"])

    async def query_rows(self, statement: str, params: Params = None) -> List[Dict[str, Any]]:
        """Run a parameterized read and return every row; the cursor is fully consumed and closed."""
        try:
            async with self._conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(statement, params)
                return list(await cur.fetchall() or [])
        except psycopg.Error as e:
            raise StorageError.from_exception("query_rows", e) from e

    async def _query(self, operation: str, statement: str, params: Params = None) -> List[Dict[str, Any]]:
        try:
            return await self.query_rows(statement, params)
        except StorageError as e:
            raise e.wrap(operation) from e

    async def _insert(self, operation: str, table: str, columns: Sequence[str], values: Sequence[Any]) -> int:
        try:
            return await self.insert_row(table, columns, values)
        except StorageError as e:
            raise e.wrap(operation) from e

    # ------------------------------------------------------------------- events

    async def fetch_events(self) -> List[EventRecord]:
        rows = await self._query("fetch_events", self._statements.select_events)
        return [decode_event_row(row) for row in rows]

    async def fetch_event_by_external_id(self, external_id: str) -> Optional[EventRecord]:
        rows = await self._query(
            "fetch_event_by_external_id",
            self._statements.select_event_by_external_id,
            {"external_id": external_id},
        )
        return decode_event_row(rows[0]) if rows else None

    async def insert_event(
        self,
        external_id: str,
        title: str,
        note: str,
        user_created_at: datetime,
        type_row_id: int,
    ) -> int:
        return await self._insert(
            "insert_event",
            EVENTS_TABLE,
            ("external_id", "title", "note", "user_created_at", "type_row_id", "status"),
            (external_id, title, note, user_created_at, type_row_id, STATUS_ACTIVE),
        )

    # ------------------------------------------------------------------- types

    async def find_type_by_value(self, value: str) -> Optional[EventTypeRecord]:
        rows = await self._query(
            "find_type_by_value", self._statements.select_type_by_value, {"value": value}
        )
        return decode_reference_row(rows[0], EventTypeRecord) if rows else None

    async def fetch_types_by_ids(self, ids: Iterable[int]) -> List[EventTypeRecord]:
        ids = list(ids)
        if not ids:
            return []
        rows = await self._query(
            "fetch_types_by_ids", self._statements.select_types_by_ids, {"ids": ids}
        )
        return [decode_reference_row(row, EventTypeRecord) for row in rows]

    async def insert_type(self, value: str) -> int:
        return await self._insert("insert_type", EVENT_TYPES_TABLE, ("value", "status"), (value, STATUS_ACTIVE))

    # -------------------------------------------------------------------- tags

    async def find_tag_by_value(self, value: str) -> Optional[EventTagRecord]:
        rows = await self._query(
            "find_tag_by_value", self._statements.select_tag_by_value, {"value": value}
        )
        return decode_reference_row(rows[0], EventTagRecord) if rows else None

    async def fetch_tags_by_event_ids(self, ids: Iterable[int]) -> List[Tuple[EventTagRecord, int]]:
        ids = list(ids)
        if not ids:
            return []
        rows = await self._query(
            "fetch_tags_by_event_ids", self._statements.select_tags_by_event_ids, {"ids": ids}
        )
        return [decode_tag_pair_row(row) for row in rows]

    async def insert_tag(self, value: str) -> int:
        return await self._insert("insert_tag", EVENT_TAGS_TABLE, ("value", "status"), (value, STATUS_ACTIVE))

    async def insert_tag_mapping(self, event_row_id: int, tag_row_id: int) -> int:
        return await self._insert(
            "insert_tag_mapping",
            EVENT_TAG_MAPPINGS_TABLE,
            ("event_row_id", "tag_row_id"),
            (event_row_id, tag_row_id),
        )
