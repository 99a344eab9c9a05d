"""
Rebuild complete events from raw event rows.

Types and tags for any number of events are fetched with at most two batched
queries: one for the distinct type row IDs, one for the tag mappings of the
distinct event row IDs.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Sequence

from lifelog.core.errors import ErrorInfo, ErrorKind, LifelogError, StorageError
from .gateway import RowStoreGateway
from .schema import Event, EventRecord, EventTagRecord, EventTypeRecord


class EventAssembler:

    def __init__(self, gateway: RowStoreGateway):
        self._gateway = gateway

    async def assemble(self, rows: Sequence[EventRecord]) -> List[Event]:
        """
        Compose events in input row order. Duplicate rows collapse into one
        event. No query is issued for an empty input.
        """
        if not rows:
            return []
        try:
            return await self._assemble(rows)
        except LifelogError as e:
            raise e.wrap("assemble_events") from e

    async def _assemble(self, rows: Sequence[EventRecord]) -> List[Event]:
        records: List[EventRecord] = []
        positions: Dict[int, int] = {}
        for row in rows:
            if row.row_id not in positions:
                positions[row.row_id] = len(records)
                records.append(row)

        type_ids = list(dict.fromkeys(record.type_row_id for record in records))
        types: Dict[int, EventTypeRecord] = {
            event_type.row_id: event_type
            for event_type in await self._gateway.fetch_types_by_ids(type_ids)
        }

        tags_by_event: Dict[int, List[EventTagRecord]] = defaultdict(list)
        for tag, event_row_id in await self._gateway.fetch_tags_by_event_ids(list(positions)):
            tags_by_event[event_row_id].append(tag)

        events: List[Event] = []
        for record in records:
            event_type = types.get(record.type_row_id)
            if event_type is None:
                message = f"event {record.external_id} references missing type row {record.type_row_id}"
                raise StorageError(
                    message,
                    info=ErrorInfo(kind=ErrorKind.DB_INTEGRITY, code="MISSING_TYPE", message=message),
                )
            events.append(Event(record=record, type=event_type))

        for event_row_id, tags in tags_by_event.items():
            position = positions.get(event_row_id)
            if position is not None:
                events[position].tags.extend(tags)

        return events
