"""
Event service: the public operations behind the event endpoints.

- list_events: every stored event, hydrated with its type and tags
- get_event: one event by external ID, NotFoundError on a miss
- create_event: find-or-create the type and tags and insert the event and
  its tag mappings in a single transaction
"""
from __future__ import annotations

import asyncio
from contextlib import AbstractAsyncContextManager
from typing import Any, Callable, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from lifelog.core.common import new_external_id, transform
from lifelog.core.db.pool import get_pool_connection
from lifelog.core.errors import (
    ErrorInfo,
    ErrorKind,
    LifelogError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from lifelog.core.logger import setup_logger
from lifelog.core.logging_context import LoggingContext
from lifelog.database.sqlcmd import STATEMENTS, EventStatements
from .assembler import EventAssembler
from .gateway import RowStoreGateway
from .resolver import ReferenceKind, ReferenceResolver
from .schema import Event, EventDraft

logger = setup_logger(__name__, include_location=True)

ConnectionFactory = Callable[[], AbstractAsyncContextManager]
GatewayFactory = Callable[[Any, EventStatements], RowStoreGateway]


class EventService:
    """
    Orchestrates event reads and writes over a pooled connection.

    Every operation borrows one connection for its whole duration. Reads run
    outside an explicit transaction; creates run inside one and roll back
    entirely on any failure.
    """

    def __init__(
        self,
        connection_factory: ConnectionFactory = get_pool_connection,
        statements: EventStatements = STATEMENTS,
        gateway_factory: GatewayFactory = RowStoreGateway,
        id_factory: Callable[[], str] = new_external_id,
        timeout: Optional[float] = None,
    ):
        self._connect = connection_factory
        self._statements = statements
        self._gateway_factory = gateway_factory
        self._new_id = id_factory
        self.timeout = timeout

    async def _run(self, operation: str, coro):
        try:
            if self.timeout:
                return await asyncio.wait_for(coro, timeout=self.timeout)
            return await coro
        except asyncio.TimeoutError as e:
            message = f"{operation}: timed out after {self.timeout}s"
            raise StorageError(
                message,
                info=ErrorInfo(kind=ErrorKind.DB_TIMEOUT, retryable=True, code="TIMEOUT", message=message),
            ) from e
        except LifelogError as e:
            raise e.wrap(operation) from e

    # ----------------------------------------------------------------- reads

    async def list_events(self) -> List[Event]:
        with LoggingContext(logger, operation="list_events"):
            events = await self._run("list_events", self._list_events())
            logger.debug(f"Listed {len(events)} events")
            return events

    async def _list_events(self) -> List[Event]:
        async with self._connect() as conn:
            gateway = self._gateway_factory(conn, self._statements)
            rows = await gateway.fetch_events()
            return await EventAssembler(gateway).assemble(rows)

    async def get_event(self, external_id: str) -> Event:
        with LoggingContext(logger, operation="get_event", event_id=external_id):
            return await self._run("get_event", self._get_event(external_id))

    async def _get_event(self, external_id: str) -> Event:
        async with self._connect() as conn:
            gateway = self._gateway_factory(conn, self._statements)
            row = await gateway.fetch_event_by_external_id(external_id)
            if row is None:
                raise NotFoundError(f"event with id '{external_id}' not found")
            events = await EventAssembler(gateway).assemble([row])
            return events[0]

    # ---------------------------------------------------------------- writes

    async def create_event(self, draft: Union[EventDraft, Mapping[str, Any]]) -> str:
        """Store a new event and return its generated external ID."""
        if not isinstance(draft, EventDraft):
            try:
                draft = transform(EventDraft, dict(draft))
            except PydanticValidationError as e:
                message = f"create_event: invalid event: {e.error_count()} validation error(s)"
                raise ValidationError(
                    message,
                    info=ErrorInfo(
                        kind=ErrorKind.SCHEMA,
                        code="SCHEMA",
                        message=message,
                        details={"errors": e.errors(include_input=False, include_url=False)},
                    ),
                ) from e

        external_id = self._new_id()
        with LoggingContext(logger, operation="create_event", event_id=external_id):
            await self._run("create_event", self._create_event(external_id, draft))
            logger.info(f"Created event '{draft.title}' of type '{draft.type.value}' with {len(draft.distinct_tag_values())} tag(s)")
            return external_id

    async def _create_event(self, external_id: str, draft: EventDraft) -> None:
        async with self._connect() as conn:
            async with conn.transaction():
                gateway = self._gateway_factory(conn, self._statements)

                event_type, _ = await ReferenceResolver(gateway, ReferenceKind.TYPE).resolve(draft.type.value)
                tags = await ReferenceResolver(gateway, ReferenceKind.TAG).resolve_many(draft.distinct_tag_values())

                event_row_id = await gateway.insert_event(
                    external_id=external_id,
                    title=draft.title,
                    note=draft.note,
                    user_created_at=draft.created_at,
                    type_row_id=event_type.row_id,
                )
                for tag_row_id in dict.fromkeys(tag.row_id for tag in tags):
                    await gateway.insert_tag_mapping(event_row_id, tag_row_id)


_service: Optional[EventService] = None


def get_event_service() -> EventService:
    """FastAPI dependency returning the process-wide event service."""
    global _service
    if _service is None:
        from lifelog.core.config import get_settings
        _service = EventService(timeout=get_settings().operation_timeout_or_none)
    return _service


def set_event_service(service: Optional[EventService]) -> None:
    global _service
    _service = service
