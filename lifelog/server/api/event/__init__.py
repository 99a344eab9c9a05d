"""
Event API package: endpoints plus the persistence and reconstruction layer
behind them (gateway, resolver, assembler, service).
No endpoints are defined in this __init__; it only re-exports public symbols.
"""

from .endpoint import router
from .service import EventService, get_event_service, set_event_service
from .gateway import RowStoreGateway
from .resolver import ReferenceKind, ReferenceResolver
from .assembler import EventAssembler
from .schema import (
    Envelope,
    Event,
    EventDraft,
    EventPayload,
    EventRecord,
    EventTagRecord,
    EventTypeRecord,
    EVENT_TYPE_START,
    EVENT_TYPE_END,
)

__all__ = [
    'router',
    'EventService',
    'get_event_service',
    'set_event_service',
    'RowStoreGateway',
    'ReferenceKind',
    'ReferenceResolver',
    'EventAssembler',
    'Envelope',
    'Event',
    'EventDraft',
    'EventPayload',
    'EventRecord',
    'EventTagRecord',
    'EventTypeRecord',
    'EVENT_TYPE_START',
    'EVENT_TYPE_END',
]
