from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from lifelog.core.logger import setup_logger
from .schema import (
    Envelope,
    EventDraft,
    EventIDResponse,
    EventResponse,
    EventsResponse,
)
from .service import EventService, get_event_service

logger = setup_logger(__name__, include_location=True)
router = APIRouter()


def envelope_response(data, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=Envelope.ok(data).model_dump(mode="json"))


@router.get(
    "/events",
    tags=["Events"],
    summary="List all events",
    description="""
Retrieve every stored event with its type and tags. Not paginated.

**Response:**
```json
{
  "success": true,
  "data": {
    "events": [
      {
        "id": "0b6f4c9e-5d2a-4d8e-9f61-6c1f0f0e2b7a",
        "title": "Test Event",
        "note": "Some Test note",
        "created_at": "2018-11-25T11:26:08Z",
        "type": {"value": "start"},
        "tags": [{"value": "test1"}, {"value": "test2"}]
      }
    ]
  },
  "error": null
}
```
    """
)
async def get_all_events(event_service: EventService = Depends(get_event_service)):
    events = await event_service.list_events()
    payload = EventsResponse(events=[event.to_payload() for event in events])
    return envelope_response(payload.model_dump(mode="json"))


@router.get(
    "/events/{event_id}",
    tags=["Events"],
    summary="Get one event by id",
    description="""
Retrieve a single event by its external id. Unknown ids answer 404 with the
error envelope:

```json
{"success": false, "data": null, "error": {"code": 404, "message": "get_event: event with id '...' not found"}}
```
    """
)
async def get_event(event_id: str, event_service: EventService = Depends(get_event_service)):
    event = await event_service.get_event(event_id)
    payload = EventResponse(event=event.to_payload())
    return envelope_response(payload.model_dump(mode="json"))


@router.post(
    "/event",
    tags=["Events"],
    summary="Create an event",
    description="""
Create a new event. The type and tags are matched by value (case-sensitive)
and created on first use. Repeated tag values are stored once. `timestamp` is
accepted in place of `created_at`.

**Request Body:**
```json
{
  "title": "Test Event",
  "note": "Some Test note",
  "created_at": "2018-11-25T11:26:08Z",
  "type": {"value": "start"},
  "tags": [{"value": "test1"}, {"value": "test2"}]
}
```

**Response:**
```json
{"success": true, "data": {"eventID": "0b6f4c9e-5d2a-4d8e-9f61-6c1f0f0e2b7a"}, "error": null}
```
    """
)
async def create_event(draft: EventDraft, event_service: EventService = Depends(get_event_service)):
    event_id = await event_service.create_event(draft)
    payload = EventIDResponse(event_id=event_id)
    return envelope_response(payload.model_dump(mode="json", by_alias=True))
