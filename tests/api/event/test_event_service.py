import asyncio
from datetime import datetime, timezone

import pytest

from lifelog.core.errors import ErrorKind, NotFoundError, StorageError, ValidationError
from lifelog.server.api.event.schema import EventDraft
from lifelog.server.api.event.service import EventService, get_event_service, set_event_service
from tests.fixtures.memory_store import MemoryGateway, failing

SCENARIO = {
    "title": "Test Event",
    "note": "Some Test note",
    "created_at": "2018-11-25T11:26:08Z",
    "type": {"value": "start"},
    "tags": [{"value": "test1"}, {"value": "test2"}],
}


def draft(**overrides):
    body = dict(SCENARIO)
    body.update(overrides)
    return EventDraft(**body)


@pytest.mark.asyncio
async def test_create_then_get_round_trips(service):
    event_id = await service.create_event(draft())

    event = await service.get_event(event_id)
    payload = event.to_payload().model_dump(mode="json")

    assert event_id == "evt-0001"
    assert payload["id"] == event_id
    assert payload["title"] == "Test Event"
    assert payload["note"] == "Some Test note"
    assert payload["created_at"] == "2018-11-25T11:26:08Z"
    assert payload["type"] == {"value": "start"}
    assert {tag.value for tag in event.tags} == {"test1", "test2"}


@pytest.mark.asyncio
async def test_create_accepts_mapping_with_timestamp_alias(service):
    body = dict(SCENARIO)
    body["timestamp"] = body.pop("created_at")

    event_id = await service.create_event(body)

    event = await service.get_event(event_id)
    assert event.record.user_created_at == datetime(2018, 11, 25, 11, 26, 8, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_timestamp_is_normalized_to_utc(service):
    event_id = await service.create_event(draft(created_at="2018-11-25T13:26:08+02:00"))

    payload = (await service.get_event(event_id)).to_payload().model_dump(mode="json")

    assert payload["created_at"] == "2018-11-25T11:26:08Z"


@pytest.mark.asyncio
async def test_same_type_is_stored_once(service, store):
    await service.create_event(draft())
    await service.create_event(draft(title="Second", tags=[]))

    assert store.type_values() == ["start"]
    assert len(store.events) == 2


@pytest.mark.asyncio
async def test_overlapping_tags_share_rows(service, store):
    await service.create_event(draft(tags=[{"value": "test1"}, {"value": "test2"}]))
    await service.create_event(draft(tags=[{"value": "test2"}, {"value": "test3"}]))

    assert sorted(store.tag_values()) == ["test1", "test2", "test3"]
    test2 = next(row_id for row_id, tag in store.tags.items() if tag.value == "test2")
    assert [tag_row_id for _, tag_row_id in store.mappings.values()].count(test2) == 2


@pytest.mark.asyncio
async def test_repeated_tag_values_produce_one_mapping(service, store):
    event_id = await service.create_event(draft(tags=[{"value": "x"}, {"value": "x"}, {"value": "y"}]))

    assert len(store.mappings) == 2
    assert {tag.value for tag in (await service.get_event(event_id)).tags} == {"x", "y"}


@pytest.mark.asyncio
async def test_failing_mapping_insert_rolls_back_everything(service, store):
    store.failures["insert_tag_mapping"] = failing("insert_tag_mapping")

    with pytest.raises(StorageError) as exc:
        await service.create_event(draft())

    assert str(exc.value) == "create_event: insert_tag_mapping: connection lost"
    assert store.events == {}
    assert store.types == {}
    assert store.tags == {}
    assert store.mappings == {}


@pytest.mark.asyncio
async def test_event_without_tags(service, store):
    event_id = await service.create_event(draft(tags=None))

    event = await service.get_event(event_id)
    assert event.tags == []
    assert store.mappings == {}


@pytest.mark.asyncio
async def test_list_events_on_empty_store(service, store):
    assert await service.list_events() == []
    assert store.calls == ["fetch_events"]


@pytest.mark.asyncio
async def test_list_events_in_creation_order(service):
    first = await service.create_event(draft(title="one"))
    second = await service.create_event(draft(title="two", type={"value": "end"}))

    events = await service.list_events()

    assert [event.external_id for event in events] == [first, second]
    assert [event.type.value for event in events] == ["start", "end"]


@pytest.mark.asyncio
async def test_get_event_miss_is_not_found(service):
    with pytest.raises(NotFoundError) as exc:
        await service.get_event("does-not-exist")

    assert str(exc.value) == "get_event: event with id 'does-not-exist' not found"
    assert exc.value.http_status == 404


@pytest.mark.asyncio
async def test_invalid_mapping_is_validation_error(service, store):
    with pytest.raises(ValidationError) as exc:
        await service.create_event({"title": "", "type": {"value": "start"}})

    assert exc.value.info.kind == ErrorKind.SCHEMA
    assert exc.value.info.details["errors"]
    assert store.calls == []


@pytest.mark.asyncio
async def test_storage_failure_on_read_is_wrapped(service, store):
    store.failures["fetch_events"] = failing("fetch_events")

    with pytest.raises(StorageError) as exc:
        await service.list_events()

    assert str(exc.value) == "list_events: fetch_events: connection lost"


@pytest.mark.asyncio
async def test_operation_timeout(store, id_factory):
    async def slow(_):
        await asyncio.sleep(1)

    store.before_insert["insert_type"] = slow
    service = EventService(
        connection_factory=store.connect,
        gateway_factory=MemoryGateway,
        id_factory=id_factory,
        timeout=0.05,
    )

    with pytest.raises(StorageError) as exc:
        await service.create_event(draft())

    assert exc.value.info.kind == ErrorKind.DB_TIMEOUT
    assert exc.value.http_status == 504
    assert store.events == {}


def test_set_event_service_replaces_singleton(service):
    set_event_service(service)
    try:
        assert get_event_service() is service
    finally:
        set_event_service(None)
