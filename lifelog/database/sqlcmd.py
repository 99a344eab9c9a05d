"""
SQL templates for the event store (PostgreSQL, psycopg placeholders).

Statements are built once into an immutable ``EventStatements`` set and
injected into the row store gateway. Table names are unqualified; the
connection ``search_path`` selects the schema.
"""
from dataclasses import dataclass
from typing import Dict, Tuple

EVENTS_TABLE = "events"
EVENT_TYPES_TABLE = "event_types"
EVENT_TAGS_TABLE = "event_tags"
EVENT_TAG_MAPPINGS_TABLE = "event_tag_mappings"

STATUS_ACTIVE = "active"
STATUS_DELETED = "deleted"

EVENT_COLUMNS = (
    "row_id", "external_id", "title", "note", "user_created_at",
    "type_row_id", "created_at", "updated_at", "status",
)
REFERENCE_COLUMNS = ("row_id", "value", "created_at", "updated_at", "status")

# Writable columns per table; row_id and audit columns are filled by defaults.
INSERTABLE_COLUMNS: Dict[str, Tuple[str, ...]] = {
    EVENTS_TABLE: ("external_id", "title", "note", "user_created_at", "type_row_id", "status"),
    EVENT_TYPES_TABLE: ("value", "status"),
    EVENT_TAGS_TABLE: ("value", "status"),
    EVENT_TAG_MAPPINGS_TABLE: ("event_row_id", "tag_row_id"),
}


def _select(alias: str, columns: Tuple[str, ...]) -> str:
    return ", ".join(f"{alias}.{column}" for column in columns)


@dataclass(frozen=True)
class EventStatements:
    select_events: str
    select_event_by_external_id: str
    select_types_by_ids: str
    select_type_by_value: str
    select_tags_by_event_ids: str
    select_tag_by_value: str


def build_event_statements() -> EventStatements:
    event_columns = _select("e", EVENT_COLUMNS)
    return EventStatements(
        select_events=f"""
            SELECT {event_columns}
            FROM {EVENTS_TABLE} e
            WHERE e.status <> '{STATUS_DELETED}'
            ORDER BY e.row_id
        """,
        select_event_by_external_id=f"""
            SELECT {event_columns}
            FROM {EVENTS_TABLE} e
            WHERE e.external_id = %(external_id)s
              AND e.status <> '{STATUS_DELETED}'
        """,
        select_types_by_ids=f"""
            SELECT {_select("t", REFERENCE_COLUMNS)}
            FROM {EVENT_TYPES_TABLE} t
            WHERE t.row_id = ANY(%(ids)s)
        """,
        select_type_by_value=f"""
            SELECT {_select("t", REFERENCE_COLUMNS)}
            FROM {EVENT_TYPES_TABLE} t
            WHERE t.value = %(value)s
              AND t.status <> '{STATUS_DELETED}'
        """,
        select_tags_by_event_ids=f"""
            SELECT {_select("g", REFERENCE_COLUMNS)}, m.event_row_id
            FROM {EVENT_TAGS_TABLE} g
            JOIN {EVENT_TAG_MAPPINGS_TABLE} m ON m.tag_row_id = g.row_id
            WHERE m.event_row_id = ANY(%(ids)s)
              AND g.status <> '{STATUS_DELETED}'
            ORDER BY m.event_row_id, m.row_id
        """,
        select_tag_by_value=f"""
            SELECT {_select("g", REFERENCE_COLUMNS)}
            FROM {EVENT_TAGS_TABLE} g
            WHERE g.value = %(value)s
              AND g.status <> '{STATUS_DELETED}'
        """,
    )


def build_insert(table: str, columns: Tuple[str, ...]) -> str:
    """INSERT ... RETURNING row_id for a known table and a subset of its writable columns."""
    allowed = INSERTABLE_COLUMNS.get(table)
    if allowed is None:
        raise ValueError(f"Unknown table: {table}")
    if not columns:
        raise ValueError(f"No columns given for insert into {table}")
    unknown = [column for column in columns if column not in allowed]
    if unknown:
        raise ValueError(f"Unknown columns for {table}: {', '.join(unknown)}")
    placeholders = ", ".join(["%s"] * len(columns))
    return f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) RETURNING row_id"


STATEMENTS = build_event_statements()
