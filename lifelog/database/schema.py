"""
Event store DDL.

Creates the schema and the four event tables idempotently. Used by
``python -m lifelog.server --init-db``.
"""
import psycopg

from lifelog.core.logger import setup_logger
from lifelog.database.sqlcmd import (
    EVENTS_TABLE,
    EVENT_TYPES_TABLE,
    EVENT_TAGS_TABLE,
    EVENT_TAG_MAPPINGS_TABLE,
    STATUS_ACTIVE,
    STATUS_DELETED,
)

logger = setup_logger(__name__, include_location=True)


def _audit_columns() -> str:
    return f"""
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        status TEXT NOT NULL DEFAULT '{STATUS_ACTIVE}'
    """


def _reference_table(table: str) -> list[str]:
    return [
        f"""
        CREATE TABLE IF NOT EXISTS {{schema}}.{table} (
            row_id BIGSERIAL PRIMARY KEY,
            value TEXT NOT NULL,
            {_audit_columns()}
        )
        """,
        f"""
        CREATE UNIQUE INDEX IF NOT EXISTS idx_{table}_value
            ON {{schema}}.{table} (value) WHERE status <> '{STATUS_DELETED}'
        """,
    ]


def table_ddl(schema: str) -> list[str]:
    statements = [f"CREATE SCHEMA IF NOT EXISTS {schema}"]
    statements.extend(_reference_table(EVENT_TYPES_TABLE))
    statements.extend(_reference_table(EVENT_TAGS_TABLE))
    statements.extend([
        f"""
        CREATE TABLE IF NOT EXISTS {{schema}}.{EVENTS_TABLE} (
            row_id BIGSERIAL PRIMARY KEY,
            external_id TEXT NOT NULL UNIQUE,
            title TEXT NOT NULL,
            note TEXT NOT NULL DEFAULT '',
            user_created_at TIMESTAMPTZ NOT NULL,
            type_row_id BIGINT NOT NULL REFERENCES {{schema}}.{EVENT_TYPES_TABLE} (row_id),
            {_audit_columns()}
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS {{schema}}.{EVENT_TAG_MAPPINGS_TABLE} (
            row_id BIGSERIAL PRIMARY KEY,
            event_row_id BIGINT NOT NULL REFERENCES {{schema}}.{EVENTS_TABLE} (row_id),
            tag_row_id BIGINT NOT NULL REFERENCES {{schema}}.{EVENT_TAGS_TABLE} (row_id),
            UNIQUE (event_row_id, tag_row_id)
        )
        """,
        f"""
        CREATE INDEX IF NOT EXISTS idx_{EVENT_TAG_MAPPINGS_TABLE}_event
            ON {{schema}}.{EVENT_TAG_MAPPINGS_TABLE} (event_row_id)
        """,
    ])
    return [statement.replace("{schema}", schema) for statement in statements]


async def initialize_db(conninfo: str, schema: str) -> None:
    """Create the event store tables if they do not exist yet."""
    async with await psycopg.AsyncConnection.connect(conninfo) as conn:
        async with conn.transaction():
            for statement in table_ddl(schema):
                await conn.execute(statement)
    logger.info(f"Event store schema '{schema}' is ready")
