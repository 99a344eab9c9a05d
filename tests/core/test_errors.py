import psycopg
import pytest

from lifelog.core.errors import (
    ConstraintViolationError,
    ErrorKind,
    LifelogError,
    NotFoundError,
    StorageError,
    ValidationError,
    classify_postgres_error,
)


def test_classify_unique_violation():
    info = classify_postgres_error(psycopg.errors.UniqueViolation("duplicate key value violates unique constraint"))
    assert info.kind == ErrorKind.DB_CONSTRAINT
    assert info.pg_code == "23505"
    assert info.code == "PG_23505"
    assert info.retryable is False


@pytest.mark.parametrize(
    "message, code, kind",
    [
        ("deadlock detected", "40P01", ErrorKind.DB_DEADLOCK),
        ("canceling statement due to statement timeout", "57014", ErrorKind.DB_TIMEOUT),
        ("connection refused", None, ErrorKind.DB_CONNECTION),
        ("insert or update violates foreign key constraint", "23503", ErrorKind.DB_CONSTRAINT),
        ("syntax error at or near", "42601", ErrorKind.UNKNOWN),
    ],
)
def test_classify_by_code_and_message(message, code, kind):
    assert classify_postgres_error(Exception(message), error_code=code).kind == kind


def test_storage_error_from_exception_picks_constraint_subclass():
    err = StorageError.from_exception("insert_row(event_tags)", psycopg.errors.UniqueViolation("duplicate key"))
    assert isinstance(err, ConstraintViolationError)
    assert str(err) == "insert_row(event_tags): duplicate key"
    assert err.info.message == str(err)


def test_storage_error_http_status_follows_kind():
    assert StorageError("no row_id returned").http_status == 500
    assert StorageError.from_exception("q", psycopg.OperationalError("connection refused")).http_status == 503
    assert StorageError.from_exception("q", Exception("timeout expired")).http_status == 504
    assert StorageError.from_exception("q", Exception("syntax error")).http_status == 500
    assert NotFoundError("missing").http_status == 404
    assert ValidationError("bad").http_status == 422


def test_wrap_prefixes_operation_and_keeps_class():
    err = NotFoundError("event with id 'x' not found").wrap("get_event")
    assert isinstance(err, NotFoundError)
    assert err.message == "get_event: event with id 'x' not found"
    assert err.info.kind == ErrorKind.NOT_FOUND

    nested = ConstraintViolationError("duplicate").wrap("insert_tag").wrap("resolve_event_tag")
    assert isinstance(nested, ConstraintViolationError)
    assert str(nested) == "resolve_event_tag: insert_tag: duplicate"


def test_error_info_to_dict_omits_empty_fields():
    d = LifelogError("boom").info.to_dict()
    assert d["kind"] == "unknown"
    assert d["message"] == "boom"
    assert "pg_code" not in d
    assert "details" not in d


@pytest.mark.parametrize("value", ["start", "timeout", "deadlock", "connection pool"])
def test_unique_violation_detail_text_does_not_change_kind(value):
    error = psycopg.errors.UniqueViolation(
        'duplicate key value violates unique constraint "idx_event_tags_value"\n'
        f"DETAIL:  Key (value)=({value}) already exists."
    )

    info = classify_postgres_error(error)

    assert info.kind == ErrorKind.DB_CONSTRAINT
    assert isinstance(StorageError.from_exception("insert_row(event_tags)", error), ConstraintViolationError)


def test_sqlstate_wins_over_message_text():
    assert classify_postgres_error(Exception("duplicate key"), error_code="57014").kind == ErrorKind.DB_TIMEOUT
    assert classify_postgres_error(Exception("timeout"), error_code="42P01").kind == ErrorKind.UNKNOWN


def test_storage_error_without_info_is_not_a_connection_failure():
    err = StorageError("something broke")
    assert err.info.kind == ErrorKind.UNKNOWN
    assert err.http_status == 500
