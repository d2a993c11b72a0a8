"""Tests for the in-memory demo gateway."""

from __future__ import annotations

import pytest

from chpool.driver import DemoDriverGateway, DriverGateway
from chpool.errors import DriverError, DriverErrorKind
from chpool.results import OtherTagged, SelectedRows, UpdatedCount


@pytest.fixture
def gateway() -> DemoDriverGateway:
    return DemoDriverGateway(
        {
            "events": (("id", "name"), [(1, "signup"), (2, "login")]),
        }
    )


def test_demo_gateway_satisfies_protocol(gateway: DemoDriverGateway) -> None:
    assert isinstance(gateway, DriverGateway)


def test_open_and_close_track_handles(gateway: DemoDriverGateway) -> None:
    first = gateway.open("SERVER=localhost;", {})
    second = gateway.open("SERVER=localhost;", {})

    assert first != second
    assert gateway.open_handles == (first, second)
    gateway.close(first)
    assert gateway.open_handles == (second,)
    with pytest.raises(DriverError) as excinfo:
        gateway.close(first)
    assert excinfo.value.kind is DriverErrorKind.CONNECTION_EXCEPTION


def test_unreachable_server_raises_connection_exception(gateway: DemoDriverGateway) -> None:
    gateway.reachable = False

    with pytest.raises(DriverError) as excinfo:
        gateway.open("SERVER=nowhere;", {})

    assert excinfo.value.kind is DriverErrorKind.CONNECTION_EXCEPTION
    assert excinfo.value.sqlstate == "08001"


def test_literal_select_binds_positional_params(gateway: DemoDriverGateway) -> None:
    handle = gateway.open("", {})

    response = gateway.execute(handle, "SELECT ?, ? AS label", [("Int32", 5), ("String", "x")], {})

    assert isinstance(response, SelectedRows)
    assert list(response.columns) == ["?", "label"]
    assert list(response.rows) == [(5, "x")]


def test_select_from_table_projects_and_limits(gateway: DemoDriverGateway) -> None:
    handle = gateway.open("", {})

    everything = gateway.execute(handle, "SELECT * FROM events", [], {})
    names = gateway.execute(handle, "SELECT name FROM events LIMIT 1", [], {})

    assert isinstance(everything, SelectedRows)
    assert list(everything.columns) == ["id", "name"]
    assert len(everything.rows) == 2
    assert isinstance(names, SelectedRows)
    assert list(names.rows) == [("signup",)]


def test_create_insert_and_delete_update_tables(gateway: DemoDriverGateway) -> None:
    handle = gateway.open("", {})

    created = gateway.execute(handle, "CREATE TABLE hits (url String, status Int32) ENGINE = Memory", [], {})
    inserted = gateway.execute(
        handle,
        "INSERT INTO hits (status, url) VALUES (?, ?), (404, '/missing')",
        [("Int32", 200), ("String", "/")],
        {},
    )
    rows = gateway.execute(handle, "SELECT url, status FROM hits", [], {})
    deleted = gateway.execute(handle, "DELETE FROM hits", [], {})

    assert isinstance(created, OtherTagged) and created.command == "create"
    assert inserted == UpdatedCount(2)
    assert isinstance(rows, SelectedRows)
    assert list(rows.rows) == [("/", 200), ("/missing", 404)]
    assert deleted == UpdatedCount(2)


def test_other_commands_are_tagged(gateway: DemoDriverGateway) -> None:
    handle = gateway.open("", {})

    response = gateway.execute(handle, "SHOW TABLES", [], {})

    assert isinstance(response, OtherTagged)
    assert response.command == "show"


def test_parse_failure_is_syntax_error(gateway: DemoDriverGateway) -> None:
    handle = gateway.open("", {})

    with pytest.raises(DriverError) as excinfo:
        gateway.execute(handle, "SELECT (1", [], {})

    assert excinfo.value.kind is DriverErrorKind.SYNTAX_ERROR_OR_ACCESS_RULE_VIOLATION
    assert excinfo.value.sqlstate == "42000"


@pytest.mark.parametrize(
    ("statement", "params", "sqlstate"),
    [
        ("SELECT * FROM missing", [], "42S02"),
        ("SELECT nope FROM events", [], "42S22"),
        ("SELECT ?", [], "07002"),
        ("SELECT * FROM events WHERE id = 1", [], "0A000"),
    ],
)
def test_statement_errors_are_local(
    gateway: DemoDriverGateway, statement: str, params: list[tuple[str, object]], sqlstate: str
) -> None:
    handle = gateway.open("", {})

    with pytest.raises(DriverError) as excinfo:
        gateway.execute(handle, statement, params, {})

    assert excinfo.value.sqlstate == sqlstate
    assert excinfo.value.kind is not DriverErrorKind.CONNECTION_EXCEPTION


def test_broken_connection_fails_with_connection_exception(gateway: DemoDriverGateway) -> None:
    handle = gateway.open("", {})
    gateway.break_connection(handle)

    with pytest.raises(DriverError) as excinfo:
        gateway.execute(handle, "SELECT 1", [], {})

    assert excinfo.value.kind is DriverErrorKind.CONNECTION_EXCEPTION
    gateway.close(handle)
    assert gateway.open_handles == ()


def test_non_integer_limit_is_data_exception(gateway: DemoDriverGateway) -> None:
    handle = gateway.open("", {})

    with pytest.raises(DriverError) as excinfo:
        gateway.execute(handle, "SELECT id FROM events LIMIT 'x'", [], {})

    assert excinfo.value.kind is DriverErrorKind.DATA_EXCEPTION
    assert excinfo.value.sqlstate == "22018"


def test_single_column_insert(gateway: DemoDriverGateway) -> None:
    handle = gateway.open("", {})
    gateway.execute(handle, "CREATE TABLE tags (name String) ENGINE = Memory", [], {})

    inserted = gateway.execute(handle, "INSERT INTO tags VALUES (?), ('beta')", [("String", "alpha")], {})
    rows = gateway.execute(handle, "SELECT name FROM tags", [], {})

    assert inserted == UpdatedCount(2)
    assert isinstance(rows, SelectedRows)
    assert list(rows.rows) == [("alpha",), ("beta",)]
