"""Tests for the reference connection pool."""

from __future__ import annotations

from typing import Any, Mapping

import pytest

from chpool.driver import DemoDriverGateway
from chpool.errors import DriverErrorKind
from chpool.models import CommandKind, Params, Query
from chpool.pool import ConnectionPool, PoolError
from chpool.protocol import ConnectionProtocol
from chpool.results import DriverResponse


@pytest.fixture
def gateway() -> DemoDriverGateway:
    return DemoDriverGateway({"events": (("id",), [(1,), (2,), (3,)])})


def test_execute_reuses_a_single_connection(gateway: DemoDriverGateway) -> None:
    pool = ConnectionPool(ConnectionProtocol(gateway), size=2)

    first = pool.execute(Query("all", "SELECT * FROM events"))
    second = pool.execute(Query("one", "SELECT 1"))

    assert first.command is CommandKind.SELECTED
    assert first.num_rows == 3
    assert second.rows == ((1,),)
    assert len(gateway.open_handles) == 1
    assert pool.stats() == {"idle_connections": 1, "size": 2}


def test_checkout_pings_before_handing_out(gateway: DemoDriverGateway) -> None:
    pool = ConnectionPool(ConnectionProtocol(gateway))

    state = pool.checkout()
    pool.checkin(state)
    pool.checkout()

    assert gateway.statements == ["SELECT 1", "SELECT 1"]


def test_checkout_replaces_dead_connection(gateway: DemoDriverGateway) -> None:
    pool = ConnectionPool(ConnectionProtocol(gateway))
    state = pool.checkout()
    pool.checkin(state)
    gateway.break_connection(state.handle)

    replacement = pool.checkout()

    assert replacement.handle != state.handle
    assert gateway.open_handles == (replacement.handle,)


def test_local_error_keeps_connection_pooled(gateway: DemoDriverGateway) -> None:
    pool = ConnectionPool(ConnectionProtocol(gateway))

    with pytest.raises(PoolError) as excinfo:
        pool.execute(Query("broken", "SELECT (1"))

    assert excinfo.value.reason.kind is DriverErrorKind.SYNTAX_ERROR_OR_ACCESS_RULE_VIOLATION
    assert pool.stats()["idle_connections"] == 1
    assert pool.execute(Query("one", "SELECT 1")).num_rows == 1


def test_connect_failure_raises_pool_error(gateway: DemoDriverGateway) -> None:
    gateway.reachable = False
    pool = ConnectionPool(ConnectionProtocol(gateway))

    with pytest.raises(PoolError) as excinfo:
        pool.checkout()

    assert excinfo.value.reason.kind is DriverErrorKind.CONNECTION_EXCEPTION


def test_checkin_beyond_size_disconnects(gateway: DemoDriverGateway) -> None:
    pool = ConnectionPool(ConnectionProtocol(gateway), size=1)
    first = pool.checkout()
    second = pool.checkout()

    pool.checkin(first)
    pool.checkin(second)

    assert pool.stats()["idle_connections"] == 1
    assert gateway.open_handles == (first.handle,)


def test_close_disconnects_idle_connections(gateway: DemoDriverGateway) -> None:
    pool = ConnectionPool(ConnectionProtocol(gateway), size=3)
    states = [pool.checkout() for _ in range(3)]
    for state in states:
        pool.checkin(state)

    pool.close()

    assert gateway.open_handles == ()
    assert pool.stats()["idle_connections"] == 0


def test_pool_size_must_be_positive(gateway: DemoDriverGateway) -> None:
    with pytest.raises(ValueError):
        ConnectionPool(ConnectionProtocol(gateway), size=0)


class _CrashingGateway(DemoDriverGateway):
    def execute(self, handle: int, statement: str, params: Params, options: Mapping[str, Any]) -> DriverResponse:
        if statement != "SELECT 1":
            raise RuntimeError("driver crashed")
        return super().execute(handle, statement, params, options)


def test_unexpected_exception_releases_connection() -> None:
    gateway = _CrashingGateway()
    pool = ConnectionPool(ConnectionProtocol(gateway))

    with pytest.raises(RuntimeError, match="driver crashed"):
        pool.execute(Query("boom", "SELECT * FROM events"))

    assert gateway.open_handles == ()
    assert pool.stats()["idle_connections"] == 0
