"""Driver gateway that talks to ClickHouse through its ODBC driver via pyodbc."""

from __future__ import annotations

import itertools
import logging
import math
import threading
from typing import Any, Mapping

import pyodbc

from .config import DEFAULT_TIMEOUT_MS
from .errors import DriverError, DriverErrorKind, kind_from_sqlstate
from .models import Params
from .results import DriverResponse, OtherTagged, SelectedRows, UpdatedCount

LOG = logging.getLogger(__name__)

_ROW_COMMANDS = frozenset({"select", "with"})


class OdbcDriverGateway:
    """Owns pyodbc connections in a handle table keyed by integer handles."""

    def __init__(self) -> None:
        self._connections: dict[int, pyodbc.Connection] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def open(self, connection_string: str, options: Mapping[str, Any]) -> int:
        timeout = _timeout_seconds(options.get("timeout"))
        try:
            conn = pyodbc.connect(connection_string, autocommit=True, timeout=timeout)
        except pyodbc.Error as exc:
            raise _driver_error(exc) from exc
        conn.timeout = timeout
        with self._lock:
            handle = next(self._ids)
            self._connections[handle] = conn
        LOG.debug("Opened ODBC connection", extra={"handle": handle})
        return handle

    def close(self, handle: int) -> None:
        with self._lock:
            conn = self._connections.pop(handle, None)
        if conn is None:
            raise DriverError(
                f"Connection handle {handle} is not open",
                kind=DriverErrorKind.CONNECTION_EXCEPTION,
                sqlstate="08003",
            )
        try:
            conn.close()
        except pyodbc.Error as exc:
            raise _driver_error(exc) from exc

    def execute(
        self,
        handle: int,
        statement: str,
        params: Params,
        options: Mapping[str, Any],
    ) -> DriverResponse:
        conn = self._connection(handle)
        values = [value for _, value in params]
        try:
            cursor = conn.cursor()
            try:
                cursor.execute(statement, *values)
                if cursor.description is None:
                    return UpdatedCount(count=max(cursor.rowcount, 0))
                columns = [column[0] for column in cursor.description]
                rows = [tuple(row) for row in cursor.fetchall()]
            finally:
                cursor.close()
        except pyodbc.Error as exc:
            raise _driver_error(exc) from exc
        command = _leading_keyword(statement)
        if command in _ROW_COMMANDS:
            return SelectedRows(columns=columns, rows=rows)
        return OtherTagged(command=command, columns=columns, rows=rows)

    @property
    def open_handles(self) -> tuple[int, ...]:
        with self._lock:
            return tuple(self._connections)

    def _connection(self, handle: int) -> pyodbc.Connection:
        with self._lock:
            conn = self._connections.get(handle)
        if conn is None:
            raise DriverError(
                f"Connection handle {handle} is not open",
                kind=DriverErrorKind.CONNECTION_EXCEPTION,
                sqlstate="08003",
            )
        return conn


def _driver_error(exc: pyodbc.Error) -> DriverError:
    """pyodbc errors carry ``(sqlstate, message)`` in ``args``."""

    args = exc.args
    sqlstate = str(args[0]) if len(args) > 1 else None
    message = str(args[-1]) if args else str(exc)
    return DriverError(message, kind=kind_from_sqlstate(sqlstate), sqlstate=sqlstate)


def _timeout_seconds(value: object) -> int:
    millis = value if isinstance(value, int) and value > 0 else DEFAULT_TIMEOUT_MS
    return max(1, math.ceil(millis / 1000))


def _leading_keyword(statement: str) -> str:
    text = statement.lstrip(" \t\r\n(")
    while text.startswith(("--", "/*")):
        if text.startswith("--"):
            _, _, text = text.partition("\n")
        else:
            _, _, text = text[2:].partition("*/")
        text = text.lstrip(" \t\r\n(")
    token = text.split(None, 1)
    if not token:
        return ""
    return token[0].lower()


__all__ = ["OdbcDriverGateway"]
