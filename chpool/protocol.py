"""Connection lifecycle callbacks driven by a pool manager.

A ``ConnectionProtocol`` holds no per-connection data: every callback takes a
``ConnectionState`` and returns an outcome carrying the (possibly new) state.
The pool manager must serialize calls against any one state.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .config import ConnectionConfig
from .driver import DriverGateway
from .errors import ConnectionStateError, DriverError, ErrorClass, classify
from .models import ConnectionState, Params, Query, Result
from .outcome import Disconnect, Error, Ok, Outcome
from .results import normalize

LOG = logging.getLogger(__name__)

PING_QUERY = Query(name="ping", statement="SELECT 1")

ConfigLike = ConnectionConfig | Mapping[str, Any] | None


class ConnectionProtocol:
    """Callback surface the pool manager invokes for each pooled connection."""

    def __init__(self, gateway: DriverGateway) -> None:
        self._gateway = gateway

    @property
    def gateway(self) -> DriverGateway:
        return self._gateway

    def connect(self, config: ConfigLike = None) -> Ok | Error:
        """Open a handle; driver failures are returned unchanged, never retried."""

        resolved = ConnectionConfig.coerce(config)
        options = resolved.resolved()
        LOG.debug(
            "Connecting",
            extra={"connection_string": resolved.redacted_connection_string()},
        )
        try:
            handle = self._gateway.open(resolved.connection_string(), options)
        except DriverError as exc:
            LOG.error(
                "Connect failed",
                extra={"kind": exc.kind.value, "sqlstate": exc.sqlstate},
            )
            return Error(exc, ConnectionState.uninitialized())
        state = ConnectionState.idle(handle, options)
        LOG.debug("Connected", extra={"handle": handle})
        return Ok(state, state)

    def disconnect(self, reason: Any, state: ConnectionState) -> Ok | Error:
        """Release the handle. A failed release hands back the input state."""

        if state.handle is None:
            return Ok(None, state.terminated())
        try:
            self._gateway.close(state.handle)
        except DriverError as exc:
            LOG.error(
                "Disconnect failed",
                extra={"handle": state.handle, "reason": str(reason), "kind": exc.kind.value},
            )
            return Error(exc, state)
        LOG.debug("Disconnected", extra={"handle": state.handle, "reason": str(reason)})
        return Ok(None, state.terminated())

    def reconnect(self, new_config: ConfigLike, state: ConnectionState) -> Ok | Error:
        """Disconnect strictly before connecting so two handles never coexist."""

        outcome = self.disconnect("reconnecting", state)
        if not isinstance(outcome, Ok):
            return outcome
        return self.connect(new_config)

    def checkout(self, state: ConnectionState) -> Ok:
        _require_idle(state, "checkout")
        return Ok(state, state)

    def checkin(self, state: ConnectionState) -> Ok:
        _require_idle(state, "checkin")
        return Ok(state, state)

    def ping(self, state: ConnectionState) -> Ok | Disconnect:
        """Health check; any failure, fatal or not, disconnects."""

        outcome = self.execute(state, PING_QUERY, (), {})
        if isinstance(outcome, Ok):
            return Ok(outcome.state, outcome.state)
        LOG.warning(
            "Ping failed; dropping connection",
            extra={"handle": state.handle, "reason": str(outcome.reason)},
        )
        return Disconnect(outcome.reason, outcome.state)

    def handle_prepare(self, query: Query, options: Mapping[str, Any], state: ConnectionState) -> Ok:
        _require_idle(state, "prepare")
        return Ok(query, state)

    def handle_execute(
        self,
        query: Query,
        params: Params,
        options: Mapping[str, Any],
        state: ConnectionState,
    ) -> Outcome:
        return self.execute(state, query, params, options)

    def handle_begin(self, options: Mapping[str, Any], state: ConnectionState) -> Ok:
        _require_idle(state, "begin")
        return Ok(Result.empty(), state)

    def handle_commit(self, options: Mapping[str, Any], state: ConnectionState) -> Ok:
        _require_idle(state, "commit")
        return Ok(Result.empty(), state)

    def handle_rollback(self, options: Mapping[str, Any], state: ConnectionState) -> Ok:
        _require_idle(state, "rollback")
        return Ok(Result.empty(), state)

    def handle_close(self, query: Query, options: Mapping[str, Any], state: ConnectionState) -> Ok:
        _require_idle(state, "close")
        return Ok(Result.empty(), state)

    def handle_info(self, message: Any, state: ConnectionState) -> Ok:
        LOG.debug("Ignoring out-of-band message", extra={"info_message": repr(message)})
        return Ok(state, state)

    def execute(
        self,
        state: ConnectionState,
        query: Query,
        params: Params,
        options: Mapping[str, Any],
    ) -> Outcome:
        """Run ``query`` on the state's handle; the state itself is never changed."""

        _require_idle(state, "execute")
        try:
            raw = self._gateway.execute(state.handle, query.statement, params, options)
        except DriverError as exc:
            if classify(exc) is ErrorClass.FATAL:
                LOG.error(
                    "Connection lost during query",
                    extra={"query": query.name, "handle": state.handle, "sqlstate": exc.sqlstate},
                )
                return Disconnect(exc, state)
            LOG.warning(
                "Query failed",
                extra={"query": query.name, "kind": exc.kind.value, "sqlstate": exc.sqlstate},
            )
            return Error(exc, state)
        return Ok(normalize(raw), state)


def _require_idle(state: ConnectionState, operation: str) -> None:
    if not state.is_idle:
        raise ConnectionStateError(f"Cannot {operation} a connection in state '{state.status.value}'")


__all__ = ["ConnectionProtocol", "PING_QUERY"]
