"""Small fixed-size pool driving ``ConnectionProtocol`` callbacks.

Idle states are reused LIFO. Every checkout runs the protocol's health
check; dead connections are disconnected and replaced before being handed
out.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Mapping

from .config import ConnectionConfig
from .models import ConnectionState, Params, Query, Result
from .outcome import Disconnect, Ok
from .protocol import ConfigLike, ConnectionProtocol

LOG = logging.getLogger(__name__)


class PoolError(RuntimeError):
    """Raised when the pool cannot hand out a connection or a query fails."""

    def __init__(self, message: str, reason: Any = None) -> None:
        super().__init__(message)
        self.reason = reason


class ConnectionPool:
    """Per-config pool of idle connection states."""

    def __init__(self, protocol: ConnectionProtocol, config: ConfigLike = None, *, size: int = 5) -> None:
        if size < 1:
            raise ValueError("Pool size must be at least 1")
        self._protocol = protocol
        self._config = ConnectionConfig.coerce(config)
        self._size = size
        self._idle: list[ConnectionState] = []
        self._lock = threading.Lock()

    def checkout(self) -> ConnectionState:
        """Return a healthy idle state, opening or replacing one as needed."""

        state = self._pop() or self._connect()
        self._protocol.checkout(state)
        outcome = self._protocol.ping(state)
        if isinstance(outcome, Ok):
            return outcome.state
        LOG.info("Replacing connection that failed its health check", extra={"handle": state.handle})
        self._discard(outcome.state, outcome.reason)
        return self._connect()

    def checkin(self, state: ConnectionState) -> None:
        """Return a state to the pool, or disconnect it if the pool is full."""

        self._protocol.checkin(state)
        with self._lock:
            if len(self._idle) < self._size:
                self._idle.append(state)
                return
        self._discard(state, "pool full")

    def execute(
        self,
        query: Query,
        params: Params = (),
        options: Mapping[str, Any] | None = None,
    ) -> Result:
        """Run one query on a pooled connection and return its result."""

        state = self.checkout()
        try:
            outcome = self._protocol.handle_execute(query, params, options or {}, state)
        except BaseException as exc:
            self._discard(state, exc)
            raise
        if isinstance(outcome, Disconnect):
            self._discard(outcome.state, outcome.reason)
            raise PoolError(f"Connection lost while running '{query.name}'", outcome.reason)
        self.checkin(outcome.state)
        if isinstance(outcome, Ok):
            return outcome.value
        raise PoolError(f"Query '{query.name}' failed", outcome.reason)

    def close(self) -> None:
        """Disconnect every idle state."""

        with self._lock:
            states = list(self._idle)
            self._idle.clear()
        for state in states:
            self._discard(state, "pool closed")

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {"idle_connections": len(self._idle), "size": self._size}

    def _pop(self) -> ConnectionState | None:
        with self._lock:
            if self._idle:
                return self._idle.pop()
        return None

    def _connect(self) -> ConnectionState:
        outcome = self._protocol.connect(self._config)
        if not isinstance(outcome, Ok):
            raise PoolError("Unable to open a connection", outcome.reason)
        return outcome.state

    def _discard(self, state: ConnectionState, reason: Any) -> None:
        outcome = self._protocol.disconnect(reason, state)
        if not isinstance(outcome, Ok):
            LOG.warning(
                "Dropping connection that failed to disconnect",
                extra={"handle": state.handle, "reason": str(outcome.reason)},
            )


__all__ = ["ConnectionPool", "PoolError"]
