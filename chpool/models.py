"""Shared dataclasses passed between the pool, the protocol and the gateways."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Sequence

Params = Sequence[tuple[Any, Any]]


class ConnectionStatus(str, Enum):
    """Lifecycle position of a pooled connection."""

    UNINITIALIZED = "uninitialized"
    IDLE = "idle"
    TERMINATED = "terminated"


class CommandKind(str, Enum):
    """Kind of command a result came from."""

    SELECTED = "selected"
    UPDATED = "updated"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class Query:
    """Statement supplied by the caller; ``name`` is only used for logging."""

    name: str
    statement: str


@dataclass(frozen=True, slots=True)
class Result:
    """Normalized query output handed back to the pool manager."""

    command: CommandKind | None = None
    columns: tuple[str, ...] = ()
    rows: tuple[tuple[Any, ...], ...] = ()
    num_rows: int = 0
    command_tag: str | None = None

    @classmethod
    def empty(cls) -> Result:
        return cls()


@dataclass(frozen=True, slots=True)
class ConnectionState:
    """Per-connection state owned by exactly one pooled slot."""

    handle: int | None
    status: ConnectionStatus
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def uninitialized(cls) -> ConnectionState:
        return cls(handle=None, status=ConnectionStatus.UNINITIALIZED)

    @classmethod
    def idle(cls, handle: int, options: Mapping[str, Any]) -> ConnectionState:
        return cls(handle=handle, status=ConnectionStatus.IDLE, options=MappingProxyType(dict(options)))

    @property
    def is_idle(self) -> bool:
        return self.status is ConnectionStatus.IDLE

    def terminated(self) -> ConnectionState:
        """Return the state left behind once the handle has been released."""

        return replace(self, handle=None, status=ConnectionStatus.TERMINATED)


__all__ = [
    "CommandKind",
    "ConnectionState",
    "ConnectionStatus",
    "Params",
    "Query",
    "Result",
]
