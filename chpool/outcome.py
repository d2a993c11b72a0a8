"""Tagged outcomes returned by every lifecycle and query callback."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from .models import ConnectionState


@dataclass(frozen=True, slots=True)
class Ok:
    """The call succeeded; ``value`` is the payload."""

    value: Any
    state: ConnectionState


@dataclass(frozen=True, slots=True)
class Error:
    """The call failed but the connection remains usable."""

    reason: Any
    state: ConnectionState


@dataclass(frozen=True, slots=True)
class Disconnect:
    """The connection is dead; the pool should discard and replace it."""

    reason: Any
    state: ConnectionState


Outcome = Union[Ok, Error, Disconnect]


__all__ = ["Disconnect", "Error", "Ok", "Outcome"]
