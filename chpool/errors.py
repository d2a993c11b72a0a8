"""Driver error taxonomy and the fatal/local classifier."""

from __future__ import annotations

from enum import Enum


class DriverErrorKind(str, Enum):
    """ODBC SQLSTATE classes reported by the driver gateway."""

    CONNECTION_EXCEPTION = "connection_exception"
    TIMEOUT = "timeout"
    SYNTAX_ERROR_OR_ACCESS_RULE_VIOLATION = "syntax_error_or_access_rule_violation"
    DATA_EXCEPTION = "data_exception"
    INTEGRITY_CONSTRAINT_VIOLATION = "integrity_constraint_violation"
    INVALID_AUTHORIZATION = "invalid_authorization"
    FEATURE_NOT_SUPPORTED = "feature_not_supported"
    OTHER = "other"


class ErrorClass(str, Enum):
    """How a driver failure affects the connection it happened on."""

    FATAL = "fatal"
    LOCAL = "local"


class DriverError(RuntimeError):
    """Raised by a driver gateway when the database or driver reports a failure."""

    def __init__(
        self,
        message: str,
        *,
        kind: DriverErrorKind = DriverErrorKind.OTHER,
        sqlstate: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.sqlstate = sqlstate

    def __repr__(self) -> str:
        return f"DriverError({self.message!r}, kind={self.kind.value}, sqlstate={self.sqlstate!r})"


class ConnectionStateError(RuntimeError):
    """Raised when a callback is invoked on a connection that is not idle."""


_EXACT_STATES: dict[str, DriverErrorKind] = {
    "HYT00": DriverErrorKind.TIMEOUT,
    "HYT01": DriverErrorKind.TIMEOUT,
    "HYC00": DriverErrorKind.FEATURE_NOT_SUPPORTED,
}

_STATE_CLASSES: dict[str, DriverErrorKind] = {
    "08": DriverErrorKind.CONNECTION_EXCEPTION,
    "0A": DriverErrorKind.FEATURE_NOT_SUPPORTED,
    "22": DriverErrorKind.DATA_EXCEPTION,
    "23": DriverErrorKind.INTEGRITY_CONSTRAINT_VIOLATION,
    "28": DriverErrorKind.INVALID_AUTHORIZATION,
    "42": DriverErrorKind.SYNTAX_ERROR_OR_ACCESS_RULE_VIOLATION,
}


def kind_from_sqlstate(sqlstate: str | None) -> DriverErrorKind:
    """Map a five-character SQLSTATE onto a driver error kind."""

    if not sqlstate:
        return DriverErrorKind.OTHER
    state = sqlstate.strip().upper()
    if state in _EXACT_STATES:
        return _EXACT_STATES[state]
    return _STATE_CLASSES.get(state[:2], DriverErrorKind.OTHER)


def classify(error: DriverError) -> ErrorClass:
    """Connection exceptions are fatal; everything else stays local to the query."""

    if error.kind is DriverErrorKind.CONNECTION_EXCEPTION:
        return ErrorClass.FATAL
    return ErrorClass.LOCAL


__all__ = [
    "ConnectionStateError",
    "DriverError",
    "DriverErrorKind",
    "ErrorClass",
    "classify",
    "kind_from_sqlstate",
]
