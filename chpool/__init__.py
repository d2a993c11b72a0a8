"""Connection-pool adapter for ClickHouse over ODBC."""

from __future__ import annotations

from .config import ConnectionConfig, load_config, save_config
from .driver import DemoDriverGateway, DriverGateway
from .errors import (
    ConnectionStateError,
    DriverError,
    DriverErrorKind,
    ErrorClass,
    classify,
    kind_from_sqlstate,
)
from .models import CommandKind, ConnectionState, ConnectionStatus, Params, Query, Result
from .outcome import Disconnect, Error, Ok, Outcome
from .pool import ConnectionPool, PoolError
from .protocol import PING_QUERY, ConnectionProtocol
from .results import OtherTagged, SelectedRows, UpdatedCount, normalize

__version__ = "0.1.0"

__all__ = [
    "CommandKind",
    "ConnectionConfig",
    "ConnectionPool",
    "ConnectionProtocol",
    "ConnectionState",
    "ConnectionStateError",
    "ConnectionStatus",
    "DemoDriverGateway",
    "Disconnect",
    "DriverError",
    "DriverErrorKind",
    "DriverGateway",
    "Error",
    "ErrorClass",
    "Ok",
    "OtherTagged",
    "Outcome",
    "PING_QUERY",
    "Params",
    "PoolError",
    "Query",
    "Result",
    "SelectedRows",
    "UpdatedCount",
    "__version__",
    "classify",
    "kind_from_sqlstate",
    "load_config",
    "normalize",
    "save_config",
]
