"""Raw driver response shapes and their normalization into ``Result``."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence, Union

from .models import CommandKind, Result


@dataclass(frozen=True, slots=True)
class SelectedRows:
    """Rows returned by a SELECT-like statement."""

    columns: Sequence[Any]
    rows: Sequence[Sequence[Any]]


@dataclass(frozen=True, slots=True)
class UpdatedCount:
    """Affected-row count returned by a write statement."""

    count: int


@dataclass(frozen=True, slots=True)
class OtherTagged:
    """Rows returned by any other command, tagged with the command name."""

    command: str
    columns: Sequence[Any]
    rows: Sequence[Sequence[Any]]


DriverResponse = Union[SelectedRows, UpdatedCount, OtherTagged]


def normalize(raw: DriverResponse) -> Result:
    """Map a raw driver response onto the canonical ``Result`` shape."""

    if isinstance(raw, SelectedRows):
        rows = _rows(raw.rows)
        return Result(
            command=CommandKind.SELECTED,
            columns=_column_names(raw.columns),
            rows=rows,
            num_rows=len(rows),
        )
    if isinstance(raw, UpdatedCount):
        return Result(
            command=CommandKind.UPDATED,
            columns=("count",),
            rows=((raw.count,),),
            num_rows=1,
        )
    if isinstance(raw, OtherTagged):
        rows = _rows(raw.rows)
        return Result(
            command=CommandKind.OTHER,
            command_tag=raw.command,
            columns=_column_names(raw.columns),
            rows=rows,
            num_rows=len(rows),
        )
    raise TypeError(f"Unsupported driver response: {type(raw).__name__}")


def _column_names(columns: Sequence[Any]) -> tuple[str, ...]:
    return tuple(_column_name(column) for column in columns)


def _column_name(column: Any) -> str:
    if isinstance(column, Enum):
        return str(column.value)
    if isinstance(column, str):
        return column
    if isinstance(column, (bytes, bytearray)):
        return bytes(column).decode("utf-8", errors="replace")
    return str(column)


def _rows(rows: Sequence[Sequence[Any]]) -> tuple[tuple[Any, ...], ...]:
    return tuple(tuple(row) for row in rows)


__all__ = [
    "DriverResponse",
    "OtherTagged",
    "SelectedRows",
    "UpdatedCount",
    "normalize",
]
