"""Driver gateway contract and an in-memory gateway for demos and tests."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

from sqlglot import exp, parse_one
from sqlglot.errors import SqlglotError

from .errors import DriverError, DriverErrorKind
from .models import Params
from .results import DriverResponse, OtherTagged, SelectedRows, UpdatedCount


@runtime_checkable
class DriverGateway(Protocol):
    """Protocol implemented by driver gateways; every failure raises ``DriverError``."""

    def open(self, connection_string: str, options: Mapping[str, Any]) -> int:
        """Open a connection and return its handle."""

    def close(self, handle: int) -> None:
        """Release the connection behind ``handle``."""

    def execute(
        self,
        handle: int,
        statement: str,
        params: Params,
        options: Mapping[str, Any],
    ) -> DriverResponse:
        """Run ``statement`` with positional ``params`` and return the raw response."""


@dataclass(slots=True)
class _Table:
    columns: list[str]
    rows: list[tuple[Any, ...]] = field(default_factory=list)


class DemoDriverGateway:
    """Gateway that evaluates a small SQL subset against in-memory tables.

    Statements are parsed with sqlglot. Parse failures surface as syntax
    errors, literal SELECTs are evaluated, SELECT/INSERT/DELETE work on whole
    tables, and CREATE TABLE registers a new table. Anything else parses into a
    tagged response with no rows.
    """

    def __init__(
        self,
        tables: Mapping[str, tuple[Sequence[str], Sequence[Sequence[Any]]]] | None = None,
        *,
        dialect: str = "clickhouse",
    ) -> None:
        self._dialect = dialect
        self._tables: dict[str, _Table] = {
            name.lower(): _Table(list(columns), [tuple(row) for row in rows])
            for name, (columns, rows) in (tables or {}).items()
        }
        self._handles: dict[int, str] = {}
        self._broken: set[int] = set()
        self._ids = itertools.count(1)
        self.reachable = True
        self.fail_close = False
        self.statements: list[str] = []

    @property
    def open_handles(self) -> tuple[int, ...]:
        return tuple(self._handles)

    def open(self, connection_string: str, options: Mapping[str, Any]) -> int:
        if not self.reachable:
            raise DriverError(
                "Unable to establish connection",
                kind=DriverErrorKind.CONNECTION_EXCEPTION,
                sqlstate="08001",
            )
        handle = next(self._ids)
        self._handles[handle] = connection_string
        return handle

    def close(self, handle: int) -> None:
        if handle not in self._handles:
            raise DriverError(
                f"Connection handle {handle} is not open",
                kind=DriverErrorKind.CONNECTION_EXCEPTION,
                sqlstate="08003",
            )
        if self.fail_close:
            raise DriverError("Failed to release connection", sqlstate="HY000")
        del self._handles[handle]
        self._broken.discard(handle)

    def break_connection(self, handle: int) -> None:
        """Make every later call on ``handle`` fail as a dropped link (testing helper)."""

        self._broken.add(handle)

    def execute(
        self,
        handle: int,
        statement: str,
        params: Params,
        options: Mapping[str, Any],
    ) -> DriverResponse:
        if handle not in self._handles:
            raise DriverError(
                f"Connection handle {handle} is not open",
                kind=DriverErrorKind.CONNECTION_EXCEPTION,
                sqlstate="08003",
            )
        if handle in self._broken:
            raise DriverError(
                "Communication link failure",
                kind=DriverErrorKind.CONNECTION_EXCEPTION,
                sqlstate="08S01",
            )
        self.statements.append(statement)
        try:
            expression = parse_one(statement, read=self._dialect)
        except SqlglotError as exc:
            raise DriverError(
                str(exc).strip(),
                kind=DriverErrorKind.SYNTAX_ERROR_OR_ACCESS_RULE_VIOLATION,
                sqlstate="42000",
            ) from exc
        bound = self._bind(expression, params)
        if isinstance(expression, exp.Select):
            return self._select(expression, bound)
        if isinstance(expression, exp.Insert):
            return self._insert(expression, bound)
        if isinstance(expression, exp.Delete):
            return self._delete(expression)
        if isinstance(expression, exp.Create):
            return self._create(expression)
        return OtherTagged(command=_command_tag(expression), columns=(), rows=())

    def _bind(self, expression: exp.Expression, params: Params) -> dict[int, Any]:
        placeholders = list(expression.find_all(exp.Placeholder, bfs=False))
        if len(placeholders) != len(params):
            raise DriverError(
                f"Statement expects {len(placeholders)} parameter(s), got {len(params)}",
                sqlstate="07002",
            )
        return {id(node): value for node, (_, value) in zip(placeholders, params)}

    def _select(self, expression: exp.Select, bound: dict[int, Any]) -> SelectedRows:
        source = expression.find(exp.Table)
        if source is None:
            columns = [self._label(node) for node in expression.expressions]
            row = tuple(_evaluate(node.unalias(), bound) for node in expression.expressions)
            return SelectedRows(columns=columns, rows=[row])
        if expression.args.get("where") is not None:
            raise _unsupported("WHERE is not supported by the demo driver")
        table = self._table(source)
        indexes: list[int] = []
        columns: list[str] = []
        for node in expression.expressions:
            if isinstance(node, exp.Star):
                indexes.extend(range(len(table.columns)))
                columns.extend(table.columns)
                continue
            target = node.unalias()
            if not isinstance(target, exp.Column):
                raise _unsupported(f"Unsupported projection: {node.sql(dialect=self._dialect)}")
            indexes.append(self._column_index(table, target.name))
            columns.append(node.alias_or_name)
        rows = [tuple(row[index] for index in indexes) for row in table.rows]
        limit = expression.args.get("limit")
        if limit is not None:
            rows = rows[: _row_limit(_evaluate(limit.expression, bound))]
        return SelectedRows(columns=columns, rows=rows)

    def _insert(self, expression: exp.Insert, bound: dict[int, Any]) -> UpdatedCount:
        source = expression.find(exp.Table)
        table = self._table(source)
        target = expression.this
        if isinstance(target, exp.Schema) and target.expressions:
            indexes = [self._column_index(table, column.name) for column in target.expressions]
        else:
            indexes = list(range(len(table.columns)))
        values = expression.expression
        if not isinstance(values, exp.Values):
            raise _unsupported("Only INSERT ... VALUES is supported")
        inserted = 0
        for entry in values.expressions:
            items = entry.expressions if isinstance(entry, exp.Tuple) else [entry]
            if len(items) != len(indexes):
                raise DriverError(
                    f"Expected {len(indexes)} value(s) per row, got {len(items)}",
                    kind=DriverErrorKind.SYNTAX_ERROR_OR_ACCESS_RULE_VIOLATION,
                    sqlstate="21S01",
                )
            row: list[Any] = [None] * len(table.columns)
            for index, item in zip(indexes, items):
                row[index] = _evaluate(item, bound)
            table.rows.append(tuple(row))
            inserted += 1
        return UpdatedCount(count=inserted)

    def _delete(self, expression: exp.Delete) -> UpdatedCount:
        if expression.args.get("where") is not None:
            raise _unsupported("WHERE is not supported by the demo driver")
        table = self._table(expression.find(exp.Table))
        removed = len(table.rows)
        table.rows.clear()
        return UpdatedCount(count=removed)

    def _create(self, expression: exp.Create) -> OtherTagged:
        schema = expression.this
        source = expression.find(exp.Table)
        if source is None or not isinstance(schema, exp.Schema):
            return OtherTagged(command="create", columns=(), rows=())
        columns = [node.name for node in schema.expressions if isinstance(node, exp.ColumnDef)]
        self._tables.setdefault(source.name.lower(), _Table(columns))
        return OtherTagged(command="create", columns=(), rows=())

    def _table(self, source: exp.Table | None) -> _Table:
        name = source.name.lower() if source is not None else ""
        table = self._tables.get(name)
        if table is None:
            raise DriverError(
                f"Table {name or '<none>'} doesn't exist",
                kind=DriverErrorKind.SYNTAX_ERROR_OR_ACCESS_RULE_VIOLATION,
                sqlstate="42S02",
            )
        return table

    @staticmethod
    def _column_index(table: _Table, name: str) -> int:
        try:
            return table.columns.index(name)
        except ValueError:
            raise DriverError(
                f"Missing column: {name}",
                kind=DriverErrorKind.SYNTAX_ERROR_OR_ACCESS_RULE_VIOLATION,
                sqlstate="42S22",
            ) from None

    @staticmethod
    def _label(node: exp.Expression) -> str:
        if isinstance(node, exp.Alias):
            return node.alias
        return node.sql()


def _evaluate(node: exp.Expression, bound: dict[int, Any]) -> Any:
    if isinstance(node, exp.Placeholder):
        return bound[id(node)]
    if isinstance(node, exp.Null):
        return None
    if isinstance(node, exp.Boolean):
        return bool(node.this)
    if isinstance(node, exp.Literal):
        if node.is_string:
            return node.this
        return int(node.this) if node.is_int else float(node.this)
    if isinstance(node, exp.Neg):
        return -_evaluate(node.this, bound)
    if isinstance(node, exp.Paren):
        return _evaluate(node.this, bound)
    if isinstance(node, exp.Tuple) and len(node.expressions) == 1:
        return _evaluate(node.expressions[0], bound)
    raise _unsupported(f"Unsupported expression: {node.sql()}")


def _unsupported(message: str) -> DriverError:
    return DriverError(message, kind=DriverErrorKind.FEATURE_NOT_SUPPORTED, sqlstate="0A000")


def _row_limit(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise DriverError(
            f"Invalid LIMIT value: {value!r}",
            kind=DriverErrorKind.DATA_EXCEPTION,
            sqlstate="22018",
        ) from None


def _command_tag(expression: exp.Expression) -> str:
    if isinstance(expression, exp.Command):
        return str(expression.this).lower()
    return expression.key


__all__ = ["DemoDriverGateway", "DriverGateway"]
