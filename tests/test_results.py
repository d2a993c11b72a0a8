"""Tests for result normalization."""

from __future__ import annotations

from enum import Enum

import pytest

from chpool.models import CommandKind, Result
from chpool.results import OtherTagged, SelectedRows, UpdatedCount, normalize


class _Column(Enum):
    ID = "id"


def test_updated_count_becomes_single_count_row() -> None:
    result = normalize(UpdatedCount(7))

    assert result.command is CommandKind.UPDATED
    assert result.columns == ("count",)
    assert result.rows == ((7,),)
    assert result.num_rows == 1


def test_selected_rows_coerce_column_names() -> None:
    result = normalize(SelectedRows(columns=[b"a", _Column.ID, 3], rows=[[1, 2, 3], [4, 5, 6]]))

    assert result.command is CommandKind.SELECTED
    assert result.columns == ("a", "id", "3")
    assert all(type(column) is str for column in result.columns)
    assert result.rows == ((1, 2, 3), (4, 5, 6))
    assert result.num_rows == 2


def test_selected_rows_keep_order_and_duplicates() -> None:
    result = normalize(SelectedRows(columns=["b", "a", "b"], rows=[]))

    assert result.columns == ("b", "a", "b")
    assert result.rows == ()
    assert result.num_rows == 0


def test_other_command_keeps_its_tag() -> None:
    result = normalize(OtherTagged(command="show", columns=["name"], rows=[["events"], ["sessions"]]))

    assert result.command is CommandKind.OTHER
    assert result.command_tag == "show"
    assert result.columns == ("name",)
    assert result.num_rows == 2


def test_unknown_shape_is_rejected() -> None:
    with pytest.raises(TypeError):
        normalize(("selected", [], []))  # type: ignore[arg-type]


def test_empty_result_has_no_rows() -> None:
    result = Result.empty()

    assert result.command is None
    assert result.columns == ()
    assert result.num_rows == 0


def test_undecodable_column_name_is_replaced() -> None:
    result = normalize(SelectedRows(columns=[b"\xff\xfe", b"ok"], rows=[]))

    assert all(type(column) is str for column in result.columns)
    assert "�" in result.columns[0]
    assert result.columns[1] == "ok"
