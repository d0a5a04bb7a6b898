"""Tests for the pydantic models and raw cell records."""

from __future__ import annotations

import dataclasses

import pytest

from ingestkit_pager.errors import ErrorCode, IngestError
from ingestkit_pager.models import (
    BLANK_CELL,
    CellKind,
    FieldType,
    HeaderDetection,
    PageResult,
    RawCell,
    RowWindow,
    Schema,
    SchemaField,
    TypedRow,
)


def _schema() -> Schema:
    return Schema(
        fields=[
            SchemaField(name="Name", type=FieldType.STRING),
            SchemaField(name="Age", type=FieldType.DOUBLE),
        ]
    )


class TestRawCell:
    def test_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            BLANK_CELL.value = 1  # type: ignore[misc]

    def test_blank(self) -> None:
        assert BLANK_CELL == RawCell(CellKind.BLANK)
        assert BLANK_CELL.value is None
        assert not BLANK_CELL.is_date


class TestSchema:
    def test_field_names_and_len(self) -> None:
        schema = _schema()
        assert schema.field_names == ["Name", "Age"]
        assert len(schema) == 2
        assert [f.type for f in schema] == [FieldType.STRING, FieldType.DOUBLE]

    def test_fields_nullable(self) -> None:
        assert all(f.nullable for f in _schema())

    def test_serializes_type_values(self) -> None:
        dumped = _schema().model_dump(mode="json")
        assert dumped["fields"][1] == {"name": "Age", "type": "double", "nullable": True}


class TestHeaderDetection:
    def test_schema_alias(self) -> None:
        detection = HeaderDetection(schema=_schema(), header_row_index=0, first_data_row=1)
        assert detection.schema.field_names == ["Name", "Age"]
        assert detection.header_found
        assert detection.model_dump(by_alias=True)["schema"]["fields"][0]["name"] == "Name"

    def test_not_found(self) -> None:
        detection = HeaderDetection(schema=Schema(), first_data_row=0)
        assert not detection.header_found
        assert detection.leading_skip == 0


class TestRowWindow:
    def test_len(self) -> None:
        assert len(RowWindow(first=3, last=5)) == 3

    def test_empty(self) -> None:
        window = RowWindow(first=6, last=5)
        assert window.is_empty
        assert len(window) == 0


class TestTypedRow:
    def test_padded(self) -> None:
        assert TypedRow.padded(["a"], 3).values == ["a", None, None]

    def test_padded_truncates(self) -> None:
        assert TypedRow.padded(["a", "b", "c"], 2).values == ["a", "b"]

    def test_to_dict(self) -> None:
        row = TypedRow(values=["Alice", 30.0])
        assert row.to_dict(_schema()) == {"Name": "Alice", "Age": 30.0}
        assert row[1] == 30.0
        assert len(row) == 2


class TestPageResult:
    def test_errors_and_warnings_split(self) -> None:
        result = PageResult(
            schema=_schema(),
            rows=[],
            errors=[
                IngestError(code=ErrorCode.W_HEADER_NOT_FOUND, message="w"),
                IngestError(code=ErrorCode.E_ROW_SCAN_FAILED, message="e"),
            ],
        )
        assert result.has_errors
        assert [w.code for w in result.warnings] == [ErrorCode.W_HEADER_NOT_FOUND]

    def test_warnings_only(self) -> None:
        result = PageResult(
            schema=Schema(),
            rows=[],
            errors=[IngestError(code=ErrorCode.W_HEADER_NOT_FOUND, message="w")],
        )
        assert not result.has_errors
