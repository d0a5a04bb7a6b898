"""Pydantic data models, enumerations, and raw cell records for ingestkit-pager.

This module defines the data model layer referenced throughout the pipeline:
the raw cell record produced by sheet readers, the inferred ``Schema``, the
``HeaderDetection`` and ``RowWindow`` stage artifacts, and the ``PageResult``
returned to callers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator

from pydantic import BaseModel, ConfigDict, Field

from ingestkit_pager.errors import IngestError


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class FieldType(str, Enum):
    """Type of a schema field.  Every field is nullable."""

    BOOLEAN = "boolean"
    STRING = "string"
    DATETIME = "datetime"
    DOUBLE = "double"


class ContainerFormat(str, Enum):
    """Workbook container, identified from the file's magic bytes."""

    OOXML = "ooxml"  # .xlsx / .xlsm zip package, read with openpyxl
    BIFF = "biff"  # legacy .xls OLE2 compound file, read with xlrd


class CellKind(str, Enum):
    """Kind of a raw cell as reported by the underlying decoder."""

    BOOLEAN = "boolean"
    STRING = "string"
    NUMERIC = "numeric"
    FORMULA = "formula"
    ERROR = "error"
    BLANK = "blank"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Raw cells
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RawCell:
    """A single decoded cell, before coercion.

    For ``FORMULA`` cells ``value`` holds the cached result, not the
    expression.  ``is_date`` is only meaningful for ``NUMERIC`` cells.
    """

    kind: CellKind
    value: Any = None
    is_date: bool = False


BLANK_CELL = RawCell(CellKind.BLANK)


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


class SchemaField(BaseModel):
    """A named, typed column of the inferred schema."""

    name: str
    type: FieldType
    nullable: bool = True


class Schema(BaseModel):
    """Ordered, name-unique list of fields."""

    fields: list[SchemaField] = []

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def __len__(self) -> int:
        return len(self.fields)

    def __iter__(self) -> Iterator[SchemaField]:  # type: ignore[override]
        return iter(self.fields)


# ---------------------------------------------------------------------------
# Stage artifacts
# ---------------------------------------------------------------------------


class HeaderDetection(BaseModel):
    """Typed output of header detection.

    ``header_row_index`` is ``None`` when no header row was found.
    ``leading_skip`` is the number of columns before the first header field,
    dropped from every converted row.
    """

    model_config = ConfigDict(populate_by_name=True)

    schema_: Schema = Field(alias="schema")
    header_row_index: int | None = None
    first_data_row: int
    leading_skip: int = 0

    @property
    def schema(self) -> Schema:  # type: ignore[override]
        return self.schema_

    @property
    def header_found(self) -> bool:
        return self.header_row_index is not None


class RowWindow(BaseModel):
    """Absolute, inclusive row range ``[first, last]`` of one page."""

    first: int
    last: int

    @property
    def is_empty(self) -> bool:
        return self.first > self.last

    def __len__(self) -> int:
        return 0 if self.is_empty else self.last - self.first + 1


# ---------------------------------------------------------------------------
# Rows and results
# ---------------------------------------------------------------------------


class TypedRow(BaseModel):
    """Values positionally aligned to a schema's fields."""

    values: list[Any]

    @classmethod
    def padded(cls, values: list[Any], width: int) -> TypedRow:
        """Build a row of exactly *width* values, padding with ``None``."""
        return cls(values=values[:width] + [None] * (width - len(values)))

    def to_dict(self, schema: Schema) -> dict[str, Any]:
        return dict(zip(schema.field_names, self.values))

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, index: int) -> Any:
        return self.values[index]


class PageResult(BaseModel):
    """Result of one extraction call.

    A result can carry rows *and* recorded errors: callers must check
    ``errors`` (or ``has_errors``) as well as ``rows``.  ``parser_version``
    names the pager release that produced it.
    """

    model_config = ConfigDict(populate_by_name=True)

    sheet_name: str | None = None
    schema_: Schema = Field(alias="schema")
    rows: list[Any]
    header_row_index: int | None = None
    first_data_row: int | None = None
    leading_skip: int = 0
    window: RowWindow | None = None
    errors: list[IngestError] = []
    parser_version: str | None = None

    @property
    def schema(self) -> Schema:  # type: ignore[override]
        return self.schema_

    @property
    def has_errors(self) -> bool:
        return any(e.code.value.startswith("E_") for e in self.errors)

    @property
    def warnings(self) -> list[IngestError]:
        return [e for e in self.errors if e.code.value.startswith("W_")]
