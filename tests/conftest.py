"""Shared test fixtures for ingestkit-pager tests.

Provides an in-memory ``FakeSheetReader`` satisfying the ``SheetReader``
protocol, a ``sample_config`` fixture, and an ``.xlsx`` file factory that
writes workbooks with openpyxl into ``tmp_path``.
"""

from __future__ import annotations

import pathlib
import re
import zipfile
from datetime import datetime
from typing import Any, Callable, Iterator

import openpyxl
import pytest

from ingestkit_pager.config import PagerConfig
from ingestkit_pager.models import BLANK_CELL, CellKind, RawCell
from ingestkit_pager.readers import physical_row


# ---------------------------------------------------------------------------
# Raw cell helpers
# ---------------------------------------------------------------------------


def to_raw_cell(value: Any) -> RawCell:
    """Map a plain Python value to the ``RawCell`` a decoder would produce."""
    if isinstance(value, RawCell):
        return value
    if value is None:
        return BLANK_CELL
    if isinstance(value, bool):
        return RawCell(CellKind.BOOLEAN, value)
    if isinstance(value, str):
        return RawCell(CellKind.STRING, value)
    if isinstance(value, datetime):
        return RawCell(CellKind.NUMERIC, value, is_date=True)
    if isinstance(value, (int, float)):
        return RawCell(CellKind.NUMERIC, value)
    return RawCell(CellKind.UNKNOWN, value)


# ---------------------------------------------------------------------------
# Fake reader
# ---------------------------------------------------------------------------


class FakeSheetReader:
    """In-memory reader satisfying ``SheetReader`` protocol.

    ``rows`` is a list of rows; each row is a list of plain values or
    ``RawCell`` objects, or ``None`` for a missing row.  Records every
    ``iter_rows`` call and whether ``close()`` ran.
    """

    def __init__(
        self,
        rows: list[list[Any] | None],
        sheet_name: str = "Sheet1",
        first_row: int = 0,
    ) -> None:
        self._rows = [
            None if row is None else physical_row([to_raw_cell(v) for v in row])
            for row in rows
        ]
        self._sheet_name = sheet_name
        self._first_row = first_row
        self.iter_calls: list[tuple[int, int]] = []
        self.closed = False

    @property
    def sheet_name(self) -> str:
        return self._sheet_name

    @property
    def sheet_count(self) -> int:
        return 1

    @property
    def first_row(self) -> int:
        return self._first_row

    @property
    def last_row(self) -> int:
        return len(self._rows) - 1

    def iter_rows(
        self, start: int, stop: int
    ) -> Iterator[tuple[int, list[RawCell] | None]]:
        self.iter_calls.append((start, stop))
        for index in range(max(start, self._first_row), min(stop, self.last_row) + 1):
            yield index, self._rows[index]

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def fake_reader() -> Callable[..., FakeSheetReader]:
    """Factory fixture building a ``FakeSheetReader`` from rows."""
    return FakeSheetReader


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_config() -> PagerConfig:
    """Return a PagerConfig with all defaults."""
    return PagerConfig()


# ---------------------------------------------------------------------------
# .xlsx generators
# ---------------------------------------------------------------------------


def write_xlsx(
    path: pathlib.Path,
    rows: list[list[Any]],
    title: str = "Data",
    extra_sheets: dict[str, list[list[Any]]] | None = None,
) -> str:
    """Write *rows* to a new workbook at *path*; ``None`` cells stay empty."""
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = title
    _fill(ws, rows)
    for name, sheet_rows in (extra_sheets or {}).items():
        _fill(wb.create_sheet(name), sheet_rows)
    wb.save(str(path))
    wb.close()
    return str(path)


def _fill(ws: Any, rows: list[list[Any]]) -> None:
    for r, row in enumerate(rows, 1):
        for c, value in enumerate(row, 1):
            if value is not None:
                ws.cell(row=r, column=c, value=value)


@pytest.fixture()
def make_xlsx(tmp_path: pathlib.Path) -> Callable[..., str]:
    """Factory fixture writing an ``.xlsx`` file into ``tmp_path``."""

    def _make(
        rows: list[list[Any]],
        name: str = "book.xlsx",
        title: str = "Data",
        extra_sheets: dict[str, list[list[Any]]] | None = None,
    ) -> str:
        return write_xlsx(tmp_path / name, rows, title, extra_sheets)

    return _make


@pytest.fixture()
def people_rows() -> list[list[Any]]:
    """Two blank rows, then a header with one leading blank column."""
    return [
        [],
        [],
        [None, "Name", "Age", "Joined", "Active"],
        [None, "Alice", 30, datetime(2024, 1, 1), True],
        [None, "Bob", 25, datetime(2023, 6, 15, 12, 30), False],
        [None, "Carol", 41, datetime(2022, 3, 9), True],
    ]


# ---------------------------------------------------------------------------
# .xlsx variants openpyxl cannot write directly
# ---------------------------------------------------------------------------


def rewrite_sheet_xml(
    path: str,
    transform: Callable[[str], str],
    member: str = "xl/worksheets/sheet1.xml",
) -> None:
    """Rewrite one worksheet part of a saved workbook in place.

    Used to build files openpyxl cannot write itself, such as cached formula
    results or stale ``<dimension>`` tags.
    """
    with zipfile.ZipFile(path) as src:
        entries = [(info, src.read(info.filename)) for info in src.infolist()]
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as dst:
        for info, data in entries:
            if info.filename == member:
                data = transform(data.decode("utf-8")).encode("utf-8")
            dst.writestr(info, data)


def write_formula_date_xlsx(tmp_path: pathlib.Path) -> str:
    """Date in A2, date-formatted ``=A2+1`` in B2 with cached result 45293."""
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Data"
    ws.append(["Start", "Next"])
    ws["A2"] = datetime(2024, 1, 1)
    ws["B2"] = "=A2+1"
    ws["B2"].number_format = "yyyy-mm-dd"
    path = str(tmp_path / "formula_date.xlsx")
    wb.save(path)
    wb.close()

    def _cache_result(xml: str) -> str:
        xml, count = re.subn(
            r"<f>A2\+1</f>(?:<v\s*/>|<v></v>)?", "<f>A2+1</f><v>45293</v>", xml
        )
        assert count == 1
        return xml

    rewrite_sheet_xml(path, _cache_result)
    return path


def stale_dimension(path: str) -> str:
    """Overwrite the sheet's ``<dimension>`` tag with ``A1``."""

    def _shrink(xml: str) -> str:
        xml, count = re.subn(r'<dimension ref="[^"]*"\s*/>', '<dimension ref="A1"/>', xml)
        assert count == 1
        return xml

    rewrite_sheet_xml(path, _shrink)
    return path
