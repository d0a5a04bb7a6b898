"""Sheet readers adapting openpyxl and xlrd to the ``SheetReader`` protocol.

Both readers stream rows on demand instead of materializing the sheet:

* :class:`OpenpyxlSheetReader` opens ``.xlsx`` packages in read-only mode,
  once for cell kinds and formulas and once for cached formula results.
* :class:`XlrdSheetReader` opens legacy ``.xls`` workbooks on demand.

:func:`open_sheet` is the entry point: it runs the pre-flight scan, picks
the reader from the container magic bytes, maps decoder failures to fatal
:class:`~ingestkit_pager.errors.PagerException` errors, and guarantees the
reader is closed.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta
from typing import Any, BinaryIO, Iterator

import openpyxl
import xlrd
from openpyxl.chartsheet import Chartsheet
from openpyxl.utils.datetime import to_excel

from ingestkit_pager.config import PagerConfig
from ingestkit_pager.errors import ErrorCode, PagerException
from ingestkit_pager.models import BLANK_CELL, CellKind, ContainerFormat, RawCell
from ingestkit_pager.protocols import SheetReader
from ingestkit_pager.security import (
    INVALID_FORMAT_MESSAGE,
    UNREADABLE_MESSAGE,
    SourceScanner,
    sniff_container,
)

logger = logging.getLogger("ingestkit_pager")


def physical_row(cells: list[RawCell]) -> list[RawCell] | None:
    """Drop trailing blank cells; ``None`` when nothing is left."""
    end = len(cells)
    while end > 0 and cells[end - 1].kind is CellKind.BLANK:
        end -= 1
    if end == 0:
        return None
    return cells[:end]


def _sheet_not_found(sheet_name: str) -> PagerException:
    return PagerException(
        code=ErrorCode.E_SHEET_NOT_FOUND,
        message=f"No sheet with name {sheet_name}",
        sheet_name=sheet_name,
        stage="open",
    )


# ---------------------------------------------------------------------------
# openpyxl
# ---------------------------------------------------------------------------


class OpenpyxlSheetReader:
    """Read-only, streaming reader for one worksheet of an ``.xlsx`` file.

    Parameters
    ----------
    file_path:
        Filesystem path to the workbook.  Its name and extension are not
        consulted.
    sheet_name:
        Exact sheet name.  The first worksheet is used when empty or *None*.
    """

    def __init__(self, file_path: str, sheet_name: str | None = None) -> None:
        self._handles: list[BinaryIO] = []
        self._formulas_wb = None
        self._values_wb = None
        try:
            # File objects, not paths: openpyxl rejects paths by extension,
            # and the container was already sniffed from its magic bytes.
            self._formulas_wb = openpyxl.load_workbook(
                self._open(file_path), read_only=True, data_only=False
            )
            self._values_wb = openpyxl.load_workbook(
                self._open(file_path), read_only=True, data_only=True
            )
            self._epoch = self._values_wb.epoch
            self._formulas_ws = self._select_sheet(self._formulas_wb, sheet_name)
            self._values_ws = self._values_wb[self._formulas_ws.title]
            self._first_row, self._last_row, self._max_column = self._measure(
                self._formulas_ws
            )
        except Exception:
            self.close()
            raise

    def _open(self, file_path: str) -> BinaryIO:
        handle = open(file_path, "rb")
        self._handles.append(handle)
        return handle

    @staticmethod
    def _measure(ws: Any) -> tuple[int, int, int]:
        """Return ``(first_row, last_row, max_column)`` from the sheet's cells.

        The stored ``<dimension>`` tag is ignored since some writers leave it
        stale.  An empty sheet measures ``(0, -1, 1)``.
        """
        ws.reset_dimensions()
        first_row = last_row = None
        max_column = 1
        for row_number, row in enumerate(ws.iter_rows(min_row=1), start=1):
            if not row:
                continue
            if first_row is None:
                first_row = row_number
            last_row = row_number
            max_column = max(max_column, row[-1].column)
        if first_row is None:
            return 0, -1, max_column
        return first_row - 1, last_row - 1, max_column

    @staticmethod
    def _select_sheet(wb: Any, sheet_name: str | None) -> Any:
        if sheet_name:
            if sheet_name not in wb.sheetnames:
                raise _sheet_not_found(sheet_name)
            ws = wb[sheet_name]
            if isinstance(ws, Chartsheet):
                raise PagerException(
                    code=ErrorCode.E_SHEET_NOT_FOUND,
                    message=f"Sheet {sheet_name} is not a worksheet",
                    sheet_name=sheet_name,
                    stage="open",
                )
            return ws
        if not wb.worksheets:
            raise PagerException(
                code=ErrorCode.E_SHEET_NOT_FOUND,
                message="Workbook has no worksheet",
                stage="open",
            )
        return wb.worksheets[0]

    @property
    def sheet_name(self) -> str:
        return self._formulas_ws.title

    @property
    def sheet_count(self) -> int:
        return len(self._formulas_wb.sheetnames)

    @property
    def first_row(self) -> int:
        return self._first_row

    @property
    def last_row(self) -> int:
        return self._last_row

    def iter_rows(
        self, start: int, stop: int
    ) -> Iterator[tuple[int, list[RawCell] | None]]:
        start = max(start, self._first_row)
        stop = min(stop, self._last_row)
        if start > stop:
            return

        bounds = {
            "min_row": start + 1,
            "max_row": stop + 1,
            "min_col": 1,
            "max_col": self._max_column,
        }
        formula_rows = self._formulas_ws.iter_rows(**bounds)
        value_rows = self._values_ws.iter_rows(**bounds)
        for index, (formula_row, value_row) in enumerate(
            zip(formula_rows, value_rows), start=start
        ):
            cells = [
                self._to_raw_cell(formula_cell, value_cell)
                for formula_cell, value_cell in zip(formula_row, value_row)
            ]
            yield index, physical_row(cells)

    def _to_raw_cell(self, formula_cell: Any, value_cell: Any) -> RawCell:
        value = formula_cell.value
        if value is None:
            return BLANK_CELL

        data_type = formula_cell.data_type
        if data_type == "f":
            cached = value_cell.value
            if isinstance(cached, (datetime, date, time, timedelta)):
                # Date-formatted results are surfaced as their serial number.
                cached = to_excel(cached, self._epoch)
            return RawCell(CellKind.FORMULA, cached)
        if data_type == "b":
            return RawCell(CellKind.BOOLEAN, value)
        if data_type == "e":
            return RawCell(CellKind.ERROR, value)
        if isinstance(value, (datetime, date, time, timedelta)):
            return RawCell(CellKind.NUMERIC, value, is_date=True)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return RawCell(
                CellKind.NUMERIC, value, is_date=bool(formula_cell.is_date)
            )
        if isinstance(value, str):
            return RawCell(CellKind.STRING, value)
        return RawCell(CellKind.UNKNOWN, value)

    def close(self) -> None:
        try:
            for wb in (self._formulas_wb, self._values_wb):
                if wb is not None:
                    wb.close()
        finally:
            for handle in self._handles:
                handle.close()


# ---------------------------------------------------------------------------
# xlrd
# ---------------------------------------------------------------------------


class XlrdSheetReader:
    """On-demand reader for one sheet of a legacy ``.xls`` workbook.

    xlrd exposes cached values only, so formula cells surface with the kind
    of their result.
    """

    def __init__(self, file_path: str, sheet_name: str | None = None) -> None:
        self._book = xlrd.open_workbook(
            file_path, on_demand=True, ragged_rows=True
        )
        try:
            if sheet_name:
                if sheet_name not in self._book.sheet_names():
                    raise _sheet_not_found(sheet_name)
                self._sheet = self._book.sheet_by_name(sheet_name)
            else:
                if self._book.nsheets == 0:
                    raise PagerException(
                        code=ErrorCode.E_SHEET_NOT_FOUND,
                        message="Workbook has no worksheet",
                        stage="open",
                    )
                self._sheet = self._book.sheet_by_index(0)
        except Exception:
            self.close()
            raise

    @property
    def sheet_name(self) -> str:
        return self._sheet.name

    @property
    def sheet_count(self) -> int:
        return self._book.nsheets

    @property
    def first_row(self) -> int:
        return 0

    @property
    def last_row(self) -> int:
        return self._sheet.nrows - 1

    def iter_rows(
        self, start: int, stop: int
    ) -> Iterator[tuple[int, list[RawCell] | None]]:
        for index in range(max(start, 0), min(stop, self.last_row) + 1):
            cells = [self._to_raw_cell(c) for c in self._sheet.row(index)]
            yield index, physical_row(cells)

    def _to_raw_cell(self, cell: Any) -> RawCell:
        ctype = cell.ctype
        if ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
            return BLANK_CELL
        if ctype == xlrd.XL_CELL_TEXT:
            return RawCell(CellKind.STRING, cell.value)
        if ctype == xlrd.XL_CELL_NUMBER:
            return RawCell(CellKind.NUMERIC, cell.value)
        if ctype == xlrd.XL_CELL_DATE:
            try:
                dt = xlrd.xldate_as_datetime(cell.value, self._book.datemode)
            except Exception as exc:
                logger.warning(
                    "ingestkit_pager | date conversion failed: %s | keeping serial",
                    exc,
                )
                return RawCell(CellKind.NUMERIC, cell.value)
            return RawCell(CellKind.NUMERIC, dt, is_date=True)
        if ctype == xlrd.XL_CELL_BOOLEAN:
            return RawCell(CellKind.BOOLEAN, bool(cell.value))
        if ctype == xlrd.XL_CELL_ERROR:
            return RawCell(CellKind.ERROR, cell.value)
        return RawCell(CellKind.UNKNOWN, cell.value)

    def close(self) -> None:
        self._book.release_resources()


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def load_sheet_reader(
    file_path: str,
    sheet_name: str | None = None,
    config: PagerConfig | None = None,
) -> SheetReader:
    """Scan *file_path*, open it with the matching decoder, select the sheet.

    Raises
    ------
    PagerException
        ``E_SOURCE_UNREADABLE``, ``E_SOURCE_INVALID_FORMAT``,
        ``E_SOURCE_TOO_LARGE`` or ``E_SHEET_NOT_FOUND``.
    """
    config = config or PagerConfig()
    filename = os.path.basename(file_path)

    scan_errors = SourceScanner(config).scan(file_path)
    if scan_errors:
        err = scan_errors[0]
        logger.error(
            "ingestkit_pager | file=%s | code=%s | detail=%s",
            filename,
            err.code.value,
            err.message,
        )
        raise PagerException(**err.model_dump())

    container = sniff_container(file_path)
    reader_cls = (
        OpenpyxlSheetReader
        if container is ContainerFormat.OOXML
        else XlrdSheetReader
    )

    try:
        reader = reader_cls(file_path, sheet_name)
    except PagerException as exc:
        logger.error(
            "ingestkit_pager | file=%s | code=%s | detail=%s",
            filename,
            exc.code.value,
            exc.message,
        )
        raise
    except OSError as exc:
        logger.error(
            "ingestkit_pager | file=%s | code=%s | detail=%s",
            filename,
            ErrorCode.E_SOURCE_UNREADABLE.value,
            exc,
        )
        raise PagerException(
            code=ErrorCode.E_SOURCE_UNREADABLE,
            message=UNREADABLE_MESSAGE,
            stage="open",
        ) from exc
    except Exception as exc:
        logger.error(
            "ingestkit_pager | file=%s | code=%s | detail=%s",
            filename,
            ErrorCode.E_SOURCE_INVALID_FORMAT.value,
            exc,
        )
        raise PagerException(
            code=ErrorCode.E_SOURCE_INVALID_FORMAT,
            message=INVALID_FORMAT_MESSAGE,
            stage="open",
        ) from exc

    logger.info("Workbook %s has %d sheets", filename, reader.sheet_count)
    logger.info("Sheet selected: '%s'", reader.sheet_name)
    return reader


def close_reader(reader: SheetReader) -> None:
    """Close *reader*; a failure to close is fatal."""
    try:
        reader.close()
    except Exception as exc:
        logger.error(
            "ingestkit_pager | sheet=%s | code=%s | detail=%s",
            reader.sheet_name,
            ErrorCode.E_SOURCE_CLOSE_FAILED.value,
            exc,
        )
        raise PagerException(
            code=ErrorCode.E_SOURCE_CLOSE_FAILED,
            message="Failed to close the workbook.",
            stage="close",
        ) from exc


@contextmanager
def open_sheet(
    file_path: str,
    sheet_name: str | None = None,
    config: PagerConfig | None = None,
) -> Iterator[SheetReader]:
    """Context manager yielding an open :class:`SheetReader`.

    The reader is closed on every exit path, including errors raised by
    the ``with`` body.
    """
    reader = load_sheet_reader(file_path, sheet_name, config)
    try:
        yield reader
    finally:
        close_reader(reader)
