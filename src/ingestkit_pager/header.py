"""Header row detection and schema inference.

Scans a sheet from the top with a one-row lookahead.  Each candidate row is
walked in lockstep with the row below it (its *sibling*): the candidate
supplies field names, the sibling supplies field types.  The first
candidate that yields at least one field is the header.

Within a candidate row:

* a cell is a field iff it coerces to a non-empty string;
* cells before the first field are leading columns (logos, indices, merged
  titles) and are counted, up to ``max_leading_columns``;
* the first non-field cell after a field ends the header.
"""

from __future__ import annotations

import logging
from typing import Iterator

from ingestkit_pager.cells import coerce_cell
from ingestkit_pager.errors import ErrorCode, PagerException
from ingestkit_pager.models import (
    FieldType,
    HeaderDetection,
    RawCell,
    Schema,
    SchemaField,
)
from ingestkit_pager.protocols import SheetReader

logger = logging.getLogger("ingestkit_pager")

MAX_EMPTY_LEFTMOST_COLUMNS = 100


def deduplicate_names(names: list[str]) -> list[str]:
    """Make header names unique by appending ``_1``, ``_2``, etc."""
    seen: dict[str, int] = {}
    result: list[str] = []
    for name in names:
        if name in seen:
            seen[name] += 1
            candidate = f"{name}_{seen[name]}"
            while candidate in seen:
                seen[name] += 1
                candidate = f"{name}_{seen[name]}"
            seen[candidate] = 0
            result.append(candidate)
        else:
            seen[name] = 0
            result.append(name)
    return result


def scan_header_row(
    row_index: int,
    header_cells: list[RawCell],
    sibling_cells: list[RawCell],
    max_leading_columns: int = MAX_EMPTY_LEFTMOST_COLUMNS,
) -> tuple[list[tuple[str, FieldType]], int]:
    """Scan one candidate header row against its sibling row.

    Returns ``(fields, leading_skip)`` where ``fields`` is the ordered list
    of ``(name, type)`` pairs accepted from this row (empty when the row is
    not a header).

    Raises
    ------
    PagerException
        ``E_HEADER_MALFORMED`` when the sibling row runs out of cells
        before the header row does.
    """
    fields: list[tuple[str, FieldType]] = []
    leading_skip = 0

    for column, header_cell in enumerate(header_cells):
        if column >= len(sibling_cells):
            raise PagerException(
                code=ErrorCode.E_HEADER_MALFORMED,
                message=(
                    f"No data exist after header line {row_index}. "
                    "Expected a cell value for each header cell."
                ),
                row_index=row_index,
                stage="detect",
            )

        sibling_type, _ = coerce_cell(sibling_cells[column])
        header_type, header_value = coerce_cell(header_cell)

        if header_type is FieldType.STRING and header_value:
            logger.debug(
                "header cell %d, row %d is text", column, row_index
            )
            fields.append((header_value, sibling_type))
        elif fields:
            logger.debug(
                "header cell %d, row %d ends the header", column, row_index
            )
            break
        else:
            leading_skip += 1
            logger.debug(
                "header cell %d, row %d not text", column, row_index
            )

        if leading_skip > max_leading_columns and not fields:
            logger.debug(
                "row %d skipped after %d leading columns",
                row_index,
                leading_skip,
            )
            break

    return fields, leading_skip


class HeaderDetector:
    """Locate the header row of a sheet and infer its schema.

    Parameters
    ----------
    max_leading_columns:
        How many non-header cells may precede the first field before a
        candidate row is abandoned.
    """

    def __init__(self, max_leading_columns: int = MAX_EMPTY_LEFTMOST_COLUMNS) -> None:
        self._max_leading_columns = max_leading_columns

    def detect(self, reader: SheetReader) -> HeaderDetection:
        """Return the :class:`HeaderDetection` for *reader*'s sheet.

        Raises
        ------
        PagerException
            ``E_HEADER_MALFORMED`` if a candidate's sibling row is shorter
            than the candidate.
        """
        first_row = reader.first_row
        last_row = reader.last_row
        logger.info("First row %d, last row %d", first_row, last_row)

        for index, header_cells, sibling_cells in self._candidates(reader):
            logger.debug("searching header in row %d", index)
            if header_cells is None or sibling_cells is None:
                continue

            fields, leading_skip = scan_header_row(
                index, header_cells, sibling_cells, self._max_leading_columns
            )
            if fields:
                logger.info("header line found at %d", index)
                names = deduplicate_names([name for name, _ in fields])
                schema = Schema(
                    fields=[
                        SchemaField(name=name, type=field_type)
                        for name, (_, field_type) in zip(names, fields)
                    ]
                )
                return HeaderDetection(
                    schema=schema,
                    header_row_index=index,
                    first_data_row=min(index + 1, last_row),
                    leading_skip=leading_skip,
                )
            logger.debug("no header line found at %d", index)

        logger.info("no header line found in sheet '%s'", reader.sheet_name)
        return HeaderDetection(schema=Schema(), first_data_row=first_row)

    @staticmethod
    def _candidates(
        reader: SheetReader,
    ) -> Iterator[tuple[int, list[RawCell] | None, list[RawCell] | None]]:
        """Yield ``(index, candidate, sibling)`` in a single pass.

        The last row is its own sibling.
        """
        pending: tuple[int, list[RawCell] | None] | None = None
        for index, cells in reader.iter_rows(reader.first_row, reader.last_row):
            if pending is not None:
                yield pending[0], pending[1], cells
            pending = (index, cells)
        if pending is not None:
            yield pending[0], pending[1], pending[1]
