"""Offset/limit windowing relative to the detected header, and row conversion."""

from __future__ import annotations

import logging
from typing import Iterator

from ingestkit_pager.cells import coerce_cell, conform_value
from ingestkit_pager.models import HeaderDetection, RowWindow, TypedRow
from ingestkit_pager.protocols import SheetReader

logger = logging.getLogger("ingestkit_pager")


def compute_window(
    first_data_row: int, last_row: int, offset: int, limit: int
) -> RowWindow:
    """Return the inclusive row window ``[first, last]`` for one page.

    ``first = first_data_row + offset`` and
    ``last = min(last_row, first + limit - 1)``; the window is empty when
    ``first > last``.

    Raises
    ------
    ValueError
        If *offset* or *limit* is negative.
    """
    if offset < 0:
        raise ValueError(f"offset must be non-negative, got {offset}")
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")

    first = first_data_row + offset
    last = min(last_row, first + limit - 1)
    return RowWindow(first=first, last=last)


class RowWindower:
    """Convert the rows of a window into :class:`TypedRow` objects.

    Parameters
    ----------
    log_sample_data:
        Log converted cell values at debug level.  Off by default so sheet
        contents never reach the logs.
    """

    def __init__(self, log_sample_data: bool = False) -> None:
        self._log_sample_data = log_sample_data

    def iter_rows(
        self,
        reader: SheetReader,
        detection: HeaderDetection,
        window: RowWindow,
    ) -> Iterator[TypedRow]:
        """Yield one typed row per existing row of *window*.

        Missing rows are skipped.  The first ``detection.leading_skip``
        cells of every row are dropped; rows shorter than the schema are
        padded with ``None``.
        """
        if window.is_empty:
            return

        fields = detection.schema.fields
        width = len(fields)
        skip = detection.leading_skip

        for index, cells in reader.iter_rows(window.first, window.last):
            if cells is None:
                logger.debug("row %d missing; skipped", index)
                continue

            values = []
            for field, cell in zip(fields, cells[skip : skip + width]):
                _, value = coerce_cell(cell)
                values.append(conform_value(value, field.type))

            if self._log_sample_data:
                logger.debug("row %d, values %r", index, values)
            yield TypedRow.padded(values, width)
