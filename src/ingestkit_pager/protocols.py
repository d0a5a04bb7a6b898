"""Reader protocol for the ingestkit-pager pipeline.

Defines the structural-subtyping interface a sheet decoder adapter must
satisfy.  The protocol is ``@runtime_checkable`` so callers can optionally
verify conformance with ``isinstance`` checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ingestkit_pager.models import RawCell


@runtime_checkable
class SheetReader(Protocol):
    """Interface for one open sheet of a workbook (e.g. openpyxl, xlrd).

    Row indices are 0-based.  ``last_row`` is ``first_row - 1`` for a sheet
    without rows.
    """

    @property
    def sheet_name(self) -> str:
        """Name of the selected sheet."""
        ...

    @property
    def sheet_count(self) -> int:
        """Number of sheets in the underlying workbook."""
        ...

    @property
    def first_row(self) -> int:
        """Index of the first row of the sheet's used range."""
        ...

    @property
    def last_row(self) -> int:
        """Index of the last row of the sheet's used range."""
        ...

    def iter_rows(
        self, start: int, stop: int
    ) -> Iterator[tuple[int, list[RawCell] | None]]:
        """Yield ``(index, cells)`` for every row in ``[start, stop]``.

        ``cells`` runs from the first column through the row's last
        non-empty cell, or is ``None`` when the row holds no value.
        """
        ...

    def close(self) -> None:
        """Release the underlying workbook and its file handles."""
        ...
