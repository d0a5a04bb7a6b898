"""Normalized error codes, structured error model, and raisable exception for ingestkit-pager.

``IngestError`` is a Pydantic model (data structure) recorded on a
:class:`~ingestkit_pager.models.PageResult`.  ``PagerException`` wraps one so
fatal conditions can be raised and caught in control flow.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Normalized error codes for the ingestkit-pager pipeline.

    Values equal their names so they are stable strings suitable for
    metrics and alerting.  ``E_`` prefix = error, ``W_`` prefix = warning.
    """

    # Source errors (fatal)
    E_SOURCE_UNREADABLE = "E_SOURCE_UNREADABLE"
    E_SOURCE_INVALID_FORMAT = "E_SOURCE_INVALID_FORMAT"
    E_SOURCE_TOO_LARGE = "E_SOURCE_TOO_LARGE"
    E_SOURCE_CLOSE_FAILED = "E_SOURCE_CLOSE_FAILED"
    E_SHEET_NOT_FOUND = "E_SHEET_NOT_FOUND"

    # Detection / windowing errors (fatal)
    E_HEADER_MALFORMED = "E_HEADER_MALFORMED"
    E_PAGE_INVALID = "E_PAGE_INVALID"

    # Recorded errors (non-fatal)
    E_ROW_SCAN_FAILED = "E_ROW_SCAN_FAILED"

    # Warnings (non-fatal)
    W_HEADER_NOT_FOUND = "W_HEADER_NOT_FOUND"


class IngestError(BaseModel):
    """Structured error with code, message, and sheet location.

    ``row_index`` is the 0-based sheet row the error relates to, when known.
    """

    code: ErrorCode
    message: str
    sheet_name: str | None = None
    row_index: int | None = None
    stage: str | None = None
    recoverable: bool = False


class PagerException(Exception):
    """Raisable exception wrapping an :class:`IngestError` data model.

    Raised for fatal conditions that abort an extraction call.  The message
    is kept short and free of file paths or decoder internals; the
    structured error is available as ``.error``.
    """

    def __init__(self, **kwargs: object) -> None:
        self.error = IngestError(**kwargs)  # type: ignore[arg-type]
        super().__init__(self.error.message)

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def stage(self) -> str | None:
        return self.error.stage

    @property
    def recoverable(self) -> bool:
        return self.error.recoverable
