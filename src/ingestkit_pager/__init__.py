"""ingestkit-pager -- paginated, typed row extraction from spreadsheet sheets.

Public API exports for the paginator, models, enums, errors, configuration,
readers, and the reader protocol.
"""

from ingestkit_pager.cache import HeaderCache, SourceSignature, compute_signature
from ingestkit_pager.cells import coerce_cell, conform_value
from ingestkit_pager.config import PagerConfig, SheetSource
from ingestkit_pager.errors import ErrorCode, IngestError, PagerException
from ingestkit_pager.header import HeaderDetector, scan_header_row
from ingestkit_pager.models import (
    CellKind,
    ContainerFormat,
    FieldType,
    HeaderDetection,
    PageResult,
    RawCell,
    RowWindow,
    Schema,
    SchemaField,
    TypedRow,
)
from ingestkit_pager.paginator import SheetPaginator, extract_page
from ingestkit_pager.protocols import SheetReader
from ingestkit_pager.readers import OpenpyxlSheetReader, XlrdSheetReader, open_sheet
from ingestkit_pager.window import RowWindower, compute_window

__all__ = [
    # Enums
    "FieldType",
    "CellKind",
    "ContainerFormat",
    # Core models
    "RawCell",
    "SchemaField",
    "Schema",
    "HeaderDetection",
    "RowWindow",
    "TypedRow",
    "PageResult",
    # Paginator
    "SheetPaginator",
    "extract_page",
    # Detection / windowing / coercion
    "HeaderDetector",
    "scan_header_row",
    "RowWindower",
    "compute_window",
    "coerce_cell",
    "conform_value",
    # Readers
    "SheetReader",
    "OpenpyxlSheetReader",
    "XlrdSheetReader",
    "open_sheet",
    # Cache
    "HeaderCache",
    "SourceSignature",
    "compute_signature",
    # Errors
    "ErrorCode",
    "IngestError",
    "PagerException",
    # Config
    "PagerConfig",
    "SheetSource",
]
