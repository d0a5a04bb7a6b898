"""SheetPaginator -- public API for paginated, typed extraction of one sheet.

Each extraction call:

1. Opens the sheet via :func:`~ingestkit_pager.readers.open_sheet`
   (pre-flight scan, decoder selection, sheet selection).
2. Detects the header row and infers the schema with
   :class:`~ingestkit_pager.header.HeaderDetector` (or reuses a cached
   detection when a :class:`~ingestkit_pager.cache.HeaderCache` is set).
3. Computes the row window for the requested offset/limit and converts it
   with :class:`~ingestkit_pager.window.RowWindower`.
4. Closes the sheet and returns a :class:`~ingestkit_pager.models.PageResult`.

Fatal conditions raise :class:`~ingestkit_pager.errors.PagerException`.  Any
other failure while scanning rows is recorded on the result as
``E_ROW_SCAN_FAILED``; the result then carries the schema and rows computed
up to that point.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable

from ingestkit_pager.cache import HeaderCache, compute_signature
from ingestkit_pager.config import PagerConfig, SheetSource
from ingestkit_pager.errors import ErrorCode, IngestError, PagerException
from ingestkit_pager.header import HeaderDetector
from ingestkit_pager.models import (
    HeaderDetection,
    PageResult,
    RowWindow,
    Schema,
    TypedRow,
)
from ingestkit_pager.protocols import SheetReader
from ingestkit_pager.readers import open_sheet
from ingestkit_pager.window import RowWindower, compute_window

logger = logging.getLogger("ingestkit_pager")

RowFactory = Callable[[TypedRow], Any]


class SheetPaginator:
    """Serve pages of typed rows from one sheet of a spreadsheet.

    The header is re-detected on every call unless a cache is configured,
    so pages may be requested in any order and concurrently from separate
    paginators.

    Parameters
    ----------
    source:
        The file (and optional sheet name) to read.  A plain path selects
        the first worksheet.
    config:
        Pipeline configuration.  Uses defaults when *None*.
    cache:
        Header cache to share between paginators.  When *None*, a private
        cache is created if ``config.cache_headers`` is set.
    """

    def __init__(
        self,
        source: SheetSource | str,
        config: PagerConfig | None = None,
        cache: HeaderCache | None = None,
    ) -> None:
        if isinstance(source, str):
            source = SheetSource(path=source)
        self._source = source
        self._config = config or PagerConfig()
        if cache is None and self._config.cache_headers:
            cache = HeaderCache()
        self._cache = cache

        self._detector = HeaderDetector(self._config.max_leading_columns)
        self._windower = RowWindower(self._config.log_sample_data)

        # Schema detected by the most recent call.
        self.schema: Schema | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def iterate_rows(
        self,
        page: int,
        page_size: int | None = None,
        row_factory: RowFactory | None = None,
    ) -> PageResult:
        """Return page *page* (zero-based) of *page_size* rows.

        *page_size* defaults to ``config.default_page_size``.

        Raises
        ------
        PagerException
            ``E_PAGE_INVALID`` for a negative page or page size, or any
            fatal source/header error.
        """
        if page_size is None:
            page_size = self._config.default_page_size
        if page < 0 or page_size < 0:
            raise PagerException(
                code=ErrorCode.E_PAGE_INVALID,
                message=(
                    f"Page and page size must be non-negative, "
                    f"got page={page}, page_size={page_size}."
                ),
                stage="paginate",
            )
        result = self.extract(page * page_size, page_size, row_factory)
        self.schema = result.schema
        return result

    def extract(
        self,
        offset: int,
        limit: int,
        row_factory: RowFactory | None = None,
    ) -> PageResult:
        """Return up to *limit* rows starting *offset* rows below the header.

        When *row_factory* is given, it is applied to every
        :class:`TypedRow` and ``PageResult.rows`` holds its return values.
        """
        if offset < 0 or limit < 0:
            raise PagerException(
                code=ErrorCode.E_PAGE_INVALID,
                message=(
                    f"Offset and limit must be non-negative, "
                    f"got offset={offset}, limit={limit}."
                ),
                stage="paginate",
            )

        filename = os.path.basename(self._source.path)
        errors: list[IngestError] = []
        rows: list[Any] = []
        detection: HeaderDetection | None = None
        window: RowWindow | None = None

        with open_sheet(
            self._source.path, self._source.sheet_name, self._config
        ) as reader:
            sheet_name = reader.sheet_name
            try:
                detection = self._detect(reader)
                if not detection.header_found:
                    errors.append(
                        IngestError(
                            code=ErrorCode.W_HEADER_NOT_FOUND,
                            message=f"No header row found in sheet '{sheet_name}'.",
                            sheet_name=sheet_name,
                            stage="detect",
                            recoverable=True,
                        )
                    )

                window = compute_window(
                    detection.first_data_row, reader.last_row, offset, limit
                )
                logger.info("Offset %d, limit %d", offset, limit)
                logger.info("Window rows %d..%d", window.first, window.last)

                for row in self._windower.iter_rows(reader, detection, window):
                    rows.append(row_factory(row) if row_factory else row)
            except PagerException:
                raise
            except Exception as exc:
                logger.error(
                    "ingestkit_pager | file=%s | sheet=%s | code=%s | detail=%s",
                    filename,
                    sheet_name,
                    ErrorCode.E_ROW_SCAN_FAILED.value,
                    exc,
                )
                logger.debug("row scan failure", exc_info=True)
                errors.append(
                    IngestError(
                        code=ErrorCode.E_ROW_SCAN_FAILED,
                        message=f"{type(exc).__name__}: {exc}",
                        sheet_name=sheet_name,
                        stage="paginate",
                        recoverable=True,
                    )
                )

        schema = detection.schema if detection is not None else Schema()
        logger.info("sheet '%s' - schema %s", sheet_name, schema.field_names)
        logger.info("sheet '%s' - number of rows: %d", sheet_name, len(rows))

        return PageResult(
            sheet_name=sheet_name,
            schema=schema,
            rows=rows,
            header_row_index=detection.header_row_index if detection else None,
            first_data_row=detection.first_data_row if detection else None,
            leading_skip=detection.leading_skip if detection else 0,
            window=window,
            errors=errors,
            parser_version=self._config.parser_version,
        )

    def autodetect(self) -> HeaderDetection:
        """Detect the header and schema without converting any rows."""
        with open_sheet(
            self._source.path, self._source.sheet_name, self._config
        ) as reader:
            detection = self._detect(reader)
        self.schema = detection.schema
        return detection

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _detect(self, reader: SheetReader) -> HeaderDetection:
        if self._cache is None:
            return self._detector.detect(reader)

        signature = compute_signature(
            self._source.path,
            self._source.sheet_name,
            self._config.parser_version,
        )
        detection = self._cache.get(signature)
        if detection is not None:
            logger.debug("header cache hit for sheet '%s'", reader.sheet_name)
            return detection

        detection = self._detector.detect(reader)
        self._cache.put(signature, detection)
        return detection


def extract_page(
    path: str,
    page: int,
    page_size: int,
    sheet_name: str | None = None,
    config: PagerConfig | None = None,
    row_factory: RowFactory | None = None,
) -> PageResult:
    """Extract one page from *path* with a throwaway :class:`SheetPaginator`."""
    paginator = SheetPaginator(
        SheetSource(path=path, sheet_name=sheet_name), config=config
    )
    return paginator.iterate_rows(page, page_size, row_factory)
