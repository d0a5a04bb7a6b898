"""Pre-flight checks for spreadsheet sources.

Validates existence, emptiness, file size, and container magic bytes
before any decoder opens the file.  The detected container decides which
sheet reader is used.
"""

from __future__ import annotations

import logging
import os

from ingestkit_pager.config import PagerConfig
from ingestkit_pager.errors import ErrorCode, IngestError
from ingestkit_pager.models import ContainerFormat

logger = logging.getLogger("ingestkit_pager")

_ZIP_MAGIC = b"PK\x03\x04"
_OLE2_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

UNREADABLE_MESSAGE = "Can't read your Excel file."
INVALID_FORMAT_MESSAGE = "Invalid format?"


def sniff_container(file_path: str) -> ContainerFormat | None:
    """Return the container format of *file_path*, or ``None`` if unknown.

    Raises
    ------
    OSError
        If the file cannot be read.
    """
    with open(file_path, "rb") as fh:
        header = fh.read(len(_OLE2_MAGIC))
    if header.startswith(_ZIP_MAGIC):
        return ContainerFormat.OOXML
    if header == _OLE2_MAGIC:
        return ContainerFormat.BIFF
    return None


class SourceScanner:
    """Run pre-flight checks on a spreadsheet file.

    Returns a list of errors.  Every code is fatal (``E_*``); an empty list
    means the file may be handed to a decoder.
    """

    def __init__(self, config: PagerConfig) -> None:
        self.config = config

    def scan(self, file_path: str) -> list[IngestError]:
        """Run all pre-flight checks, stopping at the first failure."""
        errors: list[IngestError] = []

        # --- 1. File existence and readability ---
        if not os.path.isfile(file_path):
            errors.append(
                IngestError(
                    code=ErrorCode.E_SOURCE_UNREADABLE,
                    message=UNREADABLE_MESSAGE,
                    stage="security",
                )
            )
            return errors

        # --- 2. Empty file ---
        file_size = os.path.getsize(file_path)
        if file_size == 0:
            errors.append(
                IngestError(
                    code=ErrorCode.E_SOURCE_INVALID_FORMAT,
                    message=INVALID_FORMAT_MESSAGE,
                    stage="security",
                )
            )
            return errors

        # --- 3. File size limit ---
        max_bytes = self.config.max_file_size_mb * 1024 * 1024
        if file_size > max_bytes:
            errors.append(
                IngestError(
                    code=ErrorCode.E_SOURCE_TOO_LARGE,
                    message=(
                        f"File exceeds the size limit of "
                        f"{self.config.max_file_size_mb} MB."
                    ),
                    stage="security",
                )
            )
            return errors

        # --- 4. Container magic bytes ---
        try:
            container = sniff_container(file_path)
        except OSError:
            logger.debug("Could not read magic bytes", exc_info=True)
            errors.append(
                IngestError(
                    code=ErrorCode.E_SOURCE_UNREADABLE,
                    message=UNREADABLE_MESSAGE,
                    stage="security",
                )
            )
            return errors

        if container is None:
            errors.append(
                IngestError(
                    code=ErrorCode.E_SOURCE_INVALID_FORMAT,
                    message=INVALID_FORMAT_MESSAGE,
                    stage="security",
                )
            )

        return errors
