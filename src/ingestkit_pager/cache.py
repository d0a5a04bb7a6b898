"""Optional cache of header detections across page requests.

Entries are keyed by the resolved source path, the requested sheet name,
the file's modification signature (``mtime_ns`` and size) and the parser
version, so any rewrite of the file or upgrade of the parser invalidates
them.  The cache only ever returns a detection made against the identical
file; it never evolves a schema.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path

from pydantic import BaseModel

from ingestkit_pager.models import HeaderDetection

logger = logging.getLogger("ingestkit_pager")


class SourceSignature(BaseModel):
    """Identity of one sheet of one version of a file."""

    source_uri: str
    sheet_name: str | None = None
    mtime_ns: int
    size: int
    parser_version: str


def compute_signature(
    file_path: str,
    sheet_name: str | None = None,
    parser_version: str = "ingestkit_pager:1.0.0",
) -> SourceSignature:
    """Build the :class:`SourceSignature` for *file_path* as it is on disk now.

    Raises
    ------
    OSError
        If the file cannot be stat-ed.
    """
    stat = os.stat(file_path)
    return SourceSignature(
        source_uri=Path(file_path).resolve().as_posix(),
        sheet_name=sheet_name or None,
        mtime_ns=stat.st_mtime_ns,
        size=stat.st_size,
        parser_version=parser_version,
    )


class HeaderCache:
    """Thread-safe map from :class:`SourceSignature` to :class:`HeaderDetection`.

    Only the latest signature per ``(source_uri, sheet_name)`` is kept, so a
    stale detection is dropped as soon as the file changes.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[tuple[str, str | None], tuple[SourceSignature, HeaderDetection]] = {}

    def get(self, signature: SourceSignature) -> HeaderDetection | None:
        key = (signature.source_uri, signature.sheet_name)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            cached_signature, detection = entry
            if cached_signature != signature:
                logger.debug("header cache stale for %s", signature.source_uri)
                del self._entries[key]
                return None
            return detection

    def put(self, signature: SourceSignature, detection: HeaderDetection) -> None:
        with self._lock:
            self._entries[(signature.source_uri, signature.sheet_name)] = (
                signature,
                detection,
            )

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
