"""Configuration model for the ingestkit-pager pipeline.

Provides ``PagerConfig`` with all tunable parameters and sensible defaults,
and ``SheetSource`` naming the file and sheet to read.  ``PagerConfig``
supports loading overrides from YAML or JSON files via the ``from_file()``
classmethod.
"""

from __future__ import annotations

import json
import pathlib

from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field


class SheetSource(BaseModel):
    """Which file and sheet an extraction reads.

    ``sheet_name`` selects a sheet by exact name; when empty or *None* the
    first worksheet is used.
    """

    model_config = ConfigDict(populate_by_name=True)

    path: str
    sheet_name: str | None = Field(default=None, alias="sheetName")

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> SheetSource:
        """Build a source from a pipeline step config.

        Accepts ``path`` plus either ``sheetName`` or ``sheet_name``;
        unrelated keys are ignored.
        """
        sheet_name = config.get("sheetName", config.get("sheet_name"))
        return cls(path=config["path"], sheet_name=sheet_name or None)


class PagerConfig(BaseModel):
    """All tunable parameters with sensible defaults.

    Override individual values via constructor kwargs or load a complete
    config from a file with ``PagerConfig.from_file(path)``.
    """

    # --- Identity ---
    parser_version: str = "ingestkit_pager:1.0.0"

    # --- Header detection ---
    max_leading_columns: int = 100

    # --- Security / Resource Limits ---
    max_file_size_mb: int = 100

    # --- Pagination ---
    default_page_size: int = 100
    cache_headers: bool = False

    # --- Logging / PII safety ---
    log_sample_data: bool = False

    @classmethod
    def from_file(cls, path: str) -> PagerConfig:
        """Load configuration from a YAML or JSON file.

        File format is detected by extension: ``.yaml`` / ``.yml`` for YAML,
        ``.json`` for JSON.  Any keys present in the file override the
        corresponding defaults; keys not present retain their defaults.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ValueError: If the file extension is not recognized.
        """
        file_path = pathlib.Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        suffix = file_path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            with open(file_path) as fh:
                data = yaml.safe_load(fh)
        elif suffix == ".json":
            with open(file_path) as fh:
                data = json.load(fh)
        else:
            raise ValueError(
                f"Unsupported config file extension '{suffix}'. "
                "Use .yaml, .yml, or .json."
            )

        if data is None:
            data = {}

        return cls(**data)
