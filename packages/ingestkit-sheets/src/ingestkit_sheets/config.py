"""Configuration model for the ingestkit-sheets pipeline.

Provides ``SheetsProcessorConfig`` with all tunable parameters and sensible
defaults.  Supports loading overrides from YAML or JSON files via the
``from_file()`` classmethod.
"""

from __future__ import annotations

import json
import pathlib

from pydantic import BaseModel

XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class SheetsProcessorConfig(BaseModel):
    """All tunable parameters with sensible defaults.

    Override individual values via constructor kwargs or load a complete
    config from a file with ``SheetsProcessorConfig.from_file(path)``.
    """

    # --- Tabular path ---
    row_floor: int = 1000
    column_data_type: str = "string"
    column_width: int = 200
    created_by: str = "import"

    # --- Classifier ---
    fill_ratio_threshold: float = 0.5

    # --- Export fallback ---
    export_mime_type: str = XLSX_MIME_TYPE
    export_file_extension: str = ".xlsx"
    copy_name_prefix: str = "ingestkit-tmp: "
    verify_export: bool = True

    # --- Remote endpoints ---
    sheets_api_base_url: str = "https://sheets.googleapis.com/v4/spreadsheets"
    drive_api_base_url: str = "https://www.googleapis.com/drive/v3/files"
    blob_upload_url: str = "http://localhost:8000/upload"
    blob_upload_field: str = "file"
    blob_api_key: str | None = None

    # --- Backend resilience ---
    backend_timeout_seconds: float = 30.0
    backend_max_retries: int = 2
    backend_backoff_base: float = 1.0
    ingest_deadline_seconds: float | None = None

    # --- Logging / PII safety ---
    log_sample_data: bool = False

    @classmethod
    def from_file(cls, path: str) -> SheetsProcessorConfig:
        """Load configuration from a YAML or JSON file.

        File format is detected by extension: ``.yaml`` / ``.yml`` for YAML,
        ``.json`` for JSON.  Keys present in the file override the
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
            import yaml

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
