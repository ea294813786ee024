"""Processing paths for ingestkit-sheets."""

from ingestkit_sheets.processors.export import ExportFallback
from ingestkit_sheets.processors.tabular import (
    TabularProcessor,
    materialize_rows,
    normalize_headers,
)

__all__ = [
    "ExportFallback",
    "TabularProcessor",
    "materialize_rows",
    "normalize_headers",
]
