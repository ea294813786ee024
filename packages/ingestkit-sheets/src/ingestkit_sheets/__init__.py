"""ingestkit-sheets -- remote spreadsheet ingestion for the ingestkit framework.

Public API exports for the router, models, enums, errors, configuration, and
backend protocols.
"""

from ingestkit_sheets.classifier import TabClassifier
from ingestkit_sheets.config import SheetsProcessorConfig
from ingestkit_sheets.errors import (
    CleanupFailure,
    ErrorCode,
    ExportFailure,
    IngestError,
    MetadataFetchError,
    SheetsIngestError,
    TabProcessingError,
    UploadFailure,
)
from ingestkit_sheets.models import (
    ClassificationReason,
    ColumnDescriptor,
    Credentials,
    ExcelPreview,
    GraphicalOutcome,
    IngestionResult,
    TabClassification,
    TabKind,
    TableDescriptor,
    TabMetadata,
    TabOutcome,
    TabularOutcome,
)
from ingestkit_sheets.processors import (
    ExportFallback,
    TabularProcessor,
    materialize_rows,
    normalize_headers,
)
from ingestkit_sheets.protocols import (
    BlobStorageBackend,
    DocumentDuplicationBackend,
    SpreadsheetMetadataBackend,
    SpreadsheetValuesBackend,
)
from ingestkit_sheets.router import SheetsRouter, create_default_router

__all__ = [
    # Enums
    "TabKind",
    "ClassificationReason",
    # Models
    "Credentials",
    "TabMetadata",
    "TabClassification",
    "ColumnDescriptor",
    "ExcelPreview",
    "TableDescriptor",
    "TabularOutcome",
    "GraphicalOutcome",
    "TabOutcome",
    "IngestionResult",
    # Router
    "SheetsRouter",
    "create_default_router",
    # Classifier
    "TabClassifier",
    # Processors
    "TabularProcessor",
    "ExportFallback",
    "normalize_headers",
    "materialize_rows",
    # Errors
    "ErrorCode",
    "IngestError",
    "SheetsIngestError",
    "MetadataFetchError",
    "TabProcessingError",
    "ExportFailure",
    "UploadFailure",
    "CleanupFailure",
    # Config
    "SheetsProcessorConfig",
    # Protocols
    "SpreadsheetMetadataBackend",
    "SpreadsheetValuesBackend",
    "DocumentDuplicationBackend",
    "BlobStorageBackend",
]
