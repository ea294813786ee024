"""Normalized error codes, structured error model, and exceptions for ingestkit-sheets.

Only :class:`MetadataFetchError` is fatal to an ingestion call.  Every other
exception raised while a tab is being processed is a
:class:`TabProcessingError` (or subclass) that the router converts into an
:class:`IngestError` record before moving on to the next tab.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Normalized error codes for the ingestkit-sheets pipeline.

    Codes prefixed with ``E_`` are errors; codes prefixed with ``W_`` are
    non-fatal warnings.
    """

    # Document-level (fatal)
    E_METADATA_FETCH = "E_METADATA_FETCH"

    # Per-tab
    E_TAB_PROCESSING = "E_TAB_PROCESSING"
    E_VALUES_FETCH = "E_VALUES_FETCH"
    E_INGEST_DEADLINE = "E_INGEST_DEADLINE"

    # Export fallback
    E_EXPORT_COPY = "E_EXPORT_COPY"
    E_EXPORT_STRIP = "E_EXPORT_STRIP"
    E_EXPORT_RENDER = "E_EXPORT_RENDER"
    E_EXPORT_INVALID = "E_EXPORT_INVALID"
    E_UPLOAD_FAILED = "E_UPLOAD_FAILED"

    # Backend transport
    E_BACKEND_TIMEOUT = "E_BACKEND_TIMEOUT"
    E_BACKEND_CONNECT = "E_BACKEND_CONNECT"
    E_BACKEND_HTTP = "E_BACKEND_HTTP"

    # Warnings (non-fatal)
    W_CLASSIFY_DEGRADED = "W_CLASSIFY_DEGRADED"
    W_CLEANUP_FAILED = "W_CLEANUP_FAILED"


class IngestError(BaseModel):
    """Structured error with code, message, and context.

    Each record carries an :class:`ErrorCode`, a human-readable message, and
    optional context about which tab and processing stage produced it.
    """

    code: ErrorCode
    message: str
    tab_name: str | None = None
    stage: str | None = None
    recoverable: bool = False


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class SheetsIngestError(Exception):
    """Base class for all pipeline exceptions."""

    code: ErrorCode = ErrorCode.E_TAB_PROCESSING
    stage: str | None = None

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        tab_name: str | None = None,
        stage: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if stage is not None:
            self.stage = stage
        self.tab_name = tab_name

    def to_ingest_error(self, recoverable: bool = False) -> IngestError:
        return IngestError(
            code=self.code,
            message=self.message,
            tab_name=self.tab_name,
            stage=self.stage,
            recoverable=recoverable,
        )


class MetadataFetchError(SheetsIngestError):
    """The document's tab list could not be fetched.  Aborts the call."""

    code = ErrorCode.E_METADATA_FETCH
    stage = "list_tabs"


class TabProcessingError(SheetsIngestError):
    """A single tab could not be processed.  The tab is skipped."""

    code = ErrorCode.E_TAB_PROCESSING
    stage = "process_tab"


class ExportFailure(TabProcessingError):
    """Copy, strip, or export of a graphical tab failed."""

    code = ErrorCode.E_EXPORT_RENDER
    stage = "export"


class UploadFailure(TabProcessingError):
    """Blob storage rejected (or never received) the exported payload."""

    code = ErrorCode.E_UPLOAD_FAILED
    stage = "upload"


class CleanupFailure(SheetsIngestError):
    """The temporary copy could not be deleted.  Logged, never raised to callers."""

    code = ErrorCode.W_CLEANUP_FAILED
    stage = "cleanup"


class BackendHTTPError(SheetsIngestError):
    """A remote API answered with a non-retryable (or exhausted) HTTP error status."""

    code = ErrorCode.E_BACKEND_HTTP
    stage = "backend"

    def __init__(self, message: str, *, status_code: int, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.status_code = status_code


def classify_backend_error(exc: BaseException) -> ErrorCode:
    """Map an exception raised by a backend to the most specific ErrorCode."""
    if isinstance(exc, SheetsIngestError):
        return exc.code
    if isinstance(exc, TimeoutError):
        return ErrorCode.E_BACKEND_TIMEOUT
    if isinstance(exc, ConnectionError):
        return ErrorCode.E_BACKEND_CONNECT
    return ErrorCode.E_TAB_PROCESSING
