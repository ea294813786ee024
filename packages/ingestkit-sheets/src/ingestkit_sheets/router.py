"""SheetsRouter -- orchestrator and public API for the ingestkit-sheets pipeline.

Routes every tab of a remote spreadsheet through the ingestion pipeline:

1. Fetch the document's tab list once (fatal on failure).
2. Classify each tab via :class:`TabClassifier`.
3. Route graphical tabs to :class:`ExportFallback` and tabular tabs to
   :class:`TabularProcessor`.
4. Collapse each :data:`TabOutcome` into a :class:`TableDescriptor`.

Tabs are processed sequentially in source order.  A failure inside one tab is
logged and recorded, and the tab is left out of the result; it never aborts the
remaining tabs.
"""

from __future__ import annotations

import logging
import time
import uuid

from ingestkit_sheets.classifier import TabClassifier
from ingestkit_sheets.config import SheetsProcessorConfig
from ingestkit_sheets.errors import (
    ErrorCode,
    IngestError,
    MetadataFetchError,
    SheetsIngestError,
    classify_backend_error,
)
from ingestkit_sheets.models import (
    Credentials,
    IngestionResult,
    TabClassification,
    TableDescriptor,
    TabMetadata,
    TabOutcome,
)
from ingestkit_sheets.processors.export import ExportFallback
from ingestkit_sheets.processors.tabular import TabularProcessor
from ingestkit_sheets.protocols import (
    BlobStorageBackend,
    DocumentDuplicationBackend,
    SpreadsheetMetadataBackend,
    SpreadsheetValuesBackend,
)

logger = logging.getLogger("ingestkit_sheets")


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------


class SheetsRouter:
    """Orchestrator that drives the full spreadsheet ingestion pipeline.

    Builds the classifier and both processing paths from the injected
    backends and config, then exposes :meth:`ingest`, :meth:`process` and
    :meth:`ingest_batch` as the public API.

    Parameters
    ----------
    metadata:
        Backend for tab metadata (e.g. Google Sheets API).
    values:
        Backend for tab cell values.
    duplication:
        Backend for copying, stripping, exporting, and deleting documents.
    blob_storage:
        Destination for exported snapshots of graphical tabs.
    config:
        Pipeline configuration. Uses defaults when *None*.
    """

    def __init__(
        self,
        metadata: SpreadsheetMetadataBackend,
        values: SpreadsheetValuesBackend,
        duplication: DocumentDuplicationBackend,
        blob_storage: BlobStorageBackend,
        config: SheetsProcessorConfig | None = None,
    ) -> None:
        self._config = config or SheetsProcessorConfig()
        self._metadata = metadata

        self._classifier = TabClassifier(metadata, values, self._config)
        self._tabular = TabularProcessor(self._config)
        self._export = ExportFallback(
            metadata=metadata,
            duplication=duplication,
            blob_storage=blob_storage,
            config=self._config,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def ingest(
        self,
        document_id: str,
        credentials: Credentials,
        deadline_seconds: float | None = None,
    ) -> list[TableDescriptor]:
        """Ingest a spreadsheet and return one descriptor per processed tab.

        Raises
        ------
        MetadataFetchError
            If the document's tab list cannot be fetched.
        """
        return self.process(document_id, credentials, deadline_seconds).tables

    def process(
        self,
        document_id: str,
        credentials: Credentials,
        deadline_seconds: float | None = None,
    ) -> IngestionResult:
        """Ingest a spreadsheet and return the detailed :class:`IngestionResult`.

        Parameters
        ----------
        deadline_seconds:
            Time budget for this call, measured from its start.  Overrides
            ``config.ingest_deadline_seconds``; tabs not started before it
            expires are skipped with ``E_INGEST_DEADLINE``.

        Raises
        ------
        MetadataFetchError
            If the document's tab list cannot be fetched.
        """
        overall_start = time.monotonic()
        config = self._config
        ingest_run_id = str(uuid.uuid4())
        doc_label = document_id[:16]

        # ----------------------------------------------------------
        # Step 1: List tabs (fatal on failure)
        # ----------------------------------------------------------
        try:
            tabs = self._metadata.list_tabs(document_id, credentials)
        except Exception as exc:
            logger.error(
                "Could not list tabs for %s: %s: %s",
                doc_label,
                type(exc).__name__,
                exc,
            )
            raise MetadataFetchError(
                f"Could not list tabs for document {document_id}: {exc}"
            ) from exc

        budget = deadline_seconds
        if budget is None:
            budget = config.ingest_deadline_seconds
        deadline: float | None = None
        if budget is not None:
            deadline = overall_start + budget

        tables: list[TableDescriptor] = []
        classifications: list[TabClassification] = []
        error_details: list[IngestError] = []

        # ----------------------------------------------------------
        # Step 2: Process tabs one at a time, in source order
        # ----------------------------------------------------------
        for tab in tabs:
            if deadline is not None and time.monotonic() > deadline:
                logger.warning(
                    "Deadline of %.1fs exceeded for %s; skipping tab '%s'.",
                    budget,
                    doc_label,
                    tab.tab_name,
                )
                error_details.append(
                    IngestError(
                        code=ErrorCode.E_INGEST_DEADLINE,
                        message="Ingestion deadline exceeded before tab was processed.",
                        tab_name=tab.tab_name,
                        stage="process_tab",
                        recoverable=True,
                    )
                )
                continue

            cleanup_failures_before = len(self._export.cleanup_failures)
            try:
                classification, outcome = self._process_tab(
                    document_id, tab, credentials
                )
            except Exception as exc:
                logger.warning(
                    "Skipping tab '%s' of %s: %s: %s",
                    tab.tab_name,
                    doc_label,
                    type(exc).__name__,
                    exc,
                )
                error_details.append(self._to_ingest_error(exc, tab))
                continue
            finally:
                for failure in self._export.cleanup_failures[cleanup_failures_before:]:
                    error_details.append(failure.to_ingest_error(recoverable=True))

            classifications.append(classification)
            if classification.degraded:
                error_details.append(
                    IngestError(
                        code=ErrorCode.W_CLASSIFY_DEGRADED,
                        message="Tab metadata unavailable; classified by blank-sheet check.",
                        tab_name=tab.tab_name,
                        stage="classify",
                        recoverable=True,
                    )
                )

            tables.append(
                outcome.to_descriptor(
                    tab.tab_name,
                    created_by=config.created_by,
                    data_type=config.column_data_type,
                    width=config.column_width,
                )
            )

        # ----------------------------------------------------------
        # Step 3: Assemble result
        # ----------------------------------------------------------
        del self._export.cleanup_failures[:]
        errors: list[str] = []
        warnings: list[str] = []
        for detail in error_details:
            bucket = errors if detail.code.value.startswith("E_") else warnings
            if detail.code.value not in bucket:
                bucket.append(detail.code.value)

        elapsed = time.monotonic() - overall_start
        result = IngestionResult(
            document_id=document_id,
            ingest_run_id=ingest_run_id,
            tables=tables,
            classifications=classifications,
            tabs_total=len(tabs),
            tabs_skipped=len(tabs) - len(tables),
            errors=errors,
            warnings=warnings,
            error_details=error_details,
            processing_time_seconds=elapsed,
        )

        # PII-safe INFO log
        logger.info(
            "Ingested %s: run=%s tabs=%d tables=%d graphical=%d skipped=%d time=%.3fs",
            doc_label,
            ingest_run_id[:8],
            result.tabs_total,
            len(tables),
            sum(1 for t in tables if t.excel_preview is not None),
            result.tabs_skipped,
            elapsed,
        )
        return result

    def ingest_batch(
        self, document_ids: list[str], credentials: Credentials
    ) -> list[IngestionResult]:
        """Process multiple spreadsheets sequentially.

        A document whose tab list cannot be fetched yields an empty result
        carrying ``E_METADATA_FETCH`` instead of aborting the batch.

        Returns
        -------
        list[IngestionResult]
            One result per input document, in the same order.
        """
        results: list[IngestionResult] = []
        for document_id in document_ids:
            try:
                results.append(self.process(document_id, credentials))
            except MetadataFetchError as exc:
                results.append(
                    IngestionResult(
                        document_id=document_id,
                        ingest_run_id=str(uuid.uuid4()),
                        tables=[],
                        errors=[exc.code.value],
                        error_details=[exc.to_ingest_error()],
                    )
                )
        return results

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _process_tab(
        self,
        document_id: str,
        tab: TabMetadata,
        credentials: Credentials,
    ) -> tuple[TabClassification, TabOutcome]:
        """Classify one tab and run it through the matching path."""
        classification, values = self._classifier.classify(
            document_id, tab.tab_id, tab.tab_name, credentials
        )

        if classification.is_graphical:
            logger.info(
                "Routing tab '%s' to export fallback (reason=%s).",
                tab.tab_name,
                classification.reason.value,
            )
            outcome = self._export.process(
                document_id, tab.tab_id, tab.tab_name, credentials
            )
        else:
            logger.info(
                "Routing tab '%s' to tabular path (fill_ratio=%s).",
                tab.tab_name,
                classification.fill_ratio,
            )
            outcome = self._tabular.process(tab.tab_name, values or [])
        return classification, outcome

    @staticmethod
    def _to_ingest_error(exc: Exception, tab: TabMetadata) -> IngestError:
        if isinstance(exc, SheetsIngestError):
            detail = exc.to_ingest_error(recoverable=True)
            if detail.tab_name is None:
                detail = detail.model_copy(update={"tab_name": tab.tab_name})
            return detail
        return IngestError(
            code=classify_backend_error(exc),
            message=f"{type(exc).__name__}: {exc}",
            tab_name=tab.tab_name,
            stage="process_tab",
            recoverable=True,
        )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_default_router(**overrides) -> SheetsRouter:
    """Create a SheetsRouter with the Google Sheets/Drive and HTTP blob backends.

    All defaults can be overridden via keyword arguments:

    - ``metadata``: SpreadsheetMetadataBackend (default: GoogleSheetsBackend)
    - ``values``: SpreadsheetValuesBackend (default: GoogleSheetsBackend)
    - ``duplication``: DocumentDuplicationBackend (default: GoogleDriveBackend)
    - ``blob_storage``: BlobStorageBackend (default: HttpBlobStorage)
    - ``config``: SheetsProcessorConfig (default: SheetsProcessorConfig())

    Any other keyword arguments are passed to SheetsProcessorConfig.
    """
    from ingestkit_sheets.backends import (
        GoogleDriveBackend,
        GoogleSheetsBackend,
        HttpBlobStorage,
    )

    # Separate known router kwargs from config overrides
    router_keys = {"metadata", "values", "duplication", "blob_storage", "config"}
    router_kwargs = {k: v for k, v in overrides.items() if k in router_keys}
    config_kwargs = {k: v for k, v in overrides.items() if k not in router_keys}

    config = router_kwargs.pop("config", None)
    if config is None:
        config = SheetsProcessorConfig(**config_kwargs)

    sheets = None
    if router_kwargs.get("metadata") is None or router_kwargs.get("values") is None:
        sheets = GoogleSheetsBackend(config=config)

    return SheetsRouter(
        metadata=router_kwargs.get("metadata") or sheets,
        values=router_kwargs.get("values") or sheets,
        duplication=router_kwargs.get("duplication") or GoogleDriveBackend(config=config),
        blob_storage=router_kwargs.get("blob_storage") or HttpBlobStorage(config=config),
        config=config,
    )
