"""Export fallback: snapshot a single graphical tab to blob storage.

The snapshot is produced on a temporary copy of the document so the source is
never modified:

1. copy the document
2. delete every tab of the copy except the target
3. export the copy as a spreadsheet file
4. upload the file to blob storage
5. delete the copy (always, exactly once)
"""

from __future__ import annotations

import io
import logging
import re
import zipfile
from contextlib import contextmanager
from typing import Iterator

import openpyxl

from ingestkit_sheets.config import SheetsProcessorConfig
from ingestkit_sheets.errors import (
    CleanupFailure,
    ErrorCode,
    ExportFailure,
    UploadFailure,
)
from ingestkit_sheets.models import Credentials, GraphicalOutcome
from ingestkit_sheets.protocols import (
    BlobStorageBackend,
    DocumentDuplicationBackend,
    SpreadsheetMetadataBackend,
)

logger = logging.getLogger("ingestkit_sheets")

_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]+')


def export_filename(tab_name: str, extension: str = ".xlsx") -> str:
    """Build a filesystem-safe upload file name for a tab."""
    stem = _UNSAFE_FILENAME_CHARS.sub("_", tab_name).strip(" ._") or "sheet"
    return f"{stem}{extension}"


class ExportFallback:
    """Exports one tab as a standalone spreadsheet file and stores it.

    Parameters
    ----------
    metadata:
        Used to enumerate the tabs of the temporary copy.
    duplication:
        Copy / delete-tabs / export / delete operations.
    blob_storage:
        Destination for the exported payload.
    config:
        Pipeline configuration (MIME type, naming, verification).
    """

    def __init__(
        self,
        metadata: SpreadsheetMetadataBackend,
        duplication: DocumentDuplicationBackend,
        blob_storage: BlobStorageBackend,
        config: SheetsProcessorConfig,
    ) -> None:
        self._metadata = metadata
        self._duplication = duplication
        self._blob_storage = blob_storage
        self._config = config
        self.cleanup_failures: list[CleanupFailure] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def export_tab(
        self,
        document_id: str,
        tab_id: int,
        tab_name: str,
        credentials: Credentials,
    ) -> str:
        """Run copy -> strip -> export -> upload and return the storage path.

        Raises:
            ExportFailure: If copying, stripping, or exporting fails.
            UploadFailure: If blob storage rejects the payload.
        """
        config = self._config

        with self._temporary_copy(document_id, tab_name, credentials) as copy_id:
            self._strip_other_tabs(copy_id, tab_id, tab_name, credentials)

            try:
                payload = self._duplication.export_as_file(
                    copy_id, config.export_mime_type, credentials
                )
            except Exception as exc:
                raise ExportFailure(
                    f"Export of tab '{tab_name}' failed: {exc}",
                    code=ErrorCode.E_EXPORT_RENDER,
                    tab_name=tab_name,
                ) from exc

            if config.verify_export:
                self._verify_payload(payload, tab_name)

            filename = export_filename(tab_name, config.export_file_extension)
            try:
                path = self._blob_storage.upload(
                    filename, payload, config.export_mime_type
                )
            except Exception as exc:
                raise UploadFailure(
                    f"Upload of tab '{tab_name}' failed: {exc}",
                    tab_name=tab_name,
                ) from exc

        logger.info(
            "Exported tab '%s' (%d bytes) to %s.", tab_name, len(payload), path
        )
        return path

    def process(
        self,
        document_id: str,
        tab_id: int,
        tab_name: str,
        credentials: Credentials,
    ) -> GraphicalOutcome:
        """Export the tab and wrap the storage path in a :class:`GraphicalOutcome`."""
        path = self.export_tab(document_id, tab_id, tab_name, credentials)
        return GraphicalOutcome(preview_path=path)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _temporary_copy(
        self, document_id: str, tab_name: str, credentials: Credentials
    ) -> Iterator[str]:
        """Create a temporary copy of the document and always delete it on exit.

        A failed delete is logged and recorded in ``cleanup_failures``; it never
        replaces the outcome of the body.
        """
        try:
            copy_id = self._duplication.copy(
                document_id,
                credentials,
                name=f"{self._config.copy_name_prefix}{tab_name}",
            )
        except Exception as exc:
            raise ExportFailure(
                f"Copy of document for tab '{tab_name}' failed: {exc}",
                code=ErrorCode.E_EXPORT_COPY,
                tab_name=tab_name,
                stage="copy",
            ) from exc

        logger.debug("Created temporary copy %s for tab '%s'.", copy_id, tab_name)
        try:
            yield copy_id
        finally:
            try:
                self._duplication.delete_document(copy_id, credentials)
            except Exception as exc:
                failure = CleanupFailure(
                    f"Could not delete temporary copy {copy_id}: {exc}",
                    tab_name=tab_name,
                )
                self.cleanup_failures.append(failure)
                logger.warning(
                    "Cleanup failed for temporary copy %s (tab '%s'): %s",
                    copy_id,
                    tab_name,
                    exc,
                )

    def _strip_other_tabs(
        self,
        copy_id: str,
        tab_id: int,
        tab_name: str,
        credentials: Credentials,
    ) -> None:
        try:
            tabs = self._metadata.list_tabs(copy_id, credentials)
            doomed = [tab.tab_id for tab in tabs if tab.tab_id != tab_id]
            if len(doomed) == len(tabs):
                raise ExportFailure(
                    f"Tab '{tab_name}' (id={tab_id}) not found in copy {copy_id}.",
                    code=ErrorCode.E_EXPORT_STRIP,
                    tab_name=tab_name,
                    stage="strip",
                )
            if doomed:
                self._duplication.delete_tabs(copy_id, doomed, credentials)
        except ExportFailure:
            raise
        except Exception as exc:
            raise ExportFailure(
                f"Stripping copy {copy_id} down to tab '{tab_name}' failed: {exc}",
                code=ErrorCode.E_EXPORT_STRIP,
                tab_name=tab_name,
                stage="strip",
            ) from exc

    @staticmethod
    def _verify_payload(payload: bytes, tab_name: str) -> None:
        """Open the exported payload to make sure it is a readable workbook."""
        try:
            workbook = openpyxl.load_workbook(io.BytesIO(payload), read_only=True)
        except (zipfile.BadZipFile, OSError, KeyError, ValueError) as exc:
            raise ExportFailure(
                f"Exported payload for tab '{tab_name}' is not a valid workbook: {exc}",
                code=ErrorCode.E_EXPORT_INVALID,
                tab_name=tab_name,
            ) from exc
        sheet_count = len(workbook.sheetnames)
        workbook.close()
        if sheet_count != 1:
            logger.warning(
                "Exported payload for tab '%s' has %d sheets, expected 1.",
                tab_name,
                sheet_count,
            )
