"""Backend protocols for the ingestkit-sheets pipeline.

Defines the four structural-subtyping interfaces the pipeline consumes.  All
protocols are ``@runtime_checkable`` so callers can optionally verify
conformance with ``isinstance`` checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ingestkit_sheets.models import Credentials, TabMetadata


@runtime_checkable
class SpreadsheetMetadataBackend(Protocol):
    """Interface for spreadsheet metadata lookups (e.g. Google Sheets API)."""

    def list_tabs(
        self, document_id: str, credentials: Credentials
    ) -> list[TabMetadata]:
        """Return metadata for every tab of the document, in source order."""
        ...

    def get_tab_details(
        self,
        document_id: str,
        tab_id: int,
        tab_name: str,
        credentials: Credentials,
    ) -> TabMetadata:
        """Return full structural metadata (drawings, charts, merges) for one tab."""
        ...


@runtime_checkable
class SpreadsheetValuesBackend(Protocol):
    """Interface for reading a tab's cell values."""

    def get_values(
        self, document_id: str, tab_name: str, credentials: Credentials
    ) -> list[list[str]]:
        """Return the tab's value range as rows of strings (ragged allowed)."""
        ...


@runtime_checkable
class DocumentDuplicationBackend(Protocol):
    """Interface for copying, trimming, exporting, and deleting documents."""

    def copy(
        self, document_id: str, credentials: Credentials, name: str | None = None
    ) -> str:
        """Create a full duplicate of the document. Returns the new document ID."""
        ...

    def delete_tabs(
        self, document_id: str, tab_ids: list[int], credentials: Credentials
    ) -> None:
        """Delete the given tabs from the document."""
        ...

    def export_as_file(
        self, document_id: str, mime_type: str, credentials: Credentials
    ) -> bytes:
        """Render the document as a binary file in the given MIME type."""
        ...

    def delete_document(self, document_id: str, credentials: Credentials) -> None:
        """Permanently delete the document."""
        ...


@runtime_checkable
class BlobStorageBackend(Protocol):
    """Interface for the blob store receiving exported file snapshots."""

    def upload(self, filename: str, payload: bytes, mime_type: str) -> str:
        """Upload a file as multipart form data. Returns the stored path."""
        ...
