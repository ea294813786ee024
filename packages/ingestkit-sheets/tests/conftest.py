"""Shared test fixtures for ingestkit-sheets tests.

Provides in-memory fakes that satisfy the four Protocol interfaces
(SpreadsheetMetadataBackend, SpreadsheetValuesBackend,
DocumentDuplicationBackend, BlobStorageBackend), a ``config`` fixture, and a
helper that renders real ``.xlsx`` payloads with openpyxl.
"""

from __future__ import annotations

import io
import itertools

import openpyxl
import pytest

from ingestkit_sheets.config import SheetsProcessorConfig
from ingestkit_sheets.models import Credentials, TabMetadata
from ingestkit_sheets.router import SheetsRouter


def make_xlsx(sheet_names: list[str]) -> bytes:
    """Render a workbook with one (empty) worksheet per name."""
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for name in sheet_names or ["Sheet1"]:
        wb.create_sheet(title=name[:31])
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


# ---------------------------------------------------------------------------
# Fake Backends
# ---------------------------------------------------------------------------


class FakeTab:
    def __init__(
        self,
        tab_id: int,
        name: str,
        values: list[list[str]],
        *,
        drawings: bool = False,
        charts: bool = False,
        merges: bool = False,
    ) -> None:
        self.tab_id = tab_id
        self.name = name
        self.values = values
        self.drawings = drawings
        self.charts = charts
        self.merges = merges

    def metadata(self, index: int) -> TabMetadata:
        return TabMetadata(
            tab_id=self.tab_id,
            tab_name=self.name,
            index=index,
            has_drawings=self.drawings,
            has_charts=self.charts,
            has_merges=self.merges,
        )


class FakeSheets:
    """In-memory spreadsheet service satisfying the metadata and values protocols.

    Documents are lists of :class:`FakeTab`, keyed by document ID.  Failures
    are injected by adding document IDs or tab names to the ``fail_*`` sets.
    """

    def __init__(self) -> None:
        self.documents: dict[str, list[FakeTab]] = {}
        self.fail_list: set[str] = set()
        self.fail_details: set[str] = set()
        self.fail_values: set[str] = set()
        self.calls: list[tuple[str, ...]] = []

    def add_document(self, document_id: str, tabs: list[FakeTab]) -> None:
        self.documents[document_id] = tabs

    def list_tabs(self, document_id: str, credentials: Credentials) -> list[TabMetadata]:
        self.calls.append(("list_tabs", document_id))
        if document_id in self.fail_list or document_id not in self.documents:
            raise ConnectionError(f"cannot list {document_id}")
        return [tab.metadata(i) for i, tab in enumerate(self.documents[document_id])]

    def get_tab_details(
        self, document_id: str, tab_id: int, tab_name: str, credentials: Credentials
    ) -> TabMetadata:
        self.calls.append(("get_tab_details", document_id, tab_name))
        if tab_name in self.fail_details:
            raise TimeoutError(f"details for {tab_name} timed out")
        for i, tab in enumerate(self.documents[document_id]):
            if tab.tab_id == tab_id:
                return tab.metadata(i)
        raise LookupError(tab_id)

    def get_values(
        self, document_id: str, tab_name: str, credentials: Credentials
    ) -> list[list[str]]:
        self.calls.append(("get_values", document_id, tab_name))
        if tab_name in self.fail_values:
            raise ConnectionError(f"values for {tab_name} unavailable")
        for tab in self.documents[document_id]:
            if tab.name == tab_name:
                return [list(row) for row in tab.values]
        raise LookupError(tab_name)


class FakeDrive:
    """In-memory duplication service operating on a :class:`FakeSheets` store."""

    def __init__(self, sheets: FakeSheets) -> None:
        self._sheets = sheets
        self._ids = itertools.count(1)
        self.copies: list[str] = []
        self.copy_names: list[str | None] = []
        self.deleted: list[str] = []
        self.deleted_tabs: dict[str, list[int]] = {}
        self.fail_copy = False
        self.fail_strip = False
        self.fail_export = False
        self.fail_delete = False
        self.export_payload: bytes | None = None

    def copy(self, document_id: str, credentials: Credentials, name: str | None = None) -> str:
        if self.fail_copy:
            raise ConnectionError("copy refused")
        copy_id = f"copy-{next(self._ids)}"
        self._sheets.documents[copy_id] = list(self._sheets.documents[document_id])
        self.copies.append(copy_id)
        self.copy_names.append(name)
        return copy_id

    def delete_tabs(self, document_id: str, tab_ids: list[int], credentials: Credentials) -> None:
        if self.fail_strip:
            raise ConnectionError("batchUpdate refused")
        self.deleted_tabs[document_id] = list(tab_ids)
        self._sheets.documents[document_id] = [
            tab for tab in self._sheets.documents[document_id] if tab.tab_id not in tab_ids
        ]

    def export_as_file(self, document_id: str, mime_type: str, credentials: Credentials) -> bytes:
        if self.fail_export:
            raise TimeoutError("export timed out")
        if self.export_payload is not None:
            return self.export_payload
        return make_xlsx([tab.name for tab in self._sheets.documents[document_id]])

    def delete_document(self, document_id: str, credentials: Credentials) -> None:
        self.deleted.append(document_id)
        if self.fail_delete:
            raise ConnectionError("delete refused")
        self._sheets.documents.pop(document_id, None)


class FakeBlobStorage:
    """Records uploads and returns ``previews/<filename>`` paths."""

    def __init__(self) -> None:
        self.uploads: list[tuple[str, bytes, str]] = []
        self.fail = False

    def upload(self, filename: str, payload: bytes, mime_type: str) -> str:
        if self.fail:
            raise ValueError("HTTP 500 from blob storage")
        self.uploads.append((filename, payload, mime_type))
        return f"previews/{filename}"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def config() -> SheetsProcessorConfig:
    """Return a SheetsProcessorConfig with all defaults."""
    return SheetsProcessorConfig()


@pytest.fixture()
def credentials() -> Credentials:
    return Credentials(access_token="test-token")


@pytest.fixture()
def sheets() -> FakeSheets:
    return FakeSheets()


@pytest.fixture()
def drive(sheets: FakeSheets) -> FakeDrive:
    return FakeDrive(sheets)


@pytest.fixture()
def blob() -> FakeBlobStorage:
    return FakeBlobStorage()


@pytest.fixture()
def router(
    sheets: FakeSheets,
    drive: FakeDrive,
    blob: FakeBlobStorage,
    config: SheetsProcessorConfig,
) -> SheetsRouter:
    return SheetsRouter(
        metadata=sheets,
        values=sheets,
        duplication=drive,
        blob_storage=blob,
        config=config,
    )


@pytest.fixture()
def tab() -> type[FakeTab]:
    """Return the :class:`FakeTab` factory."""
    return FakeTab
