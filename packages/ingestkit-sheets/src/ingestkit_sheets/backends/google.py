"""Google Sheets / Drive backends.

``GoogleSheetsBackend`` satisfies ``SpreadsheetMetadataBackend`` and
``SpreadsheetValuesBackend`` via the Sheets API v4.  ``GoogleDriveBackend``
satisfies ``DocumentDuplicationBackend`` via the Drive API v3, plus the Sheets
``batchUpdate`` endpoint for deleting tabs.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from ingestkit_sheets.backends._http import send
from ingestkit_sheets.config import SheetsProcessorConfig
from ingestkit_sheets.models import Credentials, TabMetadata

logger = logging.getLogger("ingestkit_sheets")

_TAB_FIELDS = "properties(sheetId,title,index),charts(chartId),merges"
_LIST_FIELDS = f"sheets({_TAB_FIELDS})"
_DETAIL_FIELDS = (
    f"sheets({_TAB_FIELDS},"
    "data(rowData(values(userEnteredValue(formulaValue)))))"
)


def quote_tab_name(tab_name: str) -> str:
    """Quote a tab name for use as an A1 range (``'It''s'`` style escaping)."""
    return "'" + tab_name.replace("'", "''") + "'"


def has_image_formula(sheet: dict[str, Any]) -> bool:
    """Return True if any cell of the sheet's grid data holds an ``=IMAGE(`` formula."""
    for grid in sheet.get("data") or []:
        for row in grid.get("rowData") or []:
            for cell in row.get("values") or []:
                formula = (cell.get("userEnteredValue") or {}).get("formulaValue")
                if formula and formula.lstrip("=").lstrip().upper().startswith("IMAGE("):
                    return True
    return False


def tab_metadata_from_sheet(sheet: dict[str, Any]) -> TabMetadata:
    """Build :class:`TabMetadata` from one ``Spreadsheet.sheets[]`` entry."""
    props = sheet.get("properties") or {}
    return TabMetadata(
        tab_id=int(props.get("sheetId", 0)),
        tab_name=str(props.get("title", "")),
        index=int(props.get("index", 0)),
        has_drawings=has_image_formula(sheet),
        has_charts=bool(sheet.get("charts")),
        has_merges=bool(sheet.get("merges")),
    )


class GoogleSheetsBackend:
    """Sheets API v4 client for tab metadata and cell values.

    Parameters
    ----------
    config:
        Pipeline configuration providing the API base URL, timeout, and
        retry settings.
    """

    def __init__(self, config: SheetsProcessorConfig | None = None) -> None:
        self._config = config or SheetsProcessorConfig()
        self._base_url = self._config.sheets_api_base_url.rstrip("/")

    def _get(
        self, path: str, credentials: Credentials, params: dict[str, Any]
    ) -> dict[str, Any]:
        response = send(
            "GET",
            f"{self._base_url}/{path}",
            self._config,
            service="Sheets",
            params=params,
            headers=credentials.authorization_header(),
        )
        return response.json()

    # ------------------------------------------------------------------
    # Protocol methods
    # ------------------------------------------------------------------

    def list_tabs(
        self, document_id: str, credentials: Credentials
    ) -> list[TabMetadata]:
        """Return every tab of the spreadsheet, in the order the API reports them."""
        data = self._get(document_id, credentials, {"fields": _LIST_FIELDS})
        return [tab_metadata_from_sheet(sheet) for sheet in data.get("sheets") or []]

    def get_tab_details(
        self,
        document_id: str,
        tab_id: int,
        tab_name: str,
        credentials: Credentials,
    ) -> TabMetadata:
        """Return metadata for one tab, including the ``=IMAGE(`` drawing probe.

        Raises:
            LookupError: If the response does not contain the requested tab.
        """
        data = self._get(
            document_id,
            credentials,
            {"ranges": quote_tab_name(tab_name), "fields": _DETAIL_FIELDS},
        )
        for sheet in data.get("sheets") or []:
            if (sheet.get("properties") or {}).get("sheetId") == tab_id:
                return tab_metadata_from_sheet(sheet)
        raise LookupError(f"Tab {tab_id} not found in spreadsheet {document_id}")

    def get_values(
        self, document_id: str, tab_name: str, credentials: Credentials
    ) -> list[list[str]]:
        """Return the tab's formatted values; an empty tab yields ``[]``."""
        range_name = quote(quote_tab_name(tab_name), safe="")
        data = self._get(
            f"{document_id}/values/{range_name}",
            credentials,
            {
                "majorDimension": "ROWS",
                "valueRenderOption": "FORMATTED_VALUE",
                "dateTimeRenderOption": "FORMATTED_STRING",
            },
        )
        return [
            ["" if cell is None else str(cell) for cell in row]
            for row in data.get("values") or []
        ]


class GoogleDriveBackend:
    """Drive API v3 client for copying, exporting, and deleting spreadsheets.

    Parameters
    ----------
    config:
        Pipeline configuration providing the Drive and Sheets base URLs,
        timeout, and retry settings.
    """

    def __init__(self, config: SheetsProcessorConfig | None = None) -> None:
        self._config = config or SheetsProcessorConfig()
        self._drive_url = self._config.drive_api_base_url.rstrip("/")
        self._sheets_url = self._config.sheets_api_base_url.rstrip("/")

    # ------------------------------------------------------------------
    # Protocol methods
    # ------------------------------------------------------------------

    def copy(
        self, document_id: str, credentials: Credentials, name: str | None = None
    ) -> str:
        body: dict[str, Any] = {}
        if name:
            body["name"] = name
        response = send(
            "POST",
            f"{self._drive_url}/{document_id}/copy",
            self._config,
            service="Drive",
            params={"fields": "id", "supportsAllDrives": "true"},
            json=body,
            headers=credentials.authorization_header(),
        )
        return str(response.json()["id"])

    def delete_tabs(
        self, document_id: str, tab_ids: list[int], credentials: Credentials
    ) -> None:
        if not tab_ids:
            return
        requests = [{"deleteSheet": {"sheetId": tab_id}} for tab_id in tab_ids]
        send(
            "POST",
            f"{self._sheets_url}/{document_id}:batchUpdate",
            self._config,
            service="Sheets",
            json={"requests": requests},
            headers=credentials.authorization_header(),
        )

    def export_as_file(
        self, document_id: str, mime_type: str, credentials: Credentials
    ) -> bytes:
        response = send(
            "GET",
            f"{self._drive_url}/{document_id}/export",
            self._config,
            service="Drive",
            params={"mimeType": mime_type},
            headers=credentials.authorization_header(),
        )
        return response.content

    def delete_document(self, document_id: str, credentials: Credentials) -> None:
        send(
            "DELETE",
            f"{self._drive_url}/{document_id}",
            self._config,
            service="Drive",
            params={"supportsAllDrives": "true"},
            headers=credentials.authorization_header(),
        )
