"""Pydantic data models and enumerations for ingestkit-sheets.

Defines the tab metadata consumed from the spreadsheet service, the per-tab
classification verdict, the ``TabOutcome`` tagged union produced by the two
processing paths, and the camelCase ``TableDescriptor`` shape handed to the
caller.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from ingestkit_sheets.errors import IngestError

Row = dict[str, str]


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class TabKind(str, Enum):
    """Which processing path a tab is routed to."""

    TABULAR = "tabular"
    GRAPHICAL = "graphical"


class ClassificationReason(str, Enum):
    """The rule that decided a tab's :class:`TabKind`.

    Rules are evaluated in declaration order; the first match wins.
    """

    DRAWINGS = "drawings"
    CHARTS = "charts"
    EMPTY_RANGE = "empty_range"
    ALL_BLANK = "all_blank"
    SPARSE_MERGED = "sparse_merged"
    TABULAR = "tabular"


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


class Credentials(BaseModel):
    """Opaque bearer credentials forwarded to the remote collaborators."""

    access_token: str = Field(repr=False)

    def authorization_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}


class TabMetadata(BaseModel):
    """Structural metadata of one tab as reported by the spreadsheet service."""

    tab_id: int
    tab_name: str
    index: int = 0
    has_drawings: bool = False
    has_charts: bool = False
    has_merges: bool = False


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TabClassification(BaseModel):
    """Verdict of the graphical-tab classifier for a single tab."""

    tab_id: int
    tab_name: str
    kind: TabKind
    reason: ClassificationReason
    fill_ratio: float | None = None
    degraded: bool = False

    @property
    def is_graphical(self) -> bool:
        return self.kind == TabKind.GRAPHICAL


# ---------------------------------------------------------------------------
# Output descriptors
# ---------------------------------------------------------------------------


class ColumnDescriptor(BaseModel):
    """One column of an ingested table."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(default_factory=_new_id)
    data_type: str = Field(alias="dataType")
    col_name: str = Field(alias="colName")
    width: int


class ExcelPreview(BaseModel):
    """Reference to an exported file snapshot in blob storage."""

    model_config = ConfigDict(frozen=True)

    path: str


class TableDescriptor(BaseModel):
    """The normalized output unit for one tab.

    ``columns`` and ``rows`` are empty exactly when the tab took the export
    fallback path, in which case ``excel_preview`` is set instead.  Serialize
    with ``model_dump(by_alias=True)`` for the camelCase wire shape.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(default_factory=_new_id)
    table_name: str = Field(alias="tableName")
    columns: list[ColumnDescriptor] = []
    rows: list[Row] = []
    created_by: str = Field(alias="createdBy")
    excel_preview: ExcelPreview | None = Field(default=None, alias="excelPreview")


class TabularOutcome(BaseModel):
    """Result of the tabular path: normalized columns plus padded rows."""

    kind: Literal["tabular"] = "tabular"
    column_names: list[str]
    rows: list[Row]

    def to_descriptor(
        self,
        tab_name: str,
        *,
        created_by: str,
        data_type: str,
        width: int,
    ) -> TableDescriptor:
        columns = [
            ColumnDescriptor(data_type=data_type, col_name=name, width=width)
            for name in self.column_names
        ]
        return TableDescriptor(
            table_name=tab_name,
            columns=columns,
            rows=self.rows,
            created_by=created_by,
        )


class GraphicalOutcome(BaseModel):
    """Result of the export fallback path: a stored file snapshot."""

    kind: Literal["graphical"] = "graphical"
    preview_path: str

    def to_descriptor(
        self,
        tab_name: str,
        *,
        created_by: str,
        data_type: str,
        width: int,
    ) -> TableDescriptor:
        return TableDescriptor(
            table_name=tab_name,
            created_by=created_by,
            excel_preview=ExcelPreview(path=self.preview_path),
        )


TabOutcome = Annotated[
    Union[TabularOutcome, GraphicalOutcome], Field(discriminator="kind")
]


class IngestionResult(BaseModel):
    """Final result returned after ingesting one spreadsheet document.

    ``tables`` holds one descriptor per successfully processed tab, in source
    order.  Tabs that failed are absent from ``tables`` and described in
    ``errors`` / ``error_details`` instead.
    """

    document_id: str
    ingest_run_id: str
    tables: list[TableDescriptor]
    classifications: list[TabClassification] = []
    tabs_total: int = 0
    tabs_skipped: int = 0

    errors: list[str] = []
    warnings: list[str] = []
    error_details: list[IngestError] = []

    processing_time_seconds: float = 0.0
