"""Rule-based graphical-tab classifier.

Decides per tab whether its content is structured data (routed to the tabular
path) or a visual artifact such as a dashboard, chart, cover sheet, or blank
placeholder (routed to the export fallback).  Rules are evaluated in a fixed
order and short-circuit on the first match:

1. drawings present
2. charts present
3. empty value range
4. every cell blank
5. merged ranges present and fill ratio below ``fill_ratio_threshold``

A tab matching none of them is tabular.  Rules 1-2 need only metadata, so the
value range is fetched lazily.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from ingestkit_sheets.config import SheetsProcessorConfig
from ingestkit_sheets.errors import ErrorCode, TabProcessingError
from ingestkit_sheets.models import (
    ClassificationReason,
    Credentials,
    TabClassification,
    TabKind,
    TabMetadata,
)
from ingestkit_sheets.protocols import (
    SpreadsheetMetadataBackend,
    SpreadsheetValuesBackend,
)

logger = logging.getLogger("ingestkit_sheets")


# ---------------------------------------------------------------------------
# Grid helpers
# ---------------------------------------------------------------------------


def is_blank(cell: Any) -> bool:
    return cell is None or not str(cell).strip()


def is_blank_grid(values: Sequence[Sequence[Any]]) -> bool:
    """Return True when every cell of every row is blank or whitespace-only."""
    return all(is_blank(cell) for row in values for cell in row)


def fill_ratio(values: Sequence[Sequence[Any]]) -> float:
    """Non-blank cells divided by ``row count x widest row``.

    Returns 0.0 for an empty grid or a grid whose rows are all empty.
    """
    width = max((len(row) for row in values), default=0)
    area = len(values) * width
    if area == 0:
        return 0.0
    filled = sum(1 for row in values for cell in row if not is_blank(cell))
    return filled / area


# ---------------------------------------------------------------------------
# Classifier
# ---------------------------------------------------------------------------


class TabClassifier:
    """Classifies tabs as tabular or graphical.

    If the per-tab metadata lookup fails, the classifier degrades to the
    blank-sheet check on the value range instead of failing the tab.
    """

    def __init__(
        self,
        metadata: SpreadsheetMetadataBackend,
        values: SpreadsheetValuesBackend,
        config: SheetsProcessorConfig,
    ) -> None:
        self._metadata = metadata
        self._values = values
        self._config = config

    # -- public API ----------------------------------------------------------

    def is_graphical(
        self,
        document_id: str,
        tab_id: int,
        tab_name: str,
        credentials: Credentials,
    ) -> bool:
        """Return True if the tab should take the export fallback path."""
        classification, _values = self.classify(
            document_id, tab_id, tab_name, credentials
        )
        return classification.is_graphical

    def classify(
        self,
        document_id: str,
        tab_id: int,
        tab_name: str,
        credentials: Credentials,
    ) -> tuple[TabClassification, list[list[str]] | None]:
        """Classify a tab.

        Returns:
            A tuple of ``(classification, values)``.  ``values`` is the tab's
            value grid when it was fetched, so the tabular path can reuse it,
            and ``None`` when a metadata rule decided without it.

        Raises:
            TabProcessingError: If the value range cannot be fetched.
        """
        try:
            details = self._metadata.get_tab_details(
                document_id, tab_id, tab_name, credentials
            )
        except Exception as exc:
            logger.warning(
                "Metadata lookup failed for tab '%s' (%s: %s); "
                "degrading to blank-sheet check.",
                tab_name,
                type(exc).__name__,
                exc,
            )
            values = self._fetch_values(document_id, tab_name, credentials)
            return self._classify_degraded(tab_id, tab_name, values), values

        if details.has_drawings:
            return self._verdict(details, TabKind.GRAPHICAL, ClassificationReason.DRAWINGS), None
        if details.has_charts:
            return self._verdict(details, TabKind.GRAPHICAL, ClassificationReason.CHARTS), None

        values = self._fetch_values(document_id, tab_name, credentials)
        return self._classify_values(details, values), values

    # -- internal helpers ----------------------------------------------------

    def _fetch_values(
        self, document_id: str, tab_name: str, credentials: Credentials
    ) -> list[list[str]]:
        try:
            return self._values.get_values(document_id, tab_name, credentials)
        except Exception as exc:
            raise TabProcessingError(
                f"Could not fetch values for tab '{tab_name}': {exc}",
                code=ErrorCode.E_VALUES_FETCH,
                tab_name=tab_name,
                stage="classify",
            ) from exc

    def _classify_values(
        self, details: TabMetadata, values: list[list[str]]
    ) -> TabClassification:
        if not values:
            return self._verdict(details, TabKind.GRAPHICAL, ClassificationReason.EMPTY_RANGE)
        if is_blank_grid(values):
            return self._verdict(details, TabKind.GRAPHICAL, ClassificationReason.ALL_BLANK)

        ratio = fill_ratio(values)
        if details.has_merges and ratio < self._config.fill_ratio_threshold:
            return self._verdict(
                details, TabKind.GRAPHICAL, ClassificationReason.SPARSE_MERGED, ratio
            )
        return self._verdict(details, TabKind.TABULAR, ClassificationReason.TABULAR, ratio)

    def _classify_degraded(
        self, tab_id: int, tab_name: str, values: list[list[str]]
    ) -> TabClassification:
        if not values:
            kind, reason = TabKind.GRAPHICAL, ClassificationReason.EMPTY_RANGE
        elif is_blank_grid(values):
            kind, reason = TabKind.GRAPHICAL, ClassificationReason.ALL_BLANK
        else:
            kind, reason = TabKind.TABULAR, ClassificationReason.TABULAR

        logger.info(
            "Tab '%s' classified as %s by degraded check (reason=%s).",
            tab_name,
            kind.value,
            reason.value,
        )
        return TabClassification(
            tab_id=tab_id,
            tab_name=tab_name,
            kind=kind,
            reason=reason,
            degraded=True,
        )

    @staticmethod
    def _verdict(
        details: TabMetadata,
        kind: TabKind,
        reason: ClassificationReason,
        ratio: float | None = None,
    ) -> TabClassification:
        logger.debug(
            "Tab '%s': kind=%s reason=%s fill_ratio=%s",
            details.tab_name,
            kind.value,
            reason.value,
            ratio,
        )
        return TabClassification(
            tab_id=details.tab_id,
            tab_name=details.tab_name,
            kind=kind,
            reason=reason,
            fill_ratio=ratio,
        )
