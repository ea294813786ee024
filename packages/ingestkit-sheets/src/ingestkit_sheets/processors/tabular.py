"""Tabular path: header normalization and fixed-shape row materialization."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import pandas as pd

from ingestkit_sheets.config import SheetsProcessorConfig
from ingestkit_sheets.models import Row, TabularOutcome

logger = logging.getLogger("ingestkit_sheets")


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------


def normalize_headers(raw_header_row: Sequence[Any]) -> list[str]:
    """Turn a raw first row into unique, non-empty column names.

    Rules:
    1. Trim each cell; a blank or ``None`` cell becomes ``Column<N>``
       (1-indexed position).
    2. The first occurrence of a name is kept; the k-th repeat becomes
       ``<name>_<k>``.  A suffixed name that is already taken (e.g. a literal
       ``Name_2`` header) moves on to the next free counter value.

    The output has exactly one name per input cell, and no two names are equal.
    """
    seen: dict[str, int] = {}
    used: set[str] = set()
    result: list[str] = []
    for i, cell in enumerate(raw_header_row):
        name = "" if cell is None else str(cell).strip()
        if not name:
            name = f"Column{i + 1}"
        if name in used:
            count = seen.get(name, 1)
            candidate = name
            while candidate in used:
                count += 1
                candidate = f"{name}_{count}"
            seen[name] = count
            name = candidate
        else:
            seen[name] = 1
        used.add(name)
        result.append(name)
    return result


def materialize_rows(
    raw_rows: Sequence[Sequence[Any]],
    names: list[str],
    floor: int,
) -> list[Row]:
    """Map raw data rows onto *names*, padding to at least *floor* rows.

    Missing trailing cells become ``""``; cells beyond the header width are
    dropped.  Row order is preserved.
    """
    width = len(names)
    frame = pd.DataFrame([list(row[:width]) for row in raw_rows], dtype=object)
    frame = frame.reindex(
        index=range(max(len(raw_rows), floor)),
        columns=range(width),
    ).astype(object)
    frame = frame.where(frame.notna(), "").astype(str)
    frame.columns = names
    return frame.to_dict(orient="records")


# ---------------------------------------------------------------------------
# Processor
# ---------------------------------------------------------------------------


class TabularProcessor:
    """Builds a :class:`TabularOutcome` from a tab's raw value grid."""

    def __init__(self, config: SheetsProcessorConfig) -> None:
        self._config = config

    def process(self, tab_name: str, values: list[list[str]]) -> TabularOutcome:
        """Normalize the header row and materialize the data rows.

        Args:
            tab_name: Display name of the tab (used for logging only).
            values: The tab's value grid; the first row is the header.

        The header row is padded to the widest row of the grid, so header
        cells the API omitted (trailing blanks, or a blank first row) become
        ``Column<N>`` placeholders instead of dropping their data.
        """
        width = max((len(row) for row in values), default=0)
        header = list(values[0]) if values else []
        header += [""] * (width - len(header))
        names = normalize_headers(header)
        rows = materialize_rows(values[1:], names, self._config.row_floor)

        data_rows = max(len(values) - 1, 0)
        logger.debug(
            "Tab '%s': %d columns, %d data rows, %d padded rows",
            tab_name,
            len(names),
            data_rows,
            len(rows) - data_rows,
        )
        if self._config.log_sample_data:
            logger.debug("Tab '%s' columns: %s", tab_name, names)

        return TabularOutcome(column_names=names, rows=rows)
