"""Concrete backend implementations for ingestkit-sheets.

All backends talk HTTP through ``httpx`` and satisfy the protocols in
:mod:`ingestkit_sheets.protocols` by structural subtyping.
"""

from __future__ import annotations

from ingestkit_sheets.backends.blob import HttpBlobStorage
from ingestkit_sheets.backends.google import GoogleDriveBackend, GoogleSheetsBackend

__all__ = [
    "GoogleSheetsBackend",
    "GoogleDriveBackend",
    "HttpBlobStorage",
]
