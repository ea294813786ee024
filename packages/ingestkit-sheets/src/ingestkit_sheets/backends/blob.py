"""HTTP blob-storage backend satisfying the ``BlobStorageBackend`` protocol."""

from __future__ import annotations

from ingestkit_sheets.backends._http import send
from ingestkit_sheets.config import SheetsProcessorConfig


class HttpBlobStorage:
    """Uploads files as multipart form data to a blob-storage endpoint.

    The endpoint is expected to answer a successful upload with a JSON body
    of the form ``{"path": "<storage path>"}``.  Any non-2xx status is a
    failure.
    """

    def __init__(
        self,
        upload_url: str | None = None,
        config: SheetsProcessorConfig | None = None,
    ) -> None:
        self._config = config or SheetsProcessorConfig()
        self._upload_url = upload_url or self._config.blob_upload_url

    def upload(self, filename: str, payload: bytes, mime_type: str) -> str:
        headers = {}
        if self._config.blob_api_key:
            headers["Authorization"] = f"Bearer {self._config.blob_api_key}"

        response = send(
            "POST",
            self._upload_url,
            self._config,
            service="Blob storage",
            files={self._config.blob_upload_field: (filename, payload, mime_type)},
            headers=headers,
        )
        data = response.json()
        path = data.get("path") if isinstance(data, dict) else None
        if not path:
            raise ValueError(
                f"Blob storage response for '{filename}' has no 'path' field"
            )
        return str(path)
