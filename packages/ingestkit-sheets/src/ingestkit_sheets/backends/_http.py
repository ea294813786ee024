"""Retrying HTTP transport shared by the concrete backends."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from ingestkit_sheets.config import SheetsProcessorConfig
from ingestkit_sheets.errors import BackendHTTPError

logger = logging.getLogger("ingestkit_sheets")

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def send(
    method: str,
    url: str,
    config: SheetsProcessorConfig,
    *,
    service: str,
    **kwargs: Any,
) -> httpx.Response:
    """Send a request, retrying timeouts, connection errors, 429 and 5xx.

    Every attempt is bounded by ``config.backend_timeout_seconds``.  Retries
    back off exponentially from ``config.backend_backoff_base``.

    Raises:
        TimeoutError: If every attempt timed out.
        ConnectionError: If the last attempt could not connect.
        BackendHTTPError: On a non-retryable status, or a retryable status
            that persisted through every attempt.
    """
    kwargs.setdefault("timeout", config.backend_timeout_seconds)
    max_attempts = 1 + config.backend_max_retries
    last_exc: Exception | None = None

    for attempt in range(max_attempts):
        try:
            response = httpx.request(method, url, **kwargs)
            response.raise_for_status()
            return response
        except httpx.TimeoutException as exc:
            last_exc = exc
            reason = "timed out"
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status not in RETRYABLE_STATUS_CODES:
                raise BackendHTTPError(
                    f"{service} {method} request failed with HTTP {status}",
                    status_code=status,
                ) from exc
            last_exc = exc
            reason = f"failed with HTTP {status}"
        except httpx.TransportError as exc:
            last_exc = exc
            reason = "connection failed"

        if attempt < max_attempts - 1:
            sleep_time = config.backend_backoff_base * (2 ** attempt)
            logger.warning(
                "%s request %s (attempt %d/%d), retrying in %.1fs",
                service,
                reason,
                attempt + 1,
                max_attempts,
                sleep_time,
            )
            time.sleep(sleep_time)

    # All retries exhausted
    if isinstance(last_exc, httpx.TimeoutException):
        raise TimeoutError(
            f"{service} request timed out after {max_attempts} attempts: {last_exc}"
        ) from last_exc
    if isinstance(last_exc, httpx.HTTPStatusError):
        raise BackendHTTPError(
            f"{service} {method} request failed with HTTP "
            f"{last_exc.response.status_code} after {max_attempts} attempts",
            status_code=last_exc.response.status_code,
        ) from last_exc

    raise ConnectionError(
        f"{service} connection failed after {max_attempts} attempts: {last_exc}"
    ) from last_exc
