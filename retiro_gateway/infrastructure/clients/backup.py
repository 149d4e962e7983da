"""Spreadsheet backup hook - mirrors registration events to the organisers' sheet"""

import asyncio
import logging
from typing import Any, Dict
import httpx

from retiro_gateway.config import settings
from retiro_gateway.infrastructure.observability.metrics import backup_failure_counter, backup_latency_histogram

logger = logging.getLogger(__name__)


class BackupClient:
    """Posts registration events to the backup hook (Apps Script style endpoint)"""

    def __init__(self, webhook_url: str | None = None, timeout: float | None = None):
        self.webhook_url = webhook_url if webhook_url is not None else settings.backup_webhook_url
        self.timeout = timeout or settings.http_timeout_seconds
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def send_event(self, payload: Dict[str, Any]) -> None:
        """
        Mirror one event; no-op when no hook is configured.

        Network errors and 5xx answers are retried with exponential backoff
        (backoff_base * 2^n). A 4xx means the sheet rejected the row and is
        raised at once, as is the last failure once retries run out.
        """
        if not self.enabled:
            return

        event = payload.get("event", "unknown")
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(1, self.max_retries + 1):
                try:
                    with backup_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=payload)
                    response.raise_for_status()
                    return

                except httpx.HTTPStatusError as e:
                    backup_failure_counter.labels(event=event).inc()
                    if e.response.is_client_error or attempt == self.max_retries:
                        logger.error(f"Backup of {event} rejected: HTTP {e.response.status_code}")
                        raise

                except httpx.RequestError as e:
                    backup_failure_counter.labels(event=event).inc()
                    if attempt == self.max_retries:
                        logger.error(f"Backup of {event} failed after {attempt} attempts: {e}")
                        raise

                await asyncio.sleep(self.backoff_base * (2 ** (attempt - 1)))
