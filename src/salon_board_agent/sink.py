"""Delivery of the extracted reservation to the dataset and webhook."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import httpx
import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from .config import Settings
from .errors import SinkError
from .models import ReservationOutput

LOGGER = structlog.get_logger(__name__)

DATASET_FILE = "items.jsonl"


def format_output(output: ReservationOutput) -> str:
    """Serialise the output object as a single JSON line."""
    return json.dumps(output.to_payload(), ensure_ascii=False)


class ResultSink:
    """Append results to a JSON-lines dataset and optionally POST them."""

    def __init__(
        self,
        dataset_dir: Path,
        *,
        webhook_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        attempts: int = 3,
        retry_wait: Optional[wait_base] = None,
    ):
        self._dataset_dir = dataset_dir
        self._webhook_url = webhook_url
        self._transport = transport
        self._attempts = attempts
        self._retry_wait = retry_wait if retry_wait is not None else wait_exponential(multiplier=1, min=1, max=8)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResultSink":
        return cls(settings.dataset_dir, webhook_url=settings.result_webhook_url)

    async def push(self, output: ReservationOutput) -> None:
        # The dataset line is written only once the webhook has accepted the record.
        if self._webhook_url:
            await self._post(output)
        self._append(format_output(output))

    def _append(self, line: str) -> None:
        try:
            self._dataset_dir.mkdir(parents=True, exist_ok=True)
            path = self._dataset_dir / DATASET_FILE
            with path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        except OSError as exc:
            raise SinkError(f"Failed to write dataset item: {exc}") from exc
        LOGGER.info("sink.dataset.appended", path=str(path))

    async def _post(self, output: ReservationOutput) -> None:
        LOGGER.info("sink.webhook.start", url=self._webhook_url)
        try:
            async for attempt in AsyncRetrying(
                wait=self._retry_wait,
                stop=stop_after_attempt(self._attempts),
                retry=retry_if_exception_type(httpx.HTTPError),
                reraise=True,
            ):
                with attempt:
                    async with httpx.AsyncClient(timeout=15.0, transport=self._transport) as client:
                        response = await client.post(self._webhook_url, json=output.to_payload())
                        response.raise_for_status()
        except httpx.HTTPError as exc:
            LOGGER.error("sink.webhook.failed", error=str(exc))
            raise SinkError(f"Webhook delivery failed: {exc}") from exc
        LOGGER.info("sink.webhook.success")
