"""Best-effort screenshot and HTML snapshots for postmortem debugging."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Protocol

import structlog
from playwright.async_api import Page

from .config import Settings

LOGGER = structlog.get_logger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9!\-_.'()]")


class DiagnosticCapture(Protocol):
    """Something that can persist a snapshot of a page under a key."""

    async def capture(self, page: Page, key: str) -> None: ...


class NullCapture:
    """Capture that records nothing."""

    async def capture(self, page: Page, key: str) -> None:
        LOGGER.debug("snapshot.skipped", key=key)


class ArtifactStoreCapture:
    """Write ``<key>.png`` and ``<key>.html`` into a directory."""

    def __init__(self, directory: Path):
        self._directory = directory

    async def capture(self, page: Page, key: str) -> None:
        safe_key = _UNSAFE_KEY_CHARS.sub("-", key)
        self._directory.mkdir(parents=True, exist_ok=True)

        screenshot_path = self._directory / f"{safe_key}.png"
        html_path = self._directory / f"{safe_key}.html"

        await page.screenshot(path=str(screenshot_path), full_page=True)
        html = await page.content()
        html_path.write_text(html, encoding="utf-8")

        LOGGER.info("snapshot.saved", key=key, screenshot=str(screenshot_path), html=str(html_path))


def capture_from_settings(settings: Settings) -> DiagnosticCapture:
    if settings.save_snapshots:
        return ArtifactStoreCapture(settings.artifact_dir)
    return NullCapture()


async def capture_best_effort(capture: DiagnosticCapture, page: Page, key: str) -> None:
    """Run a capture, logging and discarding any failure."""
    try:
        await capture.capture(page, key)
    except Exception as exc:  # noqa: BLE001
        LOGGER.warning("snapshot.failed", key=key, error=str(exc))
