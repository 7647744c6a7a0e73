"""Reading the reservation edit page into a ``ReservationRecord``."""

from __future__ import annotations

import asyncio
from typing import Optional

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .auth import Authenticated
from .config import Settings
from .date_normalizer import normalize_display_date
from .diagnostics import DiagnosticCapture, NullCapture, capture_best_effort
from .errors import DateParseError, MissingFieldError, NavigationError, PageInteractionError
from .models import ReservationQuery, ReservationRecord

LOGGER = structlog.get_logger(__name__)

STYLIST_FIELD = "stylistId"
DATE_FIELD = "dispDateFrom"
TIME_FIELD = "rsvTime"
TERM_FIELD = "rsvTerm"

RESERVATION_SNAPSHOT_KEY = "extReserveChange"


class ReservationExtractor:
    """Reads one reservation through an authenticated session."""

    def __init__(
        self,
        authenticated: Authenticated,
        settings: Settings,
        capture: Optional[DiagnosticCapture] = None,
    ):
        if not isinstance(authenticated, Authenticated):
            raise TypeError("ReservationExtractor requires an Authenticated login outcome")
        self._session = authenticated.session
        self._settings = settings
        self._capture = capture or NullCapture()

    async def extract(self, query: ReservationQuery) -> ReservationRecord:
        """Open the reservation edit page and read its booking fields."""
        page = self._session.page
        url = self._settings.reservation_url(query.reserve_id)

        LOGGER.info("reservation.load.start", url=url, reserve_id=query.reserve_id)
        try:
            await page.goto(url)
        except PlaywrightTimeoutError as exc:
            raise NavigationError(f"Timed out opening reservation page {url}", url=url) from exc
        except PlaywrightError as exc:
            raise NavigationError(f"Failed to open reservation page {url}: {exc}", url=url) from exc

        await capture_best_effort(self._capture, page, RESERVATION_SNAPSHOT_KEY)

        stylist_id, date, start_time, term = await asyncio.gather(
            self._read_optional(page, STYLIST_FIELD),
            self._read_date(page),
            self._read_optional(page, TIME_FIELD),
            self._read_optional(page, TERM_FIELD),
        )

        record = ReservationRecord(stylist_id=stylist_id, date=date, start_time=start_time, term=term)
        LOGGER.info("reservation.load.success", reserve_id=query.reserve_id, **record.model_dump(by_alias=True))
        return record

    async def _read_optional(self, page: Page, name: str) -> str:
        value = await _read_value(page, name)
        if value is not None:
            return value

        error = MissingFieldError(name)
        if self._settings.strict_fields:
            raise error
        LOGGER.warning("reservation.field_missing", field=name, error=str(error))
        return ""

    async def _read_date(self, page: Page) -> str:
        raw = await _read_value(page, DATE_FIELD)
        if raw is None:
            raise DateParseError(f"Date control '{DATE_FIELD}' not found on reservation page")
        return normalize_display_date(raw)


async def _read_value(page: Page, name: str) -> Optional[str]:
    """Return the value of the first control named ``name``, or None if absent."""
    locator = page.locator(f"[name='{name}']")
    try:
        if await locator.count() == 0:
            return None
        return await locator.first.input_value()
    except PlaywrightError as exc:
        raise PageInteractionError(f"Failed to read form control '{name}': {exc}") from exc
