"""Login state machine for the SALON BOARD portal."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .config import Settings
from .diagnostics import DiagnosticCapture, NullCapture, capture_best_effort
from .errors import (
    LoginRejectedError,
    NavigationError,
    PageInteractionError,
    SalonBoardError,
    TitleMismatchError,
)
from .models import Credentials, PageState
from .session import Session

LOGGER = structlog.get_logger(__name__)

USER_ID_SELECTOR = "[name='userId']"
PASSWORD_SELECTOR = "[name='password']"
SUBMIT_SELECTOR = ".loginBtnWrap > a"

LOGIN_SNAPSHOT_KEY = "login-result"


class AuthState(str, Enum):
    INIT = "init"
    LOGIN_PAGE_LOADED = "login_page_loaded"
    CREDENTIALS_FILLED = "credentials_filled"
    SUBMITTED_WAITING_NAV = "submitted_waiting_nav"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


@dataclass(frozen=True)
class Authenticated:
    """Successful login. The only way to obtain a page ready for extraction."""

    session: Session
    page_state: PageState

    @property
    def state(self) -> AuthState:
        return AuthState.AUTHENTICATED


@dataclass(frozen=True)
class Failed:
    """Terminal login failure with the state it happened in."""

    error: SalonBoardError
    failed_in: AuthState
    page_state: Optional[PageState] = field(default=None)

    @property
    def state(self) -> AuthState:
        return AuthState.FAILED

    def raise_error(self) -> None:
        raise self.error


AuthOutcome = Union[Authenticated, Failed]


class AuthenticationFlow:
    """Drive one login attempt against the session's page."""

    def __init__(
        self,
        session: Session,
        credentials: Credentials,
        settings: Settings,
        capture: Optional[DiagnosticCapture] = None,
    ):
        self._session = session
        self._credentials = credentials
        self._settings = settings
        self._capture = capture or NullCapture()
        self.state = AuthState.INIT

    async def run(self) -> AuthOutcome:
        """Run every transition until ``AUTHENTICATED`` or ``FAILED``."""
        if self.state is not AuthState.INIT:
            raise RuntimeError(f"Authentication flow already ran (state={self.state.value})")
        if not self._session.policy_installed:
            raise RuntimeError("Network policy must be installed before the first navigation")

        try:
            await self.load_login_page()
            await self.fill_credentials()
            await self.submit()
            page_state = await self.verify_home()
        except SalonBoardError as exc:
            return await self._fail(exc)
        except PlaywrightError as exc:
            error = PageInteractionError(f"Page interaction failed during login: {exc}")
            error.__cause__ = exc
            return await self._fail(error)

        await capture_best_effort(self._capture, self._session.page, LOGIN_SNAPSHOT_KEY)
        return Authenticated(session=self._session, page_state=page_state)

    async def load_login_page(self) -> None:
        """``INIT -> LOGIN_PAGE_LOADED``."""
        self._expect(AuthState.INIT)
        page = self._session.page
        url = self._settings.login_url
        LOGGER.info("login.open", url=url)
        try:
            await page.goto(url, timeout=self._settings.login_timeout_seconds * 1000)
        except PlaywrightTimeoutError as exc:
            raise NavigationError(f"Timed out opening login page {url}", url=url) from exc
        except PlaywrightError as exc:
            raise NavigationError(f"Failed to open login page {url}: {exc}", url=url) from exc

        title = await page.title()
        if title != self._settings.login_title:
            raise TitleMismatchError(
                "Failed to open login page",
                expected_title=self._settings.login_title,
                actual_title=title,
            )
        self._advance(AuthState.LOGIN_PAGE_LOADED)

    async def fill_credentials(self) -> None:
        """``LOGIN_PAGE_LOADED -> CREDENTIALS_FILLED``."""
        self._expect(AuthState.LOGIN_PAGE_LOADED)
        page = self._session.page
        await page.fill(USER_ID_SELECTOR, self._credentials.user_id)
        await page.fill(PASSWORD_SELECTOR, self._credentials.password)
        self._advance(AuthState.CREDENTIALS_FILLED)

    async def submit(self) -> None:
        """``CREDENTIALS_FILLED -> SUBMITTED_WAITING_NAV``.

        The navigation wait is armed before the click, and both must finish.
        """
        self._expect(AuthState.CREDENTIALS_FILLED)
        page = self._session.page
        LOGGER.info("login.submit", user_id=self._credentials.user_id)
        try:
            async with page.expect_navigation():
                await page.click(SUBMIT_SELECTOR)
        except PlaywrightTimeoutError as exc:
            raise NavigationError("Timed out waiting for navigation after login submit", url=page.url) from exc
        except PlaywrightError as exc:
            raise NavigationError(f"Navigation after login submit failed: {exc}", url=page.url) from exc
        self._advance(AuthState.SUBMITTED_WAITING_NAV)

    async def verify_home(self) -> PageState:
        """``SUBMITTED_WAITING_NAV -> AUTHENTICATED``."""
        self._expect(AuthState.SUBMITTED_WAITING_NAV)
        page = self._session.page
        title = await page.title()
        if title != self._settings.home_title:
            raise LoginRejectedError(
                "Failed to login",
                expected_title=self._settings.home_title,
                actual_title=title,
            )
        self._advance(AuthState.AUTHENTICATED)
        return PageState(title=title, url=page.url)

    def _expect(self, state: AuthState) -> None:
        if self.state is not state:
            raise RuntimeError(f"Invalid transition from {self.state.value}, expected {state.value}")

    def _advance(self, state: AuthState) -> None:
        LOGGER.info("login.transition", from_state=self.state.value, to_state=state.value)
        self.state = state

    async def _fail(self, error: SalonBoardError) -> Failed:
        failed_in = self.state
        self.state = AuthState.FAILED
        page_state = await self._observe()
        LOGGER.error(
            "login.failed",
            failed_in=failed_in.value,
            error_kind=error.kind,
            error=str(error),
            title=page_state.title if page_state else None,
            url=page_state.url if page_state else None,
        )
        return Failed(error=error, failed_in=failed_in, page_state=page_state)

    async def _observe(self) -> Optional[PageState]:
        try:
            page = self._session.page
            return PageState(title=await page.title(), url=page.url)
        except Exception as exc:  # noqa: BLE001
            LOGGER.debug("login.observe_failed", error=str(exc))
            return None
