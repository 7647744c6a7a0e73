"""Playwright session lifecycle for the SALON BOARD portal."""

from __future__ import annotations

from contextlib import suppress
from typing import Any, Mapping, Optional
from urllib.parse import unquote, urlsplit

import structlog
from playwright.async_api import Browser, BrowserContext, Page, Playwright, Route, async_playwright

from .config import DEFAULT_HEADER_OVERRIDES, Settings
from .errors import LaunchError, SessionClosedError
from .network_policy import NetworkPolicy, RequestDescriptor, RouteDecision

LOGGER = structlog.get_logger(__name__)


class Session:
    """One Playwright driver, browser and page, owned for a single run."""

    def __init__(
        self,
        page: Page,
        *,
        browser: Optional[Browser] = None,
        context: Optional[BrowserContext] = None,
        playwright: Optional[Playwright] = None,
    ):
        self._page = page
        self._browser = browser
        self._context = context
        self._playwright = playwright
        self._closed = False
        self.policy: Optional[NetworkPolicy] = None

    @property
    def page(self) -> Page:
        if self._closed:
            raise SessionClosedError("Session has already been closed")
        return self._page

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def policy_installed(self) -> bool:
        return self.policy is not None

    async def close(self) -> None:
        """Release page, context, browser and driver. Later calls do nothing."""
        if self._closed:
            return
        self._closed = True

        for name, closer in (
            ("page", self._page.close if self._page else None),
            ("context", self._context.close if self._context else None),
            ("browser", self._browser.close if self._browser else None),
            ("playwright", self._playwright.stop if self._playwright else None),
        ):
            if closer is None:
                continue
            try:
                await closer()
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning("session.close_failed", resource=name, error=str(exc))

        LOGGER.info("session.closed")


def proxy_settings(proxy_url: str) -> dict[str, str]:
    """Translate a proxy URL into Playwright's proxy option."""
    parts = urlsplit(proxy_url)
    if not parts.scheme or not parts.hostname:
        raise LaunchError("Proxy URL must include a scheme and host")

    server = f"{parts.scheme}://{parts.hostname}"
    if parts.port:
        server = f"{server}:{parts.port}"

    proxy = {"server": server}
    if parts.username:
        proxy["username"] = unquote(parts.username)
    if parts.password:
        proxy["password"] = unquote(parts.password)
    return proxy


async def create_session(
    settings: Settings,
    *,
    proxy_url: Optional[str] = None,
    header_overrides: Optional[Mapping[str, str]] = None,
) -> Session:
    """Launch Chromium and open the single page used for the run."""
    headers = dict(DEFAULT_HEADER_OVERRIDES if header_overrides is None else header_overrides)
    launch_options: dict[str, Any] = {
        "headless": settings.headless,
        "args": ["--disable-dev-shm-usage", "--no-sandbox"],
    }
    if proxy_url:
        launch_options["proxy"] = proxy_settings(proxy_url)

    LOGGER.info("session.launch.start", headless=settings.headless, proxy=bool(proxy_url))

    playwright: Optional[Playwright] = None
    browser: Optional[Browser] = None
    context: Optional[BrowserContext] = None
    try:
        playwright = await async_playwright().start()
        browser = await playwright.chromium.launch(**launch_options)
        context = await browser.new_context(extra_http_headers=headers)
        page = await context.new_page()
        page.set_default_timeout(settings.timeout_seconds * 1000)
    except Exception as exc:
        LOGGER.error("session.launch.failed", error=str(exc))
        if context is not None:
            with suppress(Exception):
                await context.close()
        if browser is not None:
            with suppress(Exception):
                await browser.close()
        if playwright is not None:
            with suppress(Exception):
                await playwright.stop()
        raise LaunchError(f"Failed to launch browser: {exc}") from exc

    LOGGER.info("session.launch.success")
    return Session(page, browser=browser, context=context, playwright=playwright)


async def install_network_policy(session: Session, policy: NetworkPolicy) -> None:
    """Route every request of the session's page through ``policy``."""

    async def handle(route: Route) -> None:
        request = route.request
        decision = policy.decide(RequestDescriptor(url=request.url, resource_type=request.resource_type))
        if decision is RouteDecision.DENY:
            await route.abort()
        else:
            await route.continue_()

    await session.page.route("**/*", handle)
    session.policy = policy
    LOGGER.info(
        "session.policy.installed",
        blocked_domains=list(policy.blocked_domains),
        blocked_resource_types=sorted(policy.blocked_resource_types),
    )


async def close_session(session: Session) -> None:
    await session.close()


class SessionController:
    """Async context manager that yields a ready session and always closes it."""

    def __init__(
        self,
        settings: Settings,
        policy: Optional[NetworkPolicy] = None,
        *,
        header_overrides: Optional[Mapping[str, str]] = None,
    ):
        self._settings = settings
        self._policy = policy or NetworkPolicy.from_settings(settings)
        self._header_overrides = header_overrides
        self._session: Optional[Session] = None

    async def __aenter__(self) -> Session:
        proxy_url = self._settings.proxy_url.get_secret_value() if self._settings.proxy_url else None
        self._session = await create_session(
            self._settings,
            proxy_url=proxy_url,
            header_overrides=self._header_overrides,
        )
        try:
            await install_network_policy(self._session, self._policy)
        except Exception:
            await close_session(self._session)
            raise
        return self._session

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._session is not None:
            await close_session(self._session)
