"""In-memory stand-ins for the Playwright objects the agent touches."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

import pytest

from salon_board_agent.config import Settings
from salon_board_agent.models import Credentials
from salon_board_agent.network_policy import NetworkPolicy
from salon_board_agent.session import Session

LOGIN_TITLE = "ログイン：SALON BOARD"
HOME_TITLE = "SALON BOARD : TOP"


class FakeLocator:
    def __init__(self, page: "FakePage", name: Optional[str]):
        self._page = page
        self._name = name

    async def count(self) -> int:
        self._page.events.append(f"count:{self._name}")
        return 1 if self._name in self._page.fields else 0

    @property
    def first(self) -> "FakeLocator":
        return self

    async def input_value(self) -> str:
        self._page.events.append(f"read:{self._name}")
        return self._page.fields[self._name]


class FakePage:
    """Page whose titles follow a scripted login and reservation flow."""

    def __init__(
        self,
        *,
        login_title: str = LOGIN_TITLE,
        home_title: str = HOME_TITLE,
        fields: Optional[dict[str, str]] = None,
        goto_error: Optional[Exception] = None,
        navigation_error: Optional[Exception] = None,
    ):
        self.login_title = login_title
        self.home_title = home_title
        self.fields = dict(fields or {})
        self.goto_error = goto_error
        self.navigation_error = navigation_error
        self.url = "about:blank"
        self._title = ""
        self.events: list[str] = []
        self.filled: dict[str, str] = {}
        self.routes: list[tuple[str, object]] = []
        self.goto_calls: list[tuple[str, Optional[float]]] = []
        self.closed = False

    async def goto(self, url: str, timeout: Optional[float] = None):
        self.events.append(f"goto:{url}")
        self.goto_calls.append((url, timeout))
        if self.goto_error is not None:
            raise self.goto_error
        self.url = url
        self._title = self.login_title if "login" in url else "予約変更：SALON BOARD"

    async def title(self) -> str:
        return self._title

    async def fill(self, selector: str, value: str) -> None:
        self.events.append(f"fill:{selector}")
        self.filled[selector] = value

    async def click(self, selector: str) -> None:
        self.events.append(f"click:{selector}")

    @asynccontextmanager
    async def expect_navigation(self, **kwargs):
        self.events.append("navigation:armed")
        yield
        if self.navigation_error is not None:
            raise self.navigation_error
        self.url = "https://salonboard.com/KLP/top/"
        self._title = self.home_title
        self.events.append("navigation:done")

    def locator(self, selector: str) -> FakeLocator:
        name = selector.split("'")[1] if "'" in selector else None
        return FakeLocator(self, name)

    async def route(self, pattern: str, handler) -> None:
        self.routes.append((pattern, handler))

    async def screenshot(self, path: str, full_page: bool = False) -> bytes:
        with open(path, "wb") as handle:
            handle.write(b"png")
        return b"png"

    async def content(self) -> str:
        return f"<html><head><title>{self._title}</title></head></html>"

    async def close(self) -> None:
        self.closed = True


class RecordingCapture:
    def __init__(self):
        self.keys: list[str] = []

    async def capture(self, page, key: str) -> None:
        self.keys.append(key)


class FailingCapture:
    def __init__(self):
        self.attempts = 0

    async def capture(self, page, key: str) -> None:
        self.attempts += 1
        raise OSError("artifact store unavailable")


RESERVATION_FIELDS = {
    "stylistId": "T000123456",
    "dispDateFrom": "2024年10月2日（水）",
    "rsvTime": "1030",
    "rsvTerm": "90",
}


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        artifact_dir=tmp_path / "snapshots",
        dataset_dir=tmp_path / "dataset",
        input_path=tmp_path / "INPUT.json",
        proxy_url=None,
        result_webhook_url=None,
    )


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(user_id="salon-user", password="s3cret")


@pytest.fixture
def make_session():
    def factory(page: FakePage, *, with_policy: bool = True) -> Session:
        session = Session(page)
        if with_policy:
            session.policy = NetworkPolicy()
        return session

    return factory
