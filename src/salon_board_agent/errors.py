"""Exception hierarchy for a reservation extraction run."""

from __future__ import annotations

from typing import Optional


class SalonBoardError(RuntimeError):
    """Base class for every failure a run can report."""

    kind = "error"


class ConfigError(SalonBoardError):
    """Required input or settings are missing."""

    kind = "config"


class LaunchError(SalonBoardError):
    """The browser session could not be started."""

    kind = "launch"


class NavigationError(SalonBoardError):
    """A page load timed out or failed at the network level."""

    kind = "navigation"

    def __init__(self, message: str, *, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class PageInteractionError(SalonBoardError):
    """Reading from or typing into the page failed."""

    kind = "page_interaction"


class CheckpointError(SalonBoardError):
    """The page title did not match the expected checkpoint."""

    kind = "checkpoint"

    def __init__(self, message: str, *, expected_title: str, actual_title: str):
        super().__init__(f"{message}. title: {actual_title}")
        self.expected_title = expected_title
        self.actual_title = actual_title


class TitleMismatchError(CheckpointError):
    """The login page did not load as expected."""

    kind = "title_mismatch"


class LoginRejectedError(CheckpointError):
    """The portal did not accept the submitted credentials."""

    kind = "login_rejected"


class MissingFieldError(SalonBoardError):
    """A form control on the reservation page was not found."""

    kind = "missing_field"

    def __init__(self, field: str):
        super().__init__(f"Form control '{field}' not found on reservation page")
        self.field = field


class DateParseError(SalonBoardError):
    """The reservation date could not be normalised."""

    kind = "date_parse"

    def __init__(self, message: str, *, value: Optional[str] = None):
        super().__init__(message)
        self.value = value


class SinkError(SalonBoardError):
    """The result could not be delivered."""

    kind = "sink"


class SessionClosedError(SalonBoardError):
    """The session was used after it had been closed."""

    kind = "session_closed"
