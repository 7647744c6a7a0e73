"""One end-to-end extraction run: session, login, reservation read."""

from __future__ import annotations

from typing import Callable, Optional

import structlog

from .auth import AuthenticationFlow, Failed
from .config import RunInput, Settings
from .diagnostics import DiagnosticCapture, capture_from_settings
from .errors import ConfigError
from .extractor import ReservationExtractor
from .models import ReservationOutput
from .network_policy import NetworkPolicy
from .session import SessionController

LOGGER = structlog.get_logger(__name__)

SessionFactory = Callable[[Settings, NetworkPolicy], SessionController]


async def run(
    settings: Settings,
    run_input: Optional[RunInput],
    *,
    capture: Optional[DiagnosticCapture] = None,
    session_factory: SessionFactory = SessionController,
) -> ReservationOutput:
    """Log in, read the requested reservation and return the output object.

    Raises the first fatal ``SalonBoardError``; nothing partial is returned.
    """
    if run_input is None:
        raise ConfigError("Input is required")

    capture = capture if capture is not None else capture_from_settings(settings)
    policy = NetworkPolicy.from_settings(settings)

    LOGGER.info("run.start", user_id=run_input.user_id, reserve_id=run_input.reserve_id)
    async with session_factory(settings, policy) as session:
        flow = AuthenticationFlow(session, run_input.credentials, settings, capture)
        outcome = await flow.run()
        if isinstance(outcome, Failed):
            outcome.raise_error()

        extractor = ReservationExtractor(outcome, settings, capture)
        record = await extractor.extract(run_input.query)

    LOGGER.info("run.success", reserve_id=run_input.reserve_id)
    return ReservationOutput(reservation=record)
