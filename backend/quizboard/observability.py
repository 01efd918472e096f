"""Logfire cloud observability initialization and the fetch-error sink."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import logfire

from quizboard import __version__

if TYPE_CHECKING:
    from quizboard.config import Settings
    from quizboard.leaderboard.exceptions import FetchError
    from quizboard.leaderboard.models import Scope

logger = logging.getLogger(__name__)


def initialize_logfire(settings: Settings) -> None:
    """
    Initialize Logfire instrumentation.

    Must be called once at application startup. Configures Logfire cloud
    tracking, instruments HTTPX (the provider client) and bridges Python
    logging so fetch errors reported by the sink reach Logfire.

    Args:
        settings: Application settings containing Logfire token

    Returns:
        None. Logs success or warning messages.
    """
    if not settings.logfire_token:
        logger.warning("Logfire token not set - observability disabled")
        return

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="quizboard",
            service_version=__version__,
        )

        logfire.instrument_httpx()

        root_logger = logging.getLogger()
        root_logger.addHandler(logfire.LogfireLoggingHandler())

        logger.info("✓ Logfire cloud tracking initialized")

    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


class LoggingErrorSink:
    """Default observability sink: fetch errors go to a named logger."""

    def __init__(self, logger_name: str = "quizboard.fetch_errors"):
        self.logger = logging.getLogger(logger_name)
        self.error_count = 0

    def report_fetch_error(self, error: FetchError, scope: Scope, background: bool) -> None:
        self.error_count += 1
        kind = "background" if background else "explicit"
        self.logger.warning(
            f"Leaderboard {kind} fetch failed ({scope}): "
            f"{type(error).__name__}: {error}"
        )
