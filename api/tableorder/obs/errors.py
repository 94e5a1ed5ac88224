"""Error reporting helpers."""

from __future__ import annotations

import logging
from typing import Optional

import sentry_sdk

logger = logging.getLogger("tableorder.obs")


def init_sentry(dsn: Optional[str] = None, env: Optional[str] = None) -> bool:
    """Initialise Sentry when ``dsn`` is set and report whether it was."""
    if not dsn:
        logger.info("error_dsn not set; error sink disabled")
        return False
    sentry_sdk.init(dsn=dsn, environment=env, send_default_pii=False)
    return True


def capture_exception(exc: BaseException) -> None:
    """Forward an exception to Sentry if configured, else log it."""
    if sentry_sdk.get_client().is_active():
        sentry_sdk.capture_exception(exc)
    else:
        logger.error("unhandled exception", exc_info=exc)
