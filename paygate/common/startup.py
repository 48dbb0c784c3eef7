"""Startup-time helpers for safe config logging."""

from typing import Any

from paygate.common.config import Settings
from paygate.common.logging import logger


SECRET_MARKERS = ("key", "secret", "password", "token")


def redacted_settings(settings: Settings) -> dict[str, Any]:
    """Settings as a dict; secret-like fields show only whether they are set."""

    view: dict[str, Any] = {}
    for name, value in settings.model_dump().items():
        if any(marker in name for marker in SECRET_MARKERS):
            view[name] = "<redacted>" if value else "<unset>"
        else:
            view[name] = value
    return view


def log_startup_config(settings: Settings) -> None:
    """Log the effective configuration once at boot."""

    logger.info("startup_config=%s", redacted_settings(settings))


def warn_missing_credentials(settings: Settings) -> None:
    """Empty credentials are allowed at boot; every provider call will fail."""

    missing = settings.missing_provider_credentials()
    if missing:
        logger.warning("provider credentials not configured: %s", ", ".join(missing))
