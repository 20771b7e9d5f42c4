"""Logging configuration for the portal backend.

Every module logs through the single ``portal`` logger. Customer e-mail
addresses are masked with :func:`mask_email` before they reach a log line,
and raw tokens or passwords are never logged at all.
"""
import logging
import sys
from portal.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _level() -> int:
    return logging.DEBUG if settings.environment == "development" else logging.INFO


def configure_logger(name: str = "portal") -> logging.Logger:
    """Attach a stdout handler to the named logger once and return it."""
    configured = logging.getLogger(name)
    configured.setLevel(_level())

    if not configured.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(_level())
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        configured.addHandler(handler)

    # Prevent duplicate logs through the root logger
    configured.propagate = False
    return configured


def mask_email(email: str | None) -> str:
    """Mask the local part of an e-mail address: ``jan@example.nl`` -> ``j***@example.nl``."""
    if not email or "@" not in email:
        return "<none>"
    local, _, domain = email.partition("@")
    return f"{local[:1]}***@{domain}"


logger = configure_logger()

__all__ = ["logger", "mask_email", "configure_logger"]
