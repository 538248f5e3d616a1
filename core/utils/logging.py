"""Logging helpers."""

import structlog


def get_logger(name: str):
    """Return a structlog logger bound to `name`."""
    return structlog.get_logger(name)
