"""Logging setup for the service and CLI."""

from __future__ import annotations

import logging


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Attach a single stream handler to the ``sms_store`` logger."""
    logger = logging.getLogger("sms_store")
    logger.setLevel(level)
    if not any(getattr(handler, "_sms_store", False) for handler in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._sms_store = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
