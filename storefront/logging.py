"""
Logging setup for the ElectroQuick storefront.

All modules log through ``get_logger(__name__)``, so every record lands
under the ``storefront`` logger tree:

    from storefront.logging import get_logger
    logger = get_logger(__name__)

    logger.warning(f"add_item ignored for {sanitize_id_for_logging(product_id)}")

Product ids, search queries and chat messages come from users; pass them
through the sanitizers before interpolating them into a message.
"""

import logging
import os
import sys
from functools import cache

PACKAGE_LOGGER = "storefront"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s - %(name)s - %(message)s"

ID_MAX_LENGTH = 32

# Chatty third-party loggers behind the Gemini and Upstash clients
_QUIET_LOGGERS = ("httpx", "google_genai")


def _level_from_name(level_name: str | None) -> int:
    return getattr(logging, (level_name or "INFO").upper(), logging.INFO)


def _configure_root_logger() -> None:
    root = logging.getLogger()

    # Host apps and pytest install their own handlers
    if root.handlers:
        return

    debug_mode = os.environ.get("DEBUG_MODE", "").lower() == "true"
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT if debug_mode else LOG_FORMAT_SIMPLE))

    root.setLevel(_level_from_name(os.environ.get("LOG_LEVEL")))
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


_configure_root_logger()


@cache
def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_log_level(level_name: str | None) -> int:
    """Apply a configured level (e.g. ``StoreConfig.log_level``) to the storefront loggers."""
    level = _level_from_name(level_name)
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)
    return level


def _sanitize(value: object, max_length: int) -> str:
    if value is None or value == "":
        return "N/A"
    # CWE-117: a raw newline would let input forge a second log entry
    text = (
        str(value)
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
        .replace("\x00", "")
    )
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def sanitize_id_for_logging(id_value: object) -> str:
    """Escaped product id or order number, capped at ``ID_MAX_LENGTH`` chars."""
    return _sanitize(id_value, ID_MAX_LENGTH)


def sanitize_string_for_logging(value: str | None, max_length: int = 50) -> str:
    """
    Escaped free text (search queries, chat messages) for log messages.

    Args:
        value: Text to sanitize (can be None)
        max_length: Characters kept before "..." is appended

    Returns:
        Sanitized string, or "N/A" when empty
    """
    return _sanitize(value, max_length)


__all__ = [
    "LOG_FORMAT",
    "LOG_FORMAT_SIMPLE",
    "get_logger",
    "set_log_level",
    "sanitize_id_for_logging",
    "sanitize_string_for_logging",
]
