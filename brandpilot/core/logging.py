"""
Logging utilities for the BrandPilot API and its operational scripts.
"""

import logging
import sys

_NOISY_LOGGERS = ("httpx", "httpcore", "openai")


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging and quiet the per-request chatter of HTTP clients."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    # Request lines from these libraries include full URLs with query strings.
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, logging.root.level))


__all__ = ["configure_logging"]
