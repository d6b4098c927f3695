"""Logging setup for Credence entry points and host applications."""

from __future__ import annotations

import logging
from typing import Any

import structlog

_logging_configured = False


def _round_floats(
    _logger: Any, _method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Round float fields so confidence/strength values stay readable in logs."""
    for key, value in event_dict.items():
        if isinstance(value, float):
            event_dict[key] = round(value, 4)
    return event_dict


def configure_logging(level: int = logging.WARNING) -> None:
    """Configure structlog and standard-library logging.

    Safe to call more than once; subsequent calls are no-ops.  Host
    applications embedding a pipeline should call this before creating any
    pipelines if they want Credence's console formatting.
    """
    global _logging_configured  # noqa: PLW0603
    if _logging_configured:
        return
    _logging_configured = True

    logging.basicConfig(format="%(message)s", level=level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            _round_floats,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )
