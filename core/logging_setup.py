"""Structured logging for arc-flux.

Library modules obtain loggers from :func:`get_logger`. Those are structlog
loggers bound to stdlib ``logging`` loggers, so a host that never configures
logging sees nothing below WARNING, and a host that does configure ``logging``
controls levels and handlers as usual. The CLI calls
:func:`configure_logging`, which reads ``ARC_FLUX_LOG_LEVEL`` (default
``WARNING``) and logs to stderr so output never mixes with ``--json``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

LOG_LEVEL_ENV = "ARC_FLUX_LOG_LEVEL"

_PROCESSORS = [
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.dev.ConsoleRenderer(colors=False),
]


def get_logger(name: str) -> Any:
    """Return a structlog logger backed by ``logging.getLogger(name)``.

    Processors are bound here rather than through ``structlog.configure`` so
    the global structlog state of a host application is left alone.
    """
    return structlog.wrap_logger(
        logging.getLogger(name),
        processors=_PROCESSORS,
        wrapper_class=structlog.stdlib.BoundLogger,
    )


def configure_logging(level: str | None = None) -> None:
    name = (level or os.getenv(LOG_LEVEL_ENV) or "WARNING").upper()
    numeric = logging.getLevelName(name)
    if not isinstance(numeric, int):
        numeric = logging.WARNING
    logging.basicConfig(level=numeric, stream=sys.stderr, format="%(message)s", force=True)
