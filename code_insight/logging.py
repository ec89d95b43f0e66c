"""Structured logging for code-insight.

Every event is one JSON line: the event name plus key/value context. The
walker emits ``walk.directory_error``, ``walk.entry_error``, ``walk.stat_error``,
``walk.file_read_error`` and ``walk.complete``; the request pipeline emits
``analyze.*``; the model client emits ``llm.request``, ``llm.response`` and
``llm.failed``. Lines go to stderr, or to ``CODE_INSIGHT_LOG_FILE`` when set,
filtered at ``CODE_INSIGHT_LOG_LEVEL`` (default INFO).
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Union

import structlog

from . import config

_LOGGING_CONFIGURED = False


def resolve_level(name: Optional[str]) -> int:
    """Map a level name such as "debug" to its numeric value; unknown names mean INFO."""
    level = logging.getLevelName((name or "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(
    filename: Union[str, Path, None] = None,
    level: Optional[str] = None,
) -> structlog.BoundLogger:
    """Configure structlog once and return the ``code_insight`` logger.

    Later calls return the logger without reconfiguring, so the CLI and
    embedding applications share the first configuration.
    """
    global _LOGGING_CONFIGURED
    if not _LOGGING_CONFIGURED:
        threshold = resolve_level(level)
        if filename:
            handler: logging.Handler = logging.FileHandler(str(filename), encoding="utf-8")
        else:
            handler = logging.StreamHandler(sys.stderr)

        logging.basicConfig(level=threshold, handlers=[handler], format="%(message)s")
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(threshold),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_CONFIGURED = True

    return structlog.get_logger("code_insight")


logger = setup_logging(config.LOG_FILE or None, config.LOG_LEVEL)
