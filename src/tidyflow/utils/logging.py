"""
Structured logging with structlog.

Library modules log key/value events through get_logger(__name__). The
CLI calls configure_logging once and binds the running command with
log_context, so every event of a run carries the command name.
"""

import logging
import sys
from contextlib import AbstractContextManager
from typing import Any

import structlog

# Libraries that log chatty INFO records through the standard library
NOISY_LOGGERS = ("mlflow", "alembic", "urllib3", "git")


def _level_number(level: str) -> int:
    number = logging.getLevelName(level.upper())
    if not isinstance(number, int):
        msg = f"Unknown log level '{level}'. Use DEBUG, INFO, WARNING or ERROR"
        raise ValueError(msg)
    return number


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """
    Configure structlog for tidyflow.

    Args:
        level: Minimum level of emitted events (DEBUG, INFO, WARNING, ERROR).
        json_output: Emit one JSON object per event instead of console lines.
    """
    log_level = _level_number(level)

    # estimator warnings (convergence, unseen categories) arrive via warnings
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level)
    logging.captureWarnings(True)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Logger for a module; pass __name__."""
    return structlog.get_logger(name)


def log_context(**kwargs: Any) -> AbstractContextManager[None]:
    """
    Bind values to every event logged inside the block.

    Example:
        with log_context(workshop="case-study"):
            run_case_study(config, hotels)
    """
    return structlog.contextvars.bound_contextvars(**kwargs)
