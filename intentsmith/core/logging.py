"""
Logging for intentsmith.

Everything is written to stderr so the synthesized commands on stdout can be
piped. structlog renders for a console on a terminal and as JSON lines
elsewhere; stdlib records (SDK clients, httpx) pass through a RichHandler.
"""

from __future__ import annotations

import logging
import sys

import structlog
from rich.console import Console
from rich.logging import RichHandler

# Chatty at INFO: one line per HTTP request
NOISY_LOGGERS = ("httpx", "openai", "anthropic")


def setup_logging(log_level: str = "INFO", json_output: bool | None = None) -> None:
    """Configure stdlib logging and structlog for one process.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR; anything else means INFO.
        json_output: Force JSON lines (True) or console rendering (False).
            None picks console rendering only when stderr is a terminal.
    """
    log_level = log_level.upper()
    level = getattr(logging, log_level, logging.INFO)
    if json_output is None:
        json_output = not sys.stderr.isatty()

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=Console(stderr=True),
                show_path=False,
                rich_tracebacks=True,
                tracebacks_show_locals=log_level == "DEBUG",
            )
        ],
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_output:
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs: object) -> None:
    """Attach key-values (e.g. ``run_id``) to every later log line in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
