"""
structlog setup for the aggregator.

Feed workers log from a thread pool, so per-run context (``run_id``) lives
in contextvars rather than module state.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.types import Processor


# Libraries whose INFO chatter drowns out per-feed events
NOISY_LOGGERS = ("httpx", "httpcore", "apscheduler", "uvicorn.access")


def _processors(json_output: bool) -> list[Processor]:
    chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_output:
        chain += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return chain


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    run_id: Optional[str] = None,
) -> None:
    """
    Route aggregator events to stdout.

    Args:
        level: Minimum level name; unknown names fall back to INFO
        json_output: One JSON object per line (deployments) instead of console text
        run_id: Bound to every event until ``clear_context``
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=_processors(json_output),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if run_id:
        bind_context(run_id=run_id)


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """Module logger; events carry ``logger=<name>`` when a name is given."""
    logger = structlog.get_logger()
    return logger.bind(logger=name) if name else logger


def bind_context(**kwargs) -> None:
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
