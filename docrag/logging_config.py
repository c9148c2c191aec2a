"""
Structured logging for docrag.

Every module logs through the shared structlog `logger` with key/value
events. Console output in development, one JSON object per line when
JSON_LOGS is set.
"""

import logging
import os
import sys
from typing import List

import structlog

# Third-party loggers that are chatty at INFO; kept at WARNING unless debugging
NOISY_LIBRARIES = ("watchdog", "sentence_transformers", "httpx", "urllib3", "sqlalchemy.engine")


def build_processors(json_logs: bool) -> List:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]
    if json_logs:
        # Tracebacks must be strings before they reach the JSON renderer
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback)
        )
    return processors


def setup_logging(log_level: str = "INFO", json_logs: bool = False):
    """
    Configure structlog and the stdlib root logger.

    Safe to call more than once: the app calls it again at startup with the
    loaded settings.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR (unknown names mean INFO)
        json_logs: JSON lines instead of the coloured console renderer
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level, force=True)
    library_level = numeric_level if numeric_level <= logging.DEBUG else max(numeric_level, logging.WARNING)
    for name in NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(library_level)

    structlog.configure(
        processors=build_processors(json_logs),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
    return structlog.get_logger()


# main.startup_event reconfigures this from Settings
logger = setup_logging(log_level=os.getenv("LOG_LEVEL", "INFO"))
