# utils/log.py
import logging
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import cast

import structlog

# Run before each handler's renderer, for console and file alike
_PRE_RENDER = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
]


def _handler(handler: logging.Handler, renderer: structlog.typing.Processor, level: int) -> logging.Handler:
    handler.setLevel(level)
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[*_PRE_RENDER, structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer]
    )
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    session_id: str | None = None,
    log_level: str = "INFO",
    console_output: bool = True,
    log_dir: Path = Path("logs"),
) -> Path:
    """
    Route export events to a JSONL session file and, unless quiet, a pretty console.

    Args:
        session_id: Names the log file; defaults to the start timestamp
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        console_output: Also log to stderr
        log_dir: Directory receiving the session log files

    Returns:
        The session log file Path.
    """
    log_dir.mkdir(exist_ok=True)
    log_file = log_dir / f"export_{session_id or datetime.now().strftime('%Y%m%d_%H%M%S')}.jsonl"
    level = getattr(logging, log_level.upper(), logging.INFO)

    handlers = [
        _handler(
            logging.FileHandler(log_file, mode="a", encoding="utf-8"),
            structlog.processors.JSONRenderer(),
            level,
        )
    ]
    if console_output:
        handlers.append(_handler(logging.StreamHandler(), structlog.dev.ConsoleRenderer(), level))

    logging.root.handlers.clear()
    logging.root.setLevel(level)
    for handler in handlers:
        logging.root.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    return log_file


@contextmanager
def bound_review(review_id: int) -> Generator[None, None, None]:
    """Tag every event logged while one review is processed with its id."""
    with structlog.contextvars.bound_contextvars(review_id=review_id):
        yield


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a bound logger for a module/package."""
    return cast(structlog.BoundLogger, structlog.get_logger(name))
