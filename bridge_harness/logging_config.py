"""
Structured logging configuration using structlog.

Produces JSON lines by default and colored console output in verbose mode.
Every record, stdlib or structlog, passes through the same processor chain,
so run context bound with :func:`bind_run_context` and private-key
redaction apply to third-party log lines as well.
"""

import logging
import sys
from typing import Any, Optional

import structlog

from .config import settings


REDACTED = "<redacted>"


def _redact_wallet_key(_logger: Any, _method: str, event_dict: dict) -> dict:
    """Mask the test wallet key wherever it appears in a string field."""
    key = settings.test_wallet_private_key
    bare = key[2:] if key.startswith("0x") else key
    if not bare:
        return event_dict
    for name, value in event_dict.items():
        if isinstance(value, str) and bare in value:
            event_dict[name] = value.replace(bare, REDACTED)
    return event_dict


def bind_run_context(**fields: Any) -> None:
    """Attach ``fields`` (run mode, wallet address) to every following log line."""
    structlog.contextvars.bind_contextvars(**fields)


def clear_run_context() -> None:
    structlog.contextvars.clear_contextvars()


def setup_logging(log_level: Optional[str] = None, verbose: Optional[bool] = None) -> None:
    """Configure structlog-backed logging for the harness.

    Args:
        log_level: Override log level (default: from settings.log_level)
        verbose: Force DEBUG level and console rendering (default: settings.verbose)
    """
    is_verbose = settings.verbose if verbose is None else verbose
    if is_verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if is_verbose:
        renderer = structlog.dev.ConsoleRenderer(exception_formatter=structlog.dev.plain_traceback)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Module loggers are plain stdlib loggers; foreign_pre_chain gives them the same treatment.
    # Tracebacks are rendered to text before redaction so the key is masked there too.
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            _redact_wallet_key,
            renderer,
        ],
    )

    # stdout carries the run summary, so logs go to stderr
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in ("httpcore", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)
