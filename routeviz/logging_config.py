"""
Logging setup for routeviz.

Package modules log through ``logging.getLogger(__name__)``. The root handler
installed here renders those records with structlog: JSON lines normally,
console output at DEBUG. Records emitted inside ``bind_swap_session`` carry
the swap session id.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Iterator, List, Optional, TextIO

import structlog

from .config import settings

# Kept at WARNING so quote polling does not flood the log
NOISY_LOGGERS = ("uvicorn.access", "httpcore", "httpx")


def resolve_level(log_level: Optional[str] = None) -> int:
    """Map a level name to its numeric value, INFO when unknown."""
    return getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)


def _shared_processors(json_output: bool) -> List[structlog.types.Processor]:
    processors: List[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_output:
        processors.append(structlog.processors.format_exc_info)
    return processors


def build_formatter(json_output: bool = True) -> structlog.stdlib.ProcessorFormatter:
    """Formatter that renders stdlib records through the structlog chain."""
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(json_output),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )


def setup_logging(log_level: Optional[str] = None, stream: Optional[TextIO] = None) -> None:
    """Install the structlog-backed root handler.

    Args:
        log_level: Override log level (default: from settings.log_level)
        stream: Output stream (default: stderr, leaving stdout to the CLI)
    """
    level = resolve_level(log_level)
    json_output = level != logging.DEBUG

    structlog.configure(
        processors=[
            *_shared_processors(json_output),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(build_formatter(json_output))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def bind_swap_session(session_id: Optional[str]) -> Iterator[None]:
    """Attach ``session_id`` to every record logged inside the block."""
    if not session_id:
        yield
        return
    with structlog.contextvars.bound_contextvars(session_id=session_id):
        yield
