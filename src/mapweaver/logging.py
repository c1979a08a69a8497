"""Logging setup for document operations.

Records carry the id of the document being edited and the operation in progress, bound with
``document_context`` and rendered by a single ``RichHandler`` on the root logger.
"""

from __future__ import annotations

import contextlib
import contextvars
import logging
from dataclasses import dataclass, replace
from typing import Any, Iterator

from rich.logging import RichHandler


LOG_FORMAT = "doc=%(document)s op=%(op)s %(name)s: %(message)s"


@dataclass(frozen=True)
class LogContext:
    document: str = "-"
    op: str = "-"


_context: contextvars.ContextVar[LogContext] = contextvars.ContextVar("mapweaver_log_context", default=LogContext())


class _ContextFilter(logging.Filter):
    """Copy the bound document context onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        ctx = _context.get()
        record.document = ctx.document  # type: ignore[attr-defined]
        record.op = ctx.op  # type: ignore[attr-defined]
        return True


@contextlib.contextmanager
def document_context(*, document_id: str, op: str | None = None) -> Iterator[LogContext]:
    """Bind a document (and optionally an operation) for the enclosed log records.

    An omitted ``op`` keeps the operation of the enclosing context.
    """

    outer = _context.get()
    token = _context.set(replace(outer, document=document_id, op=op or outer.op))
    try:
        yield _context.get()
    finally:
        _context.reset(token)


def current_op() -> str:
    return _context.get().op


def configure_logging(level: str = "INFO") -> None:
    """Route logs through one context-aware ``RichHandler``; repeated calls only adjust it.

    Args:
        level: Logging level name.
    """

    root = logging.getLogger()
    root.setLevel(level)

    handler = next((h for h in root.handlers if isinstance(h, RichHandler)), None)
    if handler is None:
        handler = RichHandler(rich_tracebacks=True, show_time=True, show_level=True)
        root.addHandler(handler)
    if not any(isinstance(f, _ContextFilter) for f in handler.filters):
        handler.addFilter(_ContextFilter())
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_exception(logger: logging.Logger, msg: str, **context: Any) -> None:
    """Log the active exception at ERROR, appending ``key=value`` context."""

    if not context:
        logger.exception(msg)
        return
    details = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
    logger.exception("%s [%s]", msg, details)
