"""Structured logging helpers shared by every pipeline stage.

Purpose
    Keep every emission of logging data predictable, contextual, and
    attributable to the cluster anchor that produced it, without forcing
    host applications to adopt a specific logging backend.

Contents
    - ``TRACE_ID``: context variable storing the active run identifier.
    - ``get_logger``: returns the shared package logger (quiet by default).
    - ``bind_trace_id`` / ``new_trace_id``: bind, clear, or mint run identifiers.
    - ``log_debug`` / ``log_info`` / ``log_warning`` / ``log_error``: emit
      structured entries via a single private emitter.
    - ``make_event``: convenience builder for per-entry event payloads.

System Integration
    Used by adapters, the pipeline and the composition root. Worker threads run
    inside a copied ``contextvars`` context so the trace identifier of the
    bootstrap run follows each entry even when obtain commands run in parallel.
"""

from __future__ import annotations

import logging
import uuid
from contextvars import ContextVar
from typing import Any, Final, Mapping

TRACE_ID: ContextVar[str | None] = ContextVar("lib_cluster_registry_trace_id", default=None)
"""Current run identifier propagated through logging helpers."""

_LOGGER: Final[logging.Logger] = logging.getLogger("lib_cluster_registry")
_LOGGER.addHandler(logging.NullHandler())


def get_logger() -> logging.Logger:
    """Expose the package logger so applications may attach handlers.

    Why
        Leaves the library silent by default while giving host applications
        (and the CLI ``--verbose`` flag) full control over handlers.
    """

    return _LOGGER


def bind_trace_id(trace_id: str | None) -> None:
    """Bind or clear the active trace identifier.

    Examples
    --------
    >>> bind_trace_id('run-1')
    >>> TRACE_ID.get()
    'run-1'
    >>> bind_trace_id(None)
    >>> TRACE_ID.get() is None
    True
    """

    TRACE_ID.set(trace_id)


def new_trace_id() -> str:
    """Mint and bind a fresh identifier for one bootstrap run."""

    trace_id = uuid.uuid4().hex[:12]
    bind_trace_id(trace_id)
    return trace_id


def log_debug(message: str, **fields: Any) -> None:
    """Emit a structured debug log entry that includes the trace context."""

    _emit(logging.DEBUG, message, fields)


def log_info(message: str, **fields: Any) -> None:
    """Emit a structured info log entry that includes the trace context."""

    _emit(logging.INFO, message, fields)


def log_warning(message: str, **fields: Any) -> None:
    """Emit a structured warning log entry that includes the trace context."""

    _emit(logging.WARNING, message, fields)


def log_error(message: str, **fields: Any) -> None:
    """Emit a structured error log entry that includes the trace context."""

    _emit(logging.ERROR, message, fields)


def make_event(
    anchor: str | None,
    stage: str,
    payload: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a structured logging payload for a pipeline lifecycle event.

    Why
        Per-entry log lines must stay attributable to their anchor even when
        obtain commands interleave on worker threads.
    Inputs
        anchor: Cluster anchor the event belongs to (``None`` for run-level).
        stage: Pipeline stage (``merge``, ``validate``, ``obtain``, ...).
        payload: Optional mapping with extra diagnostic detail.

    Examples
    --------
    >>> make_event('dev-usw2', 'obtain', {'returncode': 0})
    {'anchor': 'dev-usw2', 'stage': 'obtain', 'returncode': 0}
    """

    event: dict[str, Any] = {"anchor": anchor, "stage": stage}
    if payload:
        event |= dict(payload)
    return event


def _emit(level: int, message: str, fields: Mapping[str, Any]) -> None:
    """Send a log entry through the shared logger with contextual metadata."""

    _LOGGER.log(level, message, extra={"context": _with_trace(fields)})


def _with_trace(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Attach the current trace identifier to the provided structured fields."""

    context = {"trace_id": TRACE_ID.get()}
    context.update(fields)
    return context
