"""Observability helpers: structured logging and run correlation."""

from surface_index.observability.context import get_run_context, get_run_id, run_context, set_run_context
from surface_index.observability.logging import JsonFormatter, configure_logging


__all__ = [
    "JsonFormatter",
    "configure_logging",
    "get_run_context",
    "get_run_id",
    "run_context",
    "set_run_context",
]
