"""Per-process run context for log correlation and spill stamping."""

from __future__ import annotations

from contextvars import ContextVar
from uuid import uuid4


# Generated once per interpreter; every spill database and log record of this
# process carries it.
_PROCESS_RUN_ID = uuid4().hex

run_context: ContextVar[dict | None] = ContextVar("run_context", default=None)


def get_run_context() -> dict:
    """Get current run context, creating it on first use."""
    ctx = run_context.get()
    if ctx is None or not ctx.get("run_id"):
        ctx = {"run_id": _PROCESS_RUN_ID}
        run_context.set(ctx)
    return ctx


def set_run_context(run_id: str, **extra: object) -> None:
    """Set run context (tests and embedding pipelines override the run id)."""
    run_context.set({"run_id": run_id, **extra})


def get_run_id() -> str:
    return str(get_run_context()["run_id"])
