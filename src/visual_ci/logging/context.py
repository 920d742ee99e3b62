from typing import Any

import structlog

_RUN_CONTEXT_KEYS = ("repository", "run_id", "sha", "event_name")


def bind_run_context(**values: Any) -> None:
    """Bind workflow-run identifiers for every subsequent log event.

    None values are skipped.
    """
    structlog.contextvars.bind_contextvars(
        **{key: value for key, value in values.items() if value is not None}
    )


def get_run_context() -> dict[str, Any]:
    """Get the bound workflow-run identifiers."""
    bound = structlog.contextvars.get_contextvars()
    return {key: bound[key] for key in _RUN_CONTEXT_KEYS if key in bound}


def clear_context() -> None:
    """Clear all context variables."""
    structlog.contextvars.clear_contextvars()
