from .config import get_logger, setup_logging
from .context import bind_run_context, clear_context, get_run_context

__all__ = ["setup_logging", "get_logger", "bind_run_context", "get_run_context", "clear_context"]
