from visual_ci.config import Settings
from visual_ci.context import ActionContext, load_context
from visual_ci.logging import bind_run_context, setup_logging


def prepare_run(settings: Settings) -> ActionContext:
    """Configure logging and load the workflow run context."""
    setup_logging(
        service_name=settings.service_name,
        log_format=settings.log_format,
        log_level=settings.log_level,
    )
    context = load_context(settings)
    bind_run_context(
        repository=context.repository,
        run_id=context.run_id,
        sha=context.sha or None,
        event_name=context.event_name or None,
    )
    return context
