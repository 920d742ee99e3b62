"""The workflow run visual-ci is executing in."""

from dataclasses import dataclass, field
import json
from pathlib import Path
from typing import Any, get_args

from visual_ci.config import Settings
from visual_ci.errors import ConfigurationError
from visual_ci.logging import get_logger
from visual_ci.schemas import CodeChangeEvent, CodeChangeEventType

logger = get_logger(__name__)


@dataclass(frozen=True)
class ActionContext:
    """Repository, run and triggering event of the current workflow run."""

    owner: str
    repo: str
    run_id: int | None
    sha: str
    event_name: str
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"


def load_event_payload(path: str | None) -> dict[str, Any]:
    """Read the webhook payload GitHub writes to GITHUB_EVENT_PATH."""
    if not path:
        return {}

    event_file = Path(path)
    if not event_file.exists():
        logger.warning("event_payload_missing", path=path)
        return {}

    try:
        payload = json.loads(event_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid event payload at {path}: {e}") from e

    if not isinstance(payload, dict):
        raise ConfigurationError(f"Event payload at {path} is not a JSON object")
    return payload


def load_context(settings: Settings) -> ActionContext:
    owner, repo = settings.repo
    return ActionContext(
        owner=owner,
        repo=repo,
        run_id=settings.github_run_id,
        sha=settings.github_sha,
        event_name=settings.github_event_name,
        payload=load_event_payload(settings.github_event_path),
    )


def parse_code_change_event(context: ActionContext) -> CodeChangeEvent:
    """Interpret the triggering event as a code change.

    Raises:
        ConfigurationError: If the workflow was triggered by an unsupported event.
    """
    supported = get_args(CodeChangeEventType)
    if context.event_name not in supported:
        raise ConfigurationError(
            f"Unsupported event '{context.event_name}'. "
            f"Expected one of: {', '.join(supported)}"
        )
    return CodeChangeEvent(type=context.event_name, payload=context.payload)
