"""Workflow trigger events that carry code changes."""

from typing import Any, Literal

from pydantic import BaseModel, Field

CodeChangeEventType = Literal["pull_request", "push", "workflow_dispatch"]


class CodeChangeEvent(BaseModel):
    """The event that triggered the workflow, with its raw webhook payload."""

    type: CodeChangeEventType
    payload: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_pull_request(self) -> bool:
        return self.type == "pull_request"

    @property
    def base_sha(self) -> str | None:
        return self._pull_request_field("base", "sha")

    @property
    def base_ref(self) -> str | None:
        return self._pull_request_field("base", "ref")

    @property
    def head_sha(self) -> str | None:
        return self._pull_request_field("head", "sha")

    def _pull_request_field(self, side: str, key: str) -> str | None:
        if not self.is_pull_request:
            return None
        pull_request = self.payload.get("pull_request") or {}
        return (pull_request.get(side) or {}).get(key)
