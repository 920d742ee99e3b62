class VisualCIError(Exception):
    """Base class for errors raised by visual-ci."""

    pass


class ConfigurationError(VisualCIError):
    """Raised when settings or the workflow event payload are missing or invalid."""

    pass


class DeploymentError(VisualCIError):
    """Raised when a deployment URL cannot be resolved for a commit."""

    pass


class DeploymentTimeoutError(DeploymentError):
    """Raised when no successful deployment shows up before the timeout."""

    pass


class BaseWorkflowRunError(VisualCIError):
    """Raised when the workflow run on the base branch did not succeed."""

    pass


class WorkflowTimeoutError(VisualCIError):
    """Raised when a workflow run does not complete before the timeout."""

    pass
