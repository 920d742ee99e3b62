import asyncio
import json

import httpx
from pydantic import ValidationError
from rich.console import Console
import typer

from visual_ci import annotations
from visual_ci.client import get_config, get_github_client
from visual_ci.commands.common import prepare_run
from visual_ci.context import parse_code_change_event
from visual_ci.deployments import wait_for_deployment_url
from visual_ci.errors import ConfigurationError, VisualCIError

DEPLOYMENT_URL_OUTPUT = "deployment-url"


def parse_allowed_environments(value: str | None) -> list[str] | None:
    """Split a comma or newline separated input; blank means any environment."""
    if not value:
        return None
    names = [name.strip() for name in value.replace("\n", ",").split(",")]
    names = [name for name in names if name]
    return names or None


async def wait_for_deployment_command(
    sha: str | None = None, allowed_environments: list[str] | None = None
) -> dict:
    """
    Async implementation of wait-for-deployment
    """
    settings = get_config()
    context = prepare_run(settings)

    if not sha:
        event = parse_code_change_event(context)
        sha = event.head_sha or context.sha
    if not sha:
        raise ConfigurationError("No commit SHA given and GITHUB_SHA is not set")

    github = get_github_client(settings)
    try:
        url = await wait_for_deployment_url(
            owner=context.owner,
            repo=context.repo,
            commit_sha=sha,
            client=github,
            allowed_environments=allowed_environments,
            timeout=settings.deployment_timeout_seconds,
            min_poll=settings.deployment_min_poll_seconds,
            max_poll=settings.deployment_max_poll_seconds,
        )
    finally:
        await github.close()

    annotations.set_output(DEPLOYMENT_URL_OUTPUT, url, path=settings.github_output)
    return {"commit_sha": sha, "deployment_url": url}


def wait_for_deployment(
    sha: str = typer.Option(None, "--sha", help="Commit SHA (defaults to the PR head)"),
    allowed_environments: str = typer.Option(
        None,
        "--allowed-environments",
        envvar="VISUAL_CI_ALLOWED_ENVIRONMENTS",
        help="Comma separated deployment environment names to accept",
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Wait for a successful deployment of a commit and print its URL"""
    console = Console(stderr=True)

    try:
        result = asyncio.run(
            wait_for_deployment_command(sha, parse_allowed_environments(allowed_environments))
        )
    except (VisualCIError, httpx.HTTPError, ValidationError) as e:
        console.print(f"[bold red]Error:[/bold red] {str(e)}")
        annotations.error(str(e))
        raise typer.Exit(code=1) from None

    if json_output:
        typer.echo(json.dumps(result, indent=2))
        return

    console.print(
        f"[bold green]✓ Testing against deployment URL[/bold green] "
        f"[cyan]{result['deployment_url']}[/cyan]"
    )
