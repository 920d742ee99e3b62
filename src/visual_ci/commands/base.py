import asyncio
import json

import httpx
from pydantic import ValidationError
from rich.console import Console
import typer

from visual_ci import annotations
from visual_ci.client import get_config, get_github_client, get_test_runs_client
from visual_ci.commands.common import prepare_run
from visual_ci.context import parse_code_change_event
from visual_ci.ensure_base import safe_ensure_base_tests_exist
from visual_ci.errors import VisualCIError

BASE_SHA_OUTPUT = "base-sha"


async def ensure_base_command(base: str | None = None) -> dict:
    """
    Async implementation of ensure-base
    """
    settings = get_config()
    context = prepare_run(settings)
    event = parse_code_change_event(context)
    base = base or event.base_sha

    github = get_github_client(settings)
    test_runs = get_test_runs_client(settings)
    try:
        result = await safe_ensure_base_tests_exist(
            event=event,
            base=base,
            context=context,
            github=github,
            test_runs=test_runs,
            workflow_timeout=settings.workflow_timeout_seconds,
            workflow_poll_interval=settings.workflow_poll_seconds,
        )
    finally:
        await github.close()
        await test_runs.close()

    annotations.set_output(
        BASE_SHA_OUTPUT, result.sha_to_compare_against or "", path=settings.github_output
    )
    return {"base": base, "sha_to_compare_against": result.sha_to_compare_against}


def ensure_base(
    base: str = typer.Option(None, "--base", help="Base commit SHA (defaults to the PR base)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Make sure the pull request's base commit has a test run to compare against"""
    console = Console(stderr=True)

    try:
        result = asyncio.run(ensure_base_command(base))
    except (VisualCIError, httpx.HTTPError, ValidationError) as e:
        console.print(f"[bold red]Error:[/bold red] {str(e)}")
        annotations.error(str(e))
        raise typer.Exit(code=1) from None

    if json_output:
        typer.echo(json.dumps(result, indent=2))
        return

    sha = result["sha_to_compare_against"]
    if sha:
        console.print(f"[bold green]✓ Comparing against[/bold green] [cyan]{sha}[/cyan]")
    else:
        console.print("[yellow]No base commit to compare against[/yellow]")
