import typer

from visual_ci.commands import base, deployment

app = typer.Typer(no_args_is_help=True)


@app.callback()
def callback():
    """
    Visual regression CI helpers for GitHub Actions
    """


app.command("ensure-base")(base.ensure_base)
app.command("wait-for-deployment")(deployment.wait_for_deployment)


def run_main():
    """Entry point for the console script."""
    app()


if __name__ == "__main__":
    run_main()
