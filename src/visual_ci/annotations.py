"""GitHub Actions workflow commands.

Messages printed to stdout in the ``::command::message`` form show up as
annotations on the workflow run summary. Step outputs are appended to the
file named by ``GITHUB_OUTPUT``.

https://docs.github.com/en/actions/using-workflows/workflow-commands-for-github-actions
"""

import os
import sys
from typing import TextIO
import uuid


def escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def issue_command(command: str, message: str, stream: TextIO | None = None) -> None:
    stream = stream or sys.stdout
    stream.write(f"::{command}::{escape_data(message)}\n")
    stream.flush()


def warning(message: str) -> None:
    issue_command("warning", message)


def error(message: str) -> None:
    issue_command("error", message)


def notice(message: str) -> None:
    issue_command("notice", message)


def debug(message: str) -> None:
    issue_command("debug", message)


def set_output(name: str, value: str, path: str | None = None) -> None:
    """Set a step output.

    Multi-line values are written as a heredoc block with a random delimiter.
    Without an output file the deprecated ``set-output`` command is used so
    that local runs still show the value.
    """
    path = path or os.getenv("GITHUB_OUTPUT")
    if not path:
        issue_command(f"set-output name={name}", value)
        return

    if "\n" in value or "\r" in value:
        delimiter = f"ghadelimiter_{uuid.uuid4()}"
        entry = f"{name}<<{delimiter}\n{value}\n{delimiter}\n"
    else:
        entry = f"{name}={value}\n"

    with open(path, "a", encoding="utf-8") as f:
        f.write(entry)
