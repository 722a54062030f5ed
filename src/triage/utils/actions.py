"""GitHub Actions runtime helpers.

Reads action inputs from the environment and renders warning and error
log records as workflow commands so they show up as annotations.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from typing import TextIO


class ActionInputError(Exception):
    """A required action input was not supplied."""


def input_env_name(name: str) -> str:
    """Get the environment variable the runner uses for an input."""
    return f"INPUT_{name.replace(' ', '_').upper()}"


def get_input(name: str, required: bool = False, env: Mapping[str, str] | None = None) -> str:
    """Read an action input.

    Args:
        name: Input name as declared in action.yml (e.g. "staleAfter").
        required: Raise if the input is missing or empty.
        env: Environment to read from, defaults to os.environ.

    Returns:
        The trimmed input value, or "" if unset.

    Raises:
        ActionInputError: If required and not supplied.
    """
    if env is None:
        env = os.environ
    value = env.get(input_env_name(name), "").strip()
    if required and not value:
        raise ActionInputError(f"Input required and not supplied: {name}")
    return value


def running_in_actions(env: Mapping[str, str] | None = None) -> bool:
    """Check if the process runs inside a GitHub Actions job."""
    if env is None:
        env = os.environ
    return env.get("GITHUB_ACTIONS") == "true"


def escape_data(message: str) -> str:
    """Escape a workflow command message."""
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


class ActionsAnnotationHandler(logging.Handler):
    """Emit warning and error records as ``::warning::`` / ``::error::`` commands."""

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__(level=logging.WARNING)
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        command = "error" if record.levelno >= logging.ERROR else "warning"
        try:
            stream = self.stream or sys.stdout
            stream.write(f"::{command}::{escape_data(record.getMessage())}\n")
            stream.flush()
        except Exception:
            self.handleError(record)
