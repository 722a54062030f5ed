"""Utility modules for issue triage."""

from triage.utils.actions import (
    ActionInputError,
    ActionsAnnotationHandler,
    get_input,
    running_in_actions,
)

__all__ = [
    "ActionInputError",
    "ActionsAnnotationHandler",
    "get_input",
    "running_in_actions",
]
