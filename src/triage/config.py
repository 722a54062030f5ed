"""Configuration management for issue triage."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from triage.utils.actions import ActionInputError, get_input

DEFAULT_CONFIG_PATH = Path(".triage/config.yaml")

# Presence of this variable (any non-empty value) enables dry run
LOCAL_TEST_ENV = "GH_ACTION_LOCAL_TEST"

DEFAULT_STALE_COMMENT = " Beep Boop  \n\nThis issue was last updated %DAYS_OLD% days ago! Marking as STALE.\n CC @%AUTHOR%"
DEFAULT_CLOSE_COMMENT = (
    " Beep Boop  \n\nThis issue was inactive for %DAYS_OLD% days, so closing it down. "
    "If you have something to add, please feel free to reopen.\n\nCC @%AUTHOR%"
)


class ConfigError(Exception):
    """Configuration could not be loaded or is invalid."""


class TriageConfig(BaseModel):
    """Settings for one triage run.

    Field aliases match the action input names, so YAML files may use
    either spelling (``stale_after`` or ``staleAfter``).
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    repo_owner: str = Field(description="Repository owner")
    repo_name: str = Field(description="Repository name")
    stale_after: int = Field(default=30, ge=0, alias="staleAfter", description="Days of inactivity before marking stale")
    close_after: int = Field(
        default=0,
        ge=0,
        alias="closeAfter",
        description="Days of inactivity before closing; 0 disables, must exceed stale_after to take effect",
    )
    stale_comment: str = Field(default=DEFAULT_STALE_COMMENT, alias="staleComment", description="Stale notification template")
    close_comment: str = Field(default=DEFAULT_CLOSE_COMMENT, alias="closeComment", description="Close notification template")
    stale_label: str = Field(default="STALE", min_length=1, alias="staleLabel", description="Label applied when marking stale")
    show_logs: bool = Field(default=True, alias="showLogs", description="Emit diagnostic logging")

    @property
    def full_repo(self) -> str:
        """Repository in 'owner/repo' format."""
        return f"{self.repo_owner}/{self.repo_name}"

    @property
    def closing_enabled(self) -> bool:
        """Check if the close threshold takes effect."""
        return self.close_after > self.stale_after

    @classmethod
    def load(
        cls,
        config_path: Path | None = None,
        repo: str | None = None,
        overrides: Mapping[str, Any] | None = None,
        env: Mapping[str, str] | None = None,
    ) -> TriageConfig:
        """Resolve configuration from all sources.

        Later sources win: defaults, YAML file, action inputs, overrides.

        Args:
            config_path: YAML file; defaults to .triage/config.yaml if present.
            repo: Repository in 'owner/repo' format. Falls back to the
                ``repo`` key of the file, then GITHUB_REPOSITORY.
            overrides: Explicit values by field name; None values are ignored.
            env: Environment to read from, defaults to os.environ.

        Raises:
            ConfigError: If a source is unreadable or a value is invalid.
        """
        if env is None:
            env = os.environ

        data = _normalize_keys(_read_yaml(config_path))
        data.update(_read_action_inputs(env))
        if overrides:
            data.update(_normalize_keys({k: v for k, v in overrides.items() if v is not None}))

        repo = repo or data.pop("repo", None) or env.get("GITHUB_REPOSITORY")
        data.pop("repo", None)
        if repo:
            data["repo_owner"], data["repo_name"] = parse_repo(repo)

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def save(self, config_path: Path) -> None:
        """Save configuration to file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(exclude={"repo_owner", "repo_name"})
        data["repo"] = self.full_repo
        with config_path.open("w") as f:
            yaml.dump(data, f, default_flow_style=False)


_ALIASES = {field.alias: name for name, field in TriageConfig.model_fields.items() if field.alias}


def _normalize_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    return {_ALIASES.get(key, key): value for key, value in data.items()}


def _read_yaml(config_path: Path | None) -> dict[str, Any]:
    explicit = config_path is not None
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        return {}

    try:
        with config_path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")
    return data


def _read_action_inputs(env: Mapping[str, str]) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for alias, name in _ALIASES.items():
        value = get_input(alias, env=env)
        if not value:
            continue
        # Same rule as the action: anything but "true" turns logs off
        data[name] = value == "true" if name == "show_logs" else value
    return data


def parse_repo(repo: str) -> tuple[str, str]:
    """Split 'owner/repo' into its parts.

    Raises:
        ConfigError: If the value is not in 'owner/repo' format.
    """
    parts = repo.strip().split("/")
    if len(parts) != 2 or not all(parts):
        raise ConfigError(f"Repository must be in 'owner/repo' format, got '{repo}'")
    return parts[0], parts[1]


def resolve_token(token: str | None = None, env: Mapping[str, str] | None = None) -> str:
    """Get the API token: explicit value, ghToken input, then GITHUB_TOKEN.

    Raises:
        ConfigError: If no token is available.
    """
    if env is None:
        env = os.environ
    if token:
        return token
    try:
        return get_input("ghToken", required=True, env=env)
    except ActionInputError as e:
        fallback = env.get("GITHUB_TOKEN")
        if fallback:
            return fallback
        raise ConfigError(str(e)) from e


def is_local_test(env: Mapping[str, str] | None = None) -> bool:
    """Check for the local-test indicator that enables dry run."""
    if env is None:
        env = os.environ
    return bool(env.get(LOCAL_TEST_ENV))
