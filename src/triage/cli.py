"""CLI interface for issue triage."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from triage import __version__
from triage.config import ConfigError, TriageConfig, is_local_test, resolve_token
from triage.core.orchestrator import async_main
from triage.sync.github_client import DEFAULT_TIMEOUT, GITHUB_API_BASE
from triage.utils.actions import ActionsAnnotationHandler, running_in_actions

app = typer.Typer(
    name="issue-triage",
    help="Mark inactive GitHub issues as stale and close long-inactive ones.",
    no_args_is_help=True,
)
console = Console()


def _configure_logging(verbose: bool) -> None:
    """Route log records to the terminal, and to annotations inside Actions."""
    rich_handler = RichHandler(console=console, show_path=False, markup=False)
    handlers: list[logging.Handler] = [rich_handler]

    if running_in_actions():
        # Warnings and errors go out as annotations only
        rich_handler.addFilter(lambda record: record.levelno < logging.WARNING)
        handlers.append(ActionsAnnotationHandler())

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=handlers,
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _load_config(config_path: Path | None, repo: str | None, overrides: dict[str, Any]) -> TriageConfig:
    try:
        return TriageConfig.load(config_path=config_path, repo=repo, overrides=overrides)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"issue-triage {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version and exit"),
    ] = False,
) -> None:
    """Mark inactive GitHub issues as stale and close long-inactive ones."""


@app.command()
def run(
    repo: Annotated[
        str | None,
        typer.Option("--repo", "-r", help="Repository in 'owner/repo' format (default: GITHUB_REPOSITORY)"),
    ] = None,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="YAML config file (default: .triage/config.yaml)"),
    ] = None,
    stale_after: Annotated[
        int | None,
        typer.Option("--stale-after", help="Days of inactivity before marking stale. Default: 30"),
    ] = None,
    close_after: Annotated[
        int | None,
        typer.Option("--close-after", help="Days of inactivity before closing; 0 disables. Default: 0"),
    ] = None,
    stale_label: Annotated[
        str | None,
        typer.Option("--stale-label", help="Label applied to stale issues. Default: STALE"),
    ] = None,
    stale_comment: Annotated[
        str | None,
        typer.Option("--stale-comment", help="Stale comment template (%DAYS_OLD%, %AUTHOR%)"),
    ] = None,
    close_comment: Annotated[
        str | None,
        typer.Option("--close-comment", help="Close comment template (%DAYS_OLD%, %AUTHOR%)"),
    ] = None,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Only log warnings and errors"),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-n", help="Evaluate issues without commenting or changing them"),
    ] = False,
    token: Annotated[
        str | None,
        typer.Option("--token", help="GitHub token (default: INPUT_GHTOKEN, then GITHUB_TOKEN)"),
    ] = None,
    api_url: Annotated[
        str,
        typer.Option("--api-url", help="GitHub API root URL"),
    ] = GITHUB_API_BASE,
    timeout: Annotated[
        float,
        typer.Option("--timeout", "-t", help="Request timeout in seconds"),
    ] = DEFAULT_TIMEOUT,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Triage the open issues of a repository once.

    Examples:
        issue-triage run --repo owner/repo
        issue-triage run --stale-after 30 --close-after 60 --dry-run
    """
    _configure_logging(verbose)

    overrides: dict[str, Any] = {
        "stale_after": stale_after,
        "close_after": close_after,
        "stale_label": stale_label,
        "stale_comment": stale_comment,
        "close_comment": close_comment,
        "show_logs": False if quiet else None,
    }
    config = _load_config(config_path, repo, overrides)

    try:
        gh_token = resolve_token(token)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e

    # Per-issue failures are logged as warnings and do not change the exit code
    asyncio.run(
        async_main(
            config,
            token=gh_token,
            dry_run=dry_run or is_local_test(),
            base_url=api_url,
            timeout=timeout,
        )
    )


@app.command("show-config")
def show_config(
    repo: Annotated[
        str | None,
        typer.Option("--repo", "-r", help="Repository in 'owner/repo' format (default: GITHUB_REPOSITORY)"),
    ] = None,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="YAML config file (default: .triage/config.yaml)"),
    ] = None,
) -> None:
    """Show the resolved configuration."""
    config = _load_config(config_path, repo, {})

    table = Table(title=f"Triage config for {config.full_repo}", show_header=True, header_style="bold")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("stale_after", f"{config.stale_after} days")
    close_value = f"{config.close_after} days" if config.closing_enabled else f"{config.close_after} (disabled)"
    table.add_row("close_after", close_value)
    table.add_row("stale_label", escape(config.stale_label))
    table.add_row("stale_comment", repr(config.stale_comment))
    table.add_row("close_comment", repr(config.close_comment))
    table.add_row("show_logs", str(config.show_logs))
    table.add_row("dry_run", str(is_local_test()))

    console.print(table)


if __name__ == "__main__":
    app()
