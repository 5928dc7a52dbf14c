"""Shared plumbing for the branchsync commands.

Every command builds the same :class:`WorkflowContext` from the global
options, opens a :class:`NeonClient` from settings, and turns any failure
into a red error line, a troubleshooting checklist and exit code 1.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import typer
from rich.console import Console

from branch_cli.display import ConsoleReporter, display_error
from branch_engine.config import EnvUpdateMode, Settings, load_settings
from branch_engine.errors import BranchSyncError
from branch_engine.git import GitRepo
from branch_engine.neon import NeonClient
from branch_engine.workflows import WorkflowContext

logger = logging.getLogger(__name__)

console = Console(stderr=True)


@dataclass
class CLIState:
    """Global options captured by the app callback."""

    env_file: Path | None = None
    repo: Path | None = None
    verbose: bool = False

    @property
    def repo_path(self) -> Path:
        return (self.repo or Path.cwd()).resolve()

    @property
    def env_path(self) -> Path:
        if self.env_file is not None:
            return self.env_file.resolve()
        return self.repo_path / ".env"


state = CLIState()


def load_command_settings(*, manual_env: bool = False) -> Settings:
    overrides: dict[str, object] = {}
    if manual_env:
        overrides["env_update_mode"] = EnvUpdateMode.MANUAL
    return load_settings(state.env_path, **overrides)


def build_context(settings: Settings) -> WorkflowContext:
    return WorkflowContext(
        settings=settings,
        repo=GitRepo(state.repo_path),
        env_file=state.env_path,
        reporter=ConsoleReporter(console),
    )


def open_client(settings: Settings) -> NeonClient:
    """Build a provider client, failing fast when credentials are missing."""
    credentials = settings.require_neon_credentials()
    return NeonClient(
        api_key=credentials.api_key.get_secret_value(),
        project_id=credentials.project_id,
        base_url=settings.neon_api_url,
        timeout=settings.request_timeout,
    )


@contextmanager
def command_errors(troubleshooting: Sequence[str] = ()) -> Iterator[None]:
    """Translate any failure inside the block into a rendered error and exit code 1."""
    try:
        yield
    except typer.Exit:
        raise
    except BranchSyncError as exc:
        logger.debug("Command failed", exc_info=True)
        display_error(console, exc.message, exc.hints, troubleshooting)
        raise typer.Exit(code=1) from exc
    except Exception as exc:
        logger.debug("Unexpected failure", exc_info=True)
        display_error(console, str(exc) or type(exc).__name__, [], troubleshooting)
        raise typer.Exit(code=1) from exc
