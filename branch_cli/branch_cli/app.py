"""branchsync CLI application -- Typer-based developer interface.

Provides commands that keep git branches and Neon database branches in
step: feature init and cleanup, per-commit production snapshots, commit
state restoration, returning to production, and identifying the branch
behind ``DATABASE_URL``.  Human-readable output goes to *stderr* via Rich.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import typer

from branch_cli.commands import _common
from branch_cli.commands.feature import cleanup_feature_command, init_feature_command
from branch_cli.commands.restore import restore_prod_command
from branch_cli.commands.snapshot import commit_test_command, create_snapshot_command
from branch_cli.commands.which_db import which_db_command

# ---------------------------------------------------------------------------
# App & global state
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="branchsync",
    help="branchsync - keep git branches and Neon database branches in step",
    no_args_is_help=True,
)

app.command(name="init-new-feature")(init_feature_command)
app.command(name="create-snapshot")(create_snapshot_command)
app.command(name="test-commit-id")(commit_test_command)
app.command(name="restore-prod")(restore_prod_command)
app.command(name="cleanup-feature")(cleanup_feature_command)
app.command(name="which-db")(which_db_command)


# ---------------------------------------------------------------------------
# Callback -- global options
# ---------------------------------------------------------------------------


@app.callback()
def _global_options(
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Env file to read and rewrite (default: .env in the repository).",
        envvar="BRANCHSYNC_ENV_FILE",
    ),
    repo: Path | None = typer.Option(
        None,
        "--repo",
        help="Git working copy to operate on (default: current directory).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging on stderr.",
    ),
) -> None:
    """Global options applied to every command."""
    _common.state.env_file = env_file
    _common.state.repo = repo
    _common.state.verbose = verbose
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )
