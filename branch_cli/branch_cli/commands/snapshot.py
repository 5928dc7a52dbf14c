"""``branchsync create-snapshot`` and ``branchsync test-commit-id``."""

from __future__ import annotations

import typer

from branch_cli.commands._common import build_context, command_errors, console, load_command_settings, open_client
from branch_cli.display import display_snapshot_result, display_test_commit_result
from branch_engine.workflows import create_commit_snapshot, restore_commit_state, validate_commit_id

SNAPSHOT_TROUBLESHOOTING = (
    "Verify NEON_API_KEY and NEON_PROJECT_ID are correct",
    "Ensure you have permissions to create snapshots",
    "Check that the production branch exists and is accessible",
    "Verify the Neon snapshot API is available for your project",
)

TEST_COMMIT_TROUBLESHOOTING = (
    "Make sure a snapshot exists for this commit (run create-snapshot first)",
    "Verify the commit ID exists in your git history",
    "Check that you have no uncommitted changes blocking the checkout",
    "Verify NEON_API_KEY and NEON_PROJECT_ID are correct",
)


def create_snapshot_command(
    commit: str = typer.Argument(..., help="Git commit hash to label the snapshot with (min 7 chars)."),
) -> None:
    """Snapshot the production Neon branch as prod-<commit>, kept for 4 months."""
    console.print("[bold]Creating production snapshot[/bold]")
    with command_errors(SNAPSHOT_TROUBLESHOOTING):
        commit_id = validate_commit_id(commit)
        console.print(f"Commit ID: {commit_id}", highlight=False)
        settings = load_command_settings()
        ctx = build_context(settings)
        with open_client(settings) as client:
            result = create_commit_snapshot(ctx, client, commit_id)
        display_snapshot_result(console, result)


def commit_test_command(
    commit: str = typer.Argument(..., help="Commit hash whose prod-<commit> snapshot should be restored."),
    checkout: bool = typer.Option(
        True,
        "--checkout/--no-checkout",
        help="Check out the commit in git (detached HEAD) before restoring.",
    ),
    manual_env: bool = typer.Option(
        False,
        "--manual-env",
        help="Print the test branch connection instead of rewriting the env file.",
    ),
) -> None:
    """Restore code and database to the state recorded for a commit."""
    console.print("[bold]Testing commit state[/bold]")
    with command_errors(TEST_COMMIT_TROUBLESHOOTING):
        commit_id = validate_commit_id(commit)
        console.print(f"Commit ID: {commit_id}", highlight=False)
        settings = load_command_settings(manual_env=manual_env)
        ctx = build_context(settings)
        with open_client(settings) as client:
            result = restore_commit_state(ctx, client, commit_id, checkout=checkout)
        display_test_commit_result(console, result, env_name=ctx.env_file.name)
