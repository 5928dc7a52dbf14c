"""``branchsync init-new-feature`` and ``branchsync cleanup-feature``."""

from __future__ import annotations

import typer

from branch_cli.commands._common import build_context, command_errors, console, load_command_settings, open_client
from branch_cli.display import display_cleanup_result, display_init_result
from branch_engine.errors import InputValidationError
from branch_engine.workflows import cleanup_feature, init_new_feature, is_protected

INIT_TROUBLESHOOTING = (
    "Verify NEON_API_KEY and NEON_PROJECT_ID are set and valid",
    "Ensure you have permissions to create branches in the Neon project",
    "Check that the production branch exists",
    "Make sure the branch name doesn't already exist",
)

CLEANUP_TROUBLESHOOTING = (
    "Verify NEON_API_KEY and NEON_PROJECT_ID are correct",
    "Ensure you have permissions to delete branches",
    "Check that the development branch exists",
    "Verify you are in a git repository",
)


def init_feature_command(
    branch: str | None = typer.Argument(
        None,
        help="Feature branch name. Defaults to the current git branch.",
    ),
    base: str | None = typer.Option(
        None,
        "--base",
        help="Git ref to branch from (default: main, then master).",
    ),
    manual_env: bool = typer.Option(
        False,
        "--manual-env",
        help="Print the new DATABASE_URL instead of rewriting the env file.",
    ),
) -> None:
    """Create a git feature branch and a 14-day Neon branch cloned from production."""
    console.print("[bold]Initializing new feature branch[/bold]")
    with command_errors(INIT_TROUBLESHOOTING):
        settings = load_command_settings(manual_env=manual_env)
        ctx = build_context(settings)
        with open_client(settings) as client:
            result = init_new_feature(ctx, client, branch_name=branch, base_ref=base)
        display_init_result(console, result, env_name=ctx.env_file.name)


def cleanup_feature_command(
    branch: str | None = typer.Argument(
        None,
        help="Feature branch to clean up. Defaults to the current git branch.",
    ),
    delete_git_branch: bool = typer.Option(
        True,
        "--delete-git-branch/--keep-git-branch",
        "-g/-k",
        help="Also delete the local git branch after switching to main.",
    ),
    manual_env: bool = typer.Option(
        False,
        "--manual-env",
        help="Print instructions instead of rewriting the env file.",
    ),
) -> None:
    """Delete a feature's Neon branch and point DATABASE_URL back at development."""
    console.print("[bold]Cleaning up feature branch[/bold]")
    with command_errors(CLEANUP_TROUBLESHOOTING):
        settings = load_command_settings(manual_env=manual_env)
        ctx = build_context(settings)
        if branch is not None and (not branch.strip() or is_protected(branch.strip())):
            # Refused before credentials are looked at.
            raise InputValidationError(
                f"Refusing to clean up protected branch '{branch.strip()}'",
                hints=["Pass the feature branch name, e.g. team/feature-name"],
            )
        with open_client(settings) as client:
            result = cleanup_feature(ctx, client, branch_name=branch, delete_git_branch=delete_git_branch)
        display_cleanup_result(console, result, env_name=ctx.env_file.name)
