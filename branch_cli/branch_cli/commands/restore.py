"""``branchsync restore-prod``."""

from __future__ import annotations

from branch_cli.commands._common import build_context, command_errors, console, load_command_settings
from branch_cli.display import display_restore_result
from branch_engine.workflows import restore_production

RESTORE_TROUBLESHOOTING = (
    "Make sure PRODUCTION_DATABASE_URL is set in your .env file",
    "Commit or stash local changes that block switching branches",
    "Check that a main or master branch exists",
)


def restore_prod_command() -> None:
    """Switch back to main and restore DATABASE_URL from PRODUCTION_DATABASE_URL."""
    console.print("[bold]Restoring production state[/bold]")
    with command_errors(RESTORE_TROUBLESHOOTING):
        settings = load_command_settings()
        result = restore_production(build_context(settings))
        display_restore_result(console, result)
