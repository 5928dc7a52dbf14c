"""``branchsync which-db`` -- name the Neon branch behind ``DATABASE_URL``.

Decoration goes to *stderr*; the final ``Branch: <name>`` line is written to
*stdout* so scripts can ``grep`` it.
"""

from __future__ import annotations

import typer

from branch_cli.commands._common import build_context, command_errors, console, load_command_settings, open_client
from branch_cli.display import display_location
from branch_engine.workflows import which_db
from branch_engine.workflows.locate import current_database_url, parse_database_host

WHICH_DB_TROUBLESHOOTING = (
    "Check that DATABASE_URL is set in your .env file",
    "Verify NEON_API_KEY and NEON_PROJECT_ID point at the right project",
)


def which_db_command() -> None:
    """Show which Neon branch the current DATABASE_URL connects to."""
    console.print("[bold]Checking current database branch[/bold]")
    with command_errors(WHICH_DB_TROUBLESHOOTING):
        settings = load_command_settings()
        ctx = build_context(settings)
        url = current_database_url(ctx)
        parse_database_host(url)
        with open_client(settings) as client:
            location = which_db(ctx, client, database_url=url)
        display_location(console, location)
    typer.echo(f"Branch: {location.branch.name}")
