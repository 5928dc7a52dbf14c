"""Rich output formatting for the branchsync CLI.

All functions write to a :class:`rich.console.Console` instance (typically
bound to *stderr*) so that the one machine-readable line ``which-db``
prints on *stdout* is never polluted with human-readable decoration.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from branch_engine.envfile import DATABASE_URL, ORIGINAL_DATABASE_URL, PRODUCTION_DATABASE_URL
from branch_engine.workflows import (
    FEATURE_TTL,
    CleanupResult,
    CommitTestResult,
    DatabaseLocation,
    InitFeatureResult,
    RestoreResult,
    SnapshotResult,
)

# Width of every summary box, borders included.
SUMMARY_WIDTH = 78


# ---------------------------------------------------------------------------
# Progress reporting
# ---------------------------------------------------------------------------


class ConsoleReporter:
    """Step reporter that prints workflow progress with Rich markup."""

    def __init__(self, console: Console) -> None:
        self._console = console

    def step(self, message: str) -> None:
        self._console.print(f"[cyan]→[/cyan] {escape(message)}")

    def success(self, message: str) -> None:
        self._console.print(f"[green]✓[/green] {escape(message)}")

    def info(self, message: str) -> None:
        self._console.print(f"  {escape(message)}", highlight=False)

    def warning(self, message: str) -> None:
        self._console.print(f"[yellow]⚠  {escape(message)}[/yellow]")


# ---------------------------------------------------------------------------
# Shared building blocks
# ---------------------------------------------------------------------------


def _date(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d") if value else "-"


def _datetime(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M %Z").strip() if value else "-"


def display_summary(
    console: Console,
    title: str,
    rows: Sequence[tuple[str, str]],
    *,
    border_style: str = "blue",
) -> None:
    """Render a fixed-width box with one ``label: value`` row per entry."""
    grid = Table.grid(padding=(0, 2))
    grid.add_column(style="bold", no_wrap=True, min_width=15)
    grid.add_column(overflow="fold")
    for label, value in rows:
        grid.add_row(f"{label}:", value)
    console.print(
        Panel(
            grid,
            title=title,
            title_align="left",
            border_style=border_style,
            width=SUMMARY_WIDTH,
        )
    )


def display_next_steps(console: Console, steps: Sequence[str], title: str = "Next steps") -> None:
    console.print(f"\n[bold]{title}:[/bold]")
    for idx, step in enumerate(steps, start=1):
        console.print(f"   {idx}. {step}", highlight=False)


def display_error(console: Console, message: str, hints: Sequence[str], troubleshooting: Sequence[str]) -> None:
    """Render a fatal error, its specific hints, and the command's checklist."""
    console.print(f"[red]✗ Error: {escape(message)}[/red]")
    for hint in hints:
        console.print(f"   [red]{escape(hint)}[/red]", highlight=False)
    if troubleshooting:
        console.print("\n[bold]Troubleshooting:[/bold]")
        for item in troubleshooting:
            console.print(f"   • {escape(item)}", highlight=False)


# ---------------------------------------------------------------------------
# Per-workflow summaries
# ---------------------------------------------------------------------------


def display_init_result(console: Console, result: InitFeatureResult, *, env_name: str = ".env") -> None:
    branch = result.neon_branch
    console.print("\n[bold green]Feature branch initialization complete![/bold green]")
    display_summary(
        console,
        "Summary",
        [
            ("Git Branch", result.git_branch),
            ("Neon Branch", f"{branch.name} ({branch.id})"),
            ("Parent Branch", result.parent_branch.name),
            ("Expires", f"{_date(result.expires_at)} ({FEATURE_TTL.days} days)"),
            ("Database URL", f"Updated in {env_name}" if result.env_updated else "Manual update required"),
            ("Connection", "Pooled connection enabled" if result.pooled else "Direct connection"),
        ],
    )
    display_next_steps(
        console,
        [
            "Run your database migrations (if needed)",
            "Start developing your feature",
            f"The database branch will automatically be deleted in {FEATURE_TTL.days} days",
        ],
    )


def display_snapshot_result(console: Console, result: SnapshotResult) -> None:
    snapshot = result.snapshot
    display_summary(
        console,
        "Snapshot Details",
        [
            ("Snapshot Name", snapshot.name),
            ("Snapshot ID", snapshot.id),
            ("Source Branch", result.source_branch.name),
            ("Commit ID", result.commit_id),
            ("Created", _datetime(snapshot.created_at)),
            ("Expires", _datetime(result.expires_at)),
            ("Status", snapshot.status or "-"),
        ],
    )
    console.print("\nUse this snapshot for restoration:")
    console.print(f"   [bold]branchsync test-commit-id {result.commit_id}[/bold]", highlight=False)
    console.print(f"\nThis snapshot represents the production database state for commit: {result.commit_id}")
    console.print("It will automatically expire in 4 months to save storage costs.")


def display_test_commit_result(console: Console, result: CommitTestResult, *, env_name: str = ".env") -> None:
    branch = result.test_branch
    if result.env_updated:
        url_row = f"Updated in {env_name}"
    elif result.database_url:
        url_row = "Update failed - set it manually"
    else:
        url_row = "Manual update required"
    rows = [
        ("Commit ID", result.commit_id),
        ("Git State", "Checked out to commit (detached HEAD)" if result.checked_out else "Unchanged"),
        ("Snapshot", result.snapshot.name),
        ("Test Branch", f"{branch.name} ({branch.id})"),
        ("Database URL", url_row),
    ]
    if result.backed_up:
        rows.append(("Original URL", f"Backed up as {ORIGINAL_DATABASE_URL}"))
    rows.append(("Branch Expires", _date(branch.expire_at) if branch.expire_at else "No expiration set"))
    display_summary(console, "Test Environment Setup", rows)

    console.print("\n[bold green]Test environment is ready![/bold green]")
    display_next_steps(
        console,
        [
            "Run your application to test against the historical state",
            "Investigate if the issue existed at this commit",
            "When done testing, restore to production: branchsync restore-prod",
            f"Or manually restore {DATABASE_URL} from {ORIGINAL_DATABASE_URL}",
        ],
    )
    console.print("\n[yellow]Remember:[/yellow]")
    console.print(f"   • Code and database are at commit {result.commit_id}", highlight=False)
    if result.checked_out:
        console.print("   • You are in detached HEAD state - use restore-prod to return to normal")
    console.print("   • Test branch will automatically expire in 2 weeks")


def display_restore_result(console: Console, result: RestoreResult) -> None:
    display_summary(
        console,
        "Production Restoration Complete",
        [
            ("Branch", result.branch),
            ("Commit", result.commit),
            (
                DATABASE_URL,
                f"Restored from {PRODUCTION_DATABASE_URL}" if result.env_updated else "Manual update required",
            ),
        ],
        border_style="green",
    )
    console.print("\n[bold green]Production state restored successfully![/bold green]")
    console.print("You are now back to:")
    console.print("   • Latest production code")
    console.print("   • Production database connection")


def display_cleanup_result(console: Console, result: CleanupResult, *, env_name: str = ".env") -> None:
    if result.neon_branch is None:
        database = "Not found"
    elif result.neon_branch_deleted:
        database = "Deleted"
    else:
        database = "Already deleted"
    development = result.development_branch
    if result.git_branch_deleted:
        git_row = "Force-deleted" if result.git_branch_force_deleted else "Deleted"
    else:
        git_row = "Kept"
    console.print("\n[bold green]Feature cleanup complete![/bold green]")
    display_summary(
        console,
        "Summary",
        [
            ("Feature Branch", result.branch_name),
            ("Database", database),
            ("Current DB", f"development ({development.name})" if development else "Unknown"),
            (f"{env_name} Updated", "Yes" if result.env_updated else "Manual update required"),
            ("Git Branch", git_row),
        ],
    )
    steps = []
    if not result.checked_out:
        steps.append("Switch to main: git checkout main")
    if not result.env_updated:
        steps.append(f"Update {DATABASE_URL} in {env_name} with the development branch connection")
    steps.append("Continue with other features")
    display_next_steps(console, steps)


def display_location(console: Console, location: DatabaseLocation) -> None:
    branch = location.branch
    endpoint = location.endpoint
    console.print("\n[bold green]Match found![/bold green]")
    display_summary(
        console,
        "Current Database Branch",
        [
            ("Branch Name", branch.name),
            ("Branch ID", branch.id),
            ("Branch Type", branch.kind),
            ("Parent Branch", location.parent_name or "None (Root)"),
            ("Protected", "Yes" if branch.protected else "No"),
            ("Endpoint", endpoint.host),
            ("Connection", "Pooled" if endpoint.pooler_enabled else "Direct"),
            ("State", endpoint.current_state or "-"),
            ("Created", _date(branch.created_at)),
        ],
    )
    if len(location.lineage) > 1:
        console.print("[bold]Branch Hierarchy:[/bold]")
        console.print("   " + " → ".join(location.lineage), highlight=False)
    if location.days_until_expiry is not None:
        console.print(
            f"Branch expires in {location.days_until_expiry} days ({_date(branch.expire_at)})",
            highlight=False,
        )
        if location.expires_soon:
            console.print("[red bold]Warning: Branch expires soon![/red bold]")
