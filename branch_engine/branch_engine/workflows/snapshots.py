"""Commit-pinned snapshots: ``create-snapshot`` and ``test-commit-id``.

A snapshot named ``prod-<commit>`` captures production at the time a commit
ships.  Testing a commit later restores that snapshot into a fresh
``test-<commit>`` branch and, optionally, checks the code out at the same
commit so both sides match.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from pydantic import BaseModel

from branch_engine.envfile import DATABASE_URL, ORIGINAL_DATABASE_URL, has_key, read_env_file
from branch_engine.errors import EnvFileError, NotFoundError
from branch_engine.git import GitClientError, GitNotInstalledError
from branch_engine.neon import Branch, NeonAPIError, NeonClient, Snapshot, resolve_production_branch
from branch_engine.workflows.base import (
    SNAPSHOT_TTL_MONTHS,
    TEST_BRANCH_TTL,
    WorkflowContext,
    add_months,
    available_branches,
    restore_branch_name,
    snapshot_name,
    validate_commit_id,
    write_database_url,
)

logger = logging.getLogger(__name__)


class SnapshotResult(BaseModel):
    commit_id: str
    snapshot: Snapshot
    source_branch: Branch
    expires_at: datetime


class CommitTestResult(BaseModel):
    commit_id: str
    previous_ref: str | None = None
    checked_out: bool
    snapshot: Snapshot
    test_branch: Branch
    database_url: str | None = None
    env_updated: bool = False
    backed_up: bool = False


# ---------------------------------------------------------------------------
# create-snapshot
# ---------------------------------------------------------------------------


def create_commit_snapshot(
    ctx: WorkflowContext,
    client: NeonClient,
    commit_id: str,
    now: datetime | None = None,
) -> SnapshotResult:
    """Snapshot production as ``prod-<commit_id>``, expiring in four months."""
    commit_id = validate_commit_id(commit_id)
    report = ctx.reporter
    now = now or datetime.now(UTC)

    report.step("Finding production database branch...")
    branches = client.list_branches()
    production = resolve_production_branch(branches)
    if production is None:
        raise NotFoundError(
            "Production branch not found",
            hints=[
                "Looking for branch named 'production', 'main', or the default branch",
                "Available branches:",
                *available_branches(branches),
            ],
        )
    report.success(f"Found production branch: {production.name} ({production.id})")

    name = snapshot_name(commit_id)
    expires_at = add_months(now, SNAPSHOT_TTL_MONTHS)
    report.step(f"Creating snapshot: {name}...")
    snapshot = client.create_snapshot(production.id, name, expires_at)
    report.success("Snapshot created successfully!")

    return SnapshotResult(
        commit_id=commit_id,
        snapshot=snapshot,
        source_branch=production,
        expires_at=snapshot.expires_at or expires_at,
    )


# ---------------------------------------------------------------------------
# test-commit-id
# ---------------------------------------------------------------------------


def _find_active_snapshot(ctx: WorkflowContext, client: NeonClient, commit_id: str) -> Snapshot:
    name = snapshot_name(commit_id)
    ctx.reporter.step(f"Looking for snapshot: {name}...")
    target = client.find_snapshot_by_name(name)

    if target is None:
        available = [s for s in client.list_snapshots() if s.name.startswith("prod-")]
        hints = ["Available snapshots:"]
        hints.extend(
            f"  • {s.name} ({s.created_at:%Y-%m-%d})" if s.created_at else f"  • {s.name}" for s in available
        )
        if not available:
            hints.append("  (none)")
        hints.append(f"Create the snapshot first: create-snapshot {commit_id}")
        raise NotFoundError(f"Snapshot not found: {name}", hints=hints)

    if not target.is_active:
        raise NotFoundError(
            f"Snapshot {name} is not ready: {target.status}",
            hints=["Wait for the snapshot to become active before testing"],
        )
    ctx.reporter.success(f"Found snapshot: {name} ({target.id})")
    return target


def _manual_test_branch_instructions(ctx: WorkflowContext, client: NeonClient, branch: Branch) -> None:
    report = ctx.reporter
    try:
        endpoints = client.get_endpoints(branch.id)
    except NeonAPIError as exc:
        report.warning(f"Could not look up endpoints for '{branch.name}': {exc.message}")
        endpoints = []
    if endpoints:
        report.info(f"Test branch endpoint host: {endpoints[0].host}")
    report.info(f"Copy the connection string for '{branch.name}' from Neon Console → Connect")
    report.info(f"and set {DATABASE_URL} in {ctx.env_file.name}; keep the old value as {ORIGINAL_DATABASE_URL}")


def _has_backup(ctx: WorkflowContext) -> bool:
    try:
        return has_key(read_env_file(ctx.env_file), ORIGINAL_DATABASE_URL)
    except EnvFileError:
        return False


def restore_commit_state(
    ctx: WorkflowContext,
    client: NeonClient,
    commit_id: str,
    checkout: bool = True,
) -> CommitTestResult:
    """Point code and database at the state recorded for *commit_id*.

    The restore is two-phase (``finalize=False``) so the new branch can be
    inspected without becoming the official lineage.  After the branch
    reports ready, ``DATABASE_URL`` is rewritten in auto mode with the prior
    value backed up to ``ORIGINAL_DATABASE_URL``.
    """
    commit_id = validate_commit_id(commit_id)
    report = ctx.reporter
    settings = ctx.settings

    previous_ref: str | None = None
    if checkout:
        report.step("Switching codebase to commit state...")
        try:
            ctx.repo.ensure_repository()
        except GitClientError as exc:
            exc.hints.append("This command requires git to synchronize code and database state")
            raise
        previous_ref = ctx.repo.current_ref()
        report.info(f"Currently at: {previous_ref}")
        try:
            ctx.repo.checkout(commit_id)
        except GitNotInstalledError:
            raise
        except GitClientError as exc:
            raise GitClientError(
                f"Failed to checkout commit: {commit_id}",
                hints=[
                    "Please ensure the commit hash is valid and exists in your repository",
                    "You may need to fetch from remote if the commit is not local",
                ],
            ) from exc
        report.success(f"Checked out to commit: {commit_id}")
        report.info("Note: You are now in 'detached HEAD' state")

    snapshot = _find_active_snapshot(ctx, client, commit_id)

    branch_name = restore_branch_name(commit_id)
    report.step(f"Creating test branch: {branch_name}...")
    test_branch = client.restore_snapshot(snapshot.id, branch_name, TEST_BRANCH_TTL, finalize=False)
    report.success(f"Test branch created: {test_branch.name} ({test_branch.id})")

    result = CommitTestResult(
        commit_id=commit_id,
        previous_ref=previous_ref,
        checked_out=checkout,
        snapshot=snapshot,
        test_branch=test_branch,
    )

    if not ctx.auto_env:
        _manual_test_branch_instructions(ctx, client, test_branch)
        return result

    report.step("Waiting for test branch to become ready...")
    test_branch = client.wait_for_branch_ready(
        test_branch.id,
        timeout=settings.ready_timeout,
        interval=settings.ready_poll_interval,
    )
    result.test_branch = test_branch

    report.step("Getting connection string for test branch...")
    result.database_url = client.get_connection_uri(
        test_branch.id,
        settings.neon_database_name,
        settings.neon_role_name,
        pooled=True,
    )
    report.success("Connection string obtained")

    report.step(f"Updating {ctx.env_file.name}...")
    result.env_updated = write_database_url(ctx, result.database_url, backup_key=ORIGINAL_DATABASE_URL)
    if result.env_updated:
        result.backed_up = _has_backup(ctx)
        report.success(f"{ctx.env_file.name} updated with test branch connection")
    return result

