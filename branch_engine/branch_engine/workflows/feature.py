"""Feature-branch lifecycle: ``init-new-feature`` and ``cleanup-feature``.

A feature pairs a local git branch with a short-lived provider branch
cloned from production.  Initialising creates both and points
``DATABASE_URL`` at the clone; cleaning up deletes both and points
``DATABASE_URL`` back at the shared development branch.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from pydantic import BaseModel

from branch_engine.envfile import DATABASE_URL
from branch_engine.errors import InputValidationError, NotFoundError
from branch_engine.git import GitClientError, validate_git_ref
from branch_engine.neon import (
    Branch,
    NeonAPIError,
    NeonClient,
    find_branch_by_name,
    find_development_branch,
    has_pooler,
    pooled_connection_uri,
    resolve_production_branch,
    sanitize_branch_name,
)
from branch_engine.workflows.base import (
    FEATURE_TTL,
    PRODUCTION_GIT_REFS,
    WorkflowContext,
    available_branches,
    is_protected,
    write_database_url,
)

logger = logging.getLogger(__name__)


class InitFeatureResult(BaseModel):
    git_branch: str
    created_git_branch: bool
    base_ref: str | None = None
    neon_branch: Branch
    parent_branch: Branch
    expires_at: datetime
    pooled: bool
    database_url: str
    env_updated: bool


class CleanupResult(BaseModel):
    branch_name: str
    neon_branch: Branch | None = None
    neon_branch_deleted: bool = False
    development_branch: Branch | None = None
    env_updated: bool = False
    git_branch_deleted: bool = False
    git_branch_force_deleted: bool = False
    checked_out: str | None = None


def _current_feature_branch(ctx: WorkflowContext, usage: str) -> str:
    """Infer the feature branch from the checked-out git branch."""
    try:
        ctx.repo.ensure_repository()
        current = ctx.repo.current_branch()
    except GitClientError as exc:
        raise InputValidationError(
            "Could not determine current git branch. Please provide a branch name",
            hints=[usage],
        ) from exc
    if not current or is_protected(current):
        raise InputValidationError(
            "Please provide a feature branch name or switch to the feature branch",
            hints=[usage, "Or checkout the feature branch first and run without arguments"],
        )
    return current


def _require_production(branches: list[Branch]) -> Branch:
    production = resolve_production_branch(branches)
    if production is None:
        raise NotFoundError(
            "Production branch not found. Looking for branch named 'production', 'main', or the default branch.",
            hints=["Available branches:", *available_branches(branches)],
        )
    return production


# ---------------------------------------------------------------------------
# init-new-feature
# ---------------------------------------------------------------------------


def init_new_feature(
    ctx: WorkflowContext,
    client: NeonClient,
    branch_name: str | None = None,
    base_ref: str | None = None,
) -> InitFeatureResult:
    """Create a git feature branch and a matching 14-day provider branch.

    When *branch_name* is omitted the current git branch is used, provided it
    is not protected, and no git branch is created.
    """
    report = ctx.reporter
    created_git_branch = False
    checked_out_base: str | None = None

    if branch_name is None:
        git_branch = _current_feature_branch(ctx, "Usage: init-new-feature <branch-name>")
        report.info(f"Using current git branch: {git_branch}")
    else:
        git_branch = branch_name.strip()
        if not git_branch:
            raise InputValidationError("Please provide a branch name", hints=["Example: init-new-feature team/feature"])
        if is_protected(git_branch):
            raise InputValidationError(
                f"'{git_branch}' is a protected branch and cannot be used as a feature branch",
                hints=["Choose a feature branch name, e.g. team/feature-name"],
            )
        try:
            validate_git_ref(git_branch)
        except ValueError as exc:
            raise InputValidationError(
                f"'{git_branch}' is not a valid git branch name",
                hints=["Use letters, digits, '-', '_', '.' and '/', e.g. team/feature-name"],
            ) from exc
        ctx.repo.ensure_repository()

        report.step(f"Creating git branch from {base_ref or 'main'}...")
        candidates = [base_ref] if base_ref else list(PRODUCTION_GIT_REFS)
        checked_out_base = ctx.repo.checkout_first(candidates, include_remote_default=base_ref is None)
        if not ctx.repo.pull():
            report.warning("Git pull failed or no remote configured - continuing with local HEAD")
        ctx.repo.create_branch(git_branch)
        created_git_branch = True
        report.success(f"Git branch '{git_branch}' created and checked out")

    report.step("Finding production database branch...")
    production = _require_production(client.list_branches())
    report.success(f"Found production branch: {production.name} ({production.id})")

    report.step("Creating new Neon database branch...")
    created = client.create_branch(production.id, git_branch, FEATURE_TTL, pooled=True)
    branch = created.branch
    expires_at = branch.expire_at or datetime.now(UTC) + FEATURE_TTL
    report.success(f"Neon branch created: {branch.name} ({branch.id})")

    if not created.connection_uris:
        raise NotFoundError(
            "No connection URI received from Neon API",
            hints=[f"Copy the connection string for '{branch.name}' from the Neon Console"],
        )
    uri = created.connection_uris[0]
    database_url = pooled_connection_uri(uri)

    env_updated = False
    if ctx.auto_env:
        report.step(f"Updating {ctx.env_file.name} with new database connection...")
        env_updated = write_database_url(ctx, database_url)
        if env_updated:
            report.success(f"{ctx.env_file.name} updated with new {DATABASE_URL}")
    else:
        report.info(f"Set {DATABASE_URL} in {ctx.env_file.name} to the new branch connection:")
        report.info(f'{DATABASE_URL}="{database_url}"')

    return InitFeatureResult(
        git_branch=git_branch,
        created_git_branch=created_git_branch,
        base_ref=checked_out_base,
        neon_branch=branch,
        parent_branch=production,
        expires_at=expires_at,
        pooled=has_pooler(uri),
        database_url=database_url,
        env_updated=env_updated,
    )


# ---------------------------------------------------------------------------
# cleanup-feature
# ---------------------------------------------------------------------------


def _manual_development_instructions(ctx: WorkflowContext, client: NeonClient, development: Branch) -> None:
    """Print console-copy instructions, enriched with the endpoint host when it can be fetched."""
    report = ctx.reporter
    try:
        endpoints = client.get_endpoints(development.id)
    except NeonAPIError as exc:
        report.warning(f"Could not get development branch connection details automatically: {exc.message}")
        endpoints = []
    if endpoints:
        report.info(f"Development endpoint host: {endpoints[0].host}")
    report.info(f"Please manually update {DATABASE_URL} in {ctx.env_file.name}:")
    report.info("  1. Go to Neon Console")
    report.info(f"  2. Select the '{development.name}' branch")
    report.info("  3. Click 'Connect' to get the connection string")
    report.info(f"  4. Update your {DATABASE_URL} with the development connection")


def _point_env_at_development(ctx: WorkflowContext, client: NeonClient, development: Branch | None) -> bool:
    report = ctx.reporter
    settings = ctx.settings

    if ctx.auto_env and settings.development_database_url:
        report.step(f"Restoring {DATABASE_URL} from DEVELOPMENT_DATABASE_URL...")
        return write_database_url(ctx, settings.development_database_url)

    if development is None:
        report.info(f"You may need to manually update your {DATABASE_URL}")
        return False

    if ctx.auto_env:
        report.step("Fetching development branch connection...")
        try:
            url = client.get_connection_uri(
                development.id,
                settings.neon_database_name,
                settings.neon_role_name,
                pooled=True,
            )
        except NeonAPIError as exc:
            report.warning(f"Could not fetch development connection string: {exc.message}")
        else:
            updated = write_database_url(ctx, url)
            if updated:
                report.success(f"{DATABASE_URL} now points at '{development.name}'")
            return updated

    _manual_development_instructions(ctx, client, development)
    return False


def _delete_local_branch(ctx: WorkflowContext, git_branch: str, result: CleanupResult) -> None:
    report = ctx.reporter
    report.step("Cleaning up git branch...")
    try:
        ctx.repo.ensure_repository()
        result.checked_out = ctx.repo.checkout_first(PRODUCTION_GIT_REFS)
        if not ctx.repo.branch_exists(git_branch):
            report.info(f"Git branch '{git_branch}' does not exist locally")
            return
        result.git_branch_force_deleted = ctx.repo.delete_branch(git_branch)
        result.git_branch_deleted = True
    except (GitClientError, ValueError) as exc:
        report.warning(f"Could not delete git branch: {exc}")
        return
    if result.git_branch_force_deleted:
        report.warning(f"Git branch '{git_branch}' had unmerged commits and was force-deleted")
    report.success(f"Git branch '{git_branch}' deleted")


def cleanup_feature(
    ctx: WorkflowContext,
    client: NeonClient,
    branch_name: str | None = None,
    delete_git_branch: bool = True,
) -> CleanupResult:
    """Delete a feature's provider branch and local git branch.

    The provider branch is matched by exact name, then by sanitized name.
    Protected names are rejected before any provider call.
    """
    report = ctx.reporter
    usage = "Usage: cleanup-feature [branch-name]"

    if branch_name is None:
        git_branch = _current_feature_branch(ctx, usage)
        report.info(f"Using current git branch for cleanup: {git_branch}")
    else:
        git_branch = branch_name.strip()
        if not git_branch or is_protected(git_branch):
            raise InputValidationError(
                f"Refusing to clean up protected branch '{git_branch}'",
                hints=[usage, "Pass the feature branch name, e.g. team/feature-name"],
            )

    result = CleanupResult(branch_name=git_branch)
    report.step("Finding database branches...")
    branches = client.list_branches()

    feature = find_branch_by_name(branches, git_branch)
    if feature is None:
        report.warning(
            f"Database branch not found for '{git_branch}' (also tried '{sanitize_branch_name(git_branch)}')"
        )
        for line in available_branches(branches):
            report.info(f"  • {line}")
    else:
        if feature.default or feature.protected or is_protected(feature.name):
            raise InputValidationError(
                f"Database branch '{feature.name}' is protected or the project default and will not be deleted"
            )
        result.neon_branch = feature
        report.success(f"Found feature database branch: {feature.name} ({feature.id})")
        report.step("Deleting feature database branch...")
        result.neon_branch_deleted = client.delete_branch(feature.id)
        if result.neon_branch_deleted:
            report.success(f"Database branch '{feature.name}' deleted successfully")
        else:
            report.warning(f"Database branch '{feature.name}' was already deleted")

    report.step("Finding development database branch...")
    development = find_development_branch(branches)
    result.development_branch = development
    if development is None:
        report.warning("Development branch not found. Looking for branches named 'development', 'dev', or 'develop'")
    else:
        report.success(f"Found development branch: {development.name} ({development.id})")

    result.env_updated = _point_env_at_development(ctx, client, development)

    if delete_git_branch:
        _delete_local_branch(ctx, git_branch, result)
    else:
        report.info("Git branch kept (use --delete-git-branch to remove it)")

    return result
