"""``restore-prod``: return the working copy to the production line."""

from __future__ import annotations

import logging

from pydantic import BaseModel

from branch_engine.envfile import (
    DATABASE_URL,
    ORIGINAL_DATABASE_URL,
    PRODUCTION_DATABASE_URL,
    get_value,
    read_env_file,
    remove,
    upsert,
    write_env_file,
)
from branch_engine.errors import ConfigurationError, EnvFileError
from branch_engine.git import UNKNOWN_REF
from branch_engine.workflows.base import PRODUCTION_GIT_REFS, WorkflowContext

logger = logging.getLogger(__name__)


class RestoreResult(BaseModel):
    previous_ref: str
    branch: str
    commit: str
    pulled: bool
    env_updated: bool
    backup_cleared: bool = False


def restore_production(ctx: WorkflowContext) -> RestoreResult:
    """Check out main (or master, or the remote default) and restore the production URL.

    ``PRODUCTION_DATABASE_URL`` is read from the env file first and the
    process environment second; its absence is fatal.  The
    ``ORIGINAL_DATABASE_URL`` backup left by a commit test is removed once
    production is back in place.
    """
    report = ctx.reporter
    repo = ctx.repo

    repo.ensure_repository()
    report.info("Git repository detected")
    previous_ref = repo.current_ref()
    report.info(f"Currently at: {previous_ref}")

    # Resolve the production URL before touching the working tree.
    text = read_env_file(ctx.env_file)
    production_url = get_value(text, PRODUCTION_DATABASE_URL) or ctx.settings.production_database_url
    if not production_url:
        raise ConfigurationError(
            f"{PRODUCTION_DATABASE_URL} not found in {ctx.env_file.name}",
            hints=[
                f"Please add {PRODUCTION_DATABASE_URL} to your {ctx.env_file.name} file",
                "This should contain your production database connection string",
            ],
        )

    report.step("Switching to production branch...")
    branch = repo.checkout_first(PRODUCTION_GIT_REFS)
    report.success(f"Switched to production branch: {repo.current_branch() or branch}")

    report.step("Pulling latest changes...")
    pulled = repo.pull()
    if pulled:
        report.success("Latest changes pulled successfully")
    else:
        report.warning("Git pull failed or no remote configured - continuing with local HEAD")

    report.step(f"Restoring production {DATABASE_URL}...")
    env_updated = False
    backup_cleared = False
    try:
        updated = upsert(text, DATABASE_URL, production_url)
        backup_cleared = get_value(updated, ORIGINAL_DATABASE_URL) is not None
        write_env_file(ctx.env_file, remove(updated, ORIGINAL_DATABASE_URL))
        env_updated = True
        report.success(f"{DATABASE_URL} restored to production value")
    except EnvFileError as exc:
        backup_cleared = False
        report.warning(f"Could not update {ctx.env_file.name}: {exc.message}")
        report.info(f'Set it manually: {DATABASE_URL}="{production_url}"')

    return RestoreResult(
        previous_ref=previous_ref,
        branch=repo.current_branch() or branch,
        commit=repo.short_head() or UNKNOWN_REF,
        pulled=pulled,
        env_updated=env_updated,
        backup_cleared=backup_cleared,
    )
