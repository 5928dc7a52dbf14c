"""Shared constants, validation, and progress reporting for the workflows."""

from __future__ import annotations

import calendar
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Protocol

from branch_engine.config import EnvUpdateMode, Settings
from branch_engine.envfile import DATABASE_URL, backup, read_env_file, upsert, write_env_file
from branch_engine.errors import EnvFileError, InputValidationError
from branch_engine.git import GitRepo
from branch_engine.neon import Branch

logger = logging.getLogger(__name__)

FEATURE_TTL = timedelta(days=14)
TEST_BRANCH_TTL = timedelta(days=14)
SNAPSHOT_TTL_MONTHS = 4
EXPIRY_WARNING_DAYS = 3

MIN_COMMIT_ID_LENGTH = 7

# Git branch names the workflows never treat as feature branches.
PROTECTED_BRANCHES = frozenset(
    {
        "main",
        "master",
        "development",
        "develop",
        "dev",
        "production",
        "prod",
    }
)

# Git branches tried, in order, when returning to the production line.
PRODUCTION_GIT_REFS = ("main", "master")

_COMMIT_ID_RE = re.compile(r"^[0-9a-zA-Z]+$")


class StepReporter(Protocol):
    """Receives human-facing progress from a workflow."""

    def step(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...


class LoggingReporter:
    """A :class:`StepReporter` that forwards to :mod:`logging`."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def step(self, message: str) -> None:
        self._log.info(message)

    def success(self, message: str) -> None:
        self._log.info(message)

    def info(self, message: str) -> None:
        self._log.info(message)

    def warning(self, message: str) -> None:
        self._log.warning(message)


@dataclass
class WorkflowContext:
    """Explicit handles every workflow runs against.

    Replaces ambient process state: the git working copy, the env file path,
    and settings are all passed in so workflows can run in isolation.
    """

    settings: Settings
    repo: GitRepo
    env_file: Path
    reporter: StepReporter = field(default_factory=LoggingReporter)

    @property
    def auto_env(self) -> bool:
        return self.settings.env_update_mode == EnvUpdateMode.AUTO


def is_protected(branch_name: str) -> bool:
    return branch_name in PROTECTED_BRANCHES


def validate_commit_id(commit_id: str | None) -> str:
    """Return *commit_id* stripped, or raise if it is not a plausible commit hash."""
    value = (commit_id or "").strip()
    if len(value) < MIN_COMMIT_ID_LENGTH or not _COMMIT_ID_RE.match(value):
        raise InputValidationError(
            f"Invalid commit ID provided: {value!r}",
            hints=[
                f"Expected format: git commit hash (at least {MIN_COMMIT_ID_LENGTH} characters)",
                "Example: abc123f",
            ],
        )
    return value


def snapshot_name(commit_id: str) -> str:
    return f"prod-{commit_id}"


def restore_branch_name(commit_id: str) -> str:
    return f"test-{commit_id}"


def add_months(moment: datetime, months: int) -> datetime:
    """Shift *moment* by whole calendar months, clamping the day to the month's end."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def days_until(moment: datetime, now: datetime) -> int:
    """Whole days from *now* until *moment*, rounded up."""
    seconds = (moment - now).total_seconds()
    days, remainder = divmod(seconds, 86400)
    return int(days) + (1 if remainder > 0 else 0)


def available_branches(branches: list[Branch]) -> list[str]:
    """One line per branch, flagged default/primary, for diagnostics."""
    lines = []
    for branch in branches:
        suffix = " (default)" if branch.default else " (primary)" if branch.primary else ""
        lines.append(f"{branch.name}{suffix} - {branch.id}")
    return lines


def write_database_url(ctx: WorkflowContext, url: str, *, backup_key: str | None = None) -> bool:
    """Rewrite ``DATABASE_URL`` in the env file.

    When *backup_key* is given the previous value is saved there first (only
    if no backup exists yet).  A failed read or write is downgraded to a
    warning because the remote change has already happened; the return
    value says whether the file was updated.
    """
    try:
        text = read_env_file(ctx.env_file)
        if backup_key is not None:
            text = backup(text, DATABASE_URL, backup_key)
        write_env_file(ctx.env_file, upsert(text, DATABASE_URL, url))
    except EnvFileError as exc:
        ctx.reporter.warning(f"Could not update {ctx.env_file.name}: {exc.message}")
        ctx.reporter.info(f'Set it manually: {DATABASE_URL}="{url}"')
        return False
    return True
