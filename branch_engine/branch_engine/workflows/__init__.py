"""Workflow orchestrators composing git, the provider client, and the env file."""

from __future__ import annotations

from branch_engine.workflows.base import (
    FEATURE_TTL,
    PROTECTED_BRANCHES,
    SNAPSHOT_TTL_MONTHS,
    TEST_BRANCH_TTL,
    LoggingReporter,
    StepReporter,
    WorkflowContext,
    add_months,
    is_protected,
    restore_branch_name,
    snapshot_name,
    validate_commit_id,
)
from branch_engine.workflows.feature import CleanupResult, InitFeatureResult, cleanup_feature, init_new_feature
from branch_engine.workflows.locate import DatabaseLocation, parse_database_host, which_db
from branch_engine.workflows.restore import RestoreResult, restore_production
from branch_engine.workflows.snapshots import (
    CommitTestResult,
    SnapshotResult,
    create_commit_snapshot,
    restore_commit_state,
)

__all__ = [
    "FEATURE_TTL",
    "PROTECTED_BRANCHES",
    "SNAPSHOT_TTL_MONTHS",
    "TEST_BRANCH_TTL",
    "CleanupResult",
    "CommitTestResult",
    "DatabaseLocation",
    "InitFeatureResult",
    "LoggingReporter",
    "RestoreResult",
    "SnapshotResult",
    "StepReporter",
    "WorkflowContext",
    "add_months",
    "cleanup_feature",
    "create_commit_snapshot",
    "init_new_feature",
    "is_protected",
    "parse_database_host",
    "restore_branch_name",
    "restore_commit_state",
    "restore_production",
    "snapshot_name",
    "validate_commit_id",
    "which_db",
]
