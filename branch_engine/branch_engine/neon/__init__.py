"""Neon branching API client and models."""

from __future__ import annotations

from branch_engine.neon.client import BranchNotReadyError, NeonAPIError, NeonClient, format_timestamp
from branch_engine.neon.lookup import (
    branch_lineage,
    endpoint_matches_host,
    extract_endpoint_id,
    find_branch_by_id,
    find_branch_by_name,
    find_development_branch,
    has_pooler,
    host_from_url,
    mask_password,
    pooled_connection_uri,
    pooled_host,
    resolve_production_branch,
    sanitize_branch_name,
)
from branch_engine.neon.models import (
    Branch,
    ConnectionParameters,
    ConnectionUri,
    CreatedBranch,
    Endpoint,
    Snapshot,
    SnapshotStatus,
)

__all__ = [
    "Branch",
    "BranchNotReadyError",
    "ConnectionParameters",
    "ConnectionUri",
    "CreatedBranch",
    "Endpoint",
    "NeonAPIError",
    "NeonClient",
    "Snapshot",
    "SnapshotStatus",
    "branch_lineage",
    "endpoint_matches_host",
    "extract_endpoint_id",
    "find_branch_by_id",
    "find_branch_by_name",
    "find_development_branch",
    "format_timestamp",
    "has_pooler",
    "host_from_url",
    "mask_password",
    "pooled_connection_uri",
    "pooled_host",
    "resolve_production_branch",
    "sanitize_branch_name",
]
