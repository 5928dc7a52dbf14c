"""Git integration for branch workflows."""

from __future__ import annotations

from branch_engine.git.git_client import (
    UNKNOWN_REF,
    GitClientError,
    GitNotInstalledError,
    GitRefNotFoundError,
    GitRepo,
    validate_git_ref,
)

__all__ = [
    "UNKNOWN_REF",
    "GitClientError",
    "GitNotInstalledError",
    "GitRefNotFoundError",
    "GitRepo",
    "validate_git_ref",
]
