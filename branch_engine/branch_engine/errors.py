"""Exception taxonomy shared by every branchsync workflow.

Each error carries an optional list of troubleshooting hints that the CLI
prints beneath the message.  Warning-level conditions (pull failures, a
provider branch that is already gone, an env file that could not be
written) are never raised -- they are reported through the step reporter.
"""

from __future__ import annotations


class BranchSyncError(Exception):
    """Base class for all expected workflow failures."""

    def __init__(self, message: str, *, hints: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hints: list[str] = list(hints or [])


class ConfigurationError(BranchSyncError):
    """A required credential or configuration key is missing."""


class InputValidationError(BranchSyncError):
    """A command argument is malformed or targets a protected branch."""


class NotFoundError(BranchSyncError):
    """A required branch, snapshot, or env key does not exist."""


class EnvFileError(BranchSyncError):
    """The local environment file could not be read or written."""
