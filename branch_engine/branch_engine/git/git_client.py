"""Thin git client for keeping the working copy in step with database branches.

All interaction with the ``git`` binary is done through :func:`subprocess.run`
with explicit timeouts and structured error handling so that callers receive
:class:`GitClientError` exceptions with descriptive messages rather than raw
subprocess failures.
"""

from __future__ import annotations

import logging
import re
import subprocess
from collections.abc import Iterable
from pathlib import Path

from branch_engine.errors import BranchSyncError

logger = logging.getLogger(__name__)

_SUBPROCESS_TIMEOUT = 30  # seconds
_PULL_TIMEOUT = 120  # seconds

UNKNOWN_REF = "unknown"

# ---------------------------------------------------------------------------
# Git ref validation
# ---------------------------------------------------------------------------

# Matches hex SHAs (4-40 chars) and common ref patterns like branch names,
# tags, HEAD, HEAD~2, origin/main, team/feature-x etc.
_GIT_SHA_RE = re.compile(r"^[0-9a-fA-F]{4,40}$")
_GIT_REF_RE = re.compile(r"^[a-zA-Z0-9_./@~^{}\-]+$")

# Fragments of git's stderr that mean "that ref does not exist".
_NOT_FOUND_MARKERS = (
    "did not match any file(s) known to git",
    "pathspec",
    "invalid reference",
    "unknown revision",
    "not a valid object name",
    "not found",
)


def validate_git_ref(ref: str) -> None:
    """Validate a git ref or SHA to prevent option or command injection.

    Raises
    ------
    ValueError
        If *ref* is empty, starts with ``-``, or contains characters that are
        not valid in a ref name.
    """
    if not ref:
        raise ValueError("Git ref cannot be empty")
    if ref.startswith("-"):
        raise ValueError(f"Invalid git ref: {ref!r}")
    if not (_GIT_SHA_RE.match(ref) or _GIT_REF_RE.match(ref)):
        raise ValueError(f"Invalid git ref: {ref!r}")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class GitClientError(BranchSyncError):
    """Raised when a git operation fails or the repository is invalid."""


class GitNotInstalledError(GitClientError):
    """Raised when the git executable cannot be started."""


class GitRefNotFoundError(GitClientError):
    """Raised when a checkout target does not exist."""


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _run_git(
    cmd: list[str],
    repo_path: Path,
    timeout: int = _SUBPROCESS_TIMEOUT,
) -> subprocess.CompletedProcess[str]:
    """Execute a git command and return the completed process.

    Parameters
    ----------
    cmd:
        Command list (e.g. ``["git", "rev-parse", "HEAD"]``).
    repo_path:
        Working directory passed to the subprocess.
    timeout:
        Seconds before the command is abandoned.

    Raises
    ------
    GitClientError
        On non-zero exit or timeout.
    GitNotInstalledError
        If the process cannot be started.
    """
    logger.debug("Running %s in %s", " ".join(cmd), repo_path)
    try:
        return subprocess.run(
            cmd,
            cwd=repo_path,
            capture_output=True,
            text=True,
            check=True,
            timeout=timeout,
        )
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        raise GitClientError(f"git command failed: {' '.join(cmd)}\n" f"Exit code {exc.returncode}: {stderr}") from exc
    except subprocess.TimeoutExpired as exc:
        raise GitClientError(f"git command timed out after {timeout}s: {' '.join(cmd)}") from exc
    except FileNotFoundError as exc:
        raise GitNotInstalledError(
            "git executable not found. Ensure git is installed and on PATH.",
            hints=["Install git and make sure it is on PATH"],
        ) from exc


def _looks_like_missing_ref(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in _NOT_FOUND_MARKERS)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


class GitRepo:
    """Operations on a single git working copy.

    Parameters
    ----------
    path:
        Any directory inside the working tree.  Commands run with this as
        their working directory.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def __repr__(self) -> str:
        return f"GitRepo({str(self.path)!r})"

    def _git(self, *args: str, timeout: int = _SUBPROCESS_TIMEOUT) -> str:
        return _run_git(["git", *args], self.path, timeout=timeout).stdout.strip()

    # -- Inspection ---------------------------------------------------------

    def ensure_repository(self) -> None:
        """Verify that :attr:`path` is inside a git work tree.

        Raises
        ------
        GitNotInstalledError
            If git is not available.
        GitClientError
            If the directory is missing or not a repository.
        """
        if not self.path.is_dir():
            raise GitClientError(f"Repository path does not exist: {self.path}")
        try:
            inside = self._git("rev-parse", "--is-inside-work-tree")
        except GitNotInstalledError:
            raise
        except GitClientError as exc:
            raise GitClientError(
                f"Not a git repository: {self.path}",
                hints=["Run this command from inside the project's git checkout"],
            ) from exc
        if inside != "true":
            raise GitClientError(f"Not inside a git work tree: {self.path}")

    def current_branch(self) -> str | None:
        """Return the checked-out branch name, or ``None`` when HEAD is detached."""
        name = self._git("branch", "--show-current")
        return name or None

    def short_head(self) -> str | None:
        """Return the abbreviated SHA of HEAD, or ``None`` for an empty repository."""
        try:
            return self._git("rev-parse", "--short", "HEAD") or None
        except GitNotInstalledError:
            raise
        except GitClientError:
            return None

    def current_ref(self) -> str:
        """Return the branch name, else the short commit, else :data:`UNKNOWN_REF`.

        Never raises.
        """
        try:
            branch = self.current_branch()
            if branch:
                return branch
        except GitClientError:
            pass
        try:
            return self.short_head() or UNKNOWN_REF
        except GitClientError:
            return UNKNOWN_REF

    def branch_exists(self, name: str) -> bool:
        validate_git_ref(name)
        try:
            self._git("rev-parse", "--verify", "--quiet", f"refs/heads/{name}")
        except GitNotInstalledError:
            raise
        except GitClientError:
            return False
        return True

    def default_remote_branch(self, remote: str = "origin") -> str | None:
        """Return the branch ``refs/remotes/<remote>/HEAD`` points at, if any."""
        try:
            ref = self._git("symbolic-ref", f"refs/remotes/{remote}/HEAD")
        except GitNotInstalledError:
            raise
        except GitClientError:
            return None
        prefix = f"refs/remotes/{remote}/"
        name = ref[len(prefix) :] if ref.startswith(prefix) else ref
        return name or None

    # -- Mutation -----------------------------------------------------------

    def checkout(self, target: str) -> None:
        """Check out a branch or commit.

        Raises
        ------
        GitRefNotFoundError
            If git reports that *target* does not exist.
        GitNotInstalledError
            If git is not available.
        GitClientError
            For any other failure (dirty tree conflicts, locks, ...).
        """
        validate_git_ref(target)
        try:
            self._git("checkout", target)
        except GitNotInstalledError:
            raise
        except GitClientError as exc:
            if _looks_like_missing_ref(exc.message):
                raise GitRefNotFoundError(f"git ref not found: {target}") from exc
            raise

    def checkout_first(self, candidates: Iterable[str], *, include_remote_default: bool = True) -> str:
        """Check out the first candidate that succeeds and return its name.

        After the explicit candidates, the remote default branch is tried when
        *include_remote_default* is set.

        Raises
        ------
        GitRefNotFoundError
            When every candidate fails.
        """
        tried: list[str] = []
        last_error: GitClientError | None = None
        for candidate in candidates:
            if candidate in tried:
                continue
            tried.append(candidate)
            try:
                self.checkout(candidate)
                return candidate
            except GitNotInstalledError:
                raise
            except GitClientError as exc:
                logger.debug("Checkout of %s failed: %s", candidate, exc)
                last_error = exc

        if include_remote_default:
            default = self.default_remote_branch()
            if default and default not in tried:
                tried.append(default)
                try:
                    self.checkout(default)
                    return default
                except GitNotInstalledError:
                    raise
                except GitClientError as exc:
                    last_error = exc

        raise GitRefNotFoundError(
            f"Could not check out any of: {', '.join(tried) or '(none)'}",
            hints=["Please manually checkout to your production branch"],
        ) from last_error

    def create_branch(self, name: str, from_ref: str | None = None) -> None:
        """Create *name* and switch to it."""
        validate_git_ref(name)
        args = ["checkout", "-b", name]
        if from_ref is not None:
            validate_git_ref(from_ref)
            args.append(from_ref)
        self._git(*args)

    def delete_branch(self, name: str, force: bool = False) -> bool:
        """Delete a local branch and return ``True`` if a force delete was needed.

        A safe delete (``-d``) is attempted first unless *force* is set; if git
        rejects it (typically because the branch is unmerged) the branch is
        force-deleted with ``-D``.

        Raises
        ------
        GitClientError
            If the force delete also fails.
        """
        validate_git_ref(name)
        if not force:
            try:
                self._git("branch", "-d", name)
                return False
            except GitNotInstalledError:
                raise
            except GitClientError as exc:
                logger.info("Safe delete of %s rejected, forcing: %s", name, exc)
        self._git("branch", "-D", name)
        return True

    def pull(self) -> bool:
        """Pull the current branch.  Return ``False`` instead of raising on failure.

        A missing remote is common for local-only checkouts and leaves the
        working copy usable, so failures are logged rather than propagated.
        Missing git is still fatal.
        """
        try:
            self._git("pull", timeout=_PULL_TIMEOUT)
        except GitNotInstalledError:
            raise
        except GitClientError as exc:
            logger.warning("git pull failed: %s", exc)
            return False
        return True
