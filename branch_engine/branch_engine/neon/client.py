"""Synchronous HTTP client for the Neon branching API.

Every public method is a single request/response round trip with no
automatic retries.  Non-2xx responses are raised as :class:`NeonAPIError`
carrying the status code and the provider's error message; callers decide
per operation whether that is fatal.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from types import TracebackType
from typing import Any

import httpx

from branch_engine.config import DEFAULT_NEON_API_URL
from branch_engine.errors import BranchSyncError
from branch_engine.neon.lookup import sanitize_branch_name
from branch_engine.neon.models import (
    BRANCH_ERROR_STATE,
    BRANCH_READY_STATE,
    Branch,
    ConnectionUri,
    CreatedBranch,
    Endpoint,
    EndpointType,
    Snapshot,
)

logger = logging.getLogger(__name__)


class NeonAPIError(BranchSyncError):
    """Raised when the provider answers with a non-success status."""

    def __init__(
        self,
        operation: str,
        status_code: int | None,
        detail: str,
        *,
        hints: list[str] | None = None,
    ) -> None:
        self.operation = operation
        self.status_code = status_code
        self.detail = detail
        status = f"{status_code} - " if status_code is not None else ""
        super().__init__(f"Failed to {operation}: {status}{detail}", hints=hints)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class BranchNotReadyError(NeonAPIError):
    """Raised when a branch does not reach the ready state in time."""


def format_timestamp(moment: datetime) -> str:
    """Render *moment* as the ISO-8601 UTC form the API expects (``…T…Z``)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _error_detail(response: httpx.Response) -> str:
    """Pull the provider's ``message`` out of an error body, else the raw text."""
    text = response.text
    try:
        payload = response.json()
    except ValueError:
        return text or response.reason_phrase
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return text or response.reason_phrase


class NeonClient:
    """Project-scoped wrapper around the Neon REST API.

    Parameters
    ----------
    api_key:
        Bearer credential sent on every request.
    project_id:
        Project whose branches and snapshots are managed.
    base_url:
        API root, e.g. ``https://console.neon.tech/api/v2``.
    timeout:
        Per-request timeout in seconds.
    transport:
        Optional httpx transport, used by tests to inject
        :class:`httpx.MockTransport`.
    """

    def __init__(
        self,
        api_key: str,
        project_id: str,
        base_url: str = DEFAULT_NEON_API_URL,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._project_id = project_id
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout),
            headers={
                "Accept": "application/json",
                "Authorization": f"Bearer {api_key}",
            },
            transport=transport,
        )

    @property
    def project_id(self) -> str:
        return self._project_id

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> NeonClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # -- Transport ------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        *,
        body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        url = f"/projects/{self._project_id}{path}"
        logger.debug("%s %s", method, url)
        try:
            response = self._client.request(method, url, json=body, params=params)
        except httpx.HTTPError as exc:
            raise NeonAPIError(
                operation,
                None,
                f"could not reach the Neon API: {exc}",
                hints=["Check your network connection"],
            ) from exc

        if response.is_error:
            detail = _error_detail(response)
            logger.debug("%s %s -> %s %s", method, url, response.status_code, detail)
            raise NeonAPIError(operation, response.status_code, detail)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise NeonAPIError(operation, response.status_code, "response was not valid JSON") from exc

    # -- Branches -------------------------------------------------------------

    def list_branches(self) -> list[Branch]:
        """Return every branch in the project."""
        data = self._request("GET", "/branches", "fetch branches")
        return [Branch.model_validate(b) for b in data.get("branches", [])]

    def get_branch(self, branch_id: str) -> Branch:
        data = self._request("GET", f"/branches/{branch_id}", "fetch branch")
        return Branch.model_validate(data["branch"])

    def create_branch(
        self,
        parent_id: str,
        name: str,
        ttl: timedelta,
        pooled: bool = True,
    ) -> CreatedBranch:
        """Create a child of *parent_id* that expires *ttl* from now.

        *name* is sanitized before submission.  A single read-write endpoint
        is requested, with connection pooling when *pooled* is set.
        """
        expire_at = datetime.now(UTC) + ttl
        payload: dict[str, Any] = {
            "endpoints": [
                {
                    "type": EndpointType.READ_WRITE.value,
                    "pooler_enabled": pooled,
                }
            ],
            "branch": {
                "parent_id": parent_id,
                "name": sanitize_branch_name(name),
                "expire_at": format_timestamp(expire_at),
            },
        }
        data = self._request("POST", "/branches", "create branch", body=payload)
        return CreatedBranch.model_validate(data)

    def delete_branch(self, branch_id: str) -> bool:
        """Delete a branch.  Return ``False`` if it was already gone.

        A 404 means the desired end state already holds, so it is logged
        as a warning instead of raised.
        """
        try:
            self._request("DELETE", f"/branches/{branch_id}", "delete branch")
        except NeonAPIError as exc:
            if exc.is_not_found:
                logger.warning("Branch %s not found on delete; treating as already deleted", branch_id)
                return False
            raise
        return True

    def get_endpoints(self, branch_id: str) -> list[Endpoint]:
        data = self._request("GET", f"/branches/{branch_id}/endpoints", "fetch endpoints")
        return [Endpoint.model_validate(e) for e in data.get("endpoints", [])]

    def get_connection_uri(
        self,
        branch_id: str,
        database: str,
        role: str,
        pooled: bool = True,
    ) -> str:
        """Return a connection string for *branch_id*."""
        data = self._request(
            "GET",
            "/connection_uri",
            "get connection URI",
            params={
                "branch_id": branch_id,
                "database_name": database,
                "role_name": role,
                "pooled": "true" if pooled else "false",
            },
        )
        return ConnectionUri.model_validate(data).connection_uri

    def wait_for_branch_ready(
        self,
        branch_id: str,
        timeout: float = 60.0,
        interval: float = 2.0,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> Branch:
        """Poll a branch until it reports ``ready``.

        Any state other than ``ready`` or ``error`` is treated as still
        provisioning and polled again after *interval* seconds.

        Raises
        ------
        NeonAPIError
            If the branch enters the ``error`` state.
        BranchNotReadyError
            If it is still provisioning after *timeout* seconds.
        """
        deadline = clock() + timeout
        while True:
            branch = self.get_branch(branch_id)
            if branch.current_state == BRANCH_READY_STATE:
                return branch
            if branch.current_state == BRANCH_ERROR_STATE:
                raise NeonAPIError(
                    "provision branch",
                    None,
                    f"branch {branch.name} ({branch.id}) entered the error state",
                )
            if clock() >= deadline:
                raise BranchNotReadyError(
                    "provision branch",
                    None,
                    f"branch {branch.name} ({branch.id}) still '{branch.current_state}' after {timeout:.0f}s",
                    hints=["Wait a moment, then fetch the connection string from the Neon Console"],
                )
            logger.debug("Branch %s is %s; polling again", branch_id, branch.current_state or "provisioning")
            sleep(interval)

    # -- Snapshots ------------------------------------------------------------

    def create_snapshot(self, branch_id: str, name: str, expires_at: datetime) -> Snapshot:
        """Capture *branch_id* now under *name*, expiring at *expires_at*."""
        payload = {"name": name, "expires_at": format_timestamp(expires_at)}
        data = self._request("POST", f"/branches/{branch_id}/snapshot", "create snapshot", body=payload)
        return Snapshot.model_validate(data["snapshot"])

    def list_snapshots(self) -> list[Snapshot]:
        data = self._request("GET", "/snapshots", "fetch snapshots")
        return [Snapshot.model_validate(s) for s in data.get("snapshots", [])]

    def find_snapshot_by_name(self, name: str) -> Snapshot | None:
        """Return the snapshot whose name equals *name* exactly, if any."""
        return next((s for s in self.list_snapshots() if s.name == name), None)

    def restore_snapshot(
        self,
        snapshot_id: str,
        new_branch_name: str,
        ttl: timedelta,
        finalize: bool = False,
    ) -> Branch:
        """Materialise a snapshot as a new branch.

        With ``finalize=False`` the branch is usable immediately but the
        restore is not committed as the branch's permanent lineage, so it
        can be inspected first.
        """
        payload = {
            "name": new_branch_name,
            "finalize_restore": finalize,
            "expire_at": format_timestamp(datetime.now(UTC) + ttl),
        }
        data = self._request("POST", f"/snapshots/{snapshot_id}/restore", "restore snapshot", body=payload)
        return Branch.model_validate(data["branch"])
