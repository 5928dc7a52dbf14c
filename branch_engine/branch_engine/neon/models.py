"""Pydantic models for the Neon branching API payloads.

Only the fields the workflows read are declared; everything else in the
provider's responses is ignored.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class SnapshotStatus(str, Enum):
    CREATING = "creating"
    ACTIVE = "active"
    EXPIRED = "expired"
    ERROR = "error"


class EndpointType(str, Enum):
    READ_WRITE = "read_write"
    READ_ONLY = "read_only"


BRANCH_READY_STATE = "ready"
BRANCH_ERROR_STATE = "error"


class Branch(BaseModel):
    """A copy-on-write database branch owned by the provider."""

    id: str = Field(..., min_length=1)
    name: str
    project_id: str = ""
    parent_id: str | None = Field(
        default=None,
        description="Parent branch id; ``None`` for the root branch.",
    )
    current_state: str = ""
    pending_state: str | None = None
    primary: bool = False
    default: bool = False
    protected: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    expire_at: datetime | None = None

    @property
    def kind(self) -> str:
        """Human label used in listings: Default, Primary, or Child."""
        if self.default:
            return "Default"
        if self.primary:
            return "Primary"
        return "Child"


class Endpoint(BaseModel):
    """A compute endpoint serving a branch."""

    id: str
    host: str
    branch_id: str = ""
    project_id: str = ""
    type: str = EndpointType.READ_WRITE.value
    current_state: str = ""
    pooler_enabled: bool = False
    pooler_mode: str | None = None
    disabled: bool = False


class Operation(BaseModel):
    id: str
    action: str = ""
    status: str = ""
    branch_id: str | None = None
    endpoint_id: str | None = None


class ConnectionParameters(BaseModel):
    database: str = ""
    password: str = ""
    role: str = ""
    host: str = ""
    pooler_host: str = ""


class ConnectionUri(BaseModel):
    connection_uri: str
    connection_parameters: ConnectionParameters = Field(default_factory=ConnectionParameters)


class CreatedBranch(BaseModel):
    """Response of a branch creation: the branch plus its first endpoints and URIs."""

    branch: Branch
    endpoints: list[Endpoint] = Field(default_factory=list)
    operations: list[Operation] = Field(default_factory=list)
    connection_uris: list[ConnectionUri] = Field(default_factory=list)


class Snapshot(BaseModel):
    """A named, time-boxed capture of a branch's data."""

    id: str = Field(..., min_length=1)
    name: str
    project_id: str = ""
    branch_id: str | None = Field(
        default=None,
        description="Branch the snapshot was taken from.",
    )
    status: str = ""
    created_at: datetime | None = None
    expires_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        # Some API versions omit status on freshly listed snapshots.
        return not self.status or self.status == SnapshotStatus.ACTIVE.value
