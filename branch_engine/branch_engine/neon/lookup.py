"""Pure helpers for naming, finding, and describing provider branches.

Nothing here performs I/O; the functions operate on models already fetched
by :class:`~branch_engine.neon.client.NeonClient`.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence
from urllib.parse import urlsplit

from branch_engine.neon.models import Branch, ConnectionUri, Endpoint

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9-]")

# ep-cool-darkness-123456.c-2.us-west-2.aws.neon.tech (direct)
# ep-cool-darkness-123456-pooler.c-2.us-west-2.aws.neon.tech (pooled)
_ENDPOINT_HOST_RE = re.compile(r"^(ep-[a-z0-9-]+?)(?:-pooler)?\..*\.neon\.tech$")
_ENDPOINT_PREFIX_RE = re.compile(r"^(ep-[a-z0-9-]+)\.")
_PASSWORD_RE = re.compile(r":[^:@/]+@")

DEVELOPMENT_BRANCH_NAMES = ("development", "dev", "develop")


def sanitize_branch_name(name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9-]`` with ``-``.

    The provider only accepts those characters, so ``team/feature_x`` becomes
    ``team-feature-x``.  The mapping is idempotent.
    """
    return _UNSAFE_NAME_CHARS.sub("-", name)


def _first(branches: Iterable[Branch], predicate: Callable[[Branch], bool]) -> Branch | None:
    return next((b for b in branches if predicate(b)), None)


def resolve_production_branch(branches: Sequence[Branch]) -> Branch | None:
    """Pick the production branch by fixed precedence.

    Exact name ``production``, else exact name ``main``, else the first branch
    flagged default, else the first flagged primary.  Name matches always beat
    flags.
    """
    candidates: list[Callable[[Branch], bool]] = [
        lambda b: b.name == "production",
        lambda b: b.name == "main",
        lambda b: b.default,
        lambda b: b.primary,
    ]
    for predicate in candidates:
        match = _first(branches, predicate)
        if match is not None:
            return match
    return None


def find_development_branch(branches: Sequence[Branch]) -> Branch | None:
    """Return the first branch named ``development``, ``dev`` or ``develop`` in that order."""
    for name in DEVELOPMENT_BRANCH_NAMES:
        match = _first(branches, lambda b, n=name: b.name == n)  # type: ignore[misc]
        if match is not None:
            return match
    return None


def find_branch_by_name(branches: Sequence[Branch], name: str) -> Branch | None:
    """Find a branch by exact name, then by the sanitized form of *name*.

    Feature branches are created under their sanitized name, but older
    branches may have been created by hand with the raw git name.
    """
    match = _first(branches, lambda b: b.name == name)
    if match is not None:
        return match
    sanitized = sanitize_branch_name(name)
    if sanitized == name:
        return None
    return _first(branches, lambda b: b.name == sanitized)


def find_branch_by_id(branches: Sequence[Branch], branch_id: str | None) -> Branch | None:
    if branch_id is None:
        return None
    return _first(branches, lambda b: b.id == branch_id)


def branch_lineage(branch: Branch, branches: Sequence[Branch]) -> list[Branch]:
    """Return the parent chain of *branch*, root first and *branch* last.

    Walking stops at a branch with no parent, at a parent id not present in
    *branches*, or on a repeated id.
    """
    chain = [branch]
    seen = {branch.id}
    current = branch
    while current.parent_id:
        parent = find_branch_by_id(branches, current.parent_id)
        if parent is None or parent.id in seen:
            break
        chain.append(parent)
        seen.add(parent.id)
        current = parent
    chain.reverse()
    return chain


def pooled_connection_uri(uri: ConnectionUri) -> str:
    """Return the pooled variant of *uri* when the provider supplied a pooler host."""
    params = uri.connection_parameters
    if params.pooler_host and params.host and params.host in uri.connection_uri:
        return uri.connection_uri.replace(params.host, params.pooler_host, 1)
    return uri.connection_uri


def has_pooler(uri: ConnectionUri) -> bool:
    return bool(uri.connection_parameters.pooler_host)


def host_from_url(database_url: str) -> str | None:
    """Return the hostname of a connection URL, or ``None`` if it cannot be parsed."""
    try:
        host = urlsplit(database_url.strip().strip("\"'")).hostname
    except ValueError:
        return None
    return host or None


def extract_endpoint_id(host: str) -> str | None:
    """Extract ``ep-…`` from a direct or pooled provider hostname."""
    match = _ENDPOINT_HOST_RE.match(host)
    return match.group(1) if match else None


def pooled_host(host: str) -> str:
    """Return the ``-pooler`` variant of a direct endpoint host."""
    return _ENDPOINT_PREFIX_RE.sub(r"\1-pooler.", host, count=1)


def endpoint_matches_host(endpoint: Endpoint, host: str, endpoint_id: str | None) -> bool:
    """Whether *endpoint* serves *host* directly, through its pooler, or by id."""
    if endpoint.host == host:
        return True
    if pooled_host(endpoint.host) == host:
        return True
    return endpoint_id is not None and endpoint.id == endpoint_id


def mask_password(database_url: str) -> str:
    """Replace the password of a connection URL with ``***``."""
    return _PASSWORD_RE.sub(":***@", database_url, count=1)
