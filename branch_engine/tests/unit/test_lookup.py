"""Unit tests for branch_engine.neon.lookup -- pure branch helpers."""

from __future__ import annotations

import pytest

from branch_engine.neon import (
    Branch,
    ConnectionParameters,
    ConnectionUri,
    Endpoint,
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


def _branch(name: str, branch_id: str | None = None, **kwargs) -> Branch:
    return Branch(id=branch_id or f"br-{name}", name=name, **kwargs)


# ---------------------------------------------------------------------------
# sanitize_branch_name
# ---------------------------------------------------------------------------


class TestSanitize:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("team/feature_x", "team-feature-x"),
            ("feature-1", "feature-1"),
            ("a b.c", "a-b-c"),
            ("Ünïcode", "-n-code"),
        ],
    )
    def test_replaces_unsafe_characters(self, raw: str, expected: str):
        assert sanitize_branch_name(raw) == expected

    @pytest.mark.parametrize("raw", ["team/feature_x", "already-safe", "x@y#z", ""])
    def test_idempotent(self, raw: str):
        once = sanitize_branch_name(raw)
        assert sanitize_branch_name(once) == once


# ---------------------------------------------------------------------------
# resolve_production_branch
# ---------------------------------------------------------------------------


class TestResolveProduction:
    def test_production_name_beats_default_flag(self):
        branches = [_branch("main", default=True), _branch("production")]
        assert resolve_production_branch(branches).name == "production"

    def test_main_name_beats_default_flag(self):
        branches = [_branch("trunk", default=True), _branch("main")]
        assert resolve_production_branch(branches).name == "main"

    def test_default_flag_beats_primary(self):
        branches = [_branch("a", primary=True), _branch("b", default=True)]
        assert resolve_production_branch(branches).name == "b"

    def test_primary_fallback(self):
        branches = [_branch("a"), _branch("b", primary=True)]
        assert resolve_production_branch(branches).name == "b"

    def test_none(self):
        assert resolve_production_branch([_branch("a"), _branch("b")]) is None


# ---------------------------------------------------------------------------
# find_* helpers
# ---------------------------------------------------------------------------


class TestFindBranches:
    def test_development_order(self):
        branches = [_branch("develop"), _branch("dev"), _branch("development")]
        assert find_development_branch(branches).name == "development"
        assert find_development_branch(branches[:2]).name == "dev"

    def test_development_missing(self):
        assert find_development_branch([_branch("main")]) is None

    def test_by_name_exact_first(self):
        branches = [_branch("team-feature-x", "br-sanitized"), _branch("team/feature_x", "br-raw")]
        assert find_branch_by_name(branches, "team/feature_x").id == "br-raw"

    def test_by_name_sanitized_fallback(self):
        branches = [_branch("team-feature-x")]
        assert find_branch_by_name(branches, "team/feature_x").name == "team-feature-x"

    def test_by_name_missing(self):
        assert find_branch_by_name([_branch("main")], "feature") is None

    def test_by_id(self):
        branches = [_branch("a", "br-1"), _branch("b", "br-2")]
        assert find_branch_by_id(branches, "br-2").name == "b"
        assert find_branch_by_id(branches, None) is None
        assert find_branch_by_id(branches, "br-3") is None


class TestLineage:
    def test_root_first(self):
        root = _branch("main", "br-1")
        child = _branch("dev", "br-2", parent_id="br-1")
        grandchild = _branch("feat", "br-3", parent_id="br-2")
        names = [b.name for b in branch_lineage(grandchild, [root, child, grandchild])]
        assert names == ["main", "dev", "feat"]

    def test_stops_at_unknown_parent(self):
        orphan = _branch("feat", "br-3", parent_id="br-gone")
        assert branch_lineage(orphan, [orphan]) == [orphan]

    def test_cycle_terminates(self):
        a = _branch("a", "br-a", parent_id="br-b")
        b = _branch("b", "br-b", parent_id="br-a")
        assert [x.name for x in branch_lineage(a, [a, b])] == ["b", "a"]


# ---------------------------------------------------------------------------
# Connection strings and hosts
# ---------------------------------------------------------------------------

DIRECT_HOST = "ep-cool-darkness-123456.us-east-2.aws.neon.tech"
POOLED_HOST = "ep-cool-darkness-123456-pooler.us-east-2.aws.neon.tech"


class TestConnectionStrings:
    def test_pooled_uri_swaps_host(self):
        uri = ConnectionUri(
            connection_uri=f"postgresql://u:p@{DIRECT_HOST}/neondb?sslmode=require",
            connection_parameters=ConnectionParameters(host=DIRECT_HOST, pooler_host=POOLED_HOST),
        )
        assert pooled_connection_uri(uri) == f"postgresql://u:p@{POOLED_HOST}/neondb?sslmode=require"
        assert has_pooler(uri)

    def test_no_pooler_keeps_uri(self):
        uri = ConnectionUri(connection_uri=f"postgresql://u:p@{DIRECT_HOST}/neondb")
        assert pooled_connection_uri(uri) == uri.connection_uri
        assert not has_pooler(uri)

    def test_host_from_url(self):
        assert host_from_url(f'"postgresql://u:p@{POOLED_HOST}/neondb"') == POOLED_HOST
        assert host_from_url("not a url") is None

    @pytest.mark.parametrize("host", [DIRECT_HOST, POOLED_HOST])
    def test_extract_endpoint_id(self, host: str):
        assert extract_endpoint_id(host) == "ep-cool-darkness-123456"

    def test_extract_endpoint_id_rejects_foreign_host(self):
        assert extract_endpoint_id("db.example.com") is None

    def test_pooled_host(self):
        assert pooled_host(DIRECT_HOST) == POOLED_HOST

    def test_endpoint_matches(self):
        endpoint = Endpoint(id="ep-cool-darkness-123456", host=DIRECT_HOST)
        assert endpoint_matches_host(endpoint, DIRECT_HOST, None)
        assert endpoint_matches_host(endpoint, POOLED_HOST, None)
        assert endpoint_matches_host(endpoint, "other.neon.tech", "ep-cool-darkness-123456")
        assert not endpoint_matches_host(endpoint, "other.neon.tech", "ep-other")

    def test_mask_password(self):
        masked = mask_password(f"postgresql://user:s3cret@{DIRECT_HOST}/neondb")
        assert masked == f"postgresql://user:***@{DIRECT_HOST}/neondb"
        assert "s3cret" not in masked


class TestProductionExamples:
    def test_name_precedence_over_default_flag(self):
        branches = [_branch("staging"), _branch("main", default=False), _branch("production", default=False)]
        assert resolve_production_branch(branches).name == "production"

    def test_default_flag_fallback(self):
        branches = [_branch("staging", default=True), _branch("feat-x")]
        assert resolve_production_branch(branches).name == "staging"
