"""Shared fixtures for CLI tests.

The Neon client and the git working copy are replaced with mocks at the
point where ``branch_cli.commands._common`` builds them, so commands run
their real workflows against deterministic collaborators.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from branch_engine.git import GitRepo
from branch_engine.neon import NeonClient

_ENV_VARS = (
    "NEON_API_KEY",
    "NEON_PROJECT_ID",
    "NEON_API_URL",
    "DATABASE_URL",
    "PRODUCTION_DATABASE_URL",
    "DEVELOPMENT_DATABASE_URL",
    "BRANCHSYNC_ENV_FILE",
    "BRANCHSYNC_ENV_UPDATE_MODE",
)


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def env_file(tmp_path: Path) -> Path:
    path = tmp_path / ".env"
    path.write_text(
        'NEON_API_KEY="napi_test"\n'
        'NEON_PROJECT_ID="proj-1"\n'
        'DATABASE_URL="postgresql://u:p@ep-feat-1-pooler.us-east-2.aws.neon.tech/neondb"\n'
        'PRODUCTION_DATABASE_URL="postgresql://u:p@ep-main-1.us-east-2.aws.neon.tech/neondb"\n',
        encoding="utf-8",
    )
    return path


@pytest.fixture()
def mock_client() -> Iterator[MagicMock]:
    """Patch the client factory; the yielded mock is what the commands use."""
    instance = MagicMock(spec=NeonClient)
    instance.__enter__.return_value = instance
    with patch("branch_cli.commands._common.NeonClient", return_value=instance) as factory:
        instance.factory = factory
        yield instance


@pytest.fixture()
def mock_repo() -> Iterator[MagicMock]:
    instance = MagicMock(spec=GitRepo)
    instance.current_ref.return_value = "team/feature-x"
    instance.current_branch.return_value = "team/feature-x"
    instance.short_head.return_value = "abc1234"
    instance.pull.return_value = True
    instance.checkout_first.return_value = "main"
    with patch("branch_cli.commands._common.GitRepo", return_value=instance):
        yield instance
