"""Unit tests for branch_engine.envfile -- line-preserving env file edits."""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from branch_engine.envfile import (
    DATABASE_URL,
    ORIGINAL_DATABASE_URL,
    backup,
    get_value,
    has_key,
    read_env_file,
    remove,
    upsert,
    write_env_file,
)
from branch_engine.errors import EnvFileError

SAMPLE = "# comment\n" "NEON_API_KEY=abc\n" 'DATABASE_URL="postgresql://old"\n' "\n" "OTHER='x y'\n"


# ---------------------------------------------------------------------------
# get_value / has_key
# ---------------------------------------------------------------------------


class TestGetValue:
    def test_unquotes_double_quotes(self):
        assert get_value(SAMPLE, DATABASE_URL) == "postgresql://old"

    def test_unquotes_single_quotes(self):
        assert get_value(SAMPLE, "OTHER") == "x y"

    def test_bare_value(self):
        assert get_value(SAMPLE, "NEON_API_KEY") == "abc"

    def test_missing_key(self):
        assert get_value(SAMPLE, "NOPE") is None

    def test_prefix_of_another_key_does_not_match(self):
        text = "DATABASE_URL_OLD=x\n"
        assert get_value(text, DATABASE_URL) is None
        assert not has_key(text, DATABASE_URL)

    def test_case_sensitive(self):
        assert get_value("database_url=x\n", DATABASE_URL) is None


# ---------------------------------------------------------------------------
# upsert
# ---------------------------------------------------------------------------


class TestUpsert:
    def test_replaces_only_target_line(self):
        updated = upsert(SAMPLE, DATABASE_URL, "postgresql://new")
        old_lines = SAMPLE.splitlines()
        new_lines = updated.splitlines()
        assert len(old_lines) == len(new_lines)
        for old, new in zip(old_lines, new_lines, strict=True):
            if old.startswith("DATABASE_URL="):
                assert new == 'DATABASE_URL="postgresql://new"'
            else:
                assert new == old

    def test_appends_when_missing(self):
        updated = upsert("A=1\n", DATABASE_URL, "u")
        assert updated == 'A=1\nDATABASE_URL="u"\n'

    def test_appends_newline_to_unterminated_last_line(self):
        assert upsert("A=1", "B", "2") == 'A=1\nB="2"\n'

    def test_empty_text(self):
        assert upsert("", "B", "2") == 'B="2"\n'

    def test_keeps_crlf_line_ending(self):
        updated = upsert("A=1\r\nDATABASE_URL=old\r\n", DATABASE_URL, "new")
        assert updated == 'A=1\r\nDATABASE_URL="new"\r\n'

    def test_only_first_occurrence_replaced(self):
        updated = upsert("K=1\nK=2\n", "K", "3")
        assert updated == 'K="3"\nK=2\n'


# ---------------------------------------------------------------------------
# backup / remove
# ---------------------------------------------------------------------------


class TestBackup:
    def test_copies_current_value(self):
        updated = backup(SAMPLE, DATABASE_URL, ORIGINAL_DATABASE_URL)
        assert get_value(updated, ORIGINAL_DATABASE_URL) == "postgresql://old"
        assert get_value(updated, DATABASE_URL) == "postgresql://old"

    def test_existing_backup_is_not_clobbered(self):
        text = SAMPLE + 'ORIGINAL_DATABASE_URL="postgresql://first"\n'
        assert backup(text, DATABASE_URL, ORIGINAL_DATABASE_URL) == text

    def test_nothing_to_back_up(self):
        assert backup("A=1\n", DATABASE_URL, ORIGINAL_DATABASE_URL) == "A=1\n"


class TestRemove:
    def test_drops_line(self):
        text = "A=1\nB=2\nC=3\n"
        assert remove(text, "B") == "A=1\nC=3\n"

    def test_missing_key_unchanged(self):
        assert remove(SAMPLE, "NOPE") == SAMPLE


class TestLineSeparators:
    """Only ``\\n`` ends a line; other separators belong to the line they sit in."""

    SEPARATORS = ["\r", "\x0c", "\u2028", "\x1e"]

    @pytest.mark.parametrize("sep", SEPARATORS)
    def test_upsert_then_read_back(self, sep: str):
        updated = upsert(f"DATABASE_URL=old{sep}B=1\n", DATABASE_URL, "new")
        assert updated == 'DATABASE_URL="new"\n'
        assert get_value(updated, DATABASE_URL) == "new"

    @pytest.mark.parametrize("sep", SEPARATORS)
    def test_other_lines_byte_identical(self, sep: str):
        text = f"A=1{sep}x\nDATABASE_URL=old\nC=3{sep}\n"
        updated = upsert(text, DATABASE_URL, "new")
        assert updated == f'A=1{sep}x\nDATABASE_URL="new"\nC=3{sep}\n'
        assert get_value(updated, "A") == f"1{sep}x"

    @pytest.mark.parametrize("sep", SEPARATORS)
    def test_separator_does_not_start_a_key(self, sep: str):
        text = f"A=1{sep}DATABASE_URL=hidden\n"
        assert get_value(text, DATABASE_URL) is None
        assert not has_key(text, DATABASE_URL)

    @pytest.mark.parametrize("sep", SEPARATORS)
    def test_remove_keeps_neighbours(self, sep: str):
        text = f"A=1{sep}x\nDATABASE_URL=old\nC=3{sep}\n"
        assert remove(text, DATABASE_URL) == f"A=1{sep}x\nC=3{sep}\n"


# ---------------------------------------------------------------------------
# read_env_file / write_env_file
# ---------------------------------------------------------------------------


class TestFileIO:
    def test_read_missing_file_is_empty(self, tmp_path: Path):
        assert read_env_file(tmp_path / "absent.env") == ""

    def test_write_then_read(self, tmp_path: Path):
        path = tmp_path / ".env"
        write_env_file(path, SAMPLE)
        assert read_env_file(path) == SAMPLE
        # No temp files left behind.
        assert [p.name for p in tmp_path.iterdir()] == [".env"]

    def test_line_endings_survive_a_round_trip(self, tmp_path: Path):
        path = tmp_path / ".env"
        path.write_bytes(b"A=1\r\nB=2\rC\nDATABASE_URL=old\r\n")
        write_env_file(path, upsert(read_env_file(path), DATABASE_URL, "new"))
        assert path.read_bytes() == b'A=1\r\nB=2\rC\nDATABASE_URL="new"\r\n'

    def test_write_preserves_mode(self, tmp_path: Path):
        path = tmp_path / ".env"
        path.write_text("A=1\n", encoding="utf-8")
        os.chmod(path, 0o600)
        write_env_file(path, "A=2\n")
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_write_into_missing_directory_raises(self, tmp_path: Path):
        with pytest.raises(EnvFileError, match="Could not write"):
            write_env_file(tmp_path / "nope" / ".env", "A=1\n")
