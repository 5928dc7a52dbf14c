"""Line-preserving edits of a flat ``KEY=VALUE`` environment file.

The text helpers (:func:`get_value`, :func:`upsert`, :func:`backup`,
:func:`remove`) are pure: they take and return the whole file as a string
and leave every line other than the targeted key byte-for-byte untouched.
Keys are matched at the start of a line and case-sensitively.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path

from branch_engine.errors import EnvFileError

logger = logging.getLogger(__name__)

DATABASE_URL = "DATABASE_URL"
PRODUCTION_DATABASE_URL = "PRODUCTION_DATABASE_URL"
DEVELOPMENT_DATABASE_URL = "DEVELOPMENT_DATABASE_URL"
ORIGINAL_DATABASE_URL = "ORIGINAL_DATABASE_URL"

_LINE_RE = re.compile(r"(?<=\n)")


def read_env_file(path: Path) -> str:
    """Return the file's text, or ``""`` if it does not exist."""
    try:
        with path.open(encoding="utf-8", newline="") as fh:
            return fh.read()
    except FileNotFoundError:
        return ""
    except OSError as exc:
        raise EnvFileError(f"Could not read {path}: {exc}") from exc


def write_env_file(path: Path, text: str) -> None:
    """Replace the file's contents with *text*.

    Written to a sibling temp file and moved into place so a crash never
    leaves a half-written file.  There is no protection against concurrent
    writers.
    """
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
                fh.write(text)
            if path.exists():
                os.chmod(tmp_name, path.stat().st_mode & 0o777)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise EnvFileError(f"Could not write {path}: {exc}") from exc
    logger.debug("Wrote %s", path)


def _split_lines(text: str) -> list[str]:
    """Split after each ``\\n`` only; other control characters stay inside their line."""
    return [line for line in _LINE_RE.split(text) if line]


def _find_line(lines: list[str], key: str) -> int | None:
    prefix = f"{key}="
    for index, line in enumerate(lines):
        if line.startswith(prefix):
            return index
    return None


def _unquote(raw: str) -> str:
    value = raw.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def _line_ending(line: str) -> str:
    if line.endswith("\r\n"):
        return "\r\n"
    if line.endswith("\n"):
        return "\n"
    return ""


def get_value(text: str, key: str) -> str | None:
    """Return the unquoted value of the first ``KEY=`` line, or ``None``."""
    lines = _split_lines(text)
    index = _find_line(lines, key)
    if index is None:
        return None
    line = lines[index]
    return _unquote(line[len(key) + 1 : len(line) - len(_line_ending(line))])


def has_key(text: str, key: str) -> bool:
    return _find_line(_split_lines(text), key) is not None


def upsert(text: str, key: str, value: str) -> str:
    """Set *key* to *value*, replacing the first ``KEY=`` line or appending one.

    The written line is ``KEY="value"``.  A replaced line keeps its original
    line terminator; an appended line ends with ``\\n``.
    """
    lines = _split_lines(text)
    entry = f'{key}="{value}"'
    index = _find_line(lines, key)
    if index is not None:
        lines[index] = entry + _line_ending(lines[index])
        return "".join(lines)

    if lines and not _line_ending(lines[-1]):
        lines[-1] += "\n"
    lines.append(entry + "\n")
    return "".join(lines)


def backup(text: str, key: str, backup_key: str) -> str:
    """Copy the current value of *key* into *backup_key*.

    Nothing changes when *backup_key* already exists (an earlier backup in
    the same chain of operations is never clobbered) or when *key* has no
    value to save.
    """
    if has_key(text, backup_key):
        return text
    current = get_value(text, key)
    if not current:
        return text
    return upsert(text, backup_key, current)


def remove(text: str, key: str) -> str:
    """Drop the first ``KEY=`` line, leaving every other line unchanged."""
    lines = _split_lines(text)
    index = _find_line(lines, key)
    if index is None:
        return text
    del lines[index]
    return "".join(lines)
