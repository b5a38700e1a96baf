"""
gosandbox — txtar fixture archives

File: src/gosandbox/fixtures/txtar.py

Purpose
- Parse and format the txtar text-archive format used to seed sandbox trees.

Format
- An optional leading comment, then zero or more files. Each file starts with a
  marker line ``-- NAME --`` and its content runs until the next marker line.
- File content is preserved byte for byte, except that a non-empty final section
  without a trailing newline gains one; ``dump`` likewise terminates any non-empty
  comment or file content with a newline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from gosandbox.utils.fs import atomic_write, is_within

if TYPE_CHECKING:
    from collections.abc import Mapping

_MARKER = b"-- "
_NEWLINE_MARKER = b"\n-- "
_MARKER_END = b" --"


@dataclass(frozen=True, slots=True)
class ArchiveFile:
    """One named file inside an archive."""

    name: str
    data: bytes


@dataclass(frozen=True, slots=True)
class Archive:
    """Parsed txtar archive: free-form comment followed by files in order."""

    comment: bytes = b""
    files: tuple[ArchiveFile, ...] = field(default_factory=tuple)


def parse(data: bytes | str) -> Archive:
    """Parse txtar ``data``. Parsing never fails; unmarked text becomes the comment."""

    raw = data.encode("utf-8") if isinstance(data, str) else data
    comment, name, rest = _find_file_marker(raw)
    files: list[ArchiveFile] = []
    while name:
        content, next_name, rest = _find_file_marker(rest)
        files.append(ArchiveFile(name=name, data=content))
        name = next_name
    return Archive(comment=comment, files=tuple(files))


def dump(archive: Archive) -> bytes:
    """Serialize ``archive`` back to txtar bytes."""

    chunks = [_fix_newline(archive.comment)]
    for item in archive.files:
        chunks.append(b"-- " + item.name.encode("utf-8") + b" --\n")
        chunks.append(_fix_newline(item.data))
    return b"".join(chunks)


def unpack(text: bytes | str) -> dict[str, bytes]:
    """Return a ``name -> content`` mapping; a later duplicate name replaces an earlier one."""

    return {item.name: item.data for item in parse(text).files}


def write_tree(root: Path | str, files: Mapping[str, bytes]) -> tuple[Path, ...]:
    """Write ``files`` under ``root``, creating parent directories as needed.

    Names are slash-separated and must stay inside ``root``.
    """

    base = Path(root)
    written: list[Path] = []
    for name in sorted(files):
        target = resolve_member(base, name)
        target.parent.mkdir(parents=True, exist_ok=True)
        atomic_write(target, files[name])
        written.append(target)
    return tuple(written)


def resolve_member(root: Path, name: str) -> Path:
    """Map archive member ``name`` to a path under ``root``."""

    relative = PurePosixPath(name)
    if not name or relative.is_absolute() or ".." in relative.parts:
        raise ValueError(f"archive member {name!r} must be a relative path inside the tree")
    target = root.joinpath(*relative.parts)
    if not is_within(target, root):
        raise ValueError(f"archive member {name!r} escapes {root!s}")
    return target


def _find_file_marker(data: bytes) -> tuple[bytes, str, bytes]:
    """Split ``data`` at the first file marker line.

    Returns ``(before, name, after)``; ``name`` is empty when no marker exists.
    """

    index = 0
    while True:
        name, after = _is_marker(data[index:])
        if name:
            return data[:index], name, after
        newline = data.find(_NEWLINE_MARKER, index)
        if newline < 0:
            return _fix_newline(data), "", b""
        index = newline + 1


def _is_marker(data: bytes) -> tuple[str, bytes]:
    if not data.startswith(_MARKER):
        return "", b""
    line, sep, after = data.partition(b"\n")
    if not sep:
        after = b""
    if not (line.endswith(_MARKER_END) and len(line) >= len(_MARKER) + len(_MARKER_END)):
        return "", b""
    raw_name = line[len(_MARKER) : len(line) - len(_MARKER_END)]
    # Undecodable bytes become U+FFFD so parsing stays total.
    name = raw_name.decode("utf-8", errors="replace").strip()
    return name, after


def _fix_newline(data: bytes) -> bytes:
    if not data or data.endswith(b"\n"):
        return data
    return data + b"\n"


__all__ = [
    "Archive",
    "ArchiveFile",
    "dump",
    "parse",
    "resolve_member",
    "unpack",
    "write_tree",
]
