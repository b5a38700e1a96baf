"""
gosandbox — filesystem utilities

File: src/gosandbox/utils/fs.py

Purpose
- Provide minimal filesystem helpers for atomic writes, containment checks, and
  tree removal that copes with read-only module-cache directories.

Functional requirements
- Atomic writes use temp files in the destination directory and replace in a single step.
- Tree removal never follows symlinks out of the tree being removed.

Non-functional requirements
- Standard library only and cross-platform behavior where feasible.
"""

from __future__ import annotations

import contextlib
import os
import shutil
import stat
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

PathLike = str | os.PathLike[str]

__all__ = [
    "atomic_write",
    "is_within",
    "remove_tree",
]


def atomic_write(path: PathLike, data: bytes | str, *, encoding: str = "utf-8") -> None:
    """Replace ``path`` with ``data`` through a single rename.

    A concurrently running ``go`` process sees the old contents or the new
    ones, never a partial file. The parent directory must already exist.
    Data is not fsynced.
    """

    target = Path(path)
    payload = data.encode(encoding) if isinstance(data, str) else data
    with tempfile.NamedTemporaryFile(
        dir=target.parent,
        prefix=f".{target.name}.",
        suffix=".tmp",
        delete=False,
    ) as handle:
        handle.write(payload)
    try:
        os.replace(handle.name, target)
    except OSError:
        with contextlib.suppress(OSError):
            os.unlink(handle.name)
        raise


def is_within(child: PathLike, parent: PathLike) -> bool:
    """Return ``True`` if resolved ``child`` is within resolved ``parent``."""

    resolved_parent = Path(parent).resolve(strict=False)
    resolved_child = Path(child).resolve(strict=False)
    try:
        resolved_child.relative_to(resolved_parent)
    except ValueError:
        return False
    return True


def remove_tree(path: PathLike) -> None:
    """
    Recursively delete ``path``.

    ``go`` writes module-cache directories without the owner write bit, so a
    failed unlink/rmdir restores write permission on the parent and retries
    once before giving up. Missing paths are not an error.
    """

    target = Path(path)
    if not target.exists() and not target.is_symlink():
        return
    if target.is_symlink() or not target.is_dir():
        target.unlink()
        return
    shutil.rmtree(target, onexc=_retry_writable)


def _retry_writable(
    function: Callable[[str], object], failed_path: str, exc: BaseException
) -> None:
    if not isinstance(exc, PermissionError):
        raise exc
    parent = os.path.dirname(failed_path)
    for candidate in (parent, failed_path):
        with contextlib.suppress(FileNotFoundError):
            mode = os.lstat(candidate).st_mode
            if not stat.S_ISLNK(mode):
                os.chmod(candidate, mode | stat.S_IWUSR | stat.S_IXUSR | stat.S_IRUSR)
    function(failed_path)
