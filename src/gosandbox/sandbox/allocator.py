"""Temporary directory tree allocation for one sandbox."""

from __future__ import annotations

import tempfile
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path

import structlog

from gosandbox.constants import DEFAULT_NAME_PREFIX, GOPATH_DIR, PROXY_DIR, WORK_DIR
from gosandbox.sandbox.errors import SandboxConstructionError
from gosandbox.utils.fs import remove_tree

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SandboxDirectories:
    """Resolved directory bundle owned by exactly one sandbox."""

    root: Path
    gopath: Path
    workdir: Path
    proxydir: Path


def allocate_directories(
    name: str,
    *,
    temp_dir: Path | str | None = None,
    prefix: str = DEFAULT_NAME_PREFIX,
) -> SandboxDirectories:
    """Create a uniquely named root with ``gopath``, ``work`` and ``proxy`` inside.

    Either the whole tree exists on return or nothing does: each creation step
    registers its rollback, and a failure unwinds them in reverse order before
    the error propagates.
    """

    try:
        root = Path(tempfile.mkdtemp(prefix=f"{prefix}{name}-", dir=temp_dir))
    except OSError as exc:
        raise SandboxConstructionError(f"creating temporary root: {exc}") from exc

    with ExitStack() as rollback:
        rollback.callback(remove_tree, root)
        created: dict[str, Path] = {}
        for subdir in (GOPATH_DIR, WORK_DIR, PROXY_DIR):
            path = root / subdir
            try:
                path.mkdir(mode=0o755)
            except OSError as exc:
                logger.warning("sandbox_directory_failed", root=str(root), subdir=subdir)
                raise SandboxConstructionError(f"creating {subdir} directory: {exc}") from exc
            rollback.callback(path.rmdir)
            created[subdir] = path
        rollback.pop_all()

    return SandboxDirectories(
        root=root,
        gopath=created[GOPATH_DIR],
        workdir=created[WORK_DIR],
        proxydir=created[PROXY_DIR],
    )


def remove_directories(directories: SandboxDirectories) -> None:
    """Recursively delete the sandbox root and everything below it."""

    remove_tree(directories.root)


__all__ = ["SandboxDirectories", "allocate_directories", "remove_directories"]
