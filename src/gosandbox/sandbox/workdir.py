"""Fixture-seeded working directory with structured file-change notifications."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlparse

import structlog

from gosandbox.fixtures import txtar
from gosandbox.utils.fs import atomic_write

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = structlog.get_logger(__name__)


class FileChangeType(IntEnum):
    """File change kinds, numbered as in the language server protocol."""

    CREATED = 1
    CHANGED = 2
    DELETED = 3


@dataclass(frozen=True, slots=True)
class ProtocolFileEvent:
    """Wire-level change record: document URI plus change kind."""

    uri: str
    type: FileChangeType


@dataclass(frozen=True, slots=True)
class FileEvent:
    """A change to one file in the working directory."""

    path: str
    protocol_event: ProtocolFileEvent

    @classmethod
    def for_path(cls, path: Path | str, change: FileChangeType) -> FileEvent:
        absolute = Path(path)
        return cls(
            path=str(absolute),
            protocol_event=ProtocolFileEvent(uri=to_uri(absolute), type=change),
        )


Watcher = Callable[[tuple[FileEvent, ...]], object]


def to_uri(path: Path | str) -> str:
    """Return the ``file://`` URI for absolute ``path``."""

    return Path(path).absolute().as_uri()


class Workdir:
    """A working directory populated from a txtar fixture.

    Mutations made through :meth:`write_file` and :meth:`remove_file` are
    reported to every registered watcher. Changes made behind its back (for
    example by a subprocess) are not observed.
    """

    def __init__(self, workdir: Path | str, txt: bytes | str = "") -> None:
        root = Path(workdir)
        if not root.is_dir():
            raise NotADirectoryError(f"{root!s} is not a directory")
        self._root = root
        self._watchers: list[Watcher] = []
        self._watchers_lock = threading.Lock()
        txtar.write_tree(root, txtar.unpack(txt))

    @property
    def path(self) -> Path:
        return self._root

    def root_uri(self) -> str:
        return to_uri(self._root)

    def file_path(self, path: str) -> Path:
        """Resolve ``path`` (absolute, or relative to the workdir root)."""

        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return txtar.resolve_member(self._root, path)

    def uri(self, path: str) -> str:
        return to_uri(self.file_path(path))

    def uri_to_path(self, uri: str) -> str:
        """Return the workdir-relative, slash-separated path for ``uri``."""

        parsed = urlparse(uri)
        if parsed.scheme != "file":
            raise ValueError(f"not a file URI: {uri!r}")
        absolute = Path(unquote(parsed.path))
        return absolute.relative_to(self._root).as_posix()

    def add_watcher(self, watcher: Watcher) -> None:
        with self._watchers_lock:
            self._watchers.append(watcher)

    def read_file(self, path: str) -> str:
        return self.file_path(path).read_text(encoding="utf-8")

    def write_file(self, path: str, content: str) -> None:
        target = self.file_path(path)
        change = FileChangeType.CHANGED if target.exists() else FileChangeType.CREATED
        target.parent.mkdir(parents=True, exist_ok=True)
        atomic_write(target, content)
        self.send_events((FileEvent.for_path(target, change),))

    def remove_file(self, path: str) -> None:
        target = self.file_path(path)
        target.unlink()
        self.send_events((FileEvent.for_path(target, FileChangeType.DELETED),))

    def list_files(self) -> tuple[str, ...]:
        """Return all regular files, workdir-relative and sorted."""

        files = (item for item in self._root.rglob("*") if item.is_file())
        return tuple(sorted(item.relative_to(self._root).as_posix() for item in files))

    def send_events(self, events: Sequence[FileEvent]) -> None:
        """Deliver ``events`` to every watcher, in registration order."""

        batch = tuple(events)
        if not batch:
            return
        with self._watchers_lock:
            watchers = tuple(self._watchers)
        logger.debug("workdir_events", count=len(batch), watchers=len(watchers))
        for watcher in watchers:
            watcher(batch)


__all__ = [
    "FileChangeType",
    "FileEvent",
    "ProtocolFileEvent",
    "Watcher",
    "Workdir",
    "to_uri",
]
