"""Fixture archive helpers used to seed sandbox directories."""

from gosandbox.fixtures.txtar import Archive, ArchiveFile, parse, unpack, write_tree

__all__ = [
    "Archive",
    "ArchiveFile",
    "parse",
    "unpack",
    "write_tree",
]
