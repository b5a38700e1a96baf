"""Utility exports for filesystem and concurrency helpers."""

from gosandbox.utils.concurrency import CancellationToken, run_with_timeout
from gosandbox.utils.fs import atomic_write, is_within, remove_tree

__all__ = [
    "CancellationToken",
    "atomic_write",
    "is_within",
    "remove_tree",
    "run_with_timeout",
]
