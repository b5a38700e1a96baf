"""Synthesized change events for known go command side effects.

Subprocess writes are not observed. A policy recognizes a command from its
verb and stderr and reports the files that command is known to create.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from gosandbox.constants import GO_MOD_FILE, MODULE_INIT_MARKER
from gosandbox.sandbox.workdir import FileChangeType, FileEvent

SideEffectPolicy = Callable[[str, str, Path], tuple[FileEvent, ...]]
"""Maps ``(verb, stderr_text, workdir)`` to the events to deliver after a successful command."""


def module_file_created_events(verb: str, stderr: str, workdir: Path) -> tuple[FileEvent, ...]:
    """Report ``<workdir>/go.mod`` as created when go says it just wrote one.

    Only the stderr marker is consulted; ``verb`` is part of the policy
    signature for policies that key on the command.
    """

    if not stderr.startswith(MODULE_INIT_MARKER):
        return ()
    return (FileEvent.for_path(workdir / GO_MOD_FILE, FileChangeType.CREATED),)


def no_side_effects(verb: str, stderr: str, workdir: Path) -> tuple[FileEvent, ...]:
    return ()


__all__ = ["SideEffectPolicy", "module_file_created_events", "no_side_effects"]
