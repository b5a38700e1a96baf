"""Human-readable output for the gosandbox CLI.

Command output from ``go`` is copied through unchanged; everything gosandbox
adds around it (section titles, event lists) goes through :class:`CLIRenderer`
so ``--no-color`` and ``NO_COLOR`` are honoured in one place.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from collections.abc import Iterable

_BOLD = "\033[1m"
_RESET = "\033[0m"


class CLIRenderer:
    def __init__(self, *, color: bool = False, out: TextIO | None = None) -> None:
        self._color = color
        self._out = out

    @property
    def out(self) -> TextIO:
        return self._out or sys.stdout

    def text(self, line: str) -> None:
        print(line, file=self.out)

    def section(self, title: str) -> None:
        """Blank line, then ``title`` (bold when color is enabled)."""

        styled = f"{_BOLD}{title}{_RESET}" if self._color else title
        print(f"\n{styled}", file=self.out)

    def items(self, entries: Iterable[str]) -> None:
        for entry in entries:
            print(f"  - {entry}", file=self.out)

    def stream(self, payload: str, *, target: TextIO | None = None) -> None:
        """Copy captured process output verbatim, ending it with a newline."""

        if not payload:
            return
        sink = target or self.out
        sink.write(payload if payload.endswith("\n") else payload + "\n")


def create_renderer(*, no_color: bool = False, out: TextIO | None = None) -> CLIRenderer:
    """Build a renderer; color needs a TTY and neither ``--no-color`` nor ``NO_COLOR``."""

    sink = out or sys.stdout
    color = not no_color and not os.environ.get("NO_COLOR") and sink.isatty()
    return CLIRenderer(color=color, out=out)


__all__ = ["CLIRenderer", "create_renderer"]
