"""Process entrypoint for ``gosandbox`` and ``python -m gosandbox``."""

from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING

from gosandbox.config import ConfigLoadError, ConfigValidationError
from gosandbox.sandbox.errors import CommandError, SandboxConstructionError

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


class ExitCode(IntEnum):
    SUCCESS = 0
    COMMAND_FAILED = 1
    CONFIG_ERROR = 2
    INTERNAL_ERROR = 4


# First match along the exception chain wins; order matters because
# ConfigLoadError and ConfigValidationError are ValueErrors too.
_EXIT_CODE_BY_ERROR: tuple[tuple[tuple[type[BaseException], ...], ExitCode], ...] = (
    ((CommandError,), ExitCode.COMMAND_FAILED),
    ((ConfigLoadError, ConfigValidationError, SandboxConstructionError), ExitCode.CONFIG_ERROR),
    ((FileNotFoundError, NotADirectoryError, PermissionError, ValueError), ExitCode.CONFIG_ERROR),
)


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and turn whatever happens into an :class:`ExitCode`."""

    try:
        from gosandbox.ui.cli import run_cli

        code: object = run_cli(argv)
    except SystemExit as exc:
        code = exc.code
    except KeyboardInterrupt:
        _write_stderr("interrupted")
        return int(ExitCode.COMMAND_FAILED)
    except Exception as exc:  # noqa: BLE001 - last-resort boundary for the process.
        exit_code = exit_code_for(exc)
        if exit_code is ExitCode.INTERNAL_ERROR:
            traceback.print_exception(exc, file=sys.stderr)
        else:
            _write_stderr(str(exc).strip() or type(exc).__name__)
        return int(exit_code)

    if code is None:
        return int(ExitCode.SUCCESS)
    if isinstance(code, int) and code in {item.value for item in ExitCode}:
        return code
    if isinstance(code, str) and code.strip():
        _write_stderr(code.strip())
    return int(ExitCode.INTERNAL_ERROR)


def exit_code_for(exc: BaseException) -> ExitCode:
    """Map ``exc`` (or anything it was raised from) to a process exit code."""

    for error in _causes(exc):
        for types, exit_code in _EXIT_CODE_BY_ERROR:
            if isinstance(error, types):
                return exit_code
    return ExitCode.INTERNAL_ERROR


def _causes(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None


def _write_stderr(message: str) -> None:
    sys.stderr.write(message.rstrip("\n") + "\n")


__all__ = ["ExitCode", "cli_entrypoint", "exit_code_for"]
