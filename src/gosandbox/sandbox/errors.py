"""Error hierarchy for sandbox construction, command execution, and teardown."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gosandbox.sandbox.executor import CommandResult


class SandboxError(RuntimeError):
    """Base error for sandbox failures."""


class SandboxConstructionError(SandboxError):
    """Raised when directories or fixtures cannot be set up."""


class CommandError(SandboxError):
    """Base error for a go command that did not complete successfully.

    ``result`` always carries whatever output was captured, so callers can
    inspect stderr even on failure.
    """

    def __init__(self, message: str, result: CommandResult) -> None:
        super().__init__(message)
        self.result = result

    @property
    def stderr_text(self) -> str:
        return self.result.stderr_text


class CommandFailedError(CommandError):
    """Raised on a non-zero exit status or when the process cannot be spawned."""


class CommandCancelledError(CommandError):
    """Raised when the caller's cancellation token fired mid-command."""


class CommandTimeoutError(CommandError):
    """Raised when a command exceeds its timeout."""


class SandboxCloseError(SandboxError):
    """Raised when teardown failed; both underlying failures are kept."""

    def __init__(
        self,
        *,
        clean_error: BaseException | None,
        remove_error: BaseException | None,
    ) -> None:
        self.clean_error = clean_error
        self.remove_error = remove_error
        super().__init__(
            "error(s) cleaning sandbox: "
            f"cleaning modcache: {_describe(clean_error)}; "
            f"removing files: {_describe(remove_error)}"
        )


def _describe(error: BaseException | None) -> str:
    if error is None:
        return "<nil>"
    return str(error) or error.__class__.__name__


__all__ = [
    "CommandCancelledError",
    "CommandError",
    "CommandFailedError",
    "CommandTimeoutError",
    "SandboxCloseError",
    "SandboxConstructionError",
    "SandboxError",
]
