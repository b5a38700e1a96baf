"""Go command execution with captured output, timeouts, and cancellation."""

from __future__ import annotations

import asyncio
import contextlib
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from gosandbox.constants import DEFAULT_GO_BINARY
from gosandbox.sandbox.environment import merge_environment
from gosandbox.sandbox.errors import (
    CommandCancelledError,
    CommandFailedError,
    CommandTimeoutError,
)
from gosandbox.utils.concurrency import CancellationToken, run_with_timeout

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = structlog.get_logger(__name__)

# Host variables kept when the host environment is not inherited wholesale.
_MINIMAL_HOST_ENV = ("PATH", "HOME", "SYSTEMROOT", "TMPDIR")


@dataclass(frozen=True, slots=True)
class Invocation:
    """One go command: ``go <verb> <args...>`` in ``working_dir`` with ``env`` applied."""

    verb: str
    args: tuple[str, ...] = ()
    working_dir: Path | None = None
    env: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Captured outcome of one invocation."""

    command: tuple[str, ...]
    cwd: Path | None
    returncode: int | None
    stdout: bytes
    stderr: bytes
    duration_ms: float

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")


class CommandRunner:
    """Run go commands as subprocesses.

    ``run_raw`` returns the :class:`CommandResult` on success and raises a
    :class:`~gosandbox.sandbox.errors.CommandError` subclass otherwise; the
    exception's ``result`` holds whatever output was captured.
    """

    def __init__(
        self,
        *,
        go_binary: str = DEFAULT_GO_BINARY,
        inherit_host_env: bool = True,
        default_timeout_seconds: float | None = None,
        host_env: Mapping[str, str] | None = None,
    ) -> None:
        if default_timeout_seconds is not None and default_timeout_seconds <= 0:
            raise ValueError("default_timeout_seconds must be > 0")
        if not go_binary.strip():
            raise ValueError("go_binary must not be empty")
        self._go_binary = go_binary.strip()
        self._inherit_host_env = inherit_host_env
        self._default_timeout_seconds = default_timeout_seconds
        self._host_env = dict(os.environ if host_env is None else host_env)

    @property
    def go_binary(self) -> str:
        return self._go_binary

    def build_environment(self, invocation: Invocation) -> dict[str, str]:
        """Host environment, then the invocation's assignments, then ``PWD``."""

        if self._inherit_host_env:
            base = dict(self._host_env)
        else:
            base = {
                name: self._host_env[name] for name in _MINIMAL_HOST_ENV if name in self._host_env
            }
        merged = merge_environment(invocation.env, base)
        if invocation.working_dir is not None:
            merged["PWD"] = str(invocation.working_dir)
        return merged

    async def run_raw(
        self,
        invocation: Invocation,
        *,
        cancel_token: CancellationToken | None = None,
        timeout_seconds: float | None = None,
    ) -> CommandResult:
        command = (self._go_binary, invocation.verb, *invocation.args)
        cwd = invocation.working_dir
        effective_timeout = (
            self._default_timeout_seconds if timeout_seconds is None else timeout_seconds
        )
        if effective_timeout is not None and effective_timeout <= 0:
            raise ValueError("timeout_seconds must be > 0")
        env = self.build_environment(invocation)

        started = time.perf_counter()
        if cancel_token is not None:
            # A token that fired before the call must not start a process.
            try:
                cancel_token.raise_if_cancelled()
            except asyncio.CancelledError:
                raise _cancelled(command, cwd, None, started, cancel_token) from None

        logger.debug("go_command_spawn", command=list(command), cwd=str(cwd))
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=cwd,
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            result = _result(command, cwd, None, b"", b"", started)
            raise CommandFailedError(f"starting {_render(command)}: {exc}", result) from exc

        try:
            stdout, stderr = await run_with_timeout(
                _communicate(process), effective_timeout, cancel_token
            )
        except TimeoutError as exc:
            result = _result(command, cwd, process.returncode, b"", b"", started)
            raise CommandTimeoutError(
                f"{_render(command)} timed out after {effective_timeout} seconds", result
            ) from exc
        except asyncio.CancelledError:
            await _reap(process)
            if cancel_token is None or not cancel_token.is_cancelled:
                raise
            raise _cancelled(command, cwd, process.returncode, started, cancel_token) from None

        result = _result(command, cwd, process.returncode, stdout, stderr, started)
        if not result.succeeded:
            detail = result.stderr_text.strip() or result.stdout_text.strip()
            raise CommandFailedError(
                f"{_render(command)} failed with exit code {result.returncode}: {detail}",
                result,
            )
        return result


async def _communicate(process: asyncio.subprocess.Process) -> tuple[bytes, bytes]:
    try:
        return await process.communicate()
    except asyncio.CancelledError:
        await _reap(process)
        raise


async def _reap(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()


def _cancelled(
    command: tuple[str, ...],
    cwd: Path | None,
    returncode: int | None,
    started: float,
    cancel_token: CancellationToken,
) -> CommandCancelledError:
    result = _result(command, cwd, returncode, b"", b"", started)
    reason = cancel_token.reason or "cancelled"
    return CommandCancelledError(f"{_render(command)} cancelled: {reason}", result)


def _result(
    command: tuple[str, ...],
    cwd: Path | None,
    returncode: int | None,
    stdout: bytes,
    stderr: bytes,
    started: float,
) -> CommandResult:
    return CommandResult(
        command=command,
        cwd=cwd,
        returncode=returncode,
        stdout=stdout,
        stderr=stderr,
        duration_ms=(time.perf_counter() - started) * 1000.0,
    )


def _render(command: tuple[str, ...]) -> str:
    return " ".join(command)


__all__ = ["CommandResult", "CommandRunner", "Invocation"]
