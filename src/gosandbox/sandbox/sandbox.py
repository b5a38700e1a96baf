"""Sandbox: a disposable GOPATH, module proxy, and working directory for go commands."""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

from gosandbox.config.schema import SandboxSettings
from gosandbox.constants import GOPROXY_OFF
from gosandbox.sandbox.allocator import (
    SandboxDirectories,
    allocate_directories,
    remove_directories,
)
from gosandbox.sandbox.environment import build_go_env, merge_environment
from gosandbox.sandbox.errors import (
    SandboxCloseError,
    SandboxConstructionError,
)
from gosandbox.sandbox.executor import CommandResult, CommandRunner, Invocation
from gosandbox.sandbox.proxy import Proxy
from gosandbox.sandbox.side_effects import SideEffectPolicy, module_file_created_events
from gosandbox.sandbox.workdir import Workdir

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path
    from types import TracebackType

    from gosandbox.utils.concurrency import CancellationToken

logger = structlog.get_logger(__name__)


class SandboxState(StrEnum):
    """Lifecycle of one sandbox instance."""

    UNINITIALIZED = "uninitialized"
    CONSTRUCTING = "constructing"
    READY = "ready"
    CLOSING = "closing"
    CLOSED = "closed"


class Sandbox:
    """A collection of temporary resources for running go commands in isolation.

    Build one with :meth:`create`; it owns a private GOPATH (and therefore
    module cache), a file-based module proxy, and a working directory, all
    under one uniquely named temporary root. Commands never see the host's
    module cache or proxy settings.

    A sandbox serves one command at a time. Callers needing parallelism
    create several sandboxes.
    """

    def __init__(
        self,
        name: str,
        env: Iterable[str] = (),
        *,
        settings: SandboxSettings | None = None,
        runner: CommandRunner | None = None,
        side_effect_policy: SideEffectPolicy = module_file_created_events,
    ) -> None:
        self._name = name
        self._env = tuple(env)
        # Malformed entries fail here rather than on the first command.
        merge_environment(self._env)
        self._settings = settings or SandboxSettings()
        self._runner = runner or CommandRunner(
            go_binary=self._settings.go_binary,
            inherit_host_env=self._settings.inherit_host_env,
            default_timeout_seconds=self._settings.command_timeout_seconds,
        )
        self._side_effect_policy = side_effect_policy
        self._dirs: SandboxDirectories | None = None
        self.proxy: Proxy | None = None
        self.workdir: Workdir | None = None
        self._state = SandboxState.UNINITIALIZED

    @classmethod
    async def create(
        cls,
        name: str,
        srctxt: bytes | str = "",
        proxytxt: bytes | str = "",
        env: Iterable[str] = (),
        *,
        settings: SandboxSettings | None = None,
        runner: CommandRunner | None = None,
        side_effect_policy: SideEffectPolicy = module_file_created_events,
    ) -> Sandbox:
        """Create a sandbox whose workdir holds ``srctxt`` and whose proxy holds ``proxytxt``.

        Both fixtures are txtar archives. On any failure the partially built
        sandbox is closed before the error propagates; a failure of that close
        is attached to the original error as a note.
        """

        sandbox = cls(
            name,
            env,
            settings=settings,
            runner=runner,
            side_effect_policy=side_effect_policy,
        )
        try:
            sandbox._construct(srctxt, proxytxt)
        except Exception as exc:
            logger.warning("sandbox_construction_failed", name=name, error=str(exc))
            try:
                await sandbox.close()
            except SandboxCloseError as close_exc:
                exc.add_note(f"cleanup after failed construction: {close_exc}")
            raise
        return sandbox

    def _construct(self, srctxt: bytes | str, proxytxt: bytes | str) -> None:
        self._state = SandboxState.CONSTRUCTING
        self._dirs = allocate_directories(
            self._name,
            temp_dir=self._settings.temp_dir,
            prefix=self._settings.name_prefix,
        )
        try:
            self.proxy = Proxy(self._dirs.proxydir, proxytxt)
        except (OSError, ValueError) as exc:
            raise SandboxConstructionError(f"populating proxy: {exc}") from exc
        try:
            self.workdir = Workdir(self._dirs.workdir, srctxt)
        except (OSError, ValueError) as exc:
            raise SandboxConstructionError(f"populating workdir: {exc}") from exc
        self._state = SandboxState.READY
        logger.info("sandbox_created", name=self._name, root=str(self._dirs.root))

    async def __aenter__(self) -> Sandbox:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> SandboxState:
        return self._state

    @property
    def root(self) -> Path | None:
        return self._dirs.root if self._dirs is not None else None

    @property
    def gopath(self) -> Path | None:
        """The sandbox's private GOPATH; the module cache lives below it."""

        return self._dirs.gopath if self._dirs is not None else None

    def go_env(self) -> list[str]:
        """Environment assignments for go commands in this sandbox, rebuilt on each call."""

        goproxy = self.proxy.goproxy() if self.proxy is not None else GOPROXY_OFF
        return build_go_env(self.gopath or "", goproxy, self._env)

    async def run_go_command(
        self,
        verb: str,
        *args: str,
        cancel_token: CancellationToken | None = None,
        timeout_seconds: float | None = None,
    ) -> CommandResult:
        """Run ``go <verb> <args...>`` in the working directory.

        On success the side-effect policy may synthesize change events (for
        ``go mod init``, creation of ``go.mod``), which are delivered to the
        workdir's watchers. Failures raise a ``CommandError`` subclass and
        synthesize nothing.
        """

        if self._dirs is None:
            raise SandboxConstructionError("sandbox directories were never allocated")
        invocation = Invocation(
            verb=verb,
            args=tuple(args),
            working_dir=self._dirs.workdir,
            env=tuple(self.go_env()),
        )
        logger.debug("sandbox_command_started", name=self._name, verb=verb, args=list(args))
        result = await self._runner.run_raw(
            invocation,
            cancel_token=cancel_token,
            timeout_seconds=timeout_seconds,
        )
        logger.debug(
            "sandbox_command_finished",
            name=self._name,
            verb=verb,
            duration_ms=round(result.duration_ms, 3),
        )

        events = self._side_effect_policy(verb, result.stderr_text, self._dirs.workdir)
        if events and self.workdir is not None:
            logger.info(
                "sandbox_side_effect_events",
                name=self._name,
                verb=verb,
                paths=[event.path for event in events],
            )
            self.workdir.send_events(events)
        return result

    async def close(self) -> None:
        """Remove all state associated with the sandbox.

        Cleans the module cache through ``go clean -modcache`` (its files are
        read-only), then removes the whole root. Both steps always run; any
        failures are reported together as one ``SandboxCloseError``.
        """

        self._state = SandboxState.CLOSING
        clean_error: Exception | None = None
        remove_error: OSError | None = None
        try:
            if self._dirs is not None and self._settings.clean_modcache:
                try:
                    await self.run_go_command("clean", "-modcache")
                except Exception as exc:  # noqa: BLE001 - reported with the removal outcome.
                    clean_error = exc
        finally:
            # Runs even when the clean step is cancelled.
            if self._dirs is not None:
                try:
                    remove_directories(self._dirs)
                except OSError as exc:
                    remove_error = exc
            self._state = SandboxState.CLOSED

        if clean_error is not None or remove_error is not None:
            logger.warning(
                "sandbox_close_failed",
                name=self._name,
                clean_error=str(clean_error) if clean_error else None,
                remove_error=str(remove_error) if remove_error else None,
            )
            raise SandboxCloseError(
                clean_error=clean_error, remove_error=remove_error
            ) from remove_error or clean_error
        logger.info("sandbox_closed", name=self._name)


__all__ = ["Sandbox", "SandboxState"]
