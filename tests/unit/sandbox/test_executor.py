"""
gosandbox — unit tests for go command execution

File: tests/unit/sandbox/test_executor.py

Purpose
- Validate ``CommandRunner`` against a stand-in ``go`` shell script.

What this test file should cover
- Captured stdout/stderr and the assembled subprocess environment.
- Non-zero exit, spawn failure, timeout, and token cancellation, each carrying a result.
"""

from __future__ import annotations

import asyncio
import os
import stat
import sys
from typing import TYPE_CHECKING

import pytest

from gosandbox.sandbox.errors import (
    CommandCancelledError,
    CommandFailedError,
    CommandTimeoutError,
)
from gosandbox.sandbox.executor import CommandRunner, Invocation
from gosandbox.utils.concurrency import CancellationToken

if TYPE_CHECKING:
    from pathlib import Path

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell script")

_FAKE_GO = """#!/bin/sh
case "$1" in
  env)
    echo "GOPATH=$GOPATH"
    echo "GOPROXY=$GOPROXY"
    echo "PWD=$PWD"
    echo "SECRET=${SECRET-unset}"
    ;;
  mod)
    echo "go: creating new go.mod: module $3" >&2
    ;;
  fail)
    echo "boom" >&2
    exit 3
    ;;
  hang)
    exec sleep 30
    ;;
  touch)
    touch "$PWD/ran"
    ;;
esac
"""


@pytest.fixture
def fake_go(tmp_path: Path) -> Path:
    script = tmp_path / "bin" / "go"
    script.parent.mkdir()
    script.write_text(_FAKE_GO, encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.mark.unit
async def test_run_raw_captures_output_and_environment(fake_go: Path, tmp_path: Path) -> None:
    runner = CommandRunner(go_binary=str(fake_go))
    invocation = Invocation(
        verb="env",
        working_dir=tmp_path,
        env=("GOPATH=/sb/gopath", "GOPROXY=file:///sb/proxy"),
    )

    result = await runner.run_raw(invocation)

    assert result.succeeded
    assert result.command == (str(fake_go), "env")
    assert result.cwd == tmp_path
    lines = result.stdout_text.splitlines()
    assert "GOPATH=/sb/gopath" in lines
    assert "GOPROXY=file:///sb/proxy" in lines
    assert f"PWD={tmp_path}" in lines
    assert result.duration_ms >= 0


@pytest.mark.unit
async def test_host_environment_is_dropped_when_not_inherited(
    fake_go: Path, tmp_path: Path
) -> None:
    host_env = {"PATH": os.environ.get("PATH", "/usr/bin:/bin"), "SECRET": "hunter2"}
    inheriting = CommandRunner(go_binary=str(fake_go), host_env=host_env)
    isolated = CommandRunner(go_binary=str(fake_go), host_env=host_env, inherit_host_env=False)
    invocation = Invocation(verb="env", working_dir=tmp_path)

    inherited = await inheriting.run_raw(invocation)
    dropped = await isolated.run_raw(invocation)

    assert "SECRET=hunter2" in inherited.stdout_text.splitlines()
    assert "SECRET=unset" in dropped.stdout_text.splitlines()


@pytest.mark.unit
def test_build_environment_applies_invocation_env_last(tmp_path: Path) -> None:
    runner = CommandRunner(host_env={"GOPROXY": "https://proxy.golang.org", "HOME": "/h"})
    invocation = Invocation(
        verb="list",
        working_dir=tmp_path,
        env=("GOPROXY=off", "GOPROXY=direct"),
    )

    env = runner.build_environment(invocation)

    assert env["GOPROXY"] == "direct"
    assert env["HOME"] == "/h"
    assert env["PWD"] == str(tmp_path)


@pytest.mark.unit
async def test_stderr_is_captured_on_success(fake_go: Path, tmp_path: Path) -> None:
    runner = CommandRunner(go_binary=str(fake_go))

    result = await runner.run_raw(Invocation("mod", ("init", "example.com/m"), tmp_path))

    assert result.stderr_text.startswith("go: creating new go.mod")


@pytest.mark.unit
async def test_non_zero_exit_raises_with_result(fake_go: Path, tmp_path: Path) -> None:
    runner = CommandRunner(go_binary=str(fake_go))

    with pytest.raises(CommandFailedError, match="exit code 3: boom") as excinfo:
        await runner.run_raw(Invocation("fail", working_dir=tmp_path))

    assert excinfo.value.result.returncode == 3
    assert excinfo.value.stderr_text == "boom\n"


@pytest.mark.unit
async def test_spawn_failure_raises_command_failed(tmp_path: Path) -> None:
    runner = CommandRunner(go_binary=str(tmp_path / "missing-go"))

    with pytest.raises(CommandFailedError, match="starting") as excinfo:
        await runner.run_raw(Invocation("version", working_dir=tmp_path))

    assert excinfo.value.result.returncode is None
    assert excinfo.value.result.stdout == b""
    assert isinstance(excinfo.value.__cause__, OSError)


@pytest.mark.unit
async def test_timeout_kills_the_process(fake_go: Path, tmp_path: Path) -> None:
    runner = CommandRunner(go_binary=str(fake_go), default_timeout_seconds=0.2)

    with pytest.raises(CommandTimeoutError, match="timed out") as excinfo:
        await runner.run_raw(Invocation("hang", working_dir=tmp_path))

    assert excinfo.value.result.returncode not in (None, 0)


@pytest.mark.unit
async def test_cancellation_token_kills_the_process(fake_go: Path, tmp_path: Path) -> None:
    runner = CommandRunner(go_binary=str(fake_go))
    token = CancellationToken()

    async def _cancel_soon() -> None:
        await asyncio.sleep(0.2)
        token.cancel()

    canceller = asyncio.create_task(_cancel_soon())
    with pytest.raises(CommandCancelledError, match="cancelled") as excinfo:
        await runner.run_raw(Invocation("hang", working_dir=tmp_path), cancel_token=token)
    await canceller

    assert excinfo.value.result.returncode not in (None, 0)


@pytest.mark.unit
async def test_already_cancelled_token_never_spawns(fake_go: Path, tmp_path: Path) -> None:
    runner = CommandRunner(go_binary=str(fake_go))
    token = CancellationToken()
    token.cancel("stop")

    with pytest.raises(CommandCancelledError, match="cancelled: stop") as excinfo:
        await runner.run_raw(Invocation("touch", working_dir=tmp_path), cancel_token=token)
    await asyncio.sleep(0.3)

    assert excinfo.value.result.returncode is None
    assert not (tmp_path / "ran").exists()


@pytest.mark.unit
async def test_non_positive_timeout_is_rejected_before_spawning(
    fake_go: Path, tmp_path: Path
) -> None:
    runner = CommandRunner(go_binary=str(fake_go))

    with pytest.raises(ValueError, match="timeout_seconds must be > 0"):
        await runner.run_raw(Invocation("touch", working_dir=tmp_path), timeout_seconds=0)
    await asyncio.sleep(0.3)

    assert not (tmp_path / "ran").exists()


@pytest.mark.unit
@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"default_timeout_seconds": 0}, "default_timeout_seconds"),
        ({"go_binary": "  "}, "go_binary"),
    ],
)
def test_runner_rejects_invalid_settings(kwargs: dict[str, object], message: str) -> None:
    with pytest.raises(ValueError, match=message):
        CommandRunner(**kwargs)  # type: ignore[arg-type]
