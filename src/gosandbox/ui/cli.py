"""Command-line interface router for gosandbox."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from gosandbox.config import (
    ConfigLoadError,
    ConfigValidationError,
    ObservabilitySettings,
    SandboxSettings,
    dump_effective_config,
    load_config,
)
from gosandbox.observability import configure_logging
from gosandbox.sandbox import (
    CommandError,
    FileEvent,
    Sandbox,
    SandboxConstructionError,
    split_module_version_path,
)
from gosandbox.ui.render import CLIRenderer, create_renderer

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="gosandbox",
        description=(
            "gosandbox — run go commands in a disposable GOPATH with a fixture module proxy.\n\n"
            "Common workflows:\n"
            "  gosandbox split mod.com/a@v1.2.3/pkg      Decompose a proxy path\n"
            "  gosandbox env --name demo                 Show the sandbox go environment\n"
            "  gosandbox run --name demo mod init x      Run a go command in a sandbox\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to gosandbox TOML config (default: ./gosandbox.toml if present).",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Log at DEBUG level.",
    )
    common.add_argument(
        "--log-format",
        choices=("json", "text"),
        default=None,
        help="Override observability.log_format.",
    )
    common.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )

    sandbox_options = argparse.ArgumentParser(add_help=False)
    sandbox_options.add_argument("--name", required=True, help="Sandbox name, used in the root")
    sandbox_options.add_argument(
        "--workspace",
        default=None,
        help="txtar fixture unpacked into the working directory.",
    )
    sandbox_options.add_argument(
        "--proxy",
        default=None,
        help="txtar fixture of modulePath@version/file entries served as GOPROXY.",
    )
    sandbox_options.add_argument(
        "--env",
        dest="env",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Extra environment entry; repeatable, later entries win.",
    )
    sandbox_options.add_argument(
        "--go-binary",
        default=None,
        help="Override sandbox.go_binary.",
    )
    sandbox_options.add_argument(
        "--keep-modcache",
        action="store_true",
        default=False,
        help="Skip `go clean -modcache` on close.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # split ---------------------------------------------------------------
    split_parser = subparsers.add_parser(
        "split",
        parents=[common],
        help="Split modulePath@version/suffix into its parts (JSON)",
    )
    split_parser.add_argument("path", help="Proxy-style path, e.g. mod.com/a@v1.2.3/pkg")
    split_parser.set_defaults(handler=_cmd_split)

    # env -----------------------------------------------------------------
    env_parser = subparsers.add_parser(
        "env",
        parents=[common, sandbox_options],
        help="Create a sandbox, print its go environment, and remove it",
    )
    env_parser.add_argument("--json", action="store_true", help="Emit JSON output")
    env_parser.set_defaults(handler=_cmd_env)

    # run -----------------------------------------------------------------
    run_parser = subparsers.add_parser(
        "run",
        parents=[common, sandbox_options],
        help="Create a sandbox, run `go VERB ARGS...` in it, and remove it",
    )
    run_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-command timeout in seconds (overrides sandbox.command_timeout_seconds).",
    )
    run_parser.add_argument("--json", action="store_true", help="Emit JSON output")
    run_parser.add_argument("verb", help="go subcommand, e.g. build, list, mod")
    run_parser.add_argument("args", nargs=argparse.REMAINDER, help="Arguments for the verb")
    run_parser.set_defaults(handler=_cmd_run)

    # config --------------------------------------------------------------
    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Print the effective configuration as JSON",
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


def main(argv: Sequence[str] | None = None) -> int:
    """Compatibility wrapper for main-module wiring."""

    return run_cli(argv)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_split(args: argparse.Namespace) -> int:
    _setup(args)
    reference = split_module_version_path(args.path)
    _emit_json(reference._asdict())
    return 0


def _cmd_env(args: argparse.Namespace) -> int:
    config = _setup(args)
    return asyncio.run(_env_async(args, config))


async def _env_async(args: argparse.Namespace, config: Mapping[str, object]) -> int:
    workspace, proxy = _read_fixtures(args)
    async with await _create_sandbox(args, config, workspace, proxy) as sandbox:
        env = sandbox.go_env()

    if _flag(args, "json"):
        _emit_json({"command": "env", "env": env})
        return 0

    renderer = _get_renderer(args)
    for entry in env:
        renderer.text(entry)
    return 0


def _cmd_run(args: argparse.Namespace) -> int:
    config = _setup(args)
    if args.timeout is not None and args.timeout <= 0:
        raise CLIError("--timeout must be > 0", exit_code=2)
    return asyncio.run(_run_async(args, config))


async def _run_async(args: argparse.Namespace, config: Mapping[str, object]) -> int:
    workspace, proxy = _read_fixtures(args)
    events: list[FileEvent] = []
    go_args = tuple(args.args)

    async with await _create_sandbox(args, config, workspace, proxy) as sandbox:
        if sandbox.workdir is not None:
            sandbox.workdir.add_watcher(events.extend)
        try:
            result = await sandbox.run_go_command(
                args.verb, *go_args, timeout_seconds=args.timeout
            )
        except CommandError as exc:
            result = exc.result
            failure: str | None = str(exc)
        else:
            failure = None

    if _flag(args, "json"):
        _emit_json(
            {
                "command": "run",
                "argv": list(result.command),
                "returncode": result.returncode,
                "stdout": result.stdout_text,
                "stderr": result.stderr_text,
                "duration_ms": round(result.duration_ms, 3),
                "events": [_event_payload(event) for event in events],
                "error": failure,
            }
        )
        return 0 if failure is None else 1

    renderer = _get_renderer(args)
    renderer.stream(result.stdout_text)
    renderer.stream(result.stderr_text, target=sys.stderr)
    if events:
        renderer.section("Synthesized file events:")
        renderer.items(
            [f"{event.protocol_event.type.name.lower()} {event.path}" for event in events]
        )
    if failure is not None:
        print(f"error: {failure}", file=sys.stderr)
        return 1
    return 0


def _cmd_config(args: argparse.Namespace) -> int:
    config = _setup(args)
    print(dump_effective_config(config))
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _setup(args: argparse.Namespace) -> dict[str, object]:
    """Load the effective config and configure logging from it."""

    config = _load_effective_config(args)
    observability = ObservabilitySettings.from_config(config)
    configure_logging(
        observability.log_level,
        observability.log_format,
        redact_secrets=observability.redact_secrets,
        stream=sys.stderr,
    )
    return config


def _load_effective_config(args: argparse.Namespace) -> dict[str, object]:
    config_path = _optional_str(getattr(args, "config_path", None))
    overrides: dict[str, object] = {
        "observability.log_format": getattr(args, "log_format", None),
        "sandbox.go_binary": _optional_str(getattr(args, "go_binary", None)),
    }
    if _flag(args, "verbose"):
        overrides["observability.log_level"] = "DEBUG"
    if _flag(args, "keep_modcache"):
        overrides["sandbox.clean_modcache"] = False

    try:
        loaded = load_config(config_path, cli_overrides=overrides)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc

    return dict(loaded)


async def _create_sandbox(
    args: argparse.Namespace,
    config: Mapping[str, object],
    workspace: bytes,
    proxy: bytes,
) -> Sandbox:
    name = _require_str(args.name, "name")
    env = _env_entries(args.env)
    try:
        return await Sandbox.create(
            name,
            workspace,
            proxy,
            env,
            settings=SandboxSettings.from_config(config),
        )
    except SandboxConstructionError as exc:
        raise CLIError(str(exc), exit_code=2) from exc


def _read_fixtures(args: argparse.Namespace) -> tuple[bytes, bytes]:
    return _read_fixture(args.workspace, "workspace"), _read_fixture(args.proxy, "proxy")


def _read_fixture(path_arg: str | None, label: str) -> bytes:
    cleaned = _optional_str(path_arg)
    if cleaned is None:
        return b""
    path = Path(cleaned).expanduser()
    try:
        return path.read_bytes()
    except OSError as exc:
        raise CLIError(f"unable to read {label} fixture {path}: {exc}", exit_code=2) from exc


def _env_entries(values: Sequence[str]) -> tuple[str, ...]:
    entries: list[str] = []
    for value in values:
        name, sep, _ = value.partition("=")
        if not sep or not name:
            raise CLIError(f"--env expects NAME=VALUE, got {value!r}", exit_code=2)
        entries.append(value)
    return tuple(entries)


def _event_payload(event: FileEvent) -> dict[str, object]:
    return {
        "path": event.path,
        "uri": event.protocol_event.uri,
        "type": int(event.protocol_event.type),
    }


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(no_color=_flag(args, "no_color"))


def _require_str(value: object, name: str) -> str:
    if not isinstance(value, str):
        raise CLIError(f"invalid {name}: expected string", exit_code=2)
    cleaned = value.strip()
    if not cleaned:
        raise CLIError(f"invalid {name}: value cannot be empty", exit_code=2)
    return cleaned


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise CLIError("invalid optional string argument", exit_code=2)
    cleaned = value.strip()
    return cleaned or None


def _flag(args: argparse.Namespace, name: str) -> bool:
    value = getattr(args, name, False)
    return bool(value)


__all__ = ["CLIError", "build_parser", "main", "run_cli"]
