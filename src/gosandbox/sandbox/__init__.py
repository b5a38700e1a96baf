"""Sandboxed go command execution: directories, environment, proxy, workdir, orchestrator."""

from gosandbox.sandbox.allocator import (
    SandboxDirectories,
    allocate_directories,
    remove_directories,
)
from gosandbox.sandbox.environment import build_go_env, merge_environment
from gosandbox.sandbox.errors import (
    CommandCancelledError,
    CommandError,
    CommandFailedError,
    CommandTimeoutError,
    SandboxCloseError,
    SandboxConstructionError,
    SandboxError,
)
from gosandbox.sandbox.executor import CommandResult, CommandRunner, Invocation
from gosandbox.sandbox.modpath import (
    ModuleReference,
    escape_module_path,
    escape_version,
    split_module_version_path,
)
from gosandbox.sandbox.proxy import Proxy, write_module_version
from gosandbox.sandbox.sandbox import Sandbox, SandboxState
from gosandbox.sandbox.side_effects import (
    SideEffectPolicy,
    module_file_created_events,
    no_side_effects,
)
from gosandbox.sandbox.workdir import (
    FileChangeType,
    FileEvent,
    ProtocolFileEvent,
    Watcher,
    Workdir,
    to_uri,
)

__all__ = [
    "CommandCancelledError",
    "CommandError",
    "CommandFailedError",
    "CommandResult",
    "CommandRunner",
    "CommandTimeoutError",
    "FileChangeType",
    "FileEvent",
    "Invocation",
    "ModuleReference",
    "ProtocolFileEvent",
    "Proxy",
    "Sandbox",
    "SandboxCloseError",
    "SandboxConstructionError",
    "SandboxDirectories",
    "SandboxError",
    "SandboxState",
    "SideEffectPolicy",
    "Watcher",
    "Workdir",
    "allocate_directories",
    "build_go_env",
    "escape_module_path",
    "escape_version",
    "merge_environment",
    "module_file_created_events",
    "no_side_effects",
    "remove_directories",
    "split_module_version_path",
    "to_uri",
    "write_module_version",
]
