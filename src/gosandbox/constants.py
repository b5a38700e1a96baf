"""Stable constants shared across the sandbox modules."""

from __future__ import annotations

from typing import Final

# Sandbox root layout. The module cache lives under GOPATH, so the cache
# directory is named after the variable that exports it.
GOPATH_DIR: Final[str] = "gopath"
WORK_DIR: Final[str] = "work"
PROXY_DIR: Final[str] = "proxy"
SANDBOX_SUBDIRS: Final[tuple[str, ...]] = (GOPATH_DIR, WORK_DIR, PROXY_DIR)

DEFAULT_NAME_PREFIX: Final[str] = "goplstest-sandbox-"
DEFAULT_GO_BINARY: Final[str] = "go"

# Go environment variables injected into every sandboxed invocation.
ENV_GOPATH: Final[str] = "GOPATH"
ENV_GOPROXY: Final[str] = "GOPROXY"
ENV_GO111MODULE: Final[str] = "GO111MODULE"
ENV_GOSUMDB: Final[str] = "GOSUMDB"
GOPROXY_OFF: Final[str] = "off"

# stderr prefix printed by `go mod init` after it writes go.mod.
MODULE_INIT_MARKER: Final[str] = "go: creating new go.mod"
GO_MOD_FILE: Final[str] = "go.mod"

# Timestamp recorded in every synthesized proxy .info file.
PROXY_INFO_TIME: Final[str] = "2017-12-14T13:08:43Z"

CONFIG_SCHEMA_VERSION: Final[int] = 1

__all__ = [
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_GO_BINARY",
    "DEFAULT_NAME_PREFIX",
    "ENV_GO111MODULE",
    "ENV_GOPATH",
    "ENV_GOPROXY",
    "ENV_GOSUMDB",
    "GOPATH_DIR",
    "GOPROXY_OFF",
    "GO_MOD_FILE",
    "MODULE_INIT_MARKER",
    "PROXY_DIR",
    "PROXY_INFO_TIME",
    "SANDBOX_SUBDIRS",
    "WORK_DIR",
]
