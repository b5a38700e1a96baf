"""Go environment assembly for sandboxed invocations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from gosandbox.constants import ENV_GO111MODULE, ENV_GOPATH, ENV_GOPROXY, ENV_GOSUMDB

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from pathlib import Path


def build_go_env(gopath: Path | str, goproxy: str, extra_env: Iterable[str] = ()) -> list[str]:
    """Return the ``NAME=value`` assignments for a go command run in a sandbox.

    Module resolution is pinned to the private GOPATH and proxy, module mode
    is reset to the toolchain default, and checksum-database lookups are
    disabled because fixture modules have no sum entries. ``extra_env`` comes
    last so its entries win over the defaults when merged.
    """

    return [
        f"{ENV_GOPATH}={gopath}",
        f"{ENV_GOPROXY}={goproxy}",
        f"{ENV_GO111MODULE}=",
        f"{ENV_GOSUMDB}=off",
        *extra_env,
    ]


def merge_environment(
    assignments: Iterable[str],
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Fold ``NAME=value`` ``assignments`` onto ``base``; later names overwrite earlier ones."""

    merged = dict(base or {})
    for assignment in assignments:
        name, sep, value = assignment.partition("=")
        if not sep or not name:
            raise ValueError(f"environment entry must look like NAME=value: {assignment!r}")
        merged[name] = value
    return merged


__all__ = ["build_go_env", "merge_environment"]
