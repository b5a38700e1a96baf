"""File-backed Go module proxy populated from a txtar fixture."""

from __future__ import annotations

import io
import json
import zipfile
from collections import defaultdict
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from gosandbox.constants import GO_MOD_FILE, PROXY_INFO_TIME
from gosandbox.fixtures import txtar
from gosandbox.sandbox.modpath import (
    escape_module_path,
    escape_version,
    split_module_version_path,
)
from gosandbox.sandbox.workdir import to_uri
from gosandbox.utils.fs import atomic_write

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = structlog.get_logger(__name__)

# Fixed zip entry timestamp so archives are byte-for-byte reproducible.
_ZIP_DATE_TIME = (2017, 12, 14, 13, 8, 43)


class Proxy:
    """A ``GOPROXY``-compatible directory tree.

    Fixture files are named ``modulePath@version/suffix``; each distinct
    ``(modulePath, version)`` becomes one module version served from
    ``<escaped module>/@v/``.
    """

    def __init__(self, proxydir: Path | str, txt: bytes | str = "") -> None:
        root = Path(proxydir)
        if not root.is_dir():
            raise NotADirectoryError(f"{root!s} is not a directory")
        self._root = root

        by_module: dict[tuple[str, str], dict[str, bytes]] = defaultdict(dict)
        for name, data in txtar.unpack(txt).items():
            reference = split_module_version_path(name)
            if not reference.version:
                raise ValueError(f"proxy fixture entry {name!r} has no @version component")
            by_module[(reference.module_path, reference.version)][reference.suffix] = data

        versions: dict[str, list[str]] = defaultdict(list)
        for module_path, version in sorted(by_module):
            write_module_version(root, module_path, version, by_module[(module_path, version)])
            versions[module_path].append(version)
        for module_path, module_versions in versions.items():
            list_path = root / escape_module_path(module_path) / "@v" / "list"
            atomic_write(list_path, "".join(f"{item}\n" for item in module_versions))

        logger.debug("proxy_populated", root=str(root), module_versions=len(by_module))

    @property
    def path(self) -> Path:
        return self._root

    def goproxy(self) -> str:
        """Return the ``GOPROXY`` value addressing this proxy."""

        return to_uri(self._root)


def write_module_version(
    root: Path, module_path: str, version: str, files: Mapping[str, bytes]
) -> Path:
    """Write the ``.info``, ``.mod`` and ``.zip`` files for one module version."""

    version_dir = root / escape_module_path(module_path) / "@v"
    version_dir.mkdir(parents=True, exist_ok=True)
    stem = escape_version(version)

    info = json.dumps({"Version": version, "Time": PROXY_INFO_TIME}, sort_keys=True)
    atomic_write(version_dir / f"{stem}.info", info)

    # Serve the fixture's go.mod when present, otherwise a minimal stub.
    mod_contents = files.get(GO_MOD_FILE, f"module {module_path}\n".encode())
    atomic_write(version_dir / f"{stem}.mod", mod_contents)

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for suffix in sorted(files):
            entry = zipfile.ZipInfo(f"{module_path}@{version}/{suffix}", date_time=_ZIP_DATE_TIME)
            entry.compress_type = zipfile.ZIP_DEFLATED
            archive.writestr(entry, files[suffix])
    atomic_write(version_dir / f"{stem}.zip", buffer.getvalue())
    return version_dir


__all__ = ["Proxy", "write_module_version"]
