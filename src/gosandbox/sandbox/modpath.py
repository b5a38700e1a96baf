"""Module path helpers for proxy-style ``module@version/suffix`` file names."""

from __future__ import annotations

from typing import NamedTuple


class ModuleReference(NamedTuple):
    """Decomposed proxy path. ``version`` and ``suffix`` may be empty."""

    module_path: str
    version: str
    suffix: str


def split_module_version_path(path: str) -> ModuleReference:
    """Split a proxy fixture path into module path, version, and suffix.

    For example::

        split_module_version_path("mod.com@v1.2.3/package")
        == ("mod.com", "v1.2.3", "package")

    Only the first ``@`` in the first segment containing one delimits the
    version. A path with no ``@`` is returned whole as the module path.
    """

    parts = path.split("/")
    module_parts: list[str] = []
    for index, part in enumerate(parts):
        if "@" in part:
            head, _, version = part.partition("@")
            module_parts.append(head)
            return ModuleReference("/".join(module_parts), version, "/".join(parts[index + 1 :]))
        module_parts.append(part)
    # Plain module path without a version.
    return ModuleReference(path, "", "")


def escape_module_path(path: str) -> str:
    """Apply the module proxy case-encoding: each upper-case letter ``X`` becomes ``!x``."""

    return _escape(path, "module path")


def escape_version(version: str) -> str:
    """Case-encode ``version`` the same way :func:`escape_module_path` does."""

    return _escape(version, "version")


def _escape(value: str, what: str) -> str:
    if "!" in value:
        raise ValueError(f"{what} {value!r} must not contain '!'")
    escaped: list[str] = []
    for char in value:
        if "A" <= char <= "Z":
            escaped.append("!" + char.lower())
        else:
            escaped.append(char)
    return "".join(escaped)


__all__ = [
    "ModuleReference",
    "escape_module_path",
    "escape_version",
    "split_module_version_path",
]
