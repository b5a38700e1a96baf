"""
gosandbox — runtime config loader.

File: src/gosandbox/config/loader.py

Purpose
- Produce the effective config from built-in defaults, ``gosandbox.toml``,
  ``GOSANDBOX_*`` environment variables, and CLI overrides, in that order.

Behavior
- A missing default file is fine; a missing file named explicitly is an error.
- Environment names are derived from field paths:
  ``sandbox.go_binary`` ↔ ``GOSANDBOX_SANDBOX_GO_BINARY``.
- Path fields are resolved relative to the directory holding the config file.
"""

from __future__ import annotations

import json
import os
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final

from gosandbox.config.schema import (
    FIELDS,
    FieldSpec,
    assert_valid_config,
    default_config,
    field_spec,
    merge_config,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_CONFIG_FILE: Final[str] = "gosandbox.toml"
ENV_PREFIX: Final[str] = "GOSANDBOX_"

_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSY: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


class ConfigLoadError(ValueError):
    """Raised when config cannot be read or an override cannot be applied."""


def env_name(spec: FieldSpec) -> str:
    """Environment variable that overrides ``spec``."""

    return f"{ENV_PREFIX}{spec.section.upper()}_{spec.name.upper()}"


def load_config(
    config_path: str | Path | None = None,
    *,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Load the effective config. Later layers win: defaults, file, env, CLI."""

    if config_path is None:
        path = (Path.cwd() / DEFAULT_CONFIG_FILE).resolve()
    else:
        path = Path(config_path).expanduser().resolve()
    file_layer = _read_toml(path, required=config_path is not None)

    # File errors are reported before any override is applied.
    config = assert_valid_config(merge_config(default_config(), file_layer))
    config = merge_config(config, _env_layer(os.environ if environ is None else environ))
    config = merge_config(config, _cli_layer(cli_overrides or {}))
    config = assert_valid_config(config)
    return normalize_paths(config, base_dir=path.parent)


def normalize_paths(config: Mapping[str, Any], *, base_dir: Path) -> dict[str, Any]:
    """Resolve relative path fields against ``base_dir``; absolute ones are only normalized."""

    normalized = merge_config({}, config)
    for spec in FIELDS:
        if not spec.is_path:
            continue
        raw = normalized.get(spec.section, {}).get(spec.name)
        if isinstance(raw, str):
            candidate = Path(os.path.expandvars(raw)).expanduser()
            if not candidate.is_absolute():
                candidate = base_dir / candidate
            normalized[spec.section][spec.name] = Path(os.path.normpath(candidate)).as_posix()
    return normalized


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Serialize ``config`` as compact JSON with sorted keys."""

    return json.dumps(config, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _read_toml(path: Path, *, required: bool) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        if required:
            raise ConfigLoadError(f"config file not found: {path}") from exc
        return {}
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _env_layer(environ: Mapping[str, str]) -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for spec in FIELDS:
        if spec.section == "meta":
            continue
        name = env_name(spec)
        raw = environ.get(name)
        if raw is None:
            continue
        layer.setdefault(spec.section, {})[spec.name] = _parse_env_value(spec, name, raw)
    return layer


def _parse_env_value(spec: FieldSpec, name: str, raw: str) -> object:
    text = raw.strip()
    if spec.kind == "str":
        return text
    if spec.kind == "bool":
        lowered = text.lower()
        if lowered in _TRUTHY:
            return True
        if lowered in _FALSY:
            return False
        raise ConfigLoadError(
            f"{name} -> {spec.path} must be a boolean (true/false/1/0/yes/no/on/off)"
        )
    try:
        return int(text) if spec.kind == "int" else float(text)
    except ValueError as exc:
        expected = "an integer" if spec.kind == "int" else "a number"
        raise ConfigLoadError(f"{name} -> {spec.path} must be {expected}") from exc


def _cli_layer(overrides: Mapping[str, object]) -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for key, value in overrides.items():
        if value is None:
            continue
        spec = field_spec(key)
        if spec is None:
            raise ConfigLoadError(f"unknown CLI override {key!r}")
        layer.setdefault(spec.section, {})[spec.name] = value
    return layer


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "dump_effective_config",
    "env_name",
    "load_config",
    "normalize_paths",
]
