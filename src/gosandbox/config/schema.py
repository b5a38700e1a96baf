"""
gosandbox — configuration schema and validation.

File: src/gosandbox/config/schema.py

Purpose
- Declare every config field once (section, name, type, constraints) and derive
  defaults, validation, env bindings, and path normalization from that table.

Functional requirements
- Validate config payloads and return structured errors (field path + message).
- Build typed ``SandboxSettings`` / ``ObservabilitySettings`` from a validated mapping.
"""

from __future__ import annotations

import copy
import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal

from gosandbox.constants import CONFIG_SCHEMA_VERSION, DEFAULT_GO_BINARY, DEFAULT_NAME_PREFIX

FieldKind = Literal["str", "int", "float", "bool"]

LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS: Final[tuple[str, ...]] = ("json", "text")


def _check_schema_version(value: int) -> str | None:
    if value < 1:
        return "must be >= 1"
    if value != CONFIG_SCHEMA_VERSION:
        return migration_guidance(value)
    return None


def _check_name_prefix(value: str) -> str | None:
    if "/" in value or "\\" in value:
        return "must not contain path separators"
    return None


def _check_positive(value: float) -> str | None:
    return "must be > 0" if value <= 0 else None


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One scalar config field living at ``<section>.<name>``."""

    section: str
    name: str
    kind: FieldKind
    default: object
    required: bool = True
    nullable: bool = False
    is_path: bool = False
    choices: tuple[str, ...] = ()
    check: Callable[[Any], str | None] | None = None

    @property
    def path(self) -> str:
        return f"{self.section}.{self.name}"


FIELDS: Final[tuple[FieldSpec, ...]] = (
    FieldSpec("meta", "schema_version", "int", CONFIG_SCHEMA_VERSION, check=_check_schema_version),
    FieldSpec("sandbox", "go_binary", "str", DEFAULT_GO_BINARY),
    FieldSpec("sandbox", "name_prefix", "str", DEFAULT_NAME_PREFIX, check=_check_name_prefix),
    FieldSpec("sandbox", "temp_dir", "str", None, required=False, nullable=True, is_path=True),
    FieldSpec(
        "sandbox",
        "command_timeout_seconds",
        "float",
        None,
        required=False,
        nullable=True,
        check=_check_positive,
    ),
    FieldSpec("sandbox", "inherit_host_env", "bool", True),
    FieldSpec("sandbox", "clean_modcache", "bool", True, required=False),
    FieldSpec("observability", "log_level", "str", "INFO", choices=LOG_LEVELS),
    FieldSpec("observability", "log_format", "str", "text", choices=LOG_FORMATS),
    FieldSpec("observability", "redact_secrets", "bool", True),
)

SECTIONS: Final[tuple[str, ...]] = tuple(dict.fromkeys(spec.section for spec in FIELDS))


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Validated config, or ``None`` alongside the issues that prevented it."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered or '- <root>: unknown validation failure'}")


@dataclass(frozen=True, slots=True)
class SandboxSettings:
    """Typed view of the ``[sandbox]`` section consumed by ``Sandbox``."""

    go_binary: str = DEFAULT_GO_BINARY
    name_prefix: str = DEFAULT_NAME_PREFIX
    temp_dir: str | None = None
    command_timeout_seconds: float | None = None
    inherit_host_env: bool = True
    clean_modcache: bool = True

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> SandboxSettings:
        section = config.get("sandbox", {})
        timeout = section.get("command_timeout_seconds")
        return cls(
            go_binary=section.get("go_binary", DEFAULT_GO_BINARY),
            name_prefix=section.get("name_prefix", DEFAULT_NAME_PREFIX),
            temp_dir=section.get("temp_dir"),
            command_timeout_seconds=float(timeout) if timeout is not None else None,
            inherit_host_env=bool(section.get("inherit_host_env", True)),
            clean_modcache=bool(section.get("clean_modcache", True)),
        )


@dataclass(frozen=True, slots=True)
class ObservabilitySettings:
    log_level: str = "INFO"
    log_format: str = "text"
    redact_secrets: bool = True

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> ObservabilitySettings:
        section = config.get("observability", {})
        return cls(
            log_level=section.get("log_level", "INFO"),
            log_format=section.get("log_format", "text"),
            redact_secrets=bool(section.get("redact_secrets", True)),
        )


def field_spec(path: str) -> FieldSpec | None:
    """Look up a field by dotted path, e.g. ``"sandbox.go_binary"``."""

    for spec in FIELDS:
        if spec.path == path:
            return spec
    return None


def default_config() -> dict[str, Any]:
    """Return a fresh mapping of built-in defaults."""

    config: dict[str, Any] = {section: {} for section in SECTIONS}
    for spec in FIELDS:
        config[spec.section][spec.name] = copy.deepcopy(spec.default)
    return config


def migration_guidance(found_version: int) -> str:
    """Explain how to resolve a schema version mismatch."""

    if found_version < CONFIG_SCHEMA_VERSION:
        return (
            f"schema version {found_version} is older than supported {CONFIG_SCHEMA_VERSION}; "
            "upgrade gosandbox.toml to the current schema"
        )
    if found_version > CONFIG_SCHEMA_VERSION:
        return (
            f"schema version {found_version} is newer than supported {CONFIG_SCHEMA_VERSION}; "
            "upgrade gosandbox"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Return ``base`` with ``overlay`` merged in; nested mappings merge key by key."""

    merged: dict[str, Any] = {key: copy.deepcopy(value) for key, value in base.items()}
    for key in sorted(overlay):
        value = overlay[key]
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_config(config: object) -> ConfigValidationResult:
    """Check ``config`` against :data:`FIELDS` and report every problem found."""

    issues: list[ConfigValidationIssue] = []

    def report(path: str, message: str) -> None:
        issues.append(ConfigValidationIssue(path=path, message=message))

    if not isinstance(config, Mapping):
        report("<root>", f"expected object, got {type(config).__name__}")
        return ConfigValidationResult(config=None, issues=tuple(issues))

    for key in sorted(str(item) for item in config):
        if key not in SECTIONS:
            report(key, "unknown field")

    validated: dict[str, Any] = {}
    for section in SECTIONS:
        raw_section = config.get(section)
        if raw_section is None:
            report(section, "missing required field")
            continue
        if not isinstance(raw_section, Mapping):
            report(section, f"expected object, got {type(raw_section).__name__}")
            continue
        validated[section] = _validate_section(section, raw_section, report)

    if issues:
        return ConfigValidationResult(config=None, issues=tuple(issues))
    return ConfigValidationResult(config=validated, issues=())


def assert_valid_config(config: object) -> dict[str, Any]:
    """Validate ``config`` and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _validate_section(
    section: str,
    payload: Mapping[str, object],
    report: Callable[[str, str], None],
) -> dict[str, Any]:
    specs = {spec.name: spec for spec in FIELDS if spec.section == section}
    for key in sorted(payload):
        if key not in specs:
            report(f"{section}.{key}", "unknown field")

    out: dict[str, Any] = {}
    for name, spec in specs.items():
        if name not in payload:
            if spec.required:
                report(spec.path, "missing required field")
            elif spec.nullable:
                out[name] = None
            continue
        raw = payload[name]
        if raw is None and spec.nullable:
            out[name] = None
            continue
        value, problem = _coerce(spec, raw)
        if problem is None and spec.check is not None:
            problem = spec.check(value)
        if problem is not None:
            report(spec.path, problem)
            continue
        out[name] = value
    return out


def _coerce(spec: FieldSpec, raw: object) -> tuple[object, str | None]:
    """Return ``(value, None)`` for a well-typed ``raw`` and ``(None, message)`` otherwise."""

    got = type(raw).__name__
    if spec.kind == "bool":
        return (raw, None) if isinstance(raw, bool) else (None, f"expected boolean, got {got}")
    if spec.kind == "int":
        if isinstance(raw, bool) or not isinstance(raw, int):
            return None, f"expected integer, got {got}"
        return raw, None
    if spec.kind == "float":
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            return None, f"expected number, got {got}"
        number = float(raw)
        return (number, None) if math.isfinite(number) else (None, "must be finite")

    if not isinstance(raw, str):
        return None, f"expected string, got {got}"
    text = raw.strip()
    if not text:
        return None, "must not be empty"
    if "\x00" in text:
        return None, "must not contain NUL bytes"
    if spec.choices and text not in spec.choices:
        expected = ", ".join(sorted(spec.choices))
        return None, f"invalid value {text!r}; expected one of: {expected}"
    return text, None


__all__ = [
    "FIELDS",
    "LOG_FORMATS",
    "LOG_LEVELS",
    "SECTIONS",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "FieldSpec",
    "ObservabilitySettings",
    "SandboxSettings",
    "assert_valid_config",
    "default_config",
    "field_spec",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
