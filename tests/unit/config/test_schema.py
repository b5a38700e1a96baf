"""
gosandbox — unit tests for config schema

File: tests/unit/config/test_schema.py

Purpose
- Validate strict config schema behavior and deterministic error reporting.

What this test file should cover
- Defaults validate cleanly.
- Unknown fields, missing fields, and wrong types are reported with field paths.
- Schema version mismatch yields migration guidance.
- Sandbox-specific constraints on timeouts and name prefixes.
"""

from __future__ import annotations

import pytest

from gosandbox.config.schema import (
    ConfigValidationError,
    SandboxSettings,
    assert_valid_config,
    default_config,
    merge_config,
    migration_guidance,
    validate_config,
)


def _issues(config: object) -> dict[str, str]:
    result = validate_config(config)
    return {issue.path: issue.message for issue in result.issues}


@pytest.mark.unit
def test_default_config_is_valid() -> None:
    result = validate_config(default_config())

    assert result.is_valid
    assert result.config == default_config()


@pytest.mark.unit
def test_default_config_is_a_deep_copy() -> None:
    first = default_config()
    first["sandbox"]["go_binary"] = "mutated"

    assert default_config()["sandbox"]["go_binary"] == "go"


@pytest.mark.unit
def test_unknown_and_missing_fields_are_reported() -> None:
    config = default_config()
    del config["observability"]["log_level"]
    payload = merge_config(config, {"extra": {}, "sandbox": {"mystery": 1}})

    assert _issues(payload) == {
        "extra": "unknown field",
        "observability.log_level": "missing required field",
        "sandbox.mystery": "unknown field",
    }


@pytest.mark.unit
def test_non_mapping_root_is_rejected() -> None:
    assert _issues(["not", "a", "mapping"]) == {"<root>": "expected object, got list"}


@pytest.mark.unit
@pytest.mark.parametrize(
    ("overlay", "path", "message"),
    [
        ({"command_timeout_seconds": 0}, "sandbox.command_timeout_seconds", "must be > 0"),
        (
            {"command_timeout_seconds": "ten"},
            "sandbox.command_timeout_seconds",
            "expected number, got str",
        ),
        ({"name_prefix": "a/b-"}, "sandbox.name_prefix", "must not contain path separators"),
        ({"go_binary": "  "}, "sandbox.go_binary", "must not be empty"),
        ({"clean_modcache": "yes"}, "sandbox.clean_modcache", "expected boolean, got str"),
    ],
)
def test_sandbox_constraints(overlay: dict[str, object], path: str, message: str) -> None:
    payload = merge_config(default_config(), {"sandbox": overlay})

    assert _issues(payload) == {path: message}


@pytest.mark.unit
def test_enum_values_are_checked() -> None:
    payload = merge_config(default_config(), {"observability": {"log_level": "TRACE"}})

    issues = _issues(payload)

    assert issues["observability.log_level"].startswith("invalid value 'TRACE'")


@pytest.mark.unit
def test_schema_version_mismatch_includes_migration_guidance() -> None:
    payload = merge_config(default_config(), {"meta": {"schema_version": 99}})

    with pytest.raises(ConfigValidationError) as excinfo:
        assert_valid_config(payload)

    assert "meta.schema_version" in str(excinfo.value)
    assert "upgrade gosandbox" in str(excinfo.value)
    assert migration_guidance(1) == "schema version is current"


@pytest.mark.unit
def test_optional_fields_validate_when_set() -> None:
    payload = merge_config(
        default_config(),
        {"sandbox": {"temp_dir": "/tmp/sandboxes", "command_timeout_seconds": 5}},
    )

    validated = assert_valid_config(payload)

    assert validated["sandbox"]["temp_dir"] == "/tmp/sandboxes"
    assert validated["sandbox"]["command_timeout_seconds"] == 5.0


@pytest.mark.unit
def test_sandbox_settings_defaults_match_default_config() -> None:
    assert SandboxSettings.from_config(default_config()) == SandboxSettings()
