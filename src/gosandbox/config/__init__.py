"""Configuration loading and validation for gosandbox."""

from gosandbox.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    dump_effective_config,
    env_name,
    load_config,
    normalize_paths,
)
from gosandbox.config.schema import (
    FIELDS,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    FieldSpec,
    ObservabilitySettings,
    SandboxSettings,
    assert_valid_config,
    default_config,
    merge_config,
    validate_config,
)

__all__ = [
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "FIELDS",
    "FieldSpec",
    "ObservabilitySettings",
    "SandboxSettings",
    "assert_valid_config",
    "default_config",
    "dump_effective_config",
    "env_name",
    "load_config",
    "merge_config",
    "normalize_paths",
    "validate_config",
]
