"""trycore configuration loader."""

import os
import re
import typing
from dataclasses import fields
from enum import Enum, IntEnum
from pathlib import Path
from typing import Any

import yaml

from trycore.context import Context, set_context
from trycore.errors import create_error
from trycore.logging import configure_logging
from trycore.types import (
    DebugLevel,
    LogFormat,
    LogLevel,
    ValidationIssue,
    ValidationResult,
    Verbosity,
)

from .models import TrycoreConfig

VALID_SECTIONS = frozenset({"capture", "display", "defaults", "logging"})


def resolve_env_vars(value: str) -> str:
    """Resolve environment variable references in string.

    Supports:
    - ${VAR} - Required, error if not set
    - ${VAR:-default} - With default value
    - ${VAR:?error message} - Required with custom error

    Args:
        value: String with potential env var references

    Returns:
        String with env vars resolved

    Raises:
        ErrorRecord: config.invalid if a required var is not set
    """
    # Pattern: ${VAR}, ${VAR:-default}, ${VAR:?error}
    pattern = r"\$\{([^}:]+)(?::([?-])([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        operator = match.group(2)  # '-' or '?' or None
        operand = match.group(3)  # default value or error message

        env_value = os.environ.get(var_name)
        if env_value is not None:
            return env_value

        if operator == "-":
            return operand or ""
        if operator == "?":
            error_msg = operand or f"Required environment variable {var_name} not set"
            raise create_error("config.invalid", error_msg, variable=var_name)
        raise create_error(
            "config.invalid",
            f"Required environment variable {var_name} not set",
            variable=var_name,
        )

    return re.sub(pattern, replacer, value)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Override dictionary

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def _resolve_env_vars_recursive(data: Any) -> Any:
    """Recursively resolve env vars in data structure."""
    if isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return resolve_env_vars(data)
    else:
        return data


def _coerce_enum(enum_type: type[Enum], value: Any) -> Enum:
    """Convert a YAML scalar to an enum member.

    Integer enums accept their value (``2`` or ``"2"``) or their member name
    in any case (``"stack"``); string enums accept their value or name.
    """
    if isinstance(value, enum_type):
        return value
    if issubclass(enum_type, IntEnum):
        if isinstance(value, bool):
            raise ValueError(f"Invalid {enum_type.__name__}: {value!r}")
        if isinstance(value, int):
            return enum_type(value)
        text = str(value).strip()
        if text.isdigit():
            return enum_type(int(text))
        return enum_type[text.upper()]
    try:
        return enum_type(value)
    except ValueError:
        return enum_type[str(value).upper()]


class ConfigLoader:
    """Load and validate trycore configuration."""

    def __init__(self) -> None:
        """Initialize config loader."""
        self._config: TrycoreConfig | None = None
        self._config_path: Path | None = None

    def load(self, path: str | Path | None = None, use_defaults: bool = True) -> TrycoreConfig:
        """Load configuration from file.

        Resolution order if path not specified:
        1. TRYCORE_CONFIG_PATH environment variable
        2. ./trycore.yaml
        3. ~/.trycore/config.yaml
        4. If use_defaults=True and no file found, use default configuration

        Args:
            path: Optional path to config file
            use_defaults: If True, use default config when no file found (default: True)

        Returns:
            Loaded TrycoreConfig instance

        Raises:
            ErrorRecord: config.invalid if the file is missing (when
                use_defaults=False) or invalid
        """
        if path is None:
            path = self._resolve_config_path()

        config_path = Path(path)

        if not config_path.exists():
            if use_defaults:
                return self.load_defaults()
            raise create_error(
                "config.invalid",
                f"Configuration file not found: {config_path}",
                path=str(config_path),
            )

        try:
            with config_path.open() as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise create_error(
                "config.invalid",
                f"Invalid YAML in config file: {e}",
                path=str(config_path),
            ) from e

        if not isinstance(data, dict):
            raise create_error(
                "config.invalid",
                "Configuration root must be a mapping",
                path=str(config_path),
            )

        data = _resolve_env_vars_recursive(data)
        return self.load_from_dict(data, config_path)

    def load_defaults(self) -> TrycoreConfig:
        """Load default configuration without a file.

        Returns:
            TrycoreConfig with default values
        """
        return self.load_from_dict({})

    def load_from_dict(
        self, data: dict[str, Any], config_path: Path | None = None
    ) -> TrycoreConfig:
        """Load configuration from dictionary.

        Args:
            data: Configuration dictionary
            config_path: Optional path to config file (for tracking)

        Returns:
            Loaded TrycoreConfig instance

        Raises:
            ErrorRecord: config.invalid if configuration is invalid
        """
        validation = self.validate(data)
        if not validation.valid:
            error_messages = [f"- {issue.path}: {issue.message}" for issue in validation.errors]
            raise create_error(
                "config.invalid",
                "Configuration validation failed:",
                *error_messages,
                error_count=len(validation.errors),
            )

        try:
            config = self._dict_to_config(data)
        except (KeyError, TypeError, ValueError) as e:
            raise create_error(
                "config.invalid",
                f"Failed to parse configuration: {e}",
            ) from e

        self._config = config
        self._config_path = config_path
        return config

    def validate(self, data: dict[str, Any]) -> ValidationResult:
        """Validate config data without loading.

        Args:
            data: Configuration dictionary

        Returns:
            ValidationResult with errors and warnings
        """
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []

        for key in data:
            if key not in VALID_SECTIONS:
                warnings.append(
                    ValidationIssue(
                        path=key,
                        message=f"Unknown configuration key: {key}",
                        severity="warning",
                    )
                )

        for section in VALID_SECTIONS & set(data):
            if not isinstance(data[section], dict):
                errors.append(ValidationIssue(path=section, message=f"{section} must be a dictionary"))

        capture = data.get("capture")
        if isinstance(capture, dict):
            if "debug_level" in capture:
                self._check_enum(DebugLevel, capture["debug_level"], "capture.debug_level", errors)
            prefixes = capture.get("internal_prefixes")
            if prefixes is not None and (
                not isinstance(prefixes, list) or not all(isinstance(p, str) for p in prefixes)
            ):
                errors.append(
                    ValidationIssue(
                        path="capture.internal_prefixes",
                        message="internal_prefixes must be a list of strings",
                    )
                )

        display = data.get("display")
        if isinstance(display, dict):
            if "verbosity" in display:
                self._check_enum(Verbosity, display["verbosity"], "display.verbosity", errors)
            for limit_key in ("max_arg_len", "max_arg_nums"):
                if limit_key in display:
                    value = display[limit_key]
                    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                        errors.append(
                            ValidationIssue(
                                path=f"display.{limit_key}",
                                message=f"{limit_key} must be a non-negative integer",
                            )
                        )

        defaults = data.get("defaults")
        if isinstance(defaults, dict) and "exit_code" in defaults:
            value = defaults["exit_code"]
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 255:
                errors.append(
                    ValidationIssue(
                        path="defaults.exit_code",
                        message="exit_code must be an integer between 0 and 255",
                    )
                )

        logging_section = data.get("logging")
        if isinstance(logging_section, dict):
            if "level" in logging_section:
                self._check_enum(LogLevel, logging_section["level"], "logging.level", errors)
            if "format" in logging_section:
                self._check_enum(LogFormat, logging_section["format"], "logging.format", errors)

        return ValidationResult(valid=True, errors=errors, warnings=warnings)

    def get(self) -> TrycoreConfig:
        """Get current configuration.

        Returns:
            Current TrycoreConfig instance

        Raises:
            ErrorRecord: config.invalid if configuration not loaded
        """
        if self._config is None:
            raise create_error("config.invalid", "Configuration not loaded")
        return self._config

    def reload(self) -> TrycoreConfig:
        """Reload configuration from the file it was loaded from.

        Returns:
            Reloaded TrycoreConfig instance

        Raises:
            ErrorRecord: config.invalid if no config path is set or reload fails
        """
        if self._config_path is None:
            raise create_error("config.invalid", "No config path set, cannot reload")
        return self.load(self._config_path, use_defaults=False)

    def _check_enum(
        self,
        enum_type: type[Enum],
        value: Any,
        path: str,
        errors: list[ValidationIssue],
    ) -> None:
        try:
            _coerce_enum(enum_type, value)
        except (KeyError, ValueError):
            choices = ", ".join(str(m.value) for m in enum_type)
            errors.append(
                ValidationIssue(path=path, message=f"Invalid value {value!r} (expected one of: {choices})")
            )

    def _resolve_config_path(self) -> Path:
        """Resolve config file path using resolution order."""
        # 1. TRYCORE_CONFIG_PATH environment variable
        env_path = os.environ.get("TRYCORE_CONFIG_PATH")
        if env_path:
            return Path(env_path)

        # 2. ./trycore.yaml
        local_path = Path("trycore.yaml")
        if local_path.exists():
            return local_path

        # 3. ~/.trycore/config.yaml
        home_path = Path.home() / ".trycore" / "config.yaml"
        if home_path.exists():
            return home_path

        # Not found - use local path as default
        return local_path

    def _dict_to_config(self, data: dict[str, Any]) -> TrycoreConfig:
        """Convert dictionary to TrycoreConfig.

        Args:
            data: Configuration dictionary

        Returns:
            TrycoreConfig instance
        """
        kwargs: dict[str, Any] = {}
        for f in fields(TrycoreConfig):
            if f.name in data:
                kwargs[f.name] = self._convert_field(f.type, data[f.name])
        return TrycoreConfig(**kwargs)

    def _convert_field(self, field_type: Any, value: Any) -> Any:
        """Convert field value to appropriate type.

        Args:
            field_type: Expected field type
            value: Value to convert

        Returns:
            Converted value
        """
        if value is None:
            return None

        origin = typing.get_origin(field_type)

        if origin is list:
            if not isinstance(value, list):
                return value
            args = typing.get_args(field_type)
            if args:
                return [self._convert_field(args[0], item) for item in value]
            return value

        # Handle dataclasses
        if hasattr(field_type, "__dataclass_fields__"):
            if isinstance(value, dict):
                kwargs = {}
                for f in fields(field_type):
                    if f.name in value:
                        kwargs[f.name] = self._convert_field(f.type, value[f.name])
                return field_type(**kwargs)
            return value

        # Handle enums
        if isinstance(field_type, type) and issubclass(field_type, Enum):
            return _coerce_enum(field_type, value)

        # Return as-is for primitives
        return value


# Convenience singleton
_default_loader: ConfigLoader | None = None


def get_config_loader() -> ConfigLoader:
    """Get default config loader singleton.

    Returns:
        Default ConfigLoader instance
    """
    global _default_loader  # noqa: PLW0603
    if _default_loader is None:
        _default_loader = ConfigLoader()
    return _default_loader


def load_config(path: str | Path | None = None) -> TrycoreConfig:
    """Convenience function to load config.

    Args:
        path: Optional path to config file

    Returns:
        Loaded TrycoreConfig instance
    """
    return get_config_loader().load(path)


def apply_config(config: TrycoreConfig) -> Context:
    """Install a configuration for the calling thread.

    Builds a Context from ``config``, makes it the thread's context and
    configures the ``trycore`` logger.

    Args:
        config: Loaded configuration

    Returns:
        The installed Context
    """
    context = Context.from_config(config)
    set_context(context)
    configure_logging(
        level=config.logging.level,
        format=config.logging.format,
        truncate_at=config.logging.truncate_at,
    )
    return context
