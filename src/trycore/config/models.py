"""trycore configuration data models."""

from dataclasses import dataclass, field

from trycore.stack import DEFAULT_INTERNAL_PREFIXES
from trycore.types import DebugLevel, LogFormat, LogLevel, Verbosity


@dataclass
class CaptureConfig:
    """Stack capture configuration."""

    debug_level: DebugLevel = DebugLevel.STACK
    internal_prefixes: list[str] = field(
        default_factory=lambda: list(DEFAULT_INTERNAL_PREFIXES)
    )


@dataclass
class DisplayConfig:
    """Error display configuration."""

    verbosity: Verbosity = Verbosity.FULL
    max_arg_len: int = 64  # 0 = unlimited
    max_arg_nums: int = 8  # 0 = unlimited
    color: bool = False


@dataclass
class DefaultsConfig:
    """Defaults copied into every new error."""

    kind: str = ""
    message: str = "Unknown error"
    exit_code: int = 1


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    truncate_at: int = 200


@dataclass
class TrycoreConfig:
    """Root configuration."""

    capture: CaptureConfig = field(default_factory=CaptureConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
