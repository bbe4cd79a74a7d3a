"""trycore configuration - YAML config models and loader."""

from .models import (
    CaptureConfig,
    DefaultsConfig,
    DisplayConfig,
    LoggingConfig,
    TrycoreConfig,
)
from .loader import (
    ConfigLoader,
    apply_config,
    deep_merge,
    get_config_loader,
    load_config,
    resolve_env_vars,
)

__all__ = [
    # Models
    "TrycoreConfig",
    "CaptureConfig",
    "DisplayConfig",
    "DefaultsConfig",
    "LoggingConfig",
    # Loader
    "ConfigLoader",
    "apply_config",
    "get_config_loader",
    "load_config",
    "resolve_env_vars",
    "deep_merge",
]
