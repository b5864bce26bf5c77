"""
Startup entry point for configuration.

initialize_config() loads and validates every section, configures
structlog, and stores the result for get_config().
"""
from typing import Optional
from pydantic import ValidationError
from common.api_error import ConfigurationError
from .app_config import AppConfig, load_app_config
from .structlog_config import configure_structlog

_config: Optional[AppConfig] = None


def _describe(error: ValidationError) -> str:
    lines = [
        f"  - {'.'.join(str(part) for part in item['loc'])}: {item['msg']}"
        for item in error.errors()
    ]
    return "Configuration validation failed:\n" + "\n".join(lines)


def initialize_config() -> AppConfig:
    """
    Must run once at process start, before anything asks for a logger
    or the database. Re-running replaces the stored configuration.

    Raises:
        ConfigurationError: missing variable, unknown enum value, or a
            value outside the allowed range
    """
    global _config

    try:
        config = load_app_config()
    except ValidationError as e:
        raise ConfigurationError(_describe(e)) from e
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    configure_structlog(config.logging.level_int, json_logs=config.is_production)
    _config = config
    return config


def get_config() -> AppConfig:
    if _config is None:
        raise RuntimeError(
            "Configuration not initialized. Call initialize_config() at startup."
        )
    return _config


def is_config_initialized() -> bool:
    return _config is not None


__all__ = ["initialize_config", "get_config", "is_config_initialized"]
