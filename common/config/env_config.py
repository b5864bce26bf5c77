"""Typed readers over os.environ. Empty strings count as unset."""

import os
from enum import Enum
from typing import List, Optional, Type, TypeVar
from common.api_error import ConfigurationError

E = TypeVar("E", bound=Enum)


def get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(name) or default


def require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigurationError(f"Missing required env variables: {name}")
    return value


def get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got: {raw}") from exc


def get_enum_env(name: str, enum_cls: Type[E], *, required: bool = True) -> Optional[E]:
    """
    Parse an env variable into `enum_cls`.

    An unknown value raises ValueError listing the accepted ones, which
    initialize_config() reports as a ConfigurationError.
    """
    raw = require_env(name) if required else os.getenv(name)
    if not raw:
        return None
    try:
        return enum_cls(raw)
    except ValueError:
        accepted = [member.value for member in enum_cls]
        raise ValueError(f"Invalid {name}: {raw}. Must be one of: {accepted}")


def get_list_env(name: str, default: str = "") -> List[str]:
    """Comma-separated values, stripped, blanks dropped."""
    raw = os.getenv(name) or default
    return [item.strip() for item in raw.split(",") if item.strip()]


__all__ = ["get_env", "require_env", "get_int_env", "get_enum_env", "get_list_env"]
