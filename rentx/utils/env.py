import os
from typing import Iterable, List, Optional


_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _raw(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def env_bool(name: str, *, default: bool = False) -> bool:
    """Boolean env var; unrecognised values are a startup error."""
    value = _raw(name)
    if value is None:
        return default
    if value.lower() in _TRUTHY:
        return True
    if value.lower() in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def env_int(name: str, *, default: int) -> int:
    value = _raw(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


def env_float(name: str, *, default: float) -> float:
    value = _raw(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")


def env_list(name: str, *, default: Iterable[str] = (), separator: str = ",") -> List[str]:
    value = os.getenv(name)
    if value is None:
        return list(default)
    return [item.strip() for item in value.split(separator) if item.strip()]
