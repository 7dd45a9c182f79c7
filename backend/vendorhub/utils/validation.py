from __future__ import annotations
"""Reusable validation helpers for request payloads and model enums.

All failures raise InvalidArgument so callers get consistent 400 semantics.
"""
from typing import Any, Iterable, List, Optional

from vendorhub.errors import InvalidArgument


def validate_choice(value: Any, allowed: Iterable[Any], field_name: str = 'status') -> Any:
    """Validate that value is inside allowed.

    Returns the value (to enable inline usage) or raises InvalidArgument.
    """
    if value not in tuple(allowed):
        raise InvalidArgument(f"{field_name} invalid")
    return value


def require_fields(data: dict, *names: str) -> None:
    missing = [n for n in names if data.get(n) in (None, '')]
    if missing:
        raise InvalidArgument(f"{', '.join(missing)} required")


def coerce_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise InvalidArgument(f"{field_name} must be int")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidArgument(f"{field_name} must be int")


def string_list(value: Any, field_name: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise InvalidArgument(f"{field_name} must be a list of strings")
    return list(value)


def optional_bool(value: Any, field_name: str) -> Optional[bool]:
    if value is None:
        return None
    if not isinstance(value, bool):
        raise InvalidArgument(f"{field_name} must be boolean")
    return value

__all__ = ['validate_choice', 'require_fields', 'coerce_int', 'string_list', 'optional_bool']
