from __future__ import annotations
import os
from typing import Any, Dict

DEFAULT_LIMIT = 50
MAX_LIMIT = 200

_TRUE_VALUES = ('1', 'true', 'yes', 'on')


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def load_settings() -> Dict[str, Any]:
    """Read application settings from the environment (``.env`` is loaded by the app package)."""
    return {
        'DATABASE_URL': os.getenv('DATABASE_URL', 'sqlite:///dev.db'),
        'JWT_SECRET_KEY': os.getenv('JWT_SECRET_KEY', 'dev-secret'),
        'LOG_LEVEL': os.getenv('LOG_LEVEL', 'INFO').upper(),
        'DELEGATION_REJECT_DUPLICATE_ACTIVE': _env_flag('DELEGATION_REJECT_DUPLICATE_ACTIVE'),
    }


def normalize_pagination(limit_raw, offset_raw):
    try:
        limit = int(limit_raw) if limit_raw is not None else DEFAULT_LIMIT
        offset = int(offset_raw) if offset_raw is not None else 0
    except ValueError:
        raise ValueError('limit/offset must be int')
    limit = max(1, min(limit, MAX_LIMIT))
    offset = max(0, offset)
    return limit, offset
