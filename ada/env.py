# ada/env.py
# Variables d'environnement (.env via python-dotenv)
from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

_logger = logging.getLogger(__name__)

_CASTS = {"true": True, "false": False, "null": None}


def load(path) -> bool:
    """Charge un fichier .env sans écraser les variables déjà définies."""
    p = Path(path)
    if not p.is_file():
        _logger.debug("ENV file not found: %s", p)
        return False
    if not os.access(p, os.R_OK):
        _logger.warning("ENV file not readable: %s", p)
        return False
    load_dotenv(p, override=False)
    return True


def get(key: str, default=None):
    """Lit une variable ; 'true'/'false'/'null' deviennent True/False/None."""
    value = os.getenv(key)
    if value is None:
        return default
    lower = value.strip().lower()
    if lower in _CASTS:
        return _CASTS[lower]
    return value


def has(key: str) -> bool:
    return os.getenv(key) is not None


def set(key: str, value: str) -> None:  # noqa: A001
    os.environ[key] = str(value)


def flag(key: str, default: bool = False) -> bool:
    """Booléen permissif : 1/true/yes/on."""
    val = os.getenv(key)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on", "y"}
