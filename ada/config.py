# ada/config.py
# Configuration par fichiers Python (config/<nom>.py → CONFIG)
from __future__ import annotations

import copy
import logging
import runpy
from pathlib import Path

_logger = logging.getLogger(__name__)

_MISSING = object()


class Config:
    """
    Accès « pointé » à la configuration : get("app.session.lifetime").
    Le premier segment désigne le fichier, chargé à la demande.
    """

    def __init__(self, directory=None):
        self.directory = Path(directory) if directory else None
        self._config: dict[str, dict] = {}
        self._loaded: set[str] = set()

    def load(self, name: str) -> bool:
        if name in self._loaded:
            return True
        if self.directory is None:
            return False

        path = self.directory / f"{name}.py"
        if not path.is_file():
            _logger.warning("Config file not found: %s", path)
            return False

        data = runpy.run_path(str(path)).get("CONFIG")
        if not isinstance(data, dict):
            _logger.error("Config file must define a CONFIG dict: %s", path)
            return False

        self._config[name] = data
        self._loaded.add(name)
        return True

    def load_all(self) -> None:
        if self.directory is None or not self.directory.is_dir():
            return
        for path in sorted(self.directory.glob("*.py")):
            if not path.stem.startswith("_"):
                self.load(path.stem)

    def _lookup(self, key: str):
        name, *segments = key.split(".")
        if name not in self._loaded:
            self.load(name)
        if name not in self._config:
            return _MISSING

        value = self._config[name]
        for segment in segments:
            if not isinstance(value, dict) or segment not in value:
                return _MISSING
            value = value[segment]
        return value

    def get(self, key: str, default=None):
        value = self._lookup(key)
        return default if value is _MISSING else value

    def has(self, key: str) -> bool:
        return self._lookup(key) is not _MISSING

    def set(self, key: str, value) -> None:
        name, *segments = key.split(".")
        if name not in self._config:
            # on tente d'abord le fichier pour ne pas le masquer
            if not self.load(name):
                self._config[name] = {}
                self._loaded.add(name)

        if not segments:
            self._config[name] = value
            return

        target = self._config[name]
        for segment in segments[:-1]:
            if not isinstance(target.get(segment), dict):
                target[segment] = {}
            target = target[segment]
        target[segments[-1]] = value

    def update(self, overrides: dict | None) -> None:
        for key, value in (overrides or {}).items():
            self.set(key, value)

    def all(self, name: str) -> dict:
        if name not in self._loaded:
            self.load(name)
        return copy.deepcopy(self._config.get(name, {}))

    def clear(self) -> None:
        self._config = {}
        self._loaded = set()
