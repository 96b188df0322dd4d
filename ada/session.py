# ada/session.py
# Sessions persistées sur disque (un fichier JSON par session)
from __future__ import annotations

import collections.abc
import contextlib
import json
import logging
import os
import re
import secrets
import tempfile
import time
from pathlib import Path

_logger = logging.getLogger(__name__)

FLASH_KEY = "_flash"
FLASH_OLD_KEY = "_flash_old"

# secrets.token_urlsafe(32) → 43 caractères base64 url-safe
_session_key_re = re.compile(r"^[A-Za-z0-9_-]{43}$")


class Session(collections.abc.MutableMapping):
    """ Données conservées d'une requête à l'autre. """

    def __init__(self, data=None, sid=None, new=False):
        self._data = {}
        self._data.update(data or {})
        self.sid = sid
        self.is_new = new
        self.is_dirty = False
        self.should_rotate = False
        self.should_destroy = False

    # ---- MutableMapping ------------------------------------------------
    def __getitem__(self, key):
        return self._data[key]

    def __setitem__(self, key, value):
        # impose des valeurs sérialisables en JSON dès l'écriture
        value = json.loads(json.dumps(value))
        if key not in self._data or self._data[key] != value:
            self.is_dirty = True
        self._data[key] = value

    def __delitem__(self, key):
        del self._data[key]
        self.is_dirty = True

    def __len__(self):
        return len(self._data)

    def __iter__(self):
        return iter(self._data)

    def __repr__(self):
        return f"<Session sid={self.sid!r} keys={sorted(self._data)}>"

    # ---- API « à la Session:: » -----------------------------------------
    def set(self, key, value) -> None:
        self[key] = value

    def has(self, key) -> bool:
        return self._data.get(key) is not None

    def remove(self, key) -> None:
        if key in self._data:
            del self[key]

    def to_dict(self) -> dict:
        return dict(self._data)

    def clear(self) -> None:
        if self._data:
            self.is_dirty = True
        self._data.clear()

    def regenerate(self) -> None:
        """Nouvel identifiant au prochain enregistrement (données conservées)."""
        self.should_rotate = True

    def destroy(self) -> None:
        self.clear()
        self.should_destroy = True

    # ---- Flash -----------------------------------------------------------
    # `_flash` : posé pendant cette requête, lisible jusqu'à la suivante.
    # `_flash_old` : reçu de la requête précédente, effacé à la prochaine.
    def flash(self, key, value) -> None:
        bag = dict(self._data.get(FLASH_KEY) or {})
        bag[key] = value
        self[FLASH_KEY] = bag

    def _take(self, bag_key, key):
        bag = dict(self._data.get(bag_key) or {})
        value = bag.pop(key)
        if bag:
            self[bag_key] = bag
        else:
            self.remove(bag_key)
        return value

    def get_flash(self, key, default=None):
        for bag_key in (FLASH_OLD_KEY, FLASH_KEY):
            if key in (self._data.get(bag_key) or {}):
                return self._take(bag_key, key)
        return default

    def peek_flash(self, key, default=None):
        for bag_key in (FLASH_OLD_KEY, FLASH_KEY):
            bag = self._data.get(bag_key) or {}
            if key in bag:
                return bag[key]
        return default

    def has_flash(self, key) -> bool:
        return any(key in (self._data.get(k) or {}) for k in (FLASH_OLD_KEY, FLASH_KEY))

    def get_all_flash(self) -> dict:
        flashed = {}
        flashed.update(self._data.get(FLASH_OLD_KEY) or {})
        flashed.update(self._data.get(FLASH_KEY) or {})
        self.remove(FLASH_OLD_KEY)
        self.remove(FLASH_KEY)
        return flashed

    def age_flash(self) -> None:
        """Début de requête : le flash précédent devient « ancien », l'ancien disparaît."""
        pending = self._data.get(FLASH_KEY)
        self.remove(FLASH_OLD_KEY)
        self.remove(FLASH_KEY)
        if pending:
            self[FLASH_OLD_KEY] = pending


class FileSessionStore:
    """ Lecture / écriture des sessions, réparties dans des sous-dossiers. """

    def __init__(self, path, session_class=Session):
        self.path = Path(path)
        self.session_class = session_class

    def is_valid_key(self, key) -> bool:
        return bool(key) and _session_key_re.match(key) is not None

    def generate_key(self) -> str:
        return secrets.token_urlsafe(32)

    def get_session_filename(self, sid) -> Path:
        if not self.is_valid_key(sid):
            raise ValueError(f"Invalid session id {sid!r}")
        return self.path / sid[:2] / f"{sid}.json"

    def new(self) -> Session:
        session = self.session_class({}, self.generate_key(), new=True)
        session["_session_created"] = int(time.time())
        return session

    def get(self, sid) -> Session:
        if not self.is_valid_key(sid):
            return self.new()
        filename = self.get_session_filename(sid)
        try:
            with open(filename, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return self.new()
        except (OSError, ValueError) as e:
            _logger.warning("Session illisible %s : %s", filename, e)
            return self.new()
        if not isinstance(data, dict):
            return self.new()
        return self.session_class(data, sid)

    def save(self, session: Session) -> None:
        filename = self.get_session_filename(session.sid)
        filename.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=filename.parent, prefix=".tmp-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(session.to_dict(), f)
            os.replace(tmp, filename)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp)
            raise
        session.is_new = False
        session.is_dirty = False

    def delete(self, session: Session) -> None:
        if not self.is_valid_key(session.sid):
            return
        with contextlib.suppress(FileNotFoundError):
            os.unlink(self.get_session_filename(session.sid))

    def rotate(self, session: Session) -> None:
        self.delete(session)
        session.sid = self.generate_key()
        session.should_rotate = False
        self.save(session)
