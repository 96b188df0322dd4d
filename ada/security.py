# ada/security.py
# CSRF, échappement XSS, nettoyage des entrées, mots de passe
from __future__ import annotations

import hmac
import json
import re
import secrets
from urllib.parse import quote_plus

from markupsafe import escape as _html_escape
from werkzeug.security import check_password_hash, generate_password_hash

from .globals import get_session

CSRF_SESSION_KEY = "_csrf_token"

_TAG_RE = re.compile(r"<[^>]*>")

# équivalent de JSON_HEX_TAG | JSON_HEX_AMP | JSON_HEX_APOS | JSON_HEX_QUOT
_JS_HEX = {
    "<": "\\u003C",
    ">": "\\u003E",
    "&": "\\u0026",
    "'": "\\u0027",
    '\\"': "\\u0022",
}
# les paires d'échappement JSON sont consommées entières
_JS_HEX_RE = re.compile(r'\\\\|\\"|[<>&\']')


def _session(session=None):
    s = session if session is not None else get_session()
    if s is None:
        raise RuntimeError("No session available: is SessionMiddleware enabled?")
    return s


# -------------------------------------------------------------------
# CSRF
# -------------------------------------------------------------------
def generate_csrf_token(session=None) -> str:
    s = _session(session)
    if not s.has(CSRF_SESSION_KEY):
        s[CSRF_SESSION_KEY] = secrets.token_hex(32)
    return s[CSRF_SESSION_KEY]


def get_csrf_token(session=None):
    return _session(session).get(CSRF_SESSION_KEY)


def regenerate_csrf_token(session=None) -> str:
    token = secrets.token_hex(32)
    _session(session)[CSRF_SESSION_KEY] = token
    return token


def validate_csrf_token(token, session=None) -> bool:
    s = _session(session)
    expected = s.get(CSRF_SESSION_KEY)
    if not expected or not token or not isinstance(token, str):
        return False
    valid = hmac.compare_digest(expected, token)
    if valid:
        regenerate_csrf_token(s)
    return valid


# -------------------------------------------------------------------
# Nettoyage / échappement
# -------------------------------------------------------------------
def sanitize(value: str, strip_tags: bool = False) -> str:
    value = (value or "").replace("\0", "")
    if strip_tags:
        value = _TAG_RE.sub("", value)
    return value.strip()


def sanitize_array(data: dict, strip_tags: bool = False) -> dict:
    cleaned = {}
    for key, value in data.items():
        if isinstance(value, dict):
            cleaned[key] = sanitize_array(value, strip_tags)
        elif isinstance(value, str):
            cleaned[key] = sanitize(value, strip_tags)
        else:
            cleaned[key] = value
    return cleaned


def escape(value) -> str:
    if value is None:
        return ""
    return str(_html_escape(value))


def escape_js(value) -> str:
    """JSON utilisable tel quel dans un <script>, quel que soit le type."""
    encoded = json.dumps(value)
    return _JS_HEX_RE.sub(lambda m: _JS_HEX.get(m.group(0), m.group(0)), encoded)


def escape_url(value) -> str:
    return quote_plus(str(value))


# -------------------------------------------------------------------
# Mots de passe
# -------------------------------------------------------------------
def hash_password(password: str, method: str = "scrypt") -> str:
    return generate_password_hash(password, method=method)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    return check_password_hash(hashed, password)
