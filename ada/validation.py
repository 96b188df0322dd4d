# ada/validation.py
# Validation des entrées par règles ("required|email|min:5")
from __future__ import annotations

import logging
import re
from urllib.parse import urlparse

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError

from .globals import current_app
from .model import check_identifier

_logger = logging.getLogger(__name__)

DEFAULT_MESSAGES = {
    "required": "The :field field is required.",
    "email": "The :field must be a valid email address.",
    "min": "The :field must be at least :param characters.",
    "max": "The :field must not exceed :param characters.",
    "numeric": "The :field must be a number.",
    "integer": "The :field must be an integer.",
    "alpha": "The :field must contain only letters.",
    "alphanumeric": "The :field must contain only letters and numbers.",
    "url": "The :field must be a valid URL.",
    "match": "The :field must match :param.",
    "in": "The :field must be one of: :param.",
    "regex": "The :field format is invalid.",
    "unique": "The :field has already been taken.",
    "exists": "The selected :field is invalid.",
    "confirmed": "The :field confirmation does not match.",
}

_email_re = re.compile(r"[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)+")
_numeric_re = re.compile(r"\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*")
_integer_re = re.compile(r"[+-]?\d+")
_alpha_re = re.compile(r"[a-zA-Z]+")
_alnum_re = re.compile(r"[a-zA-Z0-9]+")


def _is_empty(value) -> bool:
    return value is None or value == ""


def _is_numeric(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    return isinstance(value, str) and _numeric_re.fullmatch(value) is not None


def parse_rules(rules) -> list[tuple[str, list[str]]]:
    if isinstance(rules, str):
        rules = rules.split("|")
    parsed = []
    for rule in rules:
        rule = rule.strip()
        if not rule:
            continue
        name, sep, params = rule.partition(":")
        if not sep:
            parsed.append((name, []))
        elif name == "regex":
            # le motif peut contenir des virgules
            parsed.append((name, [params]))
        else:
            parsed.append((name, params.split(",")))
    return parsed


class Validator:
    def __init__(self, data: dict, rules: dict, messages: dict | None = None, database=None):
        self.data = dict(data or {})
        self.rules = rules
        self.messages = messages or {}
        self._database = database
        self._errors: dict[str, list[str]] = {}

    @classmethod
    def make(cls, data, rules, messages=None, database=None) -> "Validator":
        return cls(data, rules, messages, database)

    @property
    def database(self):
        if self._database is None:
            self._database = current_app.database
        return self._database

    # -------------------------------------------------------------------
    def validate(self) -> bool:
        self._errors = {}
        for field, rules in self.rules.items():
            value = self.data.get(field)
            for name, params in parse_rules(rules):
                check = getattr(self, f"validate_{name}", None)
                if check is None:
                    raise ValueError(f"Validation rule '{name}' does not exist.")
                if not check(field, value, params):
                    self._add_error(field, name, params)
                    break
        return not self._errors

    def passes(self) -> bool:
        return not self._errors

    def fails(self) -> bool:
        return bool(self._errors)

    def errors(self) -> dict:
        return self._errors

    def error(self, field: str) -> list[str]:
        return self._errors.get(field, [])

    def first(self, field: str) -> str | None:
        messages = self._errors.get(field)
        return messages[0] if messages else None

    def validated(self) -> dict:
        """Données des champs soumis à des règles et valides."""
        return {f: self.data.get(f) for f in self.rules if f not in self._errors and f in self.data}

    # -------------------------------------------------------------------
    def _add_error(self, field, rule, params) -> None:
        self._errors.setdefault(field, []).append(self._message(field, rule, params))

    def _message(self, field, rule, params) -> str:
        message = (
            self.messages.get(f"{field}.{rule}")
            or self.messages.get(rule)
            or DEFAULT_MESSAGES.get(rule, "The :field is invalid.")
        )
        message = message.replace(":field", self.format_field_name(field))
        return message.replace(":param", ", ".join(params))

    @staticmethod
    def format_field_name(field: str) -> str:
        name = field.replace("_", " ")
        return name[:1].upper() + name[1:]

    # ==================== règles ====================
    def validate_required(self, field, value, params) -> bool:
        if value is None:
            return False
        if isinstance(value, str) and value.strip() == "":
            return False
        if isinstance(value, (list, tuple, dict)) and not value:
            return False
        return True

    def validate_email(self, field, value, params) -> bool:
        if _is_empty(value):
            return True
        return isinstance(value, str) and _email_re.fullmatch(value) is not None

    def _size(self, value):
        if _is_numeric(value):
            return float(value)
        return len(str(value))

    def validate_min(self, field, value, params) -> bool:
        if _is_empty(value):
            return True
        return self._size(value) >= int(params[0])

    def validate_max(self, field, value, params) -> bool:
        if _is_empty(value):
            return True
        return self._size(value) <= int(params[0])

    def validate_numeric(self, field, value, params) -> bool:
        if _is_empty(value):
            return True
        return _is_numeric(value)

    def validate_integer(self, field, value, params) -> bool:
        if _is_empty(value):
            return True
        if isinstance(value, bool):
            return False
        if isinstance(value, int):
            return True
        return isinstance(value, str) and _integer_re.fullmatch(value.strip()) is not None

    def validate_alpha(self, field, value, params) -> bool:
        if _is_empty(value):
            return True
        return _alpha_re.fullmatch(str(value)) is not None

    def validate_alphanumeric(self, field, value, params) -> bool:
        if _is_empty(value):
            return True
        return _alnum_re.fullmatch(str(value)) is not None

    def validate_url(self, field, value, params) -> bool:
        if _is_empty(value):
            return True
        parsed = urlparse(str(value))
        return bool(parsed.scheme) and bool(parsed.netloc or parsed.scheme in ("mailto", "news", "file"))

    def validate_match(self, field, value, params) -> bool:
        if not params:
            return False
        return value == self.data.get(params[0])

    def validate_in(self, field, value, params) -> bool:
        if _is_empty(value):
            return True
        return str(value) in params

    def validate_regex(self, field, value, params) -> bool:
        if _is_empty(value):
            return True
        if not params:
            return False
        pattern = params[0]
        # motifs « à la PHP » : /.../
        if len(pattern) >= 2 and pattern[0] == "/" and pattern.rfind("/") > 0:
            pattern = pattern[1:pattern.rfind("/")]
        return re.search(pattern, str(value)) is not None

    def _count(self, table, column, value, except_id=None, id_column="id") -> int:
        stmt = (
            sa.select(sa.func.count())
            .select_from(sa.table(check_identifier(table)))
            .where(sa.column(check_identifier(column)) == value)
        )
        if except_id is not None:
            stmt = stmt.where(sa.column(check_identifier(id_column)) != except_id)
        with self.database.connect() as conn:
            return int(conn.execute(stmt).scalar() or 0)

    def validate_unique(self, field, value, params) -> bool:
        if _is_empty(value):
            return True
        if len(params) < 2:
            raise ValueError("Unique rule requires table and column parameters.")
        except_id = params[2] if len(params) > 2 and params[2] != "" else None
        id_column = params[3] if len(params) > 3 else "id"
        try:
            return self._count(params[0], params[1], value, except_id, id_column) == 0
        except SQLAlchemyError as e:
            _logger.error("Unique rule failed for %s: %s", field, e)
            return False

    def validate_exists(self, field, value, params) -> bool:
        if _is_empty(value):
            return True
        if len(params) < 2:
            raise ValueError("Exists rule requires table and column parameters.")
        try:
            return self._count(params[0], params[1], value) > 0
        except SQLAlchemyError as e:
            _logger.error("Exists rule failed for %s: %s", field, e)
            return False

    def validate_confirmed(self, field, value, params) -> bool:
        return value == self.data.get(f"{field}_confirmation")
