# models.py
# Schéma (MetaData SQLAlchemy) et modèles du portail de devoirs.
from __future__ import annotations

from datetime import date, datetime

import sqlalchemy as sa

from ada import Model

# -------------------------------------------------------------------
# Schéma (utilisé par init_db pour créer les tables)
# -------------------------------------------------------------------
metadata = sa.MetaData()

users = sa.Table(
    "users", metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("username", sa.String(80), unique=True, nullable=False),
    sa.Column("email", sa.String(120), unique=True, nullable=False),
)

devoirs = sa.Table(
    "devoirs", metadata,
    sa.Column("iddevoirs", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("shortcode", sa.String(50), unique=True, nullable=False),
    sa.Column("datelimite", sa.Date, nullable=False),
)

deposes = sa.Table(
    "deposes", metadata,
    sa.Column("iddeposes", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("nom", sa.String(50), nullable=False),
    sa.Column("prenom", sa.String(50), nullable=False),
    sa.Column("datedepot", sa.DateTime, nullable=False),
    sa.Column("url", sa.String(255)),
    sa.Column("nomfichieroriginal", sa.String(255)),
    sa.Column("nomfichierstockage", sa.String(255)),
    sa.Column("iddevoirs", sa.Integer, sa.ForeignKey("devoirs.iddevoirs"), nullable=False, index=True),
)


def as_date(value) -> date | None:
    """Les pilotes renvoient une date (MySQL) ou une chaîne ISO (SQLite)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


# -------------------------------------------------------------------
# Modèles
# -------------------------------------------------------------------
class User(Model):
    table = "users"
    primary_key = "id"
    fillable = ["username", "email"]

    def find_by_username(self, username: str):
        return self.find_by("username", username)

    def find_by_email(self, email: str):
        return self.find_by("email", email)

    def username_exists(self, username: str) -> bool:
        return self.find_by_username(username) is not None

    def email_exists(self, email: str) -> bool:
        return self.find_by_email(email) is not None


class Devoir(Model):
    table = "devoirs"
    primary_key = "iddevoirs"
    fillable = ["shortcode", "datelimite"]

    def find_by_shortcode(self, shortcode: str):
        return self.find_by("shortcode", shortcode)

    def get_upcoming(self, day: date | None = None) -> list[dict]:
        day = (day or date.today()).isoformat()
        return (
            self.where_condition("datelimite", ">=", day)
            .order_by("datelimite", "ASC")
            .get()
        )

    def get_past(self, day: date | None = None) -> list[dict]:
        day = (day or date.today()).isoformat()
        return (
            self.where_condition("datelimite", "<", day)
            .order_by("datelimite", "DESC")
            .get()
        )

    @staticmethod
    def is_past(devoir: dict, day: date | None = None) -> bool:
        deadline = as_date(devoir.get("datelimite"))
        return deadline is not None and deadline < (day or date.today())

    def is_open(self, id) -> bool:
        devoir = self.find(id)
        if not devoir:
            return False
        return not self.is_past(devoir)


class Depose(Model):
    table = "deposes"
    primary_key = "iddeposes"
    fillable = [
        "nom",
        "prenom",
        "datedepot",
        "url",
        "nomfichieroriginal",
        "nomfichierstockage",
        "iddevoirs",
    ]

    def get_by_devoir(self, id_devoir) -> list[dict]:
        return self.where("iddevoirs", id_devoir)

    def get_by_student(self, nom: str, prenom: str) -> list[dict]:
        return (
            self.new_query()
            .where("nom", nom)
            .where("prenom", prenom)
            .order_by("datedepot", "DESC")
            .get()
        )

    def get_latest(self, limit: int = 10) -> list[dict]:
        return self.order_by("datedepot", "DESC").limit(limit).get()

    def count_by_devoir(self, id_devoir) -> int:
        return self.new_query().where("iddevoirs", id_devoir).count()

    def find_with_devoir(self, id):
        return self.query_one(
            "SELECT d.*, dev.shortcode, dev.datelimite "
            "FROM deposes d "
            "LEFT JOIN devoirs dev ON d.iddevoirs = dev.iddevoirs "
            "WHERE d.iddeposes = :id LIMIT 1",
            {"id": id},
        )
