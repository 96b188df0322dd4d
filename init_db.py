#!/usr/bin/env python3
"""
Initialisation de la base de données du portail de devoirs.
Crée les tables et ajoute des données d'exemple.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta

import click

from ada.cli import with_app
from models import deposes, devoirs, metadata, users


def init_database(app, reset: bool = False, seed: bool = True, echo=print) -> dict:
    """Crée le schéma ; `reset` supprime d'abord les tables existantes."""
    engine = app.database.engine

    echo("🗄️  Création des tables de la base de données...")
    if reset:
        metadata.drop_all(engine)
    metadata.create_all(engine)
    echo("✅ Tables créées avec succès!")

    counts = {"users": 0, "devoirs": 0, "deposes": 0}
    if not seed:
        return counts

    with app.database.connect() as conn:
        if conn.execute(users.select().limit(1)).first() is not None:
            echo("⚠️  La base contient déjà des données : pas de nouvel exemple ajouté.")
            return counts

        echo("\n👤 Ajout des utilisateurs d'exemple...")
        conn.execute(users.insert(), [
            {"username": "admin", "email": "admin@example.com"},
            {"username": "prof", "email": "prof@example.com"},
        ])
        counts["users"] = 2

        echo("📚 Ajout des devoirs d'exemple...")
        today = date.today()
        sample_devoirs = [
            {"shortcode": "DM1", "datelimite": today - timedelta(days=14)},
            {"shortcode": "DM2", "datelimite": today + timedelta(days=7)},
            {"shortcode": "DM3", "datelimite": today + timedelta(days=30)},
        ]
        conn.execute(devoirs.insert(), sample_devoirs)
        counts["devoirs"] = len(sample_devoirs)

        ids = {
            row.shortcode: row.iddevoirs
            for row in conn.execute(devoirs.select())
        }

        echo("📝 Ajout des dépôts d'exemple...")
        now = datetime.now().replace(microsecond=0)
        sample_deposes = [
            {"nom": "Lovelace", "prenom": "Ada", "datedepot": now - timedelta(days=15),
             "url": "https://github.com/ada/dm1", "iddevoirs": ids["DM1"]},
            {"nom": "Hopper", "prenom": "Grace", "datedepot": now - timedelta(days=16),
             "url": None, "nomfichieroriginal": "dm1.zip",
             "nomfichierstockage": "dm1_grace.zip", "iddevoirs": ids["DM1"]},
            {"nom": "Lovelace", "prenom": "Ada", "datedepot": now - timedelta(days=1),
             "url": "https://github.com/ada/dm2", "iddevoirs": ids["DM2"]},
        ]
        conn.execute(deposes.insert(), [
            {"nomfichieroriginal": None, "nomfichierstockage": None, **d} for d in sample_deposes
        ])
        counts["deposes"] = len(sample_deposes)

    echo("\n🎉 Base de données initialisée!")
    return counts


@click.command("init-db")
@click.option("--reset", is_flag=True, help="Supprime et recrée les tables.")
@click.option("--no-seed", is_flag=True, help="Crée le schéma sans données d'exemple.")
@with_app
def init_db_command(app, reset, no_seed):
    """Crée les tables (et des données d'exemple)."""
    init_database(app, reset=reset, seed=not no_seed, echo=click.echo)


if __name__ == "__main__":
    from app import create_app

    init_database(create_app(), reset=False)
