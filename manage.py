#!/usr/bin/env python3
# manage.py
# Ligne de commande : serve, routes, view-clear, init-db, audit.
from ada.cli import make_cli
from app import create_app
from auditor import audit
from init_db import init_db_command

cli = make_cli(create_app)
cli.add_command(init_db_command)
cli.add_command(audit)


if __name__ == "__main__":
    cli()
