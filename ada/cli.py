# ada/cli.py
# Commandes en ligne (click) : serveur de dev, liste des routes, cache des vues.
from __future__ import annotations

import functools

import click

from .middleware import Middleware


class AppInfo:
    """Construit l'application à la première commande qui en a besoin."""

    def __init__(self, factory):
        self.factory = factory
        self._app = None

    def load(self):
        if self._app is None:
            self._app = self.factory()
        return self._app


pass_info = click.make_pass_decorator(AppInfo)


def with_app(f):
    """Passe l'application (dans son contexte) en premier argument."""

    @functools.wraps(f)
    @pass_info
    @click.pass_context
    def wrapper(ctx, info, *args, **kwargs):
        app = info.load()
        with app.app_context():
            return ctx.invoke(f, app, *args, **kwargs)

    return wrapper


def _middleware_name(entry) -> str:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, type):
        return entry.__name__
    if isinstance(entry, Middleware):
        return type(entry).__name__
    return getattr(entry, "__name__", repr(entry))


def make_cli(factory) -> click.Group:
    @click.group()
    @click.pass_context
    def cli(ctx):
        """Gestion de l'application."""
        ctx.obj = AppInfo(factory)

    @cli.command("serve")
    @click.option("--host", default="127.0.0.1", show_default=True)
    @click.option("--port", default=5000, show_default=True, type=int)
    @click.option("--debug/--no-debug", default=None, help="Recharge automatique et traces.")
    @with_app
    def serve(app, host, port, debug):
        """Lance le serveur de développement werkzeug."""
        app.run(host=host, port=port, debug=debug)

    @cli.command("routes")
    @with_app
    def routes(app):
        """Affiche les routes enregistrées, dans l'ordre de correspondance."""
        rows = [
            (
                r.method,
                r.uri,
                r.name or "",
                r.action_name,
                ", ".join(_middleware_name(m) for m in r.middleware),
            )
            for r in app.router.routes
        ]
        if not rows:
            click.echo("No routes registered.")
            return
        headers = ("METHOD", "URI", "NAME", "ACTION", "MIDDLEWARE")
        widths = [max(len(h), *(len(row[i]) for row in rows)) for i, h in enumerate(headers)]
        line = "  ".join(h.ljust(w) for h, w in zip(headers, widths))
        click.echo(line.rstrip())
        for row in rows:
            click.echo("  ".join(c.ljust(w) for c, w in zip(row, widths)).rstrip())

    @cli.command("view-clear")
    @with_app
    def view_clear(app):
        """Supprime les templates compilés."""
        count = app.view.clear_cache()
        click.echo(f"✅ {count} compiled view(s) removed.")

    return cli
