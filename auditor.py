# auditor.py
import os
import re
from collections import defaultdict

import click

from ada.cli import with_app
from ada.exceptions import RoutingError

_ROUTE_RE = re.compile(r"""route\(\s*['"]([a-zA-Z_][a-zA-Z0-9_.\-]*)['"]""")


def _iter_template_files(base):
    for root, _, files in os.walk(base):
        for f in files:
            if f.endswith(".html"):
                yield os.path.join(root, f)


def _scan_templates(template_dir):
    used = set()
    locations = defaultdict(set)
    for p in _iter_template_files(template_dir):
        try:
            with open(p, "r", encoding="utf-8", errors="ignore") as fh:
                txt = fh.read()
        except OSError:
            continue
        for m in _ROUTE_RE.finditer(txt):
            name = m.group(1)
            used.add(name)
            locations[name].add(os.path.relpath(p, template_dir))
    return used, locations


def run_audit(app, echo=print) -> dict:
    """
    Audit clair et net:
    - Routes nommées appelées dans les templates mais absentes
    - Collisions (même méthode + URI enregistrée plusieurs fois)
    - Actions impossibles à résoudre (contrôleur ou méthode introuvable)
    - Routes nommées jamais utilisées dans les templates
    """
    router = app.router
    tpl_dir = str(app.view.path)

    echo("=== AUDIT ROUTES & TEMPLATES ===")
    echo(f"- templates dir: {tpl_dir}")

    # 1) routes réellement enregistrées
    names = set(router.named)
    echo(f"- routes enregistrées: {len(router.routes)} ({len(names)} nommées)")

    # 2) méthode + URI -> routes, pour détecter les collisions
    rule_map = defaultdict(list)
    for r in router.routes:
        rule_map[(r.method, r.uri)].append(r)
    collisions = [(method, uri, rs) for (method, uri), rs in rule_map.items() if len(rs) > 1]

    # 3) actions non résolubles
    broken = []
    for r in router.routes:
        try:
            router.check_action(r.action)
        except RoutingError as e:
            broken.append((r, str(e)))

    # 4) routes utilisées par les templates
    used, where = _scan_templates(tpl_dir)

    missing = sorted(n for n in used if n not in names)
    unused = sorted(n for n in names if n not in used)

    # 5) rendu clair
    def _section(title):
        echo("\n" + title)
        echo("-" * len(title))

    _section("A. Routes APPELÉES dans les templates mais INEXISTANTES")
    if missing:
        for name in missing:
            files = ", ".join(sorted(where.get(name, []))[:5])
            more = "" if len(where.get(name, [])) <= 5 else " ..."
            echo(f"  ! {name:<30} (vu dans: {files}{more})")
    else:
        echo("  OK : aucune route manquante.")

    _section("B. Collisions (même méthode + URI enregistrée plusieurs fois)")
    if collisions:
        for method, uri, rs in collisions:
            echo(f"  ! {method} {uri} -> {[r.action_name for r in rs]}")
    else:
        echo("  OK : aucune collision.")

    _section("C. Actions introuvables")
    if broken:
        for r, reason in broken:
            echo(f"  ? {r.method} {r.uri} ({r.action_name}): {reason}")
    else:
        echo("  OK : toutes les actions sont résolues.")

    _section("D. Routes nommées JAMAIS appelées depuis les templates")
    if unused:
        for name in unused:
            echo(f"  · {name}")
    else:
        echo("  OK : toutes les routes nommées sont utilisées.")

    echo("\nRésumé:")
    echo(f"  Manquantes: {len(missing)}  |  Collisions: {len(collisions)}  |  "
         f"Introuvables: {len(broken)}  |  Inusitées: {len(unused)}")

    return {
        "missing": missing,
        "collisions": [(m, u) for m, u, _ in collisions],
        "broken": [(r.method, r.uri) for r, _ in broken],
        "unused": unused,
    }


@click.command("audit")
@with_app
def audit(app):
    """Audit des routes nommées et des templates."""
    result = run_audit(app, echo=click.echo)
    if result["missing"] or result["broken"]:
        raise click.exceptions.Exit(1)
