from __future__ import annotations

import pytest
from click.testing import CliRunner

from ada import Application
from ada.cli import make_cli
from auditor import audit, run_audit
from init_db import init_db_command


@pytest.fixture
def cli(app):
    group = make_cli(lambda: app)
    group.add_command(init_db_command)
    group.add_command(audit)
    return group


@pytest.fixture
def runner():
    return CliRunner()


class TestRoutesCommand:

    def test_lists_routes_in_order(self, cli, runner):
        result = runner.invoke(cli, ["routes"])
        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0].split() == ["METHOD", "URI", "NAME", "ACTION", "MIDDLEWARE"]
        assert "HomeController@index" in lines[1]
        assert any("/api/devoirs" in line and "api.devoirs" in line for line in lines)

    def test_empty_router(self, runner, tmp_path):
        empty = make_cli(lambda: Application(tmp_path, {"app.log.stderr": False}))
        result = runner.invoke(empty, ["routes"])
        assert result.exit_code == 0
        assert "No routes registered." in result.output


class TestWithApp:

    def test_keeps_name_and_help(self, cli, runner):
        assert init_db_command.callback.__name__ == "init_db_command"
        assert audit.callback.__doc__.startswith("Audit des routes")
        result = runner.invoke(cli, ["init-db", "--help"])
        assert result.exit_code == 0
        assert "Crée les tables" in result.output
        assert "--no-seed" in result.output


class TestViewClear:

    def test_removes_compiled_views(self, app, cli, runner):
        app.test_client().get("/about")
        result = runner.invoke(cli, ["view-clear"])
        assert result.exit_code == 0
        assert "compiled view(s) removed." in result.output
        assert not list(app.view.cache_path.glob("*.py"))


class TestAudit:

    def test_clean_application(self, app):
        lines = []
        result = run_audit(app, echo=lines.append)
        assert result == {"missing": [], "collisions": [], "broken": [], "unused": []}
        assert any("OK : aucune route manquante." in line for line in lines)

    def test_reports_problems(self, app):
        app.router.get("/ghost", "HomeController@nope", name="ghost")
        app.router.get("/about", "HomeController@about")
        result = run_audit(app, echo=lambda *a: None)
        assert result["broken"] == [("GET", "/ghost")]
        assert result["collisions"] == [("GET", "/about")]
        assert result["unused"] == ["ghost"]

    def test_command_exit_code(self, app, cli, runner):
        assert runner.invoke(cli, ["audit"]).exit_code == 0
        app.router.get("/ghost", "HomeController@nope")
        result = runner.invoke(cli, ["audit"])
        assert result.exit_code == 1
        assert "Actions introuvables" in result.output


class TestInitDb:

    def test_existing_data_is_kept(self, cli, runner):
        result = runner.invoke(cli, ["init-db"])
        assert result.exit_code == 0
        assert "pas de nouvel exemple" in result.output

    def test_reset_reseeds(self, app, cli, runner):
        result = runner.invoke(cli, ["init-db", "--reset"])
        assert result.exit_code == 0, result.output
        assert "Base de données initialisée" in result.output
        assert app.test_client().get("/api/devoirs").get_json()["count"] == 3

    def test_schema_only(self, app, cli, runner):
        result = runner.invoke(cli, ["init-db", "--reset", "--no-seed"])
        assert result.exit_code == 0
        assert app.test_client().get("/api/devoirs").get_json()["count"] == 0
