"""
Test 12: Command line interface (cli.py)
"""

import json

import click
import pytest
from click.testing import CliRunner

from nidus import AppModule, __version__
from nidus.cli import cli, load_module


TARGET = "examples.users_app.main:create_main_module"


@pytest.fixture
def runner():
    return CliRunner()


class TestLoadModule:

    def test_factory(self):
        assert isinstance(load_module(TARGET), AppModule)

    def test_subclass(self):
        module = load_module("examples.users_app.user.module:UserModule")
        assert type(module).__name__ == "UserModule"

    def test_missing_module(self):
        with pytest.raises(click.BadParameter):
            load_module("examples.no_such_module:thing")

    def test_missing_attribute(self):
        with pytest.raises(click.BadParameter):
            load_module("examples.users_app.main:nope")

    def test_not_a_module(self):
        with pytest.raises(click.BadParameter):
            load_module("examples.users_app.main:__doc__")


class TestCommands:

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"], obj={})
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_routes_table(self, runner):
        result = runner.invoke(cli, ["routes", TARGET], obj={})
        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert any(line.split()[:3] == ["route", "GET", "/api/users/:id"] for line in lines)
        assert lines[-1].split()[:3] == ["error", "*", "/api"]

    def test_routes_json(self, runner):
        result = runner.invoke(cli, ["routes", TARGET, "--json"], obj={})
        assert result.exit_code == 0, result.output
        layers = json.loads(result.output)
        assert {"kind": "route", "method": "POST", "path": "/api/companies"} in [
            {key: layer[key] for key in ("kind", "method", "path")} for layer in layers
        ]

    def test_routes_bad_target(self, runner):
        result = runner.invoke(cli, ["routes", "examples.users_app.main:nope"], obj={})
        assert result.exit_code == 2

    def test_run_passes_server_settings(self, runner, monkeypatch):
        calls = []
        monkeypatch.setattr(AppModule, "run", lambda self, **kw: calls.append(kw))
        monkeypatch.delenv("NIDUS_SERVER__PORT", raising=False)

        result = runner.invoke(cli, ["run", TARGET, "--port", "8123", "--log-level", "warning"], obj={})
        assert result.exit_code == 0, result.output
        assert calls == [{"host": "127.0.0.1", "port": 8123, "log_level": "warning"}]

    def test_run_reads_config_file(self, runner, monkeypatch, tmp_path):
        calls = []
        monkeypatch.setattr(AppModule, "run", lambda self, **kw: calls.append(kw))
        config = tmp_path / "server.yaml"
        config.write_text("server:\n  host: 0.0.0.0\n  port: 9000\n")

        result = runner.invoke(cli, ["run", TARGET, "--config", str(config), "--port", "9001"], obj={})
        assert result.exit_code == 0, result.output
        assert calls[0]["host"] == "0.0.0.0"
        assert calls[0]["port"] == 9001

    def test_run_config_error_exits_2(self, runner, tmp_path):
        result = runner.invoke(cli, ["run", TARGET, "--config", str(tmp_path / "missing.yaml")], obj={})
        assert result.exit_code == 2
        assert "Configuration error" in result.output

    def test_verbose_forces_debug(self, runner, monkeypatch):
        calls = []
        monkeypatch.setattr(AppModule, "run", lambda self, **kw: calls.append(kw))
        result = runner.invoke(cli, ["-v", "run", TARGET], obj={})
        assert result.exit_code == 0, result.output
        assert calls[0]["log_level"] == "debug"
