"""Tests for CLI configuration commands."""

import json

import yaml
from typer.testing import CliRunner

from dbadmin_cli import __version__
from dbadmin_cli.config import CLIConfig, DEFAULT_URL
from dbadmin_cli.main import app


runner = CliRunner()


class TestCLIConfig:
    """Tests for CLIConfig loading and saving."""

    def test_defaults_without_file_or_env(self, monkeypatch):
        monkeypatch.delenv("DBADMIN_URL")

        assert CLIConfig.load().url == DEFAULT_URL

    def test_env_overrides_file(self, cli_env):
        (cli_env / "config.yaml").write_text("url: http://from-file:9000\n")

        assert CLIConfig.load().url == "http://test-api"

    def test_file_is_read(self, cli_env, monkeypatch):
        monkeypatch.delenv("DBADMIN_URL")
        (cli_env / "config.yaml").write_text("url: http://from-file:9000\n")

        assert CLIConfig.load().url == "http://from-file:9000"

    def test_broken_file_falls_back_to_defaults(self, cli_env, monkeypatch):
        monkeypatch.delenv("DBADMIN_URL")
        (cli_env / "config.yaml").write_text("url: [unclosed\n")

        assert CLIConfig.load().url == DEFAULT_URL

    def test_validate_rejects_non_http_url(self):
        assert CLIConfig(url="localhost:8081").validate()
        assert CLIConfig(url="https://db.example.com").validate() == []


class TestConfigCommands:
    """Tests for dbadmin config set/show."""

    def test_set_url_writes_file(self, cli_env):
        result = runner.invoke(app, ["config", "set", "url", "http://example:8081/"])

        assert result.exit_code == 0
        assert "Configuration updated" in result.stdout
        saved = yaml.safe_load((cli_env / "config.yaml").read_text())
        assert saved == {"url": "http://example:8081"}

    def test_set_unknown_key_fails(self):
        result = runner.invoke(app, ["config", "set", "token", "abc"])

        assert result.exit_code == 1
        assert "Unknown config key" in result.output

    def test_show_json(self):
        result = runner.invoke(app, ["--json", "config", "show"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"url": "http://test-api"}

    def test_show_table(self):
        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        assert "http://test-api" in result.stdout
        assert "Config file not found" in result.stdout

    def test_invalid_url_stops_api_commands(self, monkeypatch):
        monkeypatch.setenv("DBADMIN_URL", "not-a-url")

        result = runner.invoke(app, ["tables", "list"])

        assert result.exit_code == 1
        assert "Invalid URL" in result.output


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout
