"""Shared fixtures for CLI tests."""

import pytest


API_URL = "http://test-api"


@pytest.fixture(autouse=True)
def cli_env(monkeypatch, tmp_path):
    """Point the CLI at a fake API and keep config writes inside tmp_path."""
    monkeypatch.setenv("DBADMIN_URL", API_URL)
    monkeypatch.setattr("dbadmin_cli.config.CONFIG_FILE", tmp_path / "config.yaml")
    return tmp_path
