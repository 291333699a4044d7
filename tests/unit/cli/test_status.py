"""Tests for the repolens status command."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from repolens.cli.main import app

runner = CliRunner()


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Run from an empty directory with no global config."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("repolens.config._GLOBAL_CONFIG_PATH", tmp_path / "absent.yaml")
    for var in ("REPOLENS_VECTOR_DB", "REPOLENS_EMBEDDING_MODEL", "REPOLENS_GENERATION_MODEL"):
        monkeypatch.delenv(var, raising=False)


def test_status_lists_namespaces(lens, make_workspace):
    lens.ingest_from_workspace("u1", "o/r", make_workspace({"a.js": "a"}))
    with patch("repolens.cli.status.open_service", return_value=lens):
        result = runner.invoke(app, ["status", "-t", "u1"])
    assert result.exit_code == 0, result.output
    assert "u1:o/r" in result.output


def test_status_empty_database(isolated_config, tmp_path):
    result = runner.invoke(app, ["status", "-t", "u1", "--db", str(tmp_path / "fresh.db")])
    assert result.exit_code == 0, result.output
    assert "No namespaces" in result.output


def test_status_invalid_tenant(isolated_config, tmp_path):
    result = runner.invoke(app, ["status", "-t", "a:b", "--db", str(tmp_path / "fresh.db")])
    assert result.exit_code == 1


def test_status_bad_config(isolated_config, tmp_path):
    (tmp_path / "repolens.yaml").write_text("retrieval:\n  top_k: 0\n", encoding="utf-8")
    result = runner.invoke(app, ["status", "-t", "u1"])
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_status_prints_bracketed_namespace_verbatim(lens, make_workspace):
    lens.ingest_from_workspace("u1", "o/[r]", make_workspace({"a.js": "a"}))
    with patch("repolens.cli.status.open_service", return_value=lens):
        result = runner.invoke(app, ["status", "-t", "u1"])
    assert result.exit_code == 0, result.output
    assert "u1:o/[r]" in result.output
