"""Tests for the repolens ingest command."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from repolens.cli.main import app
from repolens.errors import Unavailable

runner = CliRunner()


@pytest.fixture
def patched_service(lens):
    with patch("repolens.cli.ingest.open_service", return_value=lens) as mock_open:
        yield mock_open


def test_ingest_prints_stats(patched_service, make_workspace):
    root = make_workspace({"src/app.js": "function main(){}\n"})
    result = runner.invoke(app, ["ingest", str(root), "--tenant", "u1", "--repo", "o/r"])

    assert result.exit_code == 0, result.output
    assert "u1:o/r" in result.output
    assert "1 vectors upserted" in result.output


def test_ingest_slug_from_github_url(patched_service, make_workspace, stored_count):
    root = make_workspace({"a.js": "a"})
    result = runner.invoke(
        app,
        ["ingest", str(root), "-t", "u1", "--repo-url", "https://github.com/octo/demo.git"],
    )
    assert result.exit_code == 0, result.output
    assert stored_count("u1:octo/demo") == 1


def test_ingest_rejects_non_github_url(patched_service, make_workspace):
    root = make_workspace({"a.js": "a"})
    result = runner.invoke(
        app, ["ingest", str(root), "-t", "u1", "--repo-url", "https://gitlab.com/a/b"]
    )
    assert result.exit_code == 1
    assert "Not a GitHub repository URL" in result.output
    patched_service.assert_not_called()


def test_ingest_requires_repo(patched_service, make_workspace):
    root = make_workspace({"a.js": "a"})
    result = runner.invoke(app, ["ingest", str(root), "-t", "u1"])
    assert result.exit_code == 1
    assert "No repository given" in result.output


def test_ingest_tenant_from_env(patched_service, make_workspace, stored_count):
    root = make_workspace({"a.js": "a"})
    result = runner.invoke(
        app, ["ingest", str(root), "--repo", "o/r"], env={"REPOLENS_TENANT": "u7"}
    )
    assert result.exit_code == 0, result.output
    assert stored_count("u7:o/r") == 1


def test_ingest_no_eligible_files(patched_service, make_workspace):
    root = make_workspace({"package-lock.json": "{}"})
    result = runner.invoke(app, ["ingest", str(root), "-t", "u1", "-r", "o/r"])
    assert result.exit_code == 0
    assert "No eligible files found" in result.output


def test_ingest_prune_flag_passed(patched_service, make_workspace):
    root = make_workspace({"a.js": "a"})
    runner.invoke(app, ["ingest", str(root), "-t", "u1", "-r", "o/r", "--prune"])
    assert patched_service.call_args.kwargs["prune"] is True


def test_ingest_failure_shows_resume_offset(lens, make_workspace):
    root = make_workspace({"a.js": "a"})
    error = Unavailable("provider timed out", upserted=64, next_offset=64)
    with (
        patch("repolens.cli.ingest.open_service", return_value=lens),
        patch.object(lens, "ingest_from_workspace", side_effect=error),
    ):
        result = runner.invoke(app, ["ingest", str(root), "-t", "u1", "-r", "o/r"])

    assert result.exit_code == 1
    assert "Backend unavailable" in result.output
    assert "--resume-from 64" in result.output


def test_ingest_resume_from_passed(lens, make_workspace):
    root = make_workspace({"a.js": "a"})
    with (
        patch("repolens.cli.ingest.open_service", return_value=lens),
        patch.object(lens, "ingest_from_workspace", wraps=lens.ingest_from_workspace) as spy,
    ):
        result = runner.invoke(
            app, ["ingest", str(root), "-t", "u1", "-r", "o/r", "--resume-from", "3"]
        )
    assert result.exit_code == 0, result.output
    assert spy.call_args.kwargs["start_offset"] == 3
