"""Tests for workspace file discovery."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from repolens.errors import InvalidArgument
from repolens.ingest.discover import _glob_match, discover, read_source


def test_returns_sorted_relative_posix_paths(make_workspace):
    root = make_workspace(
        {
            "src/b.ts": "b",
            "src/a.js": "a",
            "README.md": "# hi",
            "src/nested/deep/c.tsx": "c",
        }
    )
    assert discover(root) == ["README.md", "src/a.js", "src/b.ts", "src/nested/deep/c.tsx"]


def test_extension_allow_list(make_workspace):
    root = make_workspace(
        {"app.js": "x", "main.py": "x", "logo.png": "x", "Makefile": "x", "STYLE.CSS": "x"}
    )
    assert discover(root) == ["STYLE.CSS", "app.js"]


def test_lockfiles_and_vendor_dirs_denied(make_workspace):
    root = make_workspace(
        {
            "package-lock.json": "{}",
            "node_modules/x.js": "x",
            "packages/web/node_modules/y/index.js": "y",
            "pnpm-lock.yaml": "lock",
            "web/yarn.lock": "lock",
            ".git/config.json": "{}",
            "dist/bundle.js": "x",
            "build/out.js": "x",
            "src/build/helper.js": "x",
            "package.json": "{}",
            "src/index.js": "x",
        }
    )
    assert discover(root) == ["package.json", "src/index.js"]


def test_only_lockfiles_and_vendor_yield_nothing(make_workspace):
    root = make_workspace({"package-lock.json": "{}", "node_modules/x.js": "x"})
    assert discover(root) == []


def test_similar_names_not_excluded(make_workspace):
    root = make_workspace({"distance.js": "x", "builder/x.js": "x", "my-package-lock.json.md": "x"})
    assert discover(root) == ["builder/x.js", "distance.js", "my-package-lock.json.md"]


def test_custom_include_and_exclude(make_workspace):
    root = make_workspace({"src/a.js": "a", "docs/b.md": "b", "src/gen/c.js": "c"})
    assert discover(root, include_globs=["src/**"]) == ["src/a.js", "src/gen/c.js"]
    assert discover(root, exclude_globs=["**/gen/**"]) == ["docs/b.md", "src/a.js"]


def test_custom_extensions_and_deny(make_workspace):
    root = make_workspace({"a.py": "x", "b.min.js": "x", "c.js": "x"})
    assert discover(root, extensions=[".py", ".js"], deny_patterns=[r"\.min\.js$"]) == [
        "a.py",
        "c.js",
    ]


def test_empty_directory_is_not_an_error(tmp_path):
    assert discover(tmp_path) == []


def test_missing_root_raises(tmp_path):
    with pytest.raises(InvalidArgument):
        discover(tmp_path / "nope")


def test_file_root_raises(tmp_path):
    f = tmp_path / "a.js"
    f.write_text("x")
    with pytest.raises(InvalidArgument):
        discover(f)


def test_deterministic_across_calls(make_workspace):
    files = {f"m{i % 5}/f{i}.js": str(i) for i in range(40)}
    root = make_workspace(files)
    assert discover(root) == discover(root)
    assert discover(root) == sorted(files)


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
def test_symlink_outside_workspace_skipped(tmp_path, make_workspace):
    outside = tmp_path / "secret.js"
    outside.write_text("secret")
    root = make_workspace({"src/a.js": "a"})
    try:
        (root / "link.js").symlink_to(outside)
    except OSError:
        pytest.skip("cannot create symlinks")
    assert discover(root) == ["src/a.js"]


def test_hidden_entries_skipped_by_default(make_workspace):
    root = make_workspace(
        {".github/workflows/ci.yml": "on: push", ".eslintrc.json": "{}", "src/a.js": "x"}
    )
    assert discover(root) == ["src/a.js"]


def test_hidden_entries_included_on_request(make_workspace):
    root = make_workspace({".eslintrc.json": "{}", ".config/b.js": "x", "src/a.js": "x"})
    assert discover(root, include_hidden=True) == [".config/b.js", ".eslintrc.json", "src/a.js"]


def test_glob_match_double_star_at_root():
    assert _glob_match("node_modules/", "**/node_modules/**")
    assert _glob_match("a/node_modules/", "**/node_modules/**")
    assert not _glob_match("node_modulesx/", "**/node_modules/**")
    assert _glob_match("app.js", "**/*")


# ------------------------------------------------------------------
# read_source
# ------------------------------------------------------------------


def test_read_source_returns_text(make_workspace):
    root = make_workspace({"src/app.js": "function main(){}\n"})
    source = read_source(root, "src/app.js")
    assert source is not None
    assert source.path == "src/app.js"
    assert source.text == "function main(){}\n"


def test_read_source_replaces_invalid_utf8(tmp_path):
    (tmp_path / "bin.js").write_bytes(b"ok \xff\xfe end")
    source = read_source(tmp_path, "bin.js")
    assert source is not None
    assert source.text.startswith("ok ")
    assert "�" in source.text


def test_read_source_missing_file_returns_none(tmp_path, caplog):
    with caplog.at_level("WARNING", logger="repolens"):
        assert read_source(tmp_path, "gone.js") is None
    assert "gone.js" in caplog.text


def test_read_source_keeps_crlf(tmp_path):
    (tmp_path / "win.js").write_bytes(b"line1\r\nline2\r\n")
    source = read_source(tmp_path, "win.js")
    assert source is not None
    assert source.text == "line1\r\nline2\r\n"
