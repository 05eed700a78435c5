"""Tests for the srcres command line."""

import json
import logging

import pytest
from click.testing import CliRunner
from rich.console import Console

from source_resolution import main as cli_main
from source_resolution.errors import InvalidPatternError
from source_resolution.logging_setup import JsonlHandler
from source_resolution.main import cli
from source_resolution.main import parse_pattern_text
from source_resolution.pattern import REST
from source_resolution.pattern import WILDCARD
from source_resolution.pattern import Pattern
from source_resolution.pattern import RestWildcard


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Fresh HOME and working directory; wide consoles so tables don't wrap."""
    home = tmp_path / "home"
    workdir = tmp_path / "work"
    home.mkdir()
    workdir.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(workdir)
    monkeypatch.setattr(cli_main, "console", Console(width=300))
    monkeypatch.setattr(cli_main, "error_console", Console(width=300, stderr=True))
    return workdir


@pytest.fixture
def dependency_jar(make_archive):
    return make_archive({"pkg/mod.src": b"dependency mod", "lib/base.src": b"base"}, name="dep.jar")


class TestParsePatternText:
    def test_segments(self):
        assert parse_pattern_text("org/*/**") == Pattern.of("org", WILDCARD, REST)

    def test_suffix_shorthand(self):
        assert parse_pattern_text("org/**.bal") == Pattern.of("org", RestWildcard(".bal"))

    def test_suffix_option(self):
        assert parse_pattern_text("org/**", suffix=".bal") == Pattern.of("org", RestWildcard(".bal"))

    def test_ignores_empty_segments(self):
        assert parse_pattern_text("/org//pkg/") == Pattern.of("org", "pkg")

    @pytest.mark.parametrize("text", ["", "/", "a/**/b"])
    def test_invalid(self, text):
        with pytest.raises(InvalidPatternError):
            parse_pattern_text(text)


def test_resolve_table(runner, source_tree):
    result = runner.invoke(cli, ["resolve", "pkg/*", "-r", str(source_tree)])

    assert result.exit_code == 0, result.output
    assert "pkg/mod.src" in result.output
    assert "pkg/util.src" in result.output
    assert "3 match(es)" in result.output


def test_resolve_content_respects_precedence(runner, source_tree, dependency_jar):
    result = runner.invoke(
        cli, ["resolve", "pkg/mod.src", "-r", str(source_tree), "-r", str(dependency_jar), "--content"]
    )
    assert result.exit_code == 0, result.output
    assert result.output == "project mod"

    reversed_result = runner.invoke(
        cli, ["resolve", "pkg/mod.src", "-r", str(dependency_jar), "-r", str(source_tree), "--content"]
    )
    assert reversed_result.output == "dependency mod"


def test_resolve_first(runner, source_tree):
    result = runner.invoke(cli, ["resolve", "**", "-r", str(source_tree), "--first"])
    assert result.exit_code == 0, result.output
    assert "other/mod.src" in result.output
    assert "1 match(es)" in result.output


def test_resolve_parallel(runner, source_tree, dependency_jar):
    result = runner.invoke(
        cli, ["resolve", "**.src", "-r", str(source_tree), "-r", str(dependency_jar), "--parallel"]
    )
    assert result.exit_code == 0, result.output
    assert "lib/base.src" in result.output
    assert "5 match(es)" in result.output


def test_resolve_no_matches(runner, source_tree):
    result = runner.invoke(cli, ["resolve", "nothing/here", "-r", str(source_tree)])
    assert result.exit_code == 0
    assert "No matches" in result.output


def test_resolve_invalid_pattern(runner, source_tree):
    result = runner.invoke(cli, ["resolve", "a/**/b", "-r", str(source_tree)])
    assert result.exit_code == 1
    assert "InvalidPatternError" in result.output


def test_resolve_broken_archive(runner, tmp_path):
    bad = tmp_path / "bad.jar"
    bad.write_bytes(b"not a zip")
    result = runner.invoke(cli, ["resolve", "**", "-r", str(bad)])
    assert result.exit_code == 1
    assert "RepositoryIOError" in result.output


def test_resolve_requires_repositories(runner):
    result = runner.invoke(cli, ["resolve", "**"])
    assert result.exit_code == 2
    assert "No repositories given" in result.output


def test_resolve_uses_configured_repositories(runner, source_tree, dependency_jar):
    assert runner.invoke(cli, ["repo", "add", str(dependency_jar)]).exit_code == 0
    assert runner.invoke(cli, ["repo", "add", str(source_tree), "--first"]).exit_code == 0

    result = runner.invoke(cli, ["resolve", "pkg/mod.src", "--content"])

    assert result.exit_code == 0, result.output
    assert result.output == "project mod"


def test_ls(runner, source_tree, dependency_jar):
    result = runner.invoke(cli, ["ls", str(source_tree), "pkg"])
    assert result.exit_code == 0, result.output
    assert result.output.split() == ["README.md", "mod.src", "nested/", "util.src"]

    archive_result = runner.invoke(cli, ["ls", str(dependency_jar)])
    assert archive_result.output.split() == ["lib/", "pkg/"]


def test_ls_missing_location(runner, source_tree):
    result = runner.invoke(cli, ["ls", str(source_tree), "nope"])
    assert result.exit_code == 1
    assert "Location not found" in result.output


def test_repo_add_list_remove(runner, isolated):
    assert runner.invoke(cli, ["repo", "add", "./src"]).exit_code == 0
    assert runner.invoke(cli, ["repo", "add", "./global.jar", "--global"]).exit_code == 0

    duplicate = runner.invoke(cli, ["repo", "add", "./src"])
    assert "already configured" in duplicate.output

    listed = runner.invoke(cli, ["repo", "list"])
    assert "./src" in listed.output
    assert "./global.jar" in listed.output
    assert (isolated / ".srcres" / "settings.yaml").exists()

    assert runner.invoke(cli, ["repo", "remove", "./src"]).exit_code == 0
    missing = runner.invoke(cli, ["repo", "remove", "./src"])
    assert missing.exit_code == 1
    assert "not configured" in missing.output


def test_repo_list_empty(runner):
    result = runner.invoke(cli, ["repo", "list"])
    assert "No repositories configured" in result.output


def test_log_file_receives_jsonl(runner, source_tree, tmp_path):
    log_path = tmp_path / "logs" / "srcres.jsonl"
    root = logging.getLogger()
    previous_level = root.level
    try:
        result = runner.invoke(
            cli, ["--log-file", str(log_path), "--log-level", "debug", "resolve", "pkg/*", "-r", str(source_tree)]
        )
        assert result.exit_code == 0, result.output
    finally:
        for handler in list(root.handlers):
            if isinstance(handler, JsonlHandler):
                root.removeHandler(handler)
                handler.close()
        root.setLevel(previous_level)

    records = [json.loads(line) for line in log_path.read_text().splitlines()]
    assert any(record["logger"] == "source_resolution.resolver" for record in records)
    assert all(record["lvl"] in ("DEBUG", "INFO", "WARNING", "ERROR") for record in records)
