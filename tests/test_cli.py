"""Tests for the dynref command line interface."""
import json

import pytest
from typer.testing import CliRunner

from dynref import main as cli
from dynref.config import __version__

runner = CliRunner()


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    """Rich tables wrap at the default 80 columns; widen so cells stay intact."""
    monkeypatch.setattr(cli.console, "width", 200)


class TestFind:

    def test_json_by_symbol(self, workspace):
        result = runner.invoke(cli.app, [
            "find", str(workspace / "Home.tsx"), "--symbol", "Home", "--root", str(workspace), "--json",
        ])
        assert result.exit_code == 0, result.output
        locations = json.loads(result.output)
        assert locations == [
            {"file": str(workspace / "home.tsx"), "line": 7, "column": 7},
            {"file": str(workspace / "home.tsx"), "line": 8, "column": 7},
            {"file": str(workspace / "home.tsx"), "line": 2, "column": 13},
        ]

    def test_json_by_position(self, workspace):
        result = runner.invoke(cli.app, [
            "find", str(workspace / "Home.tsx"), "--line", "0", "--column", "25",
            "--root", str(workspace), "--json", "--workers", "2",
        ])
        assert result.exit_code == 0, result.output
        assert len(json.loads(result.output)) == 3

    def test_table_output(self, workspace):
        result = runner.invoke(cli.app, [
            "find", str(workspace / "Home.tsx"), "--symbol", "Home", "--root", str(workspace),
        ])
        assert result.exit_code == 0, result.output
        assert "home.tsx" in result.output
        assert "3 location(s)" in result.output

    def test_no_results(self, workspace):
        result = runner.invoke(cli.app, [
            "find", str(workspace / "Home.tsx"), "--symbol", "Nothing", "--root", str(workspace),
        ])
        assert result.exit_code == 0
        assert "No dynamic import references" in result.output

    def test_requires_symbol_or_position(self, workspace):
        result = runner.invoke(cli.app, ["find", str(workspace / "Home.tsx"), "--line", "0"])
        assert result.exit_code == 1

    def test_missing_document(self, tmp_path):
        result = runner.invoke(cli.app, ["find", str(tmp_path / "nope.tsx"), "--symbol", "X"])
        assert result.exit_code == 1


class TestMatchers:

    def test_lists_built_in_rules(self, tmp_path):
        result = runner.invoke(cli.app, ["matchers", "--root", str(tmp_path)])
        assert result.exit_code == 0, result.output
        assert "next/dynamic" in result.output
        assert "@loadable/component" in result.output

    def test_lists_custom_rules(self, tmp_path):
        (tmp_path / ".dynrefrc.json").write_text(json.dumps({
            "customMatchers": [{"kind": "identifier", "name": "deferredImport"}],
        }))
        result = runner.invoke(cli.app, ["matchers", "--root", str(tmp_path)])
        assert result.exit_code == 0, result.output
        assert "deferredImport" in result.output
        assert "custom" in result.output


def test_version():
    result = runner.invoke(cli.app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output
