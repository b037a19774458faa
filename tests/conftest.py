"""Shared fixtures for the dynref test suite."""
from pathlib import Path
from typing import Dict

import pytest

from dynref.analyzer.parser import LanguageParser
from dynref.analyzer.scope import ScopeAnalyzer

FIXTURES_DIR = Path(__file__).parent / 'fixtures'
WORKSPACE_DIR = FIXTURES_DIR / 'workspace'


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep diagnostics off and configuration at its defaults."""
    monkeypatch.setenv("DYNREF_DEV_MODE", "0")
    for name in ("DYNREF_MATCHERS_FILE", "DYNREF_MAX_WORKERS", "DYNREF_EXCLUDE_DIRS"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def workspace() -> Path:
    """Checked-in sample Next.js/React workspace."""
    return WORKSPACE_DIR


@pytest.fixture
def parser():
    return LanguageParser()


@pytest.fixture
def analyze(parser):
    """Parse source text and build its scope tree."""
    def _analyze(source: str, path: str = '/workspace/page.tsx'):
        parsed = parser.parse_source(source, path)
        return parsed, ScopeAnalyzer().analyze(parsed)
    return _analyze


@pytest.fixture
def write_tree(tmp_path):
    """Write {relative path: content} under tmp_path and return the root."""
    def _write(files: Dict[str, str]) -> Path:
        for relative, content in files.items():
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding='utf-8')
        return tmp_path
    return _write
