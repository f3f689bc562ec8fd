"""Shared fixtures that keep every test away from the real ~/.claude."""
import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from fivephase.paths import resolve_layout  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point HOME and CLAUDE_CONFIG_DIR into tmp_path."""
    home = tmp_path / 'home'
    home.mkdir()
    monkeypatch.setenv('HOME', str(home))
    monkeypatch.setenv('USERPROFILE', str(home))
    monkeypatch.setenv('CLAUDE_CONFIG_DIR', str(home / '.claude'))
    monkeypatch.delenv('FIVE_PHASE_UPDATE_URL', raising=False)
    return home


@pytest.fixture
def project(tmp_path) -> Path:
    path = tmp_path / 'project'
    path.mkdir()
    return path


@pytest.fixture
def layout(project):
    return resolve_layout(is_global=False, cwd=project)
