"""Test configuration."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner
from helpers import BROKEN_GPG, FAKE_GPG, write_script

from dotvault.core.config import ConfigStore
from dotvault.core.layout import Layout
from dotvault.core.repository import DotfilesRepository


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME at a scratch directory and give git an identity."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    monkeypatch.delenv("GIT_DIR", raising=False)
    return home


@pytest.fixture
def home(isolated_env: Path) -> Path:
    """The work directory used by tests."""
    return isolated_env


@pytest.fixture
def layout(home: Path) -> Layout:
    """Default dotvault layout under the test home directory."""
    layout = Layout.from_dir()
    layout.root.mkdir(parents=True, exist_ok=True)
    return layout


@pytest.fixture
def store(layout: Layout) -> ConfigStore:
    """Configuration store for the test layout."""
    return ConfigStore(layout.config)


@pytest.fixture
def repo(layout: Layout) -> DotfilesRepository:
    """Repository object whose store has not been created yet."""
    return DotfilesRepository(layout)


@pytest.fixture
def initialized_repo(repo: DotfilesRepository, home: Path) -> DotfilesRepository:
    """Repository initialized to track the test home directory."""
    repo.init(home)
    return repo


@pytest.fixture
def fake_gpg(tmp_path: Path, store: ConfigStore) -> Path:
    """Configure a pass-through gpg stand-in."""
    script = write_script(tmp_path / "fake-gpg", FAKE_GPG)
    store.set("dotvault.gpg-program", str(script))
    return script


@pytest.fixture
def broken_gpg(tmp_path: Path, store: ConfigStore) -> Path:
    """Configure a gpg stand-in that always fails."""
    script = write_script(tmp_path / "broken-gpg", BROKEN_GPG)
    store.set("dotvault.gpg-program", str(script))
    return script


@pytest.fixture
def cli_runner(home: Path) -> CliRunner:
    """Return a CLI runner that restores GIT_DIR after each invocation."""
    return CliRunner(env={"HOME": str(home), "GIT_DIR": None})
