"""Tests for the configuration store and layout."""

from pathlib import Path

import pytest
from helpers import requires_git

from dotvault.core.config import SUPPORTED_KEYS, ConfigStore
from dotvault.core.errors import InvalidArgument
from dotvault.core.layout import Layout

pytestmark = requires_git


def test_file_created_on_first_access(tmp_path: Path) -> None:
    """Test that reading creates an empty configuration file."""
    store = ConfigStore(tmp_path / "nested" / "config")
    assert store.get("dotvault.auto-alt") is None
    assert store.path.exists()
    assert store.path.read_text() == ""


def test_set_and_get(store: ConfigStore) -> None:
    """Test storing and reading a value."""
    store.set("dotvault.gpg-recipient", "me@example.com")
    assert store.get("dotvault.gpg-recipient") == "me@example.com"


def test_get_bool(store: ConfigStore) -> None:
    """Test boolean interpretation, with absence reported as None."""
    assert store.get_bool("dotvault.ssh-perms") is None

    store.set("dotvault.ssh-perms", "false")
    assert store.get_bool("dotvault.ssh-perms") is False

    store.set("dotvault.ssh-perms", "yes")
    assert store.get_bool("dotvault.ssh-perms") is True


def test_enabled_defaults_to_true(store: ConfigStore) -> None:
    """Test that feature toggles are on unless explicitly false."""
    assert store.enabled("auto-alt")

    store.set("dotvault.auto-alt", "false")
    assert not store.enabled("auto-alt")

    store.set("dotvault.auto-alt", "true")
    assert store.enabled("auto-alt")


def test_unset(store: ConfigStore) -> None:
    """Test removing a key, including one that was never set."""
    store.set("dotvault.auto-perms", "false")
    store.unset("dotvault.auto-perms")
    assert store.get("dotvault.auto-perms") is None
    store.unset("dotvault.auto-perms")


def test_items_lists_supported_keys(store: ConfigStore) -> None:
    """Test that items covers every supported key."""
    store.set("dotvault.gpg-program", "gpg2")
    items = dict(store.items())
    assert set(items) == set(SUPPORTED_KEYS)
    assert items["dotvault.gpg-program"] == "gpg2"
    assert items["dotvault.auto-alt"] is None


def test_layout_default(home: Path) -> None:
    """Test that the default layout lives under the home directory."""
    layout = Layout.from_dir()
    assert layout.root == home / ".config" / "dotvault"
    assert layout.repo.name == "repo.git"
    assert layout.archive.name == "files.gpg"


def test_layout_requires_absolute_directory() -> None:
    """Test that a relative dotvault directory is rejected."""
    with pytest.raises(InvalidArgument, match="fully qualified"):
        Layout.from_dir("relative/dir")
