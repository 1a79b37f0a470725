"""Tests for glob pattern collection."""

from pathlib import Path

import pytest

from dotvault.core.globs import collect, read_patterns


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    """Create a directory with a few configuration files."""
    root = tmp_path / "root"
    (root / "conf.d").mkdir(parents=True)
    (root / "a.conf").write_text("a")
    (root / "b.conf").write_text("b")
    (root / "notes.txt").write_text("notes")
    (root / "conf.d" / "c.conf").write_text("c")
    return root


def test_read_patterns_skips_comments(tmp_path: Path) -> None:
    """Test that comments and blank lines are skipped."""
    pattern_file = tmp_path / "encrypt"
    pattern_file.write_text("#comment\n*.conf\n\n  \nconf.d/*")
    assert read_patterns(pattern_file) == ["*.conf", "conf.d/*"]


def test_collect(tree: Path, tmp_path: Path) -> None:
    """Test comment, wildcard and zero-match patterns together."""
    pattern_file = tmp_path / "encrypt"
    pattern_file.write_text("#comment\n*.conf\n*.missing\n")

    files = collect(pattern_file, root=tree)

    assert files == ["a.conf", "b.conf"]
    assert "#comment" not in files
    assert "*.missing" not in files


def test_collect_deduplicates(tree: Path, tmp_path: Path) -> None:
    """Test that overlapping patterns yield each path once, in first-seen order."""
    pattern_file = tmp_path / "encrypt"
    pattern_file.write_text("b.conf\n*.conf\nconf.d/*.conf\nb.conf")

    assert collect(pattern_file, root=tree) == ["b.conf", "a.conf", "conf.d/c.conf"]


def test_collect_literal_paths(tree: Path, tmp_path: Path) -> None:
    """Test that literal names are kept only when they exist."""
    pattern_file = tmp_path / "encrypt"
    pattern_file.write_text("notes.txt\nabsent.txt\nconf.d")

    assert collect(pattern_file, root=tree) == ["notes.txt", "conf.d"]


def test_collect_uses_current_directory(
    tree: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Test that patterns are expanded in the current directory by default."""
    pattern_file = tmp_path / "encrypt"
    pattern_file.write_text("*.txt")
    monkeypatch.chdir(tree)

    assert collect(pattern_file) == ["notes.txt"]
