"""Locations of the files dotvault persists for a user."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .errors import InvalidArgument

DEFAULT_DIR = Path("~/.config/dotvault")
REPO_NAME = "repo.git"
CONFIG_NAME = "config"
ENCRYPT_NAME = "encrypt"
ARCHIVE_NAME = "files.gpg"


@dataclass(frozen=True)
class Layout:
    """Paths under the per-user dotvault directory.

    Attributes:
        root (Path): The dotvault directory itself.
        repo (Path): Git metadata store, kept apart from the work directory.
        config (Path): dotvault's own key/value configuration file.
        encrypt (Path): User-authored glob pattern file of sensitive files.
        archive (Path): Encrypted archive written by ``encrypt``.
    """

    root: Path

    @classmethod
    def from_dir(cls, directory: Optional[Union[str, Path]] = None) -> "Layout":
        """Build a layout rooted at ``directory`` or at the default location."""
        if directory is None:
            return cls(DEFAULT_DIR.expanduser())
        path = Path(directory)
        if not path.is_absolute():
            raise InvalidArgument(f"You must specify a fully qualified dotvault directory: {path}")
        return cls(path)

    @property
    def repo(self) -> Path:
        return self.root / REPO_NAME

    @property
    def config(self) -> Path:
        return self.root / CONFIG_NAME

    @property
    def encrypt(self) -> Path:
        return self.root / ENCRYPT_NAME

    @property
    def archive(self) -> Path:
        return self.root / ARCHIVE_NAME
