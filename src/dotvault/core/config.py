"""Configuration store for dotvault.

Settings are kept in a git-config formatted file of their own, separate from
git's configuration, and are read and written through ``git config --file``.
All dotvault settings live in the ``dotvault`` section.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .errors import ExternalToolFailure
from .process import run_command

logger = logging.getLogger(__name__)

SECTION = "dotvault"

# Supported settings and a short description of each.
SUPPORTED_KEYS: Dict[str, str] = {
    f"{SECTION}.auto-alt": "Link alternate files after changes (default true)",
    f"{SECTION}.auto-perms": "Harden permissions after changes (default true)",
    f"{SECTION}.ssh-perms": "Include ~/.ssh when hardening permissions (default true)",
    f"{SECTION}.gpg-perms": "Include ~/.gnupg when hardening permissions (default true)",
    f"{SECTION}.gpg-recipient": "Encrypt to this key instead of using a passphrase",
    f"{SECTION}.gpg-program": "Program used for encryption (default gpg)",
    f"{SECTION}.git-program": "Program used for version control (default git)",
}


class ConfigStore:
    """Key/value access to dotvault's configuration file.

    ``get_bool`` returns ``None`` for absent keys; callers decide the default
    for each key themselves.
    """

    def __init__(self, path: Path, git_program: str = "git") -> None:
        self.path = Path(path)
        self.git_program = git_program

    def __repr__(self) -> str:
        return f"ConfigStore({self.path})"

    def _ensure_file(self) -> None:
        if not self.path.exists():
            logger.debug("Creating empty configuration file %s", self.path)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch()

    def _git_config(self, *args: str) -> Optional[str]:
        """Run git config against the store; ``None`` means the key is unset."""
        self._ensure_file()
        result = run_command(
            [self.git_program, "config", "--file", str(self.path), *args], check=False
        )
        # git config exits 1 when the key is missing
        if result.returncode == 1:
            return None
        if result.returncode != 0:
            raise ExternalToolFailure(
                f"Unable to read configuration {self.path}: {result.stderr.strip()}",
                command=result.args,
                returncode=result.returncode,
            )
        return result.stdout.rstrip("\n")

    def get(self, key: str) -> Optional[str]:
        """Return the value of ``key``, or ``None`` if unset."""
        return self._git_config("--get", key)

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""
        self._ensure_file()
        run_command([self.git_program, "config", "--file", str(self.path), key, value])

    def unset(self, key: str) -> None:
        """Remove ``key`` if present."""
        self._ensure_file()
        result = run_command(
            [self.git_program, "config", "--file", str(self.path), "--unset", key], check=False
        )
        # 5 means the key was not set
        if result.returncode not in (0, 5):
            raise ExternalToolFailure(
                f"Unable to unset {key}: {result.stderr.strip()}",
                command=result.args,
                returncode=result.returncode,
            )

    def get_bool(self, key: str) -> Optional[bool]:
        """Return ``key`` interpreted as a boolean, or ``None`` if unset."""
        value = self._git_config("--bool", "--get", key)
        if value is None:
            return None
        return value == "true"

    def enabled(self, feature: str) -> bool:
        """Check a default-true feature toggle such as ``auto-alt``."""
        return self.get_bool(f"{SECTION}.{feature}") is not False

    def items(self) -> List[Tuple[str, Optional[str]]]:
        """Return (key, value) pairs for every supported key."""
        return [(key, self.get(key)) for key in SUPPORTED_KEYS]
