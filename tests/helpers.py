"""Helpers shared by the test modules."""

from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from dotvault.core.repository import DotfilesRepository

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
requires_tar = pytest.mark.skipif(shutil.which("tar") is None, reason="tar is not installed")

# Stand-in for gpg: "encrypts" by copying stdin to --output and "decrypts" by
# printing the named file.
FAKE_GPG = """#!/bin/sh
output=""
decrypt=""
last=""
while [ $# -gt 0 ]; do
  case "$1" in
    -d) decrypt=1 ;;
    --output) shift; output="$1" ;;
    *) last="$1" ;;
  esac
  shift
done
if [ -n "$decrypt" ]; then
  cat "$last"
else
  cat > "$output"
fi
"""

BROKEN_GPG = """#!/bin/sh
decrypt=""
for arg in "$@"; do
  [ "$arg" = "-d" ] && decrypt=1
done
# drain the archive stream so tar is not killed by SIGPIPE
[ -z "$decrypt" ] && cat > /dev/null
echo "gpg: decryption failed: No secret key" >&2
exit 2
"""


def git(repo: DotfilesRepository, *args: str, cwd: Optional[Path] = None) -> str:
    """Run git against ``repo`` and return stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        env={**os.environ, **repo.env},
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout


def commit_files(repo: DotfilesRepository, home: Path, files: Dict[str, str]) -> List[str]:
    """Write ``files`` under ``home``, add them, and commit."""
    for name, content in files.items():
        path = home / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        git(repo, "add", name, cwd=home)
    git(repo, "commit", "-q", "-m", "Add files", cwd=home)
    return sorted(files)


def write_script(path: Path, content: str) -> Path:
    """Write an executable shell script."""
    path.write_text(content)
    path.chmod(0o755)
    return path


def mode(path: Path) -> int:
    """Permission bits of ``path``."""
    return path.stat().st_mode & 0o777
