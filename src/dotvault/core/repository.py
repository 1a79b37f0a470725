"""Repository functionality for dotvault."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .errors import ExternalToolFailure, PreconditionViolation
from .layout import Layout
from .process import run_command

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "master"


class DotfilesRepository:
    """A git repository whose metadata lives apart from its work tree.

    The metadata store sits under the dotvault directory while the tracked
    files live in the work directory (usually ``$HOME``). Every git call is
    made with ``GIT_DIR`` pointing at the store, so paths are always resolved
    against the configured work tree.

    Attributes:
        layout (Layout): Persisted-state locations.
        git_program (str): Name or path of the git executable.
    """

    def __init__(self, layout: Layout, git_program: str = "git"):
        """Initialize repository."""
        self.layout = layout
        self.git_program = git_program

    def __str__(self) -> str:
        """Return string representation."""
        return f"DotfilesRepository({self.path})"

    def __repr__(self) -> str:
        """Return string representation."""
        return self.__str__()

    @property
    def path(self) -> Path:
        return self.layout.repo

    @property
    def env(self) -> Dict[str, str]:
        """Environment variables git needs to find the metadata store."""
        return {"GIT_DIR": str(self.path)}

    def exists(self) -> bool:
        """Check if the metadata store exists."""
        return self.path.is_dir()

    def _run_git(self, *args: str, cwd: Optional[Path] = None) -> str:
        """Run a Git command and return its output."""
        result = run_command([self.git_program, *args], cwd=cwd, env=self.env)
        return result.stdout.strip()

    def _check_not_exists(self, force: bool) -> None:
        if self.exists() and not force:
            raise PreconditionViolation(
                f"Git repo already exists: {self.path}\n"
                "Use '-f' if you want to force it to be overwritten."
            )

    def _create(self, work_dir: Path) -> None:
        if self.path.exists():
            logger.debug("Removing existing repo %s", self.path)
            shutil.rmtree(self.path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        run_command(
            [self.git_program, "init", "--shared=0600", "--bare", str(self.path)], env=self.env
        )
        self.configure(work_dir)

    def configure(self, work_dir: Path) -> None:
        """Point the metadata store at ``work_dir`` and hide untracked files."""
        self._run_git("config", "core.bare", "false")
        self._run_git("config", "core.worktree", str(work_dir))
        self._run_git("config", "status.showUntrackedFiles", "no")
        self._run_git("config", "dotvault.managed", "true")

    def init(self, work_dir: Path, force: bool = False) -> None:
        """Create an empty metadata store tracking ``work_dir``.

        Args:
            work_dir: Directory whose files will be tracked.
            force: Replace an existing store instead of failing.

        Raises:
            PreconditionViolation: If a store exists and ``force`` is not set.
        """
        self._check_not_exists(force)
        self._create(work_dir)

    def clone(self, url: str, work_dir: Path, force: bool = False) -> List[str]:
        """Create a metadata store from a remote repository.

        The remote's default branch is fetched and the index reset to it.
        Tracked files missing from ``work_dir`` are checked out; files that
        already exist with different content are left untouched.

        Args:
            url: Location of the remote repository.
            work_dir: Directory whose files will be tracked.
            force: Replace an existing store instead of failing.

        Returns:
            Tracked files whose local content differs from the remote.

        Raises:
            PreconditionViolation: If a store exists and ``force`` is not set.
            ExternalToolFailure: If the remote cannot be fetched.
        """
        self._check_not_exists(force)
        self._create(work_dir)
        self._run_git("remote", "add", "origin", url)
        try:
            self._run_git("fetch", "origin")
        except ExternalToolFailure as e:
            logger.debug("Removing repo after failed clone")
            shutil.rmtree(self.path, ignore_errors=True)
            raise ExternalToolFailure(
                f"Unable to fetch origin {url}", command=e.command, returncode=e.returncode
            ) from e

        branch = self.remote_default_branch()
        logger.debug("Using remote branch %s", branch)
        self._run_git("config", f"branch.{branch}.remote", "origin")
        self._run_git("config", f"branch.{branch}.merge", f"refs/heads/{branch}")
        self._run_git("symbolic-ref", "HEAD", f"refs/heads/{branch}")
        self._run_git("reset", f"origin/{branch}")

        for deleted in self._ls_files("--deleted", cwd=work_dir):
            self._run_git("checkout", "--", deleted, cwd=work_dir)
        return self._ls_files("--modified", cwd=work_dir)

    def remote_default_branch(self) -> str:
        """Return the branch origin's HEAD points at."""
        output = self._run_git("ls-remote", "--symref", "origin", "HEAD")
        for line in output.splitlines():
            if line.startswith("ref:"):
                ref = line.split()[1]
                return ref.removeprefix("refs/heads/")
        return DEFAULT_BRANCH

    def work_tree(self) -> Optional[Path]:
        """Return the work directory recorded in the metadata store."""
        if not self.exists():
            return None
        result = run_command(
            [self.git_program, "config", "core.worktree"], env=self.env, check=False
        )
        value = result.stdout.strip()
        return Path(value) if result.returncode == 0 and value else None

    def _ls_files(self, *args: str, cwd: Optional[Path] = None) -> List[str]:
        output = run_command(
            [self.git_program, "ls-files", "-z", *args], cwd=cwd, env=self.env
        ).stdout
        return [name for name in output.split("\0") if name]

    def tracked_files(self) -> List[str]:
        """List every tracked path relative to the work tree, sorted."""
        work_tree = self.work_tree()
        return sorted(self._ls_files("--full-name", cwd=work_tree))

    def list_files(self, all_files: bool = False, cwd: Optional[Path] = None) -> List[str]:
        """List tracked files.

        Args:
            all_files: List every tracked file relative to the work tree
                instead of only those beneath ``cwd``.
            cwd: Directory to list from, defaults to the current directory.
        """
        if all_files:
            return self.tracked_files()
        return self._ls_files(cwd=cwd or Path.cwd())

    def is_tracked(self, path: Path) -> bool:
        """Check whether ``path`` is known to the index."""
        result = run_command(
            [self.git_program, "ls-files", "--error-unmatch", str(path)],
            cwd=self.work_tree(),
            env=self.env,
            check=False,
        )
        return result.returncode == 0

    def add(self, path: Path) -> None:
        """Stage ``path``."""
        self._run_git("add", str(path), cwd=self.work_tree())

    def passthrough(self, args: Sequence[str]) -> int:
        """Run git with ``args`` attached to the terminal and return its status."""
        result = run_command(
            [self.git_program, *args], env=self.env, capture=False, check=False
        )
        return result.returncode
