"""Command model for dotvault.

Internal commands are named by :class:`Command`; their parsed flags are held
in :class:`Options`. Every command returns a :class:`CommandResult` telling the
dispatcher whether tracked or encrypted state may have changed, which decides
whether the automatic post-actions run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from rich.console import Console

from .alternates import AlternateResolver
from .config import ConfigStore
from .errors import InvalidArgument, PreconditionViolation
from .layout import Layout
from .perms import harden
from .repository import DotfilesRepository

logger = logging.getLogger(__name__)

# Reserved name remapped to git's own "config" subcommand.
GIT_CONFIG_ALIAS = "gitconfig"


class Command(str, Enum):
    """Commands handled by dotvault itself rather than passed to git."""

    ALT = "alt"
    CLEAN = "clean"
    CLONE = "clone"
    CONFIG = "config"
    DECRYPT = "decrypt"
    ENCRYPT = "encrypt"
    HELP = "help"
    INIT = "init"
    LIST = "list"
    PERMS = "perms"
    VERSION = "version"


@dataclass
class Options:
    """Flags accepted by internal commands.

    Attributes:
        all_files: ``-a``, list every tracked file (default False).
        debug: ``-d``, print diagnostic output (default False).
        force: ``-f``, overwrite an existing repository (default False).
        list_only: ``-l``, list archive contents instead of extracting (default False).
        work_dir: ``-w``, directory whose files are tracked (default ``$HOME``).
        args: Remaining non-flag arguments.
    """

    all_files: bool = False
    debug: bool = False
    force: bool = False
    list_only: bool = False
    work_dir: Optional[Path] = None
    args: List[str] = field(default_factory=list)

    def resolved_work_dir(self) -> Path:
        """Validate and return the work directory.

        Raises:
            InvalidArgument: If ``-w`` was given a relative path.
            PreconditionViolation: If the directory does not exist.
        """
        work_dir = self.work_dir if self.work_dir is not None else Path.home()
        if not work_dir.is_absolute():
            raise InvalidArgument(f"You must specify a fully qualified work tree: {work_dir}")
        if not work_dir.is_dir():
            raise PreconditionViolation(f"Work tree does not exist: {work_dir}")
        return work_dir


@dataclass
class CommandResult:
    """What a command reports back to the dispatcher."""

    exit_code: int = 0
    changes_possible: bool = False


def clean_disabled_message(repo: DotfilesRepository) -> str:
    return (
        "'clean' command disabled.\n"
        f"Please use 'git --git-dir={repo.path} clean' if you really want to "
        "remove all untracked files."
    )


def run_alt(
    repo: DotfilesRepository, loud: bool = False, console: Optional[Console] = None
) -> None:
    """Link alternates in the work tree recorded by the repository."""
    work_dir = repo.work_tree()
    if work_dir is None:
        logger.debug("No work tree configured, skipping alternates")
        return
    resolver = AlternateResolver(work_dir, console=console)
    resolver.resolve(repo.tracked_files(), loud=loud)


def run_perms(layout: Layout, config: ConfigStore, repo: DotfilesRepository) -> List[Path]:
    """Harden permissions in the work tree recorded by the repository."""
    work_dir = repo.work_tree() or Path.home()
    changed = harden(layout, config, work_dir)
    logger.debug("Hardened %d paths", len(changed))
    return changed


def run_post_actions(
    result: CommandResult,
    layout: Layout,
    config: ConfigStore,
    repo: DotfilesRepository,
    console: Optional[Console] = None,
) -> None:
    """Run automatic alternate linking and permission hardening.

    Nothing happens unless ``result`` reports possible changes. Each action
    can be disabled with the ``auto-alt``/``auto-perms`` toggles.
    """
    if not result.changes_possible:
        return
    if config.enabled("auto-alt") and repo.exists():
        run_alt(repo, loud=False, console=console)
    if config.enabled("auto-perms"):
        run_perms(layout, config, repo)
