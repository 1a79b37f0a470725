"""Alternate file resolution.

A tracked file can carry a ``##`` suffix naming the system it belongs to::

    .bashrc##             any system
    .bashrc##Linux        systems whose kernel name is Linux
    .bashrc##Linux.work   Linux hosts whose short hostname is "work"

For each base name the most specific variant that applies to this machine is
symlinked into place at the unsuffixed path (``.bashrc`` above). Host-specific
variants beat system-specific ones, which beat the bare ``##`` variant,
regardless of the order the files are listed in.
"""

from __future__ import annotations

import logging
import os
import platform
import re
import socket
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Pattern

from rich.console import Console
from rich.markup import escape

logger = logging.getLogger(__name__)

SUFFIX_MARKER = "##"


def current_system() -> str:
    """Return the kernel name, as ``uname -s`` reports it."""
    return platform.system()


def current_host() -> str:
    """Return the short hostname."""
    return socket.gethostname().split(".")[0]


@dataclass(frozen=True)
class Alternate:
    """A tracked file selected to back a link path."""

    source: Path
    link: Path
    specificity: int


def build_pattern(system: str, host: str) -> Pattern[str]:
    """Compile the basename pattern for alternates valid on ``system``/``host``."""
    system_re = re.escape(system)
    host_re = re.escape(f"{system}.{host}")
    return re.compile(rf"^(?P<base>.+){SUFFIX_MARKER}(?P<token>{host_re}|{system_re}|)$")


class AlternateResolver:
    """Links the best alternate of each tracked file into place.

    Args:
        work_dir: Directory tracked paths are relative to.
        system: Kernel name to match, defaults to this machine's.
        host: Short hostname to match, defaults to this machine's.
        console: Console used to report links when running loudly.
    """

    def __init__(
        self,
        work_dir: Path,
        system: Optional[str] = None,
        host: Optional[str] = None,
        console: Optional[Console] = None,
    ) -> None:
        self.work_dir = Path(work_dir)
        self.system = system or current_system()
        self.host = host or current_host()
        self.console = console or Console()
        self.pattern = build_pattern(self.system, self.host)

    def _specificity(self, token: str) -> int:
        if token == f"{self.system}.{self.host}":
            return 2
        if token == self.system:
            return 1
        return 0

    def select(self, tracked_files: Iterable[str]) -> List[Alternate]:
        """Pick one alternate per link path from ``tracked_files``.

        Files that do not exist in the work directory or whose basename does
        not carry a matching suffix are ignored.
        """
        chosen: Dict[Path, Alternate] = {}
        for tracked in sorted(tracked_files):
            source = self.work_dir / tracked
            match = self.pattern.match(source.name)
            if not match:
                continue
            if not source.exists():
                logger.debug("Skipping missing alternate %s", source)
                continue
            candidate = Alternate(
                source=source,
                link=source.with_name(match.group("base")),
                specificity=self._specificity(match.group("token")),
            )
            current = chosen.get(candidate.link)
            if current is None or candidate.specificity > current.specificity:
                chosen[candidate.link] = candidate
        return sorted(chosen.values(), key=lambda alt: str(alt.link))

    def link(self, alternate: Alternate) -> bool:
        """Create or replace the symlink for ``alternate``.

        Returns:
            False if a real directory occupies the link path and was left alone.
        """
        link = alternate.link
        if link.is_dir() and not link.is_symlink():
            logger.warning("Not replacing directory %s with a link", link)
            return False
        if link.is_symlink() or link.exists():
            link.unlink()
        os.symlink(alternate.source, link)
        return True

    def resolve(self, tracked_files: Iterable[str], loud: bool = False) -> List[Alternate]:
        """Link every selected alternate.

        Args:
            tracked_files: Tracked paths relative to the work directory.
            loud: Report each link on the console (used when invoked directly).

        Returns:
            The alternates that were linked.
        """
        linked = []
        for alternate in self.select(tracked_files):
            message = f"Linking {alternate.source} to {alternate.link}"
            if loud:
                self.console.print(escape(message), soft_wrap=True)
            else:
                logger.debug(message)
            if self.link(alternate):
                linked.append(alternate)
        return linked
