"""Permission hardening for sensitive files."""

from __future__ import annotations

import glob
import logging
import os
import stat
from pathlib import Path
from typing import List

from .config import ConfigStore
from .globs import collect
from .layout import Layout

logger = logging.getLogger(__name__)

GROUP_OTHER_BITS = stat.S_IRWXG | stat.S_IRWXO


def _expand(pattern: str, root: Path) -> List[Path]:
    return [root / match for match in sorted(glob.glob(pattern, root_dir=root))]


def candidate_paths(layout: Layout, config: ConfigStore, work_dir: Path) -> List[Path]:
    """Collect every path whose group/other permissions should be removed.

    The list holds the encrypted archive, ``.ssh`` and ``.gnupg`` with their
    immediate contents (unless disabled with ``ssh-perms``/``gpg-perms``) and
    everything the pattern file matches. Paths that do not exist are omitted.
    """
    paths: List[Path] = []
    if layout.archive.exists():
        paths.append(layout.archive)
    if config.enabled("ssh-perms"):
        paths.extend(_expand(".ssh", work_dir) + _expand(".ssh/*", work_dir))
    if config.enabled("gpg-perms"):
        paths.extend(_expand(".gnupg", work_dir) + _expand(".gnupg/*", work_dir))
    if layout.encrypt.is_file():
        paths.extend(work_dir / match for match in collect(layout.encrypt, root=work_dir))
    return list(dict.fromkeys(paths))


def remove_group_other(path: Path) -> bool:
    """Strip group and other permissions from ``path``.

    Returns:
        True if the mode changed, False if it was already private or the
        path has disappeared.
    """
    try:
        mode = stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        return False
    new_mode = mode & ~GROUP_OTHER_BITS
    if new_mode == mode:
        return False
    logger.debug("chmod %o %s", new_mode, path)
    os.chmod(path, new_mode)
    return True


def harden(layout: Layout, config: ConfigStore, work_dir: Path) -> List[Path]:
    """Remove group/other permissions from every candidate path.

    Running this repeatedly is harmless; already private paths are left as
    they are.

    Returns:
        Paths whose permissions were changed.
    """
    return [
        path
        for path in candidate_paths(layout, config, work_dir)
        if remove_group_other(path)
    ]
