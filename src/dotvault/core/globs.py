"""Expansion of the user's glob pattern file."""

from __future__ import annotations

import glob
import logging
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


def read_patterns(pattern_file: Path) -> List[str]:
    """Read glob patterns from ``pattern_file``.

    Lines starting with ``#`` and blank lines are skipped. A final line
    without a trailing newline is still read.
    """
    patterns = []
    for line in Path(pattern_file).read_text().splitlines():
        if not line.strip() or line.startswith("#"):
            continue
        patterns.append(line)
    return patterns


def collect(pattern_file: Path, root: Optional[Path] = None) -> List[str]:
    """Expand every pattern in ``pattern_file`` and return the matches.

    Patterns are expanded relative to ``root`` (the current directory by
    default) and the returned paths are relative to it as well, unless the
    pattern itself is absolute. A pattern that matches nothing contributes
    nothing. Duplicates are dropped, keeping first-seen order.

    Args:
        pattern_file: Newline-delimited file of glob patterns.
        root: Directory the patterns are relative to.

    Returns:
        List of matching paths.
    """
    root = Path(root) if root is not None else Path.cwd()
    matches: List[str] = []
    for pattern in read_patterns(pattern_file):
        found = sorted(glob.glob(pattern, root_dir=root))
        if not found:
            logger.debug("Pattern %r matched nothing", pattern)
        matches.extend(found)
    return list(dict.fromkeys(matches))
