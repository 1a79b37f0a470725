"""Tests for logging setup."""

import logging
from pathlib import Path

from rich.logging import RichHandler

from dotvault.core.logging import setup_logging


def test_setup_logging_levels() -> None:
    """Test that -d lowers the console level to DEBUG."""
    setup_logging()
    handler = logging.getLogger().handlers[0]
    assert isinstance(handler, RichHandler)
    assert handler.level == logging.WARNING

    setup_logging(debug=True)
    handler = logging.getLogger().handlers[0]
    assert handler.level == logging.DEBUG


def test_setup_logging_file(tmp_path: Path) -> None:
    """Test that debug records always reach the log file."""
    log_file = tmp_path / "logs" / "dotvault.log"
    setup_logging(log_file=str(log_file))

    logging.getLogger("dotvault.test").debug("Linking %s", ".vimrc##Linux")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert "Linking .vimrc##Linux" in log_file.read_text()
