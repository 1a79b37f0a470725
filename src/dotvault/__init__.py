"""Dotfile management on top of an externally stored git repository."""

__version__ = "1.0.0"
