"""Core functionality for dotvault."""

from .alternates import AlternateResolver
from .archive import ArchivePipeline
from .config import ConfigStore
from .layout import Layout
from .repository import DotfilesRepository

__all__ = [
    "AlternateResolver",
    "ArchivePipeline",
    "ConfigStore",
    "DotfilesRepository",
    "Layout",
]
