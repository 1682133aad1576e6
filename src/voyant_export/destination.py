# ABOUTME: Destination choosers that decide where the export archive is written
# ABOUTME: A fixed path for scripted use and a click prompt for interactive use
"""Destination choosers"""

import logging
import re
from pathlib import Path

import click

logger = logging.getLogger(__name__)


def default_filename(collection_name: str) -> str:
    """Filesystem-safe archive name derived from a collection name."""
    name = re.sub(r'[<>:"/\\|?*\x00-\x1f]', "-", collection_name).strip(" .-")
    name = re.sub(r"\s+", " ", name)
    return f"{name or 'collection'}.zip"


class FixedDestination:
    """Always returns the configured path; refuses to clobber unless told to."""

    def __init__(self, path: Path, overwrite: bool = False):
        self.path = Path(path).expanduser()
        self.overwrite = overwrite

    def choose(self, collection_name: str) -> Path | None:
        path = self.path / default_filename(collection_name) if self.path.is_dir() else self.path
        if path.exists() and not self.overwrite:
            logger.info(f"{path} exists and overwrite is off, cancelling")
            return None
        return path


class PromptDestination:
    """Asks on the terminal. Aborting or declining the overwrite cancels."""

    def __init__(self, directory: Path | None = None):
        self.directory = Path(directory) if directory else Path.cwd()

    def choose(self, collection_name: str) -> Path | None:
        default = self.directory / default_filename(collection_name)
        try:
            answer = click.prompt("Save archive as", default=str(default), show_default=True)
            path = Path(answer.strip()).expanduser()
            if path.exists() and not click.confirm(f"{path} exists. Overwrite?", default=False):
                return None
        except click.Abort:
            return None
        return path
