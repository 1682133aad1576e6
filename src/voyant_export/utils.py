# ABOUTME: Common file utilities for writing the bag payload
# ABOUTME: Provides atomic writes, attachment copies, readability checks and best-effort removal
"""Utility functions for voyant-export"""

import logging
import os
import shutil
import tempfile
from contextlib import suppress
from pathlib import Path

from voyant_export.exceptions import ExportIOError

logger = logging.getLogger(__name__)


def atomic_write(filepath: Path, content: bytes) -> None:
    """
    Write file atomically to prevent half-written payload files.

    Args:
        filepath: Target file path (its directory must exist)
        content: Bytes to write

    Raises:
        ExportIOError: If write fails
    """
    filepath = Path(filepath)

    # Create temp file in same directory (for same filesystem)
    try:
        temp_fd, temp_path = tempfile.mkstemp(
            dir=filepath.parent, prefix=f".{filepath.name}.", suffix=".tmp"
        )
    except OSError as e:
        raise ExportIOError(
            f"Failed to write {filepath}: {e}",
            recovery_hint="Check disk space and permissions",
        ) from e

    try:
        with os.fdopen(temp_fd, "wb") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())

        os.replace(temp_path, filepath)

    except Exception as e:
        with suppress(OSError):
            os.unlink(temp_path)
        raise ExportIOError(
            f"Failed to write {filepath}: {e}",
            recovery_hint="Check disk space and permissions",
        ) from e


def copy_file(source: Path, target: Path) -> None:
    """
    Copy a file's bytes to target, replacing any existing file.

    Raises:
        ExportIOError: If the copy fails
    """
    try:
        shutil.copyfile(source, target)
    except OSError as e:
        raise ExportIOError(
            f"Failed to copy {source} to {target}: {e}",
            recovery_hint="Check that the attachment is readable and the disk has space",
        ) from e


def is_readable_file(path: Path) -> bool:
    """True when path is an existing regular file this process can read."""
    try:
        return path.is_file() and os.access(path, os.R_OK)
    except OSError:
        return False


def remove_tree(path: Path) -> bool:
    """
    Remove a directory tree, logging instead of raising.

    Returns:
        True if the directory is gone afterwards
    """
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        return True
    except OSError as e:
        logger.warning(f"Could not remove {path}: {e}")
        return False
    return True
