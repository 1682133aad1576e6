# ABOUTME: ZIP archiver that turns a finished bag directory into the export file
# ABOUTME: Writes to a side file and renames it so the destination never holds a partial archive
"""ZIP archiving of bag directories"""

import asyncio
import logging
import os
import zipfile
from contextlib import suppress
from pathlib import Path

from voyant_export.exceptions import ArchiveError

logger = logging.getLogger(__name__)

COMPRESSION_METHODS = {
    "deflated": zipfile.ZIP_DEFLATED,
    "stored": zipfile.ZIP_STORED,
}


def zip_directory(source_dir: Path, destination: Path, compression: int = zipfile.ZIP_DEFLATED) -> Path:
    """
    Compress a directory into a ZIP file atomically.

    Entries use paths relative to source_dir, in sorted order, with explicit
    directory entries so empty payload directories survive.

    Args:
        source_dir: Directory to archive
        destination: Output ZIP path
        compression: zipfile compression constant

    Returns:
        The destination path

    Raises:
        ArchiveError: If the archive cannot be written
    """
    source_dir = Path(source_dir)
    destination = Path(destination)
    if not source_dir.is_dir():
        raise ArchiveError(f"Archive source {source_dir} is not a directory")

    partial = destination.with_name(f".{destination.name}.partial")
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(partial, "w", compression) as zf:
            for path in sorted(source_dir.rglob("*")):
                arcname = path.relative_to(source_dir).as_posix()
                if path.is_dir():
                    zf.write(path, arcname=f"{arcname}/")
                else:
                    zf.write(path, arcname=arcname)
        os.replace(partial, destination)
    except OSError as e:
        with suppress(OSError):
            partial.unlink()
        raise ArchiveError(
            f"Failed to create archive {destination}: {e}",
            recovery_hint="Check that the destination directory is writable and has space",
        ) from e

    logger.info(f"Wrote archive {destination}")
    return destination


class ZipArchiver:
    """Archiver backed by :func:`zip_directory`, run off the event loop."""

    def __init__(self, compression: str = "deflated"):
        if compression not in COMPRESSION_METHODS:
            raise ValueError(
                f"Unknown compression '{compression}'. "
                f"Valid options: {', '.join(sorted(COMPRESSION_METHODS))}"
            )
        self.compression = COMPRESSION_METHODS[compression]

    async def archive(self, source_dir: Path, destination: Path) -> Path:
        return await asyncio.to_thread(zip_directory, source_dir, destination, self.compression)
