# ABOUTME: Temporary directory provider for building bags before archiving
# ABOUTME: Allocates uniquely named directories and removes them on a best-effort basis
"""Temporary storage for in-progress bags"""

import logging
import tempfile
from pathlib import Path

from voyant_export.exceptions import ExportIOError
from voyant_export.utils import remove_tree

logger = logging.getLogger(__name__)


class TempDirectoryProvider:
    """Allocates bag roots under the system (or a given) temp directory."""

    def __init__(self, prefix: str = "collection", base_dir: Path | None = None):
        self.prefix = prefix
        self.base_dir = Path(base_dir) if base_dir is not None else None

    def allocate(self) -> Path:
        """Create a new, uniquely named directory.

        Raises:
            ExportIOError: If the directory cannot be created
        """
        try:
            path = tempfile.mkdtemp(
                prefix=f"{self.prefix}-", dir=str(self.base_dir) if self.base_dir else None
            )
        except OSError as e:
            raise ExportIOError(
                f"Failed to create temporary directory: {e}",
                recovery_hint="Check TMPDIR permissions and free space",
            ) from e
        logger.debug(f"Allocated temporary directory {path}")
        return Path(path)

    def cleanup(self, path: Path) -> None:
        if remove_tree(path):
            logger.debug(f"Removed temporary directory {path}")
