# ABOUTME: BagIt skeleton creation and validation for exported collections
# ABOUTME: Writes bagit.txt and the data/ payload root; checks finished bags and ZIPs
"""BagIt packaging helpers"""

import logging
import zipfile
from pathlib import Path, PurePosixPath

from voyant_export.exceptions import BagError, ExportIOError
from voyant_export.utils import atomic_write

logger = logging.getLogger(__name__)

BAGIT_FILENAME = "bagit.txt"
DATA_DIR_NAME = "data"
BAGIT_VERSION = "0.97"
BAGIT_DECLARATION = (
    f"BagIt-Version: {BAGIT_VERSION}\n"
    "Tag-File-Character-Encoding: UTF-8\n"
)

# Fixed payload filenames expected by the Voyant importer
MODS_FILENAME = "MODS.bin"
DC_FILENAME = "DC.xml"
CONTENT_FILENAME = "CWRC.bin"
PAYLOAD_FILES = frozenset({MODS_FILENAME, DC_FILENAME, CONTENT_FILENAME})


def write_declaration(bag_root: Path) -> Path:
    """Write bagit.txt directly under bag_root.

    Returns:
        Path to the declaration file

    Raises:
        BagError: If the file cannot be written
    """
    path = Path(bag_root) / BAGIT_FILENAME
    try:
        atomic_write(path, BAGIT_DECLARATION.encode("utf-8"))
    except ExportIOError as e:
        raise BagError(
            f"Failed to create BagIt declaration: {e}",
            recovery_hint="Check that the temporary directory is writable",
        ) from e
    logger.debug(f"Wrote BagIt declaration to {path}")
    return path


def create_payload_root(bag_root: Path) -> Path:
    """Create the data/ payload directory.

    Raises:
        BagError: If it already exists or cannot be created
    """
    path = Path(bag_root) / DATA_DIR_NAME
    try:
        path.mkdir(mode=0o755)
    except OSError as e:
        raise BagError(
            f"Failed to create data directory {path}: {e}",
            recovery_hint="Check filesystem permissions and that the bag root is fresh",
        ) from e
    return path


class BagAssembler:
    """Lays out the bag skeleton under a fresh root directory."""

    def __init__(self, bag_root: Path):
        self.bag_root = Path(bag_root)

    def assemble(self) -> Path:
        """Write the declaration and create the payload root.

        Returns:
            Path to the payload root
        """
        write_declaration(self.bag_root)
        payload_root = create_payload_root(self.bag_root)
        logger.info(f"Assembled bag skeleton at {self.bag_root}")
        return payload_root


def _check_layout(declaration: str | None, names: set[PurePosixPath]) -> list[str]:
    problems: list[str] = []

    if declaration is None:
        problems.append(f"missing {BAGIT_FILENAME}")
    elif declaration != BAGIT_DECLARATION:
        problems.append(f"{BAGIT_FILENAME} does not contain the expected declaration")

    data = PurePosixPath(DATA_DIR_NAME)
    payload = [n for n in names if n.parts[:1] == (DATA_DIR_NAME,) and n != data]
    if data not in names and not payload:
        problems.append(f"missing {DATA_DIR_NAME}/ payload directory")
        return problems

    records: dict[str, set[str]] = {}
    for name in payload:
        if len(name.parts) == 2:
            records.setdefault(name.parts[1], set())
        elif len(name.parts) == 3:
            records.setdefault(name.parts[1], set()).add(name.parts[2])
        else:
            problems.append(f"unexpected nested path {name}")

    for record_id, files in sorted(records.items()):
        missing = PAYLOAD_FILES - files
        extra = files - PAYLOAD_FILES
        if missing:
            problems.append(f"record {record_id} is missing {', '.join(sorted(missing))}")
        if extra:
            problems.append(f"record {record_id} has unexpected files {', '.join(sorted(extra))}")

    return problems


def validate_bag(path: Path) -> list[str]:
    """
    Check an exported bag, either a directory or a ZIP archive.

    Args:
        path: Bag root directory or archive file

    Returns:
        List of problems; empty when the bag is valid
    """
    path = Path(path)

    if path.is_dir():
        declaration_file = path / BAGIT_FILENAME
        declaration = (
            declaration_file.read_text(encoding="utf-8") if declaration_file.is_file() else None
        )
        names = {
            PurePosixPath(p.relative_to(path).as_posix())
            for p in path.rglob("*")
            if p != declaration_file
        }
        return _check_layout(declaration, names)

    if not zipfile.is_zipfile(path):
        return [f"{path} is neither a directory nor a ZIP archive"]

    with zipfile.ZipFile(path) as zf:
        declaration = None
        names: set[PurePosixPath] = set()
        for info in zf.infolist():
            name = PurePosixPath(info.filename.rstrip("/"))
            if str(name) == BAGIT_FILENAME:
                declaration = zf.read(info).decode("utf-8")
                continue
            names.add(name)
            # Directory entries are optional in ZIPs; record parents explicitly
            names.update(p for p in name.parents if str(p) != ".")
        return _check_layout(declaration, names)
