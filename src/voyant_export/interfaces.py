# ABOUTME: Protocols for the collaborators the export pipeline depends on
# ABOUTME: Catalog, attachment, destination chooser, temp storage and archiver seams
"""Interfaces consumed by the export pipeline"""

from pathlib import Path
from typing import Protocol, runtime_checkable

from voyant_export.models import Record


@runtime_checkable
class Attachment(Protocol):
    async def get_file_path(self) -> str | Path | None:
        """Local path of the attachment's file, or None if it has none."""
        ...


@runtime_checkable
class CatalogItem(Protocol):
    def to_record(self) -> Record:
        """Validated record for this item. Raises ValidationError on bad data."""
        ...

    async def get_best_attachment(self) -> Attachment | None:
        ...


class Collection(Protocol):
    name: str

    def get_items(self) -> list[CatalogItem]:
        ...


class SourceCatalog(Protocol):
    def get_selected_collection(self) -> Collection | None:
        """The collection the user selected, or None if nothing is selected."""
        ...


class DestinationChooser(Protocol):
    def choose(self, collection_name: str) -> Path | None:
        """Output path for the archive, or None when the user cancels."""
        ...


class TempStorage(Protocol):
    def allocate(self) -> Path:
        ...

    def cleanup(self, path: Path) -> None:
        ...


class Archiver(Protocol):
    async def archive(self, source_dir: Path, destination: Path) -> Path:
        """Compress source_dir into destination. Must not leave partial output."""
        ...
