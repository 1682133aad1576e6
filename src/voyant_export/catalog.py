# ABOUTME: Source catalogs that resolve a selected collection into exportable items
# ABOUTME: Read-only Zotero SQLite reader, JSON library file reader, and an in-memory catalog
"""Source catalogs"""

import asyncio
import json
import logging
import re
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from voyant_export.exceptions import CatalogError, FatalPreconditionError, ValidationError
from voyant_export.models import Record

logger = logging.getLogger(__name__)

# Zotero item types that are never exported as records
NON_RECORD_TYPES = ("attachment", "note", "annotation")

# Zotero attachment link modes that refer to a local file
IMPORTED_FILE = 0
IMPORTED_URL = 1
LINKED_FILE = 2
FILE_LINK_MODES = (IMPORTED_FILE, IMPORTED_URL, LINKED_FILE)

# Zotero field name -> Record field
ZOTERO_FIELDS = {
    "title": "title",
    "date": "date",
    "abstractNote": "abstract_text",
    "publisher": "publisher",
    "language": "language",
    "rights": "rights",
}

_MULTIPART_DATE = re.compile(r"^\d{4}-\d{2}-\d{2} (.*)$", re.DOTALL)


def build_record(data: dict[str, Any]) -> Record:
    """Validate raw catalog data into a Record.

    Raises:
        ValidationError: If the data does not describe a valid record
    """
    try:
        return Record.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid record {data.get('id')!r}: {e.error_count()} validation error(s): "
            + "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()),
            recovery_hint="Fix the record in the source catalog and export again",
        ) from e


class FileAttachment:
    """An attachment whose file location is already known."""

    def __init__(self, path: str | Path | None, content_type: str | None = None):
        self.path = Path(path) if path else None
        self.content_type = content_type

    async def get_file_path(self) -> Path | None:
        return self.path

    def __repr__(self) -> str:
        return f"FileAttachment({str(self.path)!r})"


class RecordItem:
    """Catalog item wrapping raw record data and an optional attachment path."""

    def __init__(self, data: dict[str, Any] | Record, attachment_path: str | Path | None = None):
        self.data = data
        self.attachment_path = attachment_path

    def to_record(self) -> Record:
        if isinstance(self.data, Record):
            return self.data
        return build_record(self.data)

    async def get_best_attachment(self) -> FileAttachment | None:
        if self.attachment_path is None:
            return None
        return FileAttachment(self.attachment_path)


class InvalidItem:
    """Placeholder for catalog data that cannot describe a record at all."""

    def __init__(self, reason: str):
        self.reason = reason

    def to_record(self) -> Record:
        raise ValidationError(self.reason, recovery_hint="Fix the entry in the library file")

    async def get_best_attachment(self) -> None:
        return None


@dataclass
class SimpleCollection:
    name: str
    items: list = field(default_factory=list)

    def get_items(self) -> list:
        return list(self.items)


class StaticCatalog:
    """In-memory catalog with a single, already selected collection."""

    def __init__(self, collection_name: str | None, items: list | None = None):
        self.collection_name = collection_name
        self.items = [
            RecordItem(item) if isinstance(item, (dict, Record)) else item for item in (items or [])
        ]

    def get_selected_collection(self) -> SimpleCollection | None:
        if self.collection_name is None:
            return None
        return SimpleCollection(self.collection_name, self.items)


class JsonCatalog:
    """
    Catalog read from a JSON library file.

    Format::

        {"collections": {"Name": [{"id": "1", "title": "...", "creators": [...],
                                   "attachment": "files/one.pdf"}, ...]}}

    Attachment paths are resolved relative to the JSON file.
    """

    def __init__(self, path: str | Path, selected: str | None = None):
        self.path = Path(path).expanduser()
        self.selected = None
        self._collections = self._load()
        if selected is not None:
            self.select(selected)

    def _load(self) -> dict[str, list]:
        try:
            with open(self.path, encoding="utf-8") as f:
                library = json.load(f)
        except FileNotFoundError as e:
            raise CatalogError(
                f"Library file not found: {self.path}",
                recovery_hint="Check the --library path",
            ) from e
        except (OSError, json.JSONDecodeError) as e:
            raise CatalogError(f"Failed to read library file {self.path}: {e}") from e

        collections = library.get("collections") if isinstance(library, dict) else None
        if not isinstance(collections, dict):
            raise CatalogError(
                f"Library file {self.path} has no 'collections' object",
                recovery_hint='Expected {"collections": {"Name": [items]}}',
            )
        for name, items in collections.items():
            if not isinstance(items, list):
                raise CatalogError(f"Collection '{name}' in {self.path} is not a list")
        return collections

    def list_collections(self) -> list[tuple[str, int]]:
        return [(name, len(items)) for name, items in self._collections.items()]

    def select(self, name: str) -> None:
        if name not in self._collections:
            raise FatalPreconditionError(
                f"Collection '{name}' not found in {self.path}",
                recovery_hint="Run 'voyant-export collections' to list available collections",
            )
        self.selected = name

    def get_collection(self, name: str) -> SimpleCollection:
        self.select(name)
        base_dir = self.path.parent
        items = []
        for position, entry in enumerate(self._collections[name], start=1):
            if entry is None:
                items.append(None)
                continue
            if not isinstance(entry, dict):
                items.append(
                    InvalidItem(f"Library entry {position} in '{name}' is not an object: {entry!r}")
                )
                continue
            data = dict(entry)
            attachment = data.pop("attachment", None)
            if attachment is not None and not isinstance(attachment, str):
                items.append(InvalidItem(f"Record {data.get('id')!r} has a non-text attachment path"))
                continue
            if attachment:
                attachment = Path(attachment).expanduser()
                if not attachment.is_absolute():
                    attachment = base_dir / attachment
            items.append(RecordItem(data, attachment))
        return SimpleCollection(name, items)

    def get_selected_collection(self) -> SimpleCollection | None:
        if self.selected is None:
            return None
        return self.get_collection(self.selected)


class ZoteroItem:
    """A regular Zotero item, loaded eagerly except for its attachments."""

    def __init__(self, catalog: "ZoteroCatalog", item_id: int, data: dict[str, Any]):
        self.catalog = catalog
        self.item_id = item_id
        self.data = data

    def to_record(self) -> Record:
        return build_record(self.data)

    async def get_best_attachment(self) -> FileAttachment | None:
        return await asyncio.to_thread(self.catalog.best_attachment, self.item_id)


class ZoteroCatalog:
    """
    Read-only access to a Zotero ``zotero.sqlite`` database.

    The database is opened with ``mode=ro`` so a running Zotero instance is
    never written to. Imported files are looked up in ``storage_dir``, which
    defaults to the ``storage`` directory next to the database.
    """

    def __init__(
        self,
        sqlite_path: str | Path,
        storage_dir: str | Path | None = None,
        selected: str | None = None,
    ):
        self.db_path = Path(sqlite_path).expanduser()
        if not self.db_path.is_file():
            raise CatalogError(
                f"Zotero database not found: {self.db_path}",
                recovery_hint="Point --zotero at zotero.sqlite in your Zotero data directory",
            )
        self.storage_dir = (
            Path(storage_dir).expanduser() if storage_dir else self.db_path.parent / "storage"
        )
        self.selected = None
        if selected is not None:
            self.select(selected)

    @contextmanager
    def get_connection(self):
        """Get a read-only database connection."""
        conn = None
        try:
            conn = sqlite3.connect(f"{self.db_path.resolve().as_uri()}?mode=ro", uri=True)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            logger.error(f"Database error: {e}")
            raise CatalogError(
                f"Zotero database query failed: {e}",
                recovery_hint="Close Zotero if the database is locked and try again",
            ) from e
        finally:
            if conn:
                conn.close()

    def list_collections(self) -> list[tuple[str, int]]:
        with self.get_connection() as conn:
            rows = conn.execute(
                f"""
                SELECT c.collectionName AS name, COUNT(i.itemID) AS count
                FROM collections c
                LEFT JOIN collectionItems ci ON ci.collectionID = c.collectionID
                LEFT JOIN items i ON i.itemID = ci.itemID
                    AND i.itemID NOT IN (SELECT itemID FROM deletedItems)
                    AND i.itemTypeID IN (
                        SELECT itemTypeID FROM itemTypes
                        WHERE typeName NOT IN ({",".join("?" * len(NON_RECORD_TYPES))})
                    )
                GROUP BY c.collectionID
                ORDER BY c.collectionName
                """,
                NON_RECORD_TYPES,
            ).fetchall()
        return [(row["name"], row["count"]) for row in rows]

    def _collection_id(self, conn: sqlite3.Connection, name: str) -> int:
        row = conn.execute(
            "SELECT collectionID FROM collections WHERE collectionName = ? ORDER BY collectionID",
            (name,),
        ).fetchone()
        if row is None:
            raise FatalPreconditionError(
                f"Collection '{name}' not found in {self.db_path}",
                recovery_hint="Run 'voyant-export collections' to list available collections",
            )
        return row["collectionID"]

    def select(self, name: str) -> None:
        with self.get_connection() as conn:
            self._collection_id(conn, name)
        self.selected = name

    def get_collection(self, name: str) -> SimpleCollection:
        """Load a collection's regular items in collection order."""
        with self.get_connection() as conn:
            collection_id = self._collection_id(conn, name)
            rows = conn.execute(
                f"""
                SELECT i.itemID, i.key, t.typeName
                FROM collectionItems ci
                JOIN items i ON i.itemID = ci.itemID
                JOIN itemTypes t ON t.itemTypeID = i.itemTypeID
                WHERE ci.collectionID = ?
                    AND t.typeName NOT IN ({",".join("?" * len(NON_RECORD_TYPES))})
                    AND i.itemID NOT IN (SELECT itemID FROM deletedItems)
                ORDER BY ci.orderIndex, i.itemID
                """,
                (collection_id, *NON_RECORD_TYPES),
            ).fetchall()
            items = [
                ZoteroItem(self, row["itemID"], self._item_data(conn, row)) for row in rows
            ]
        self.selected = name
        logger.debug(f"Loaded {len(items)} items from collection '{name}'")
        return SimpleCollection(name, items)

    def get_selected_collection(self) -> SimpleCollection | None:
        if self.selected is None:
            return None
        return self.get_collection(self.selected)

    def _item_data(self, conn: sqlite3.Connection, item: sqlite3.Row) -> dict[str, Any]:
        item_id = item["itemID"]
        data: dict[str, Any] = {"id": item["key"], "item_type": item["typeName"]}

        placeholders = ",".join("?" * len(ZOTERO_FIELDS))
        for row in conn.execute(
            f"""
            SELECT f.fieldName, v.value
            FROM itemData d
            JOIN fields f ON f.fieldID = d.fieldID
            JOIN itemDataValues v ON v.valueID = d.valueID
            WHERE d.itemID = ? AND f.fieldName IN ({placeholders})
            """,
            (item_id, *ZOTERO_FIELDS),
        ):
            value = row["value"]
            if row["fieldName"] == "date" and isinstance(value, str):
                value = normalize_date(value)
            data[ZOTERO_FIELDS[row["fieldName"]]] = value

        data["creators"] = [
            {"given_name": row["firstName"], "family_name": row["lastName"], "role": row["creatorType"]}
            for row in conn.execute(
                """
                SELECT c.firstName, c.lastName, ct.creatorType
                FROM itemCreators ic
                JOIN creators c ON c.creatorID = ic.creatorID
                JOIN creatorTypes ct ON ct.creatorTypeID = ic.creatorTypeID
                WHERE ic.itemID = ?
                ORDER BY ic.orderIndex
                """,
                (item_id,),
            )
        ]

        data["tags"] = [
            row["name"]
            for row in conn.execute(
                """
                SELECT t.name FROM itemTags it JOIN tags t ON t.tagID = it.tagID
                WHERE it.itemID = ? ORDER BY t.name
                """,
                (item_id,),
            )
        ]
        return data

    def best_attachment(self, item_id: int) -> FileAttachment | None:
        """The item's preferred file attachment: PDFs first, then the oldest."""
        with self.get_connection() as conn:
            row = conn.execute(
                f"""
                SELECT a.path, a.contentType, a.linkMode, i.key
                FROM itemAttachments a
                JOIN items i ON i.itemID = a.itemID
                WHERE a.parentItemID = ?
                    AND a.linkMode IN ({",".join("?" * len(FILE_LINK_MODES))})
                    AND a.path IS NOT NULL
                    AND a.itemID NOT IN (SELECT itemID FROM deletedItems)
                ORDER BY (a.contentType = 'application/pdf') DESC, i.dateAdded, i.itemID
                LIMIT 1
                """,
                (item_id, *FILE_LINK_MODES),
            ).fetchone()
        if row is None:
            return None
        return FileAttachment(self.resolve_path(row["path"], row["key"]), row["contentType"])

    def resolve_path(self, stored_path: str, attachment_key: str) -> Path | None:
        """Turn a stored attachment path into a local file path."""
        if stored_path.startswith("storage:"):
            return self.storage_dir / attachment_key / stored_path[len("storage:"):]
        path = Path(stored_path)
        if path.is_absolute():
            return path
        # Relative to Zotero's linked attachment base directory, which lives in prefs.js
        logger.warning(f"Cannot resolve attachment path '{stored_path}' for {attachment_key}")
        return None


def normalize_date(value: str) -> str:
    """Reduce Zotero's multipart date ("2001-00-00 2001") to its original text."""
    match = _MULTIPART_DATE.match(value)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return value
