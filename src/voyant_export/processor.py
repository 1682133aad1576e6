# ABOUTME: Per-record export: attachment lookup, metadata generation, payload writes
# ABOUTME: Converts every per-record error into a tallied outcome so one bad item never stops the job
"""Item processing for the export pipeline"""

import asyncio
import logging
import os
from pathlib import Path

from voyant_export.bag import CONTENT_FILENAME, DC_FILENAME, MODS_FILENAME
from voyant_export.exceptions import (
    ExportIOError,
    RetryExhaustedError,
    ValidationError,
    VoyantExportError,
)
from voyant_export.interfaces import CatalogItem
from voyant_export.metadata import generate_rich, generate_simple
from voyant_export.models import ItemOutcome, ItemStatus, Record
from voyant_export.retry import DEFAULT_POLICY, RetryPolicy, run_with_retry
from voyant_export.utils import atomic_write, copy_file, is_readable_file, remove_tree

logger = logging.getLogger(__name__)


def _check_directory_name(record_id: str) -> None:
    """Record ids become directory names; they must be one plain path component."""
    bad = (
        not record_id
        or record_id in (".", "..")
        or os.sep in record_id
        or (os.altsep is not None and os.altsep in record_id)
        or "\x00" in record_id
    )
    if bad:
        raise ValidationError(
            f"Record id {record_id!r} cannot be used as a directory name",
            recovery_hint="Record ids must not be empty or contain path separators",
        )


class ItemProcessor:
    """Writes one payload subdirectory per exportable record."""

    def __init__(
        self,
        payload_root: Path,
        retry_policy: RetryPolicy = DEFAULT_POLICY,
        max_concurrency: int = 4,
    ):
        """
        Args:
            payload_root: The bag's data/ directory
            retry_policy: Policy for the write+copy sequence of each record
            max_concurrency: Records processed at the same time by process_all
        """
        self.payload_root = Path(payload_root)
        self.retry_policy = retry_policy
        self.max_concurrency = max(1, max_concurrency)

    async def process(self, item: CatalogItem) -> ItemOutcome:
        """Export one item. Never raises; the outcome says what happened."""
        if item is None:
            logger.warning("Skipping null item")
            return ItemOutcome(record_id="", status=ItemStatus.SKIPPED, reason="null item")

        try:
            record = item.to_record()
        except VoyantExportError as e:
            logger.error(f"Item rejected at catalog boundary: {e}")
            return ItemOutcome(record_id="", status=ItemStatus.FAILED, reason=str(e))
        except Exception as e:
            logger.error(f"Catalog item could not produce a record: {e}", exc_info=True)
            return ItemOutcome(record_id="", status=ItemStatus.FAILED, reason=str(e))

        try:
            return await self._process_record(item, record)
        except Exception as e:
            logger.error(f"Item {record.id}: Unexpected error during export: {e}", exc_info=True)
            return ItemOutcome(record_id=record.id, status=ItemStatus.FAILED, reason=str(e))

    async def _process_record(self, item: CatalogItem, record: Record) -> ItemOutcome:
        attachment = await item.get_best_attachment()
        if attachment is None:
            return self._skip(record, "no attachment found")

        attachment_path = await attachment.get_file_path()
        if not attachment_path:
            return self._skip(record, "attachment has no file path")

        attachment_path = Path(attachment_path)
        if not await asyncio.to_thread(is_readable_file, attachment_path):
            return self._skip(record, f"attachment file is missing or unreadable at {attachment_path}")

        logger.info(f"Saving item {record.id}: {record.title or '(untitled)'}")

        # Metadata comes first so an invalid record never leaves a directory behind
        try:
            _check_directory_name(record.id)
            mods = generate_rich(record).to_bytes()
            dc = generate_simple(record).to_bytes()
        except ValidationError as e:
            return self._fail(record, f"Metadata generation failed: {e}")

        item_dir = self.payload_root / record.id
        try:
            await asyncio.to_thread(item_dir.mkdir, 0o755)
        except OSError as e:
            return self._fail(record, f"Failed to create directory {item_dir}: {e}")

        async def write_payload():
            await asyncio.to_thread(atomic_write, item_dir / MODS_FILENAME, mods)
            await asyncio.to_thread(atomic_write, item_dir / DC_FILENAME, dc)
            await asyncio.to_thread(copy_file, attachment_path, item_dir / CONTENT_FILENAME)

        try:
            await run_with_retry(
                write_payload,
                self.retry_policy,
                retry_on=(ExportIOError,),
                description=f"payload write for item {record.id}",
            )
        except RetryExhaustedError as e:
            await asyncio.to_thread(remove_tree, item_dir)
            return self._fail(record, f"Failed to write payload: {e.last_error}")

        logger.info(f"Item {record.id}: Successfully exported")
        return ItemOutcome(record_id=record.id, status=ItemStatus.SAVED)

    async def process_all(self, items: list[CatalogItem]) -> list[ItemOutcome]:
        """Process items concurrently, bounded by max_concurrency.

        Returns:
            Outcomes in the same order as items
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(item: CatalogItem) -> ItemOutcome:
            async with semaphore:
                return await self.process(item)

        return list(await asyncio.gather(*(bounded(item) for item in items)))

    def _skip(self, record: Record, reason: str) -> ItemOutcome:
        logger.warning(f"Item {record.id}: {reason}, skipping")
        return ItemOutcome(record_id=record.id, status=ItemStatus.SKIPPED, reason=reason)

    def _fail(self, record: Record, reason: str) -> ItemOutcome:
        logger.error(f"Item {record.id}: {reason}")
        return ItemOutcome(record_id=record.id, status=ItemStatus.FAILED, reason=reason)
