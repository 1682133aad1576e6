# ABOUTME: Top-level export workflow from selected collection to BagIt ZIP archive
# ABOUTME: Resolves selection, builds the bag, processes items, archives with retry, reports counts
"""Export orchestration"""

import logging
from pathlib import Path

from voyant_export.archiver import ZipArchiver
from voyant_export.bag import BagAssembler
from voyant_export.exceptions import (
    BagError,
    ExportError,
    ExportIOError,
    FatalPreconditionError,
    RetryExhaustedError,
)
from voyant_export.interfaces import Archiver, Collection, DestinationChooser, SourceCatalog, TempStorage
from voyant_export.models import ExportJob, ExportReport
from voyant_export.processor import ItemProcessor
from voyant_export.retry import DEFAULT_POLICY, RetryPolicy, describe, run_with_retry
from voyant_export.storage import TempDirectoryProvider

logger = logging.getLogger(__name__)


class ExportOrchestrator:
    """Runs one export job against injected collaborators."""

    def __init__(
        self,
        catalog: SourceCatalog,
        destination: DestinationChooser,
        temp_storage: TempStorage | None = None,
        archiver: Archiver | None = None,
        retry_policy: RetryPolicy = DEFAULT_POLICY,
        max_concurrency: int = 4,
        keep_temp: bool = False,
    ):
        """
        Args:
            catalog: Source of the selected collection
            destination: Chooses where the archive goes (or cancels)
            temp_storage: Allocates the bag root (defaults to the system temp dir)
            archiver: Produces the archive (defaults to ZIP)
            retry_policy: Used for payload writes and for archiving
            max_concurrency: Records processed at the same time
            keep_temp: Leave the bag directory in place after the run
        """
        self.catalog = catalog
        self.destination = destination
        self.temp_storage = temp_storage or TempDirectoryProvider()
        self.archiver = archiver or ZipArchiver()
        self.retry_policy = retry_policy
        self.max_concurrency = max_concurrency
        self.keep_temp = keep_temp

    def _resolve_selection(self) -> Collection:
        try:
            collection = self.catalog.get_selected_collection()
        except FatalPreconditionError:
            raise
        except Exception as e:
            raise FatalPreconditionError(
                f"Could not resolve the active selection: {e}",
                recovery_hint="Select a collection in the source catalog",
            ) from e
        if collection is None:
            raise FatalPreconditionError(
                "No collection selected",
                recovery_hint="Select a collection to export",
            )
        return collection

    async def run(self) -> ExportReport:
        """Execute the export.

        Returns:
            Report with per-item outcomes and tallies. ``cancelled`` or
            ``empty`` is set when the job stopped early without output.

        Raises:
            FatalPreconditionError: No active selection
            ExportError: Temp dir, bag skeleton or archive could not be created
        """
        collection = self._resolve_selection()
        name = collection.name
        items = list(collection.get_items() or [])
        report = ExportReport(collection_name=name, total=len(items))

        if not items:
            logger.warning(f"Collection '{name}' is empty, nothing to export")
            report.empty = True
            return report

        logger.info(f"Starting export: collection '{name}', {len(items)} items")

        output_path = self.destination.choose(name)
        if output_path is None:
            logger.info("Export cancelled by user")
            report.cancelled = True
            return report
        output_path = Path(output_path)
        logger.info(f"Export destination: {output_path}")

        try:
            temp_root = self.temp_storage.allocate()
        except (ExportIOError, OSError) as e:
            raise ExportError(f"Failed to create temporary directory: {e}") from e
        logger.info(f"Temporary directory: {temp_root}")

        job = ExportJob(output_path=output_path, temp_root=temp_root, records=items)
        try:
            try:
                payload_root = BagAssembler(temp_root).assemble()
            except BagError as e:
                raise ExportError(f"Failed to create bag skeleton: {e}") from e

            logger.info("Processing items...")
            processor = ItemProcessor(
                payload_root,
                retry_policy=self.retry_policy,
                max_concurrency=self.max_concurrency,
            )
            outcomes = await processor.process_all(job.records)
            for outcome in outcomes:
                job.tally(outcome)

            logger.info(
                f"All items processed ({job.success_count} saved, {job.skip_count} skipped, "
                f"{job.failure_count} failed), creating ZIP archive with retry {describe(self.retry_policy)}"
            )
            try:
                await run_with_retry(
                    lambda: self.archiver.archive(job.temp_root, job.output_path),
                    self.retry_policy,
                    retry_on=(ExportIOError, OSError),
                    description="archive creation",
                )
            except RetryExhaustedError as e:
                raise ExportError(
                    f"Export failed: could not write archive to {job.output_path}: {e.last_error}",
                    recovery_hint="Choose a writable destination and retry the export",
                ) from e
        finally:
            if self.keep_temp:
                logger.info(f"Keeping bag directory {job.temp_root}")
            else:
                self.temp_storage.cleanup(job.temp_root)

        logger.info(f"Export completed successfully: {job.output_path}")
        report.output_path = job.output_path
        report.outcomes = outcomes
        report.success_count = job.success_count
        report.skip_count = job.skip_count
        report.failure_count = job.failure_count
        return report
