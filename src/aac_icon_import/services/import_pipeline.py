"""Bulk icon import from an Excel workbook.

One batch runs these phases in order:

1. Open the workbook. Failure here is the only fatal error.
2. Read the first Folders sheet and create the folders that do not exist yet.
3. Read the first Icons sheet and drop icons whose title already exists,
   case-insensitively, in the target folder.
4. Download every remaining image with bounded concurrency. A failed
   download drops that icon only.
5. Append the new icons to their folders in sheet order.

Phases are not transactional: folders created in step 2 stay even if a
later phase is cancelled.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field

from aac_icon_import.board import Icon
from aac_icon_import.models import (
    FolderRecord,
    IconRecord,
    ImportPhase,
    ImportSummary,
    SheetKind,
)
from aac_icon_import.services.deduplication import DeduplicationEngine, TitleSnapshot
from aac_icon_import.services.folder_store import FolderStore
from aac_icon_import.services.image_fetcher import FetchedImage, ImageFetcher
from aac_icon_import.services.progress import (
    CancellationToken,
    ImportProgressReporter,
    NullProgressReporter,
)
from aac_icon_import.services.reconciler import ImportReconciler, ReconcileResult
from aac_icon_import.services.record_extractor import ImportRecordExtractor
from aac_icon_import.services.sheet_classifier import SheetClassifier
from aac_icon_import.services.spreadsheet_reader import (
    SpreadsheetReader,
    SpreadsheetSource,
)
from aac_icon_import.spreadsheet import SpreadsheetDocument
from aac_icon_import.utils.exceptions import FetchError, SpreadsheetFormatError
from aac_icon_import.utils.logging import (
    LogContext,
    ProgressTracker,
    get_logger,
    timed_operation,
)

logger = get_logger(__name__)


@dataclass
class FetchOutcome:
    """Images downloaded for a batch, grouped by target folder."""

    icons_by_folder: dict[str, list[Icon]] = field(default_factory=dict)
    fetched: int = 0
    failed: int = 0
    bytes_downloaded: int = 0
    cancelled: bool = False

    def add(self, record: IconRecord, image: FetchedImage) -> None:
        icon = Icon(title=record.icon_name, image_data=image.data)
        self.icons_by_folder.setdefault(record.folder_name, []).append(icon)
        self.fetched += 1
        self.bytes_downloaded += image.downloaded_bytes


class IconImportPipeline:
    """Run import batches against a folder store.

    The pipeline instance tracks the phase of the batch it is running; use
    one instance per concurrent batch.
    """

    def __init__(
        self,
        reader: SpreadsheetReader | None = None,
        classifier: SheetClassifier | None = None,
        extractor: ImportRecordExtractor | None = None,
        deduplicator: DeduplicationEngine | None = None,
        reconciler: ImportReconciler | None = None,
        fetcher: ImageFetcher | None = None,
    ) -> None:
        self.reader = reader or SpreadsheetReader()
        self.classifier = classifier or SheetClassifier()
        self.extractor = extractor or ImportRecordExtractor()
        self.deduplicator = deduplicator or DeduplicationEngine()
        self.reconciler = reconciler or ImportReconciler()
        self.fetcher = fetcher
        self.phase = ImportPhase.IDLE
        self.rows_read = 0

    async def run(
        self,
        source: SpreadsheetSource,
        store: FolderStore,
        reporter: ImportProgressReporter | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ImportSummary:
        """Import folders and icons from ``source`` into ``store``.

        Raises:
            SpreadsheetFormatError: If the workbook or one of its sheets
                cannot be read.
        """
        reporter = reporter or NullProgressReporter()
        cancel_token = cancel_token or CancellationToken()
        start = time.monotonic()
        self.rows_read = 0

        with timed_operation(logger, "icon_import") as metrics:
            reporter.report(0.0, "Parsing Excel file...")
            try:
                document = await asyncio.to_thread(self.reader.open_document, source)
            except SpreadsheetFormatError:
                self.phase = ImportPhase.FAILED
                raise

            with LogContext(workbook=document.source or "<upload>"):
                try:
                    folder_records = await self._parse_folders(document, reporter)
                    result = await asyncio.to_thread(
                        self._create_folders, folder_records, store
                    )
                    icon_records = await self._parse_icons(document, reporter)
                except SpreadsheetFormatError:
                    self.phase = ImportPhase.FAILED
                    raise

                snapshot = TitleSnapshot.capture(await asyncio.to_thread(store.snapshot))
                partition = self.deduplicator.partition_icons(icon_records, snapshot)

                outcome = await self._fetch_all(partition.records, reporter, cancel_token)

                self.phase = ImportPhase.RECONCILING
                await asyncio.to_thread(
                    self.reconciler.attach_icons, outcome.icons_by_folder, store, result
                )

                summary = result.to_summary(
                    skipped_icon_count=partition.skipped_count,
                    failed_fetch_count=outcome.failed,
                    cancelled=outcome.cancelled,
                )
                self.phase = ImportPhase.DONE

                metrics.icons_created = summary.created_icon_count
                metrics.rows_read = self.rows_read
                metrics.images_fetched = outcome.fetched
                metrics.bytes_downloaded = outcome.bytes_downloaded
                metrics.custom_metrics["folders_created"] = summary.created_folder_count

                reporter.finish(summary.summary_text())
                logger.log_import_result(
                    created=summary.created_icon_count,
                    skipped=summary.skipped_icon_count,
                    folders=summary.affected_folder_count,
                    failed_fetches=summary.failed_fetch_count,
                    duration_seconds=time.monotonic() - start,
                    cancelled=summary.cancelled,
                )
                return summary

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def _parse_folders(
        self, document: SpreadsheetDocument, reporter: ImportProgressReporter
    ) -> list[FolderRecord]:
        self.phase = ImportPhase.PARSING_FOLDERS
        reporter.report(0.0, "Creating folders from 'Folders' worksheet...")
        return await asyncio.to_thread(self._first_folder_records, document)

    def _create_folders(
        self, records: list[FolderRecord], store: FolderStore
    ) -> ReconcileResult:
        self.phase = ImportPhase.CREATING_FOLDERS
        partition = self.deduplicator.partition_folders(records, store.snapshot())
        if partition.to_skip:
            logger.info("Skipping existing folders", count=len(partition.to_skip))
        return self.reconciler.create_folders(partition.to_create, store)

    async def _parse_icons(
        self, document: SpreadsheetDocument, reporter: ImportProgressReporter
    ) -> list[IconRecord]:
        self.phase = ImportPhase.PARSING_ICONS
        reporter.report(0.0, "Parsing icons from Excel file...")
        return await asyncio.to_thread(self._first_icon_records, document)

    async def _fetch_all(
        self,
        records: list[IconRecord],
        reporter: ImportProgressReporter,
        cancel_token: CancellationToken,
    ) -> FetchOutcome:
        self.phase = ImportPhase.FETCHING_AND_CREATING
        reporter.report(0.0, "Downloading images and creating icons...")
        outcome = FetchOutcome()
        if not records:
            return outcome

        if self.fetcher is not None:
            await self._fetch_with(self.fetcher, records, reporter, cancel_token, outcome)
        else:
            async with ImageFetcher() as fetcher:
                await self._fetch_with(fetcher, records, reporter, cancel_token, outcome)
        return outcome

    async def _fetch_with(
        self,
        fetcher: ImageFetcher,
        records: list[IconRecord],
        reporter: ImportProgressReporter,
        cancel_token: CancellationToken,
        outcome: FetchOutcome,
    ) -> None:
        """Download concurrently, consume results in record order.

        On cancellation, downloads still running are abandoned; images that
        already arrived are kept.
        """
        total = len(records)
        tracker = ProgressTracker(
            logger, "Downloading images", total=total, log_interval=max(1, total // 10)
        )
        tasks = [asyncio.create_task(fetcher.fetch(r.image_link)) for r in records]
        try:
            for index, (record, task) in enumerate(zip(records, tasks)):
                if cancel_token.cancelled:
                    logger.info("Import cancelled", processed=index, total=total)
                    outcome.cancelled = True
                    await self._collect_finished(records[index:], tasks[index:], outcome)
                    return

                reporter.report(index / total, f"Processing {record.icon_name}...")
                try:
                    image = await task
                except FetchError:
                    outcome.failed += 1
                else:
                    outcome.add(record, image)
                tracker.update(details=record.icon_name)
            tracker.complete()
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

    @staticmethod
    async def _collect_finished(
        records: list[IconRecord],
        tasks: list[asyncio.Task[FetchedImage]],
        outcome: FetchOutcome,
    ) -> None:
        finished = [task.done() for task in tasks]
        for task, done in zip(tasks, finished):
            if not done:
                task.cancel()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for record, done, result in zip(records, finished, results):
            if not done:
                continue
            if isinstance(result, FetchedImage):
                outcome.add(record, result)
            elif isinstance(result, FetchError):
                outcome.failed += 1
            elif isinstance(result, BaseException):
                raise result

    # ------------------------------------------------------------------
    # Sheet selection
    # ------------------------------------------------------------------

    def _first_folder_records(self, document: SpreadsheetDocument) -> list[FolderRecord]:
        """Records of the first Folders sheet that yields any."""
        for sheet in self.reader.iter_sheets(document):
            if self.classifier.classify(sheet) is not SheetKind.FOLDERS:
                continue
            self.rows_read += len(sheet.rows)
            records = self.extractor.extract_folders(sheet)
            if records:
                return records
        logger.info("No Folders sheet found")
        return []

    def _first_icon_records(self, document: SpreadsheetDocument) -> list[IconRecord]:
        for sheet in self.reader.iter_sheets(document):
            if self.classifier.classify(sheet) is SheetKind.ICONS:
                self.rows_read += len(sheet.rows)
                return self.extractor.extract_icons(sheet)
        logger.info("No Icons sheet found")
        return []
