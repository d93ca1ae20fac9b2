"""
Catalog sync engine: keep the category vector store in line with the feed.

A run diffs the feed against the stored catalog and applies only the
difference. Embedding is the expensive step, so a vector is recomputed only
for new codes and for codes whose small title (the embedded text) changed.
A second run over an unchanged feed touches nothing.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Mapping, Optional, Sequence, TypeVar

import structlog

from objection_analyzer.catalog.feed import discover_feed_files, load_feed
from objection_analyzer.llm.base_client import BaseEmbeddingClient
from objection_analyzer.llm.exceptions import EmbeddingFailure
from objection_analyzer.models.catalog_models import CategoryRecord, FeedRow, SyncOptions, SyncReport
from objection_analyzer.monitoring.metrics import catalog_sync_changes_total
from objection_analyzer.persistence.category_store import CategoryVectorStore
from objection_analyzer.persistence.exceptions import PersistenceFailure

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass
class CatalogDiff:
    """Codes to insert, update and delete, plus the codes needing a fresh vector."""

    insert: list[str] = field(default_factory=list)
    update: list[str] = field(default_factory=list)
    delete: list[str] = field(default_factory=list)
    reembed: set[str] = field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not (self.insert or self.update or self.delete)


def compute_diff(
    feed: Mapping[str, FeedRow],
    stored: Mapping[str, CategoryRecord],
    force_refresh: bool = False,
) -> CatalogDiff:
    """
    Diff the feed against the stored catalog.

    - insert: codes only in the feed
    - delete: codes only in the store
    - update: shared codes whose big_code, big_name, small_code or
      small_title differ (every shared code when force_refresh)
    - reembed: inserts, plus updates whose small_title changed (every
      update when force_refresh)
    """
    diff = CatalogDiff()

    for code, row in feed.items():
        existing = stored.get(code)
        if existing is None:
            diff.insert.append(code)
            diff.reembed.add(code)
            continue
        if force_refresh:
            diff.update.append(code)
            diff.reembed.add(code)
        elif existing.differs_from(row):
            diff.update.append(code)
            if existing.small_title != row.small_title:
                diff.reembed.add(code)

    diff.delete = [code for code in stored if code not in feed]
    return diff


def batched(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Split a sequence into consecutive chunks of at most ``size``."""
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


class CatalogSyncEngine:
    """
    Apply feed changes to the category vector store.

    Failures are contained to their unit of work: a failed delete batch,
    a failed embedding or a failed upsert is logged and recorded in the
    report, and the run continues with the next unit.
    """

    def __init__(
        self,
        store: CategoryVectorStore,
        embedder: BaseEmbeddingClient,
        options: Optional[SyncOptions] = None,
    ):
        self.store = store
        self.embedder = embedder
        self.options = options or SyncOptions()

    async def sync(self, feed: Mapping[str, FeedRow], options: Optional[SyncOptions] = None) -> SyncReport:
        """
        Run one incremental sync.

        Args:
            feed: code -> row, as produced by load_feed()
            options: Overrides the engine defaults for this run

        Returns:
            SyncReport with planned changes, applied counts and failures

        Raises:
            PersistenceFailure: The stored catalog could not be loaded
        """
        opts = options or self.options
        start = time.time()

        stored = self.store.load_all()
        diff = compute_diff(feed, stored, force_refresh=opts.force_refresh)

        report = SyncReport(
            inserted=diff.insert,
            updated=diff.update,
            deleted=diff.delete,
        )

        logger.info(
            "Catalog diff computed",
            feed_codes=len(feed),
            stored_codes=len(stored),
            insert=len(diff.insert),
            update=len(diff.update),
            delete=len(diff.delete),
            reembed=len(diff.reembed),
            force_refresh=opts.force_refresh,
        )

        self._apply_deletes(diff.delete, opts.delete_batch_size, report)
        await self._apply_upserts(feed, diff.insert + diff.update, diff.reembed, report)

        report.duration_ms = int((time.time() - start) * 1000)
        catalog_sync_changes_total.labels(action="insert").inc(len(diff.insert))
        catalog_sync_changes_total.labels(action="update").inc(len(diff.update))
        catalog_sync_changes_total.labels(action="delete").inc(report.removed)
        catalog_sync_changes_total.labels(action="reembed").inc(report.embedded)

        logger.info(
            "Catalog sync finished",
            duration_ms=report.duration_ms,
            report=report.summary(opts.report_sample_size),
        )
        return report

    def _apply_deletes(self, codes: list[str], batch_size: int, report: SyncReport) -> None:
        for batch_number, batch in enumerate(batched(codes, batch_size), start=1):
            try:
                report.removed += self.store.delete(batch)
            except PersistenceFailure as e:
                report.failed_delete_batches += 1
                logger.error(
                    "Catalog delete batch failed",
                    batch=batch_number,
                    batch_size=len(batch),
                    first_code=batch[0],
                    error=str(e),
                )

    async def _apply_upserts(
        self,
        feed: Mapping[str, FeedRow],
        codes: list[str],
        reembed: set[str],
        report: SyncReport,
    ) -> None:
        for code in codes:
            row = feed[code]
            embedding = None
            if code in reembed:
                try:
                    embedding = await self.embedder.embed(row.small_title)
                except EmbeddingFailure as e:
                    report.embedding_failures.append(code)
                    logger.error("Embedding failed, skipping catalog code", code=code, error=str(e))
                    continue
                report.embedded += 1

            try:
                self.store.upsert(row, embedding)
            except PersistenceFailure as e:
                report.upsert_failures.append(code)
                logger.error("Catalog upsert failed, skipping code", code=code, error=str(e))
                continue
            report.upserted += 1

    async def bootstrap(self, feed: Mapping[str, FeedRow], options: Optional[SyncOptions] = None) -> SyncReport:
        """
        First-run import: skip entirely when the catalog already has records.

        Only the record count is read; use sync() for incremental updates.
        """
        skipped = self._skip_if_populated()
        if skipped is not None:
            return skipped
        return await self.sync(feed, options)

    def _skip_if_populated(self) -> Optional[SyncReport]:
        existing = self.store.count()
        if existing > 0:
            logger.info("Catalog already populated, bootstrap skipped", records=existing)
            return SyncReport(skipped=True, skip_reason="catalog already populated")
        return None

    async def sync_directory(
        self,
        directory: str | Path,
        pattern: str = "*.csv",
        options: Optional[SyncOptions] = None,
        bootstrap: bool = False,
    ) -> SyncReport:
        """
        Discover feed files, load them and sync in one call.

        With ``bootstrap`` the populated-store check runs before any file is read.
        """
        if bootstrap:
            skipped = self._skip_if_populated()
            if skipped is not None:
                return skipped

        files = discover_feed_files(directory, pattern)
        if not files:
            # An empty feed would delete the whole catalog.
            logger.warning("No catalog feed files found, sync aborted", directory=str(directory), pattern=pattern)
            return SyncReport(skipped=True, skip_reason="no feed files found")

        feed = load_feed(files)
        if not feed:
            logger.warning("Catalog feed has no usable rows, sync aborted", files=[f.name for f in files])
            return SyncReport(skipped=True, skip_reason="feed has no usable rows")
        return await self.sync(feed, options)


async def sync_catalog(
    feed: Mapping[str, FeedRow],
    store: CategoryVectorStore,
    embedder: BaseEmbeddingClient,
    options: Optional[SyncOptions] = None,
) -> SyncReport:
    """Functional entry point: one sync run with a throwaway engine."""
    return await CatalogSyncEngine(store, embedder, options).sync(feed)
