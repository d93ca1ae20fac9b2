"""
Celery tasks for transcript analysis and catalog refresh.

Tasks accept and return JSON-serializable values for compatibility with
Celery's JSON serialization.
"""

import asyncio
import time
from typing import Optional

import structlog
from celery import Task

from objection_analyzer.catalog.sync import CatalogSyncEngine
from objection_analyzer.config import settings
from objection_analyzer.llm.ollama_client import OllamaClient
from objection_analyzer.llm.prompt_builder import PromptBuilder
from objection_analyzer.models.catalog_models import SyncOptions
from objection_analyzer.persistence.case_store import CaseStore
from objection_analyzer.persistence.category_store import CategoryVectorStore
from objection_analyzer.persistence.exceptions import PersistenceFailure
from objection_analyzer.persistence.redis_client import RedisClient
from objection_analyzer.tasks.celery_app import celery_app
from objection_analyzer.validation.pipeline import ValidationPipeline, build_pipeline

logger = structlog.get_logger(__name__)


class AnalyzerTask(Task):
    """
    Base task class with resource initialization.

    Heavy resources are created once per worker process and reused across
    task invocations (the worker-side counterpart of the API dependencies).
    """

    _llm_client = None
    _category_store = None
    _case_store = None
    _pipeline = None
    _sync_engine = None

    @property
    def llm_client(self) -> OllamaClient:
        if self._llm_client is None:
            self._llm_client = OllamaClient(
                base_url=settings.OLLAMA_BASE_URL,
                model=settings.OLLAMA_MODEL,
                embedding_model=settings.OLLAMA_EMBEDDING_MODEL,
                timeout=settings.OLLAMA_TIMEOUT,
                max_retries=settings.LLM_CONNECTION_RETRIES,
                temperature=settings.LLM_TEMPERATURE,
                top_p=settings.LLM_TOP_P,
                max_tokens=settings.LLM_MAX_TOKENS,
            )
        return self._llm_client

    @property
    def category_store(self) -> CategoryVectorStore:
        if self._category_store is None:
            self._category_store = CategoryVectorStore(
                RedisClient.get_client(settings),
                self.llm_client,
                key_prefix=settings.CATALOG_KEY_PREFIX,
                default_top_k=settings.RAG_TOP_K,
            )
        return self._category_store

    @property
    def case_store(self) -> CaseStore:
        if self._case_store is None:
            self._case_store = CaseStore(RedisClient.get_client(settings), key_prefix=settings.CASES_KEY_PREFIX)
        return self._case_store

    @property
    def pipeline(self) -> ValidationPipeline:
        """Get or initialize validation pipeline (singleton per worker)."""
        if self._pipeline is None:
            self._pipeline = build_pipeline(
                settings,
                self.llm_client,
                self.category_store,
                self.case_store,
                prompt_builder=PromptBuilder(transcript_truncation_limit=settings.TRANSCRIPT_TRUNCATION_LIMIT),
            )
        return self._pipeline

    @property
    def sync_engine(self) -> CatalogSyncEngine:
        if self._sync_engine is None:
            self._sync_engine = CatalogSyncEngine(self.category_store, self.llm_client)
        return self._sync_engine

    def run_async(self, coro):
        """
        Run a coroutine to completion on a fresh event loop.

        The HTTP client is closed afterwards because its connections are bound
        to the loop that asyncio.run() tears down; the next call reopens it.
        """

        async def _run():
            try:
                return await coro
            finally:
                await self.llm_client.close()

        return asyncio.run(_run())


@celery_app.task(
    bind=True,
    base=AnalyzerTask,
    name="analyze_transcript",
)
def analyze_transcript_task(self: AnalyzerTask, transcript: str) -> list[dict]:
    """
    Async task for single transcript analysis.

    The pipeline records every failure as a case and never raises, so
    there is nothing to retry at the Celery level.

    Args:
        transcript: Full call transcript

    Returns:
        Canonical-ordered records (see ValidationPipeline.process)
    """
    start_time = time.time()
    logger.info("Analysis task started", task_id=self.request.id, transcript_chars=len(transcript))

    records = self.run_async(self.pipeline.process(transcript))

    logger.info(
        "Analysis task completed",
        task_id=self.request.id,
        records=len(records),
        duration_ms=int((time.time() - start_time) * 1000),
    )
    return records


@celery_app.task(
    bind=True,
    base=AnalyzerTask,
    name="refresh_catalog",
    autoretry_for=(PersistenceFailure,),
    retry_backoff=True,
    retry_backoff_max=600,
    max_retries=3,
)
def refresh_catalog_task(
    self: AnalyzerTask,
    force_refresh: Optional[bool] = None,
    bootstrap: bool = False,
) -> dict:
    """
    Sync the catalog from CATALOG_FEED_DIR.

    Scheduled by beat every CATALOG_REFRESH_INTERVAL_SECONDS and callable
    on demand.

    Returns:
        SyncReport as dict
    """
    options = SyncOptions(
        force_refresh=settings.CATALOG_FORCE_REFRESH if force_refresh is None else force_refresh,
        delete_batch_size=settings.CATALOG_DELETE_BATCH_SIZE,
        report_sample_size=settings.CATALOG_REPORT_SAMPLE_SIZE,
    )
    logger.info("Catalog refresh started", task_id=self.request.id, force_refresh=options.force_refresh)

    report = self.run_async(
        self.sync_engine.sync_directory(
            settings.CATALOG_FEED_DIR,
            settings.CATALOG_FEED_PATTERN,
            options=options,
            bootstrap=bootstrap,
        )
    )

    logger.info("Catalog refresh finished", task_id=self.request.id, changed=report.changed, skipped=report.skipped)
    return report.model_dump(mode="json")
