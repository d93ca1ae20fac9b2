"""
Synchronous API routes.

- POST /transcripts/analyze: run the full pipeline on one transcript
- POST /catalog/sync: sync the catalog from the configured feed directory
- GET /catalog/search: nearest categories for a query text
- GET /cases/{outcome}: page through a case store
- GET /health: provider, Redis and catalog status

For long transcripts or batch workloads use the async routes instead.
"""

import time

import structlog
from fastapi import APIRouter, Depends, Query, Response, status
from redis import Redis
from redis.exceptions import RedisError

from objection_analyzer.api.dependencies import (
    get_case_store,
    get_category_store,
    get_llm_client,
    get_pipeline,
    get_redis,
    get_settings,
    get_sync_engine,
    get_sync_options,
)
from objection_analyzer.api.models import (
    AnalyzeRequest,
    AnalyzeResponse,
    CasesResponse,
    CaseView,
    CategoryHit,
    HealthResponse,
    SearchResponse,
    SyncRequest,
    SyncResponse,
)
from objection_analyzer.catalog.sync import CatalogSyncEngine
from objection_analyzer.config import Settings
from objection_analyzer.llm.base_client import BaseLLMClient
from objection_analyzer.models.catalog_models import SyncOptions
from objection_analyzer.models.enums import CaseOutcome
from objection_analyzer.persistence.case_store import CaseStore
from objection_analyzer.persistence.category_store import CategoryVectorStore
from objection_analyzer.persistence.exceptions import PersistenceFailure
from objection_analyzer.validation.pipeline import ValidationPipeline

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/transcripts/analyze",
    response_model=AnalyzeResponse,
    status_code=status.HTTP_200_OK,
    summary="Analyze one transcript (synchronous)",
    description="""
    Extract the customer's objections, classify each against the category
    catalog and judge the agent's answers. Every classified objection is
    written to the success or failure case store.

    A transcript with no usable objections returns an empty record list
    and is recorded as a single failure case.
    """,
)
async def analyze_transcript(
    request: AnalyzeRequest,
    pipeline: ValidationPipeline = Depends(get_pipeline),
) -> AnalyzeResponse:
    start_time = time.perf_counter()
    logger.info("Analysis request received", transcript_chars=len(request.transcript))

    records = await pipeline.process(request.transcript)

    duration_ms = int((time.perf_counter() - start_time) * 1000)
    logger.info("Analysis completed", records=len(records), duration_ms=duration_ms)
    return AnalyzeResponse(
        status="completed" if records else "no_records",
        records=records,
        duration_ms=duration_ms,
    )


@router.post(
    "/catalog/sync",
    response_model=SyncResponse,
    summary="Sync the category catalog from the feed directory",
    responses={
        200: {"description": "Sync ran (or was skipped, see report.skip_reason)"},
        503: {"description": "Category store unavailable"},
    },
)
async def sync_catalog(
    request: SyncRequest,
    engine: CatalogSyncEngine = Depends(get_sync_engine),
    defaults: SyncOptions = Depends(get_sync_options),
    settings: Settings = Depends(get_settings),
) -> SyncResponse:
    """
    Run one catalog sync over CATALOG_FEED_DIR.

    Args:
        request: Per-run overrides
        engine: Sync engine (injected)
        defaults: Sync options from settings (injected)
        settings: Application settings (injected)

    Returns:
        SyncResponse with the report and its summary
    """
    options = defaults
    if request.force_refresh is not None:
        options = defaults.model_copy(update={"force_refresh": request.force_refresh})

    report = await engine.sync_directory(
        settings.CATALOG_FEED_DIR,
        settings.CATALOG_FEED_PATTERN,
        options=options,
        bootstrap=request.bootstrap,
    )
    return SyncResponse(report=report, summary=report.summary(options.report_sample_size))


@router.get(
    "/catalog/search",
    response_model=SearchResponse,
    summary="Nearest catalog categories for a text",
)
async def search_catalog(
    q: str = Query(description="Query text, e.g. an objection"),
    top_k: int = Query(default=0, ge=0, description="0 uses RAG_TOP_K"),
    threshold: float = Query(default=0.0, ge=0.0, le=1.0, description="Minimum similarity"),
    store: CategoryVectorStore = Depends(get_category_store),
) -> SearchResponse:
    hits = await store.search(q, top_k=top_k, similarity_threshold=threshold)
    return SearchResponse(query=q, hits=[CategoryHit.from_hit(hit) for hit in hits])


@router.get(
    "/cases/{outcome}",
    response_model=CasesResponse,
    summary="List stored cases",
)
async def list_cases(
    outcome: CaseOutcome,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    case_store: CaseStore = Depends(get_case_store),
) -> CasesResponse:
    cases = case_store.list_cases(outcome, limit=limit, offset=offset)
    return CasesResponse(
        outcome=outcome,
        total=case_store.count(outcome),
        offset=offset,
        limit=limit,
        cases=[CaseView.from_case(case) for case in cases],
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="""
    Check the health of the analyzer and its dependencies:
    - Ollama model server (judgment + embeddings)
    - Redis (catalog, case stores, Celery broker)
    - Category catalog size
    """,
    responses={
        200: {"description": "Healthy or degraded"},
        503: {"description": "Model server or Redis unreachable"},
    },
)
async def health_check(
    response: Response,
    llm_client: BaseLLMClient = Depends(get_llm_client),
    redis_client: Redis = Depends(get_redis),
    store: CategoryVectorStore = Depends(get_category_store),
    settings: Settings = Depends(get_settings),
) -> HealthResponse:
    services = {}

    services["ollama"] = "ok" if await llm_client.health_check() else "unreachable"

    try:
        redis_client.ping()
        services["redis"] = "ok"
    except RedisError as e:
        services["redis"] = f"unreachable ({type(e).__name__})"

    if services["redis"] == "ok":
        try:
            services["catalog"] = f"{store.count()} categories"
        except PersistenceFailure as e:
            services["catalog"] = f"error ({type(e).__name__})"
    else:
        services["catalog"] = "unknown"

    if services["ollama"] == "ok" and services["redis"] == "ok":
        health_status = "degraded" if services["catalog"].startswith("0 ") else "healthy"
    else:
        health_status = "unhealthy"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    logger.info("Health check", status=health_status, services=services)
    return HealthResponse(
        status=health_status,
        version=settings.APP_VERSION,
        services=services,
    )
