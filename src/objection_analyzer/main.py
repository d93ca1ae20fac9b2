"""
FastAPI application entry point for the Call Objection Analyzer.
"""

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from objection_analyzer.api.dependencies import get_llm_client, get_sync_engine, get_sync_options
from objection_analyzer.api.error_handlers import EXCEPTION_HANDLERS
from objection_analyzer.api.middleware import RequestTracingMiddleware
from objection_analyzer.api.routes_async import router as async_router
from objection_analyzer.api.routes_sync import router as sync_router
from objection_analyzer.config import settings
from objection_analyzer.logging_config import configure_logging
from objection_analyzer.persistence.exceptions import PersistenceFailure
from objection_analyzer.persistence.redis_client import RedisClient

# Configure structured logging before anything logs
configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT)
logger = structlog.get_logger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="Extracts customer objections from call transcripts, classifies them "
    "against a category catalog and judges the agent's answers",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Request tracing middleware (first, so request_id is in all logs)
app.add_middleware(RequestTracingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for exc_class, handler in EXCEPTION_HANDLERS.items():
    app.add_exception_handler(exc_class, handler)

app.include_router(sync_router, tags=["sync"])
if settings.ENABLE_ASYNC_API:
    app.include_router(async_router, tags=["async"])


@app.on_event("startup")
async def startup():
    """Application startup - verify the model server, optionally bootstrap the catalog."""
    logger.info(
        "Application startup",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        ollama_base_url=settings.OLLAMA_BASE_URL,
        model=settings.OLLAMA_MODEL,
        embedding_model=settings.OLLAMA_EMBEDDING_MODEL,
    )

    llm_client = get_llm_client()
    if await llm_client.health_check():
        logger.info("Ollama connection successful")
    else:
        logger.error("Ollama connection failed", base_url=settings.OLLAMA_BASE_URL)

    if settings.CATALOG_SYNC_ON_STARTUP:
        try:
            report = await get_sync_engine().sync_directory(
                settings.CATALOG_FEED_DIR,
                settings.CATALOG_FEED_PATTERN,
                options=get_sync_options(),
            )
            logger.info("Startup catalog sync finished", changed=report.changed, skipped=report.skipped)
        except PersistenceFailure as e:
            logger.error("Startup catalog sync failed", error=str(e))

    logger.info("Application startup complete")


@app.on_event("shutdown")
async def shutdown():
    """Application shutdown - close the HTTP client and the Redis pool."""
    logger.info("Application shutdown")
    await get_llm_client().close()
    RedisClient.close_pool()
    logger.info("Application shutdown complete")


if settings.PROMETHEUS_ENABLED:
    Instrumentator().instrument(app).expose(app)


@app.get("/")
async def root():
    """Root endpoint with API documentation links."""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics" if settings.PROMETHEUS_ENABLED else None,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "objection_analyzer.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
