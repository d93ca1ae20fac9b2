"""
FastAPI API routes and endpoints.

- routes_sync.py: Synchronous endpoints (analyze, catalog sync/search, cases, health)
- routes_async.py: Celery-backed endpoints (async analyze, async sync, task status)
- dependencies.py: Dependency injection for client, stores and pipeline
- models.py: API-specific request/response models
- error_handlers.py: Exception handlers for structured error responses
- middleware.py: Request id tracing
"""

from objection_analyzer.api import dependencies, error_handlers, models
from objection_analyzer.api.routes_async import router as async_router
from objection_analyzer.api.routes_sync import router as sync_router

__all__ = [
    "sync_router",
    "async_router",
    "dependencies",
    "error_handlers",
    "models",
]
