"""
Asynchronous API routes backed by Celery.

Submissions return a task id immediately; results are read back through
GET /tasks/{task_id}. Enabled with ENABLE_ASYNC_API.
"""

import structlog
from celery.result import AsyncResult
from fastapi import APIRouter, status

from objection_analyzer.api.models import (
    AnalyzeRequest,
    SyncRequest,
    TaskStatusResponse,
    TaskSubmitResponse,
)
from objection_analyzer.tasks.analysis_tasks import analyze_transcript_task, refresh_catalog_task
from objection_analyzer.tasks.celery_app import celery_app

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/transcripts/analyze/async",
    response_model=TaskSubmitResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit a transcript for analysis (asynchronous)",
)
async def submit_analysis(request: AnalyzeRequest) -> TaskSubmitResponse:
    result = analyze_transcript_task.delay(request.transcript)  # type: ignore[attr-defined]
    logger.info("Analysis task submitted", task_id=result.id, transcript_chars=len(request.transcript))
    return TaskSubmitResponse(task_id=result.id)


@router.post(
    "/catalog/sync/async",
    response_model=TaskSubmitResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit a catalog sync run (asynchronous)",
)
async def submit_catalog_sync(request: SyncRequest) -> TaskSubmitResponse:
    result = refresh_catalog_task.delay(  # type: ignore[attr-defined]
        force_refresh=request.force_refresh,
        bootstrap=request.bootstrap,
    )
    logger.info("Catalog sync task submitted", task_id=result.id)
    return TaskSubmitResponse(task_id=result.id)


@router.get(
    "/tasks/{task_id}",
    response_model=TaskStatusResponse,
    summary="Check task status",
    description="""
    Possible states:
    - PENDING: Task is waiting in queue (or unknown)
    - STARTED: Task is being processed
    - SUCCESS: Task completed (result available)
    - FAILURE: Task failed (error available)
    - RETRY: Task is being retried
    """,
    responses={
        200: {"description": "Task status retrieved"},
    },
)
async def get_task_status(task_id: str) -> TaskStatusResponse:
    """
    Get status of a task.

    Args:
        task_id: Celery task ID

    Returns:
        TaskStatusResponse with current status and result (if available)
    """
    async_result = AsyncResult(task_id, app=celery_app)
    state = async_result.state

    if state == "SUCCESS":
        return TaskStatusResponse(task_id=task_id, status=state, result=async_result.result)

    if state == "FAILURE":
        error_info = str(async_result.info) if async_result.info else "Unknown error"
        logger.warning("Task status checked (FAILURE)", task_id=task_id, error=error_info)
        return TaskStatusResponse(task_id=task_id, status=state, error=error_info)

    logger.info("Task status checked", task_id=task_id, state=state)
    return TaskStatusResponse(task_id=task_id, status=state)
