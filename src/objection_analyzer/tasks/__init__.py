"""
Celery tasks for asynchronous processing.

- celery_app.py: Celery application configuration (broker, backend, beat schedule)
- analysis_tasks.py: Task definitions (analyze_transcript, refresh_catalog)
"""

from objection_analyzer.tasks.celery_app import celery_app
from objection_analyzer.tasks.analysis_tasks import analyze_transcript_task, refresh_catalog_task

__all__ = [
    "celery_app",
    "analyze_transcript_task",
    "refresh_catalog_task",
]
