"""
Pydantic data models for the Call Objection Analyzer.

Includes:
- Enums (Verdict, CaseOutcome, PipelineState)
- Catalog models (FeedRow, CategoryRecord, SearchHit, SyncOptions, SyncReport)
- Pipeline models (ObjectionItem, ClassificationRecord, ValidationRecord,
  ResolutionRecord, CaseRecord)
- LLM models (LLMGenerationRequest, LLMGenerationResponse)
"""

from objection_analyzer.models.enums import CaseOutcome, PipelineState, Verdict
from objection_analyzer.models.catalog_models import (
    CategoryRecord,
    FeedRow,
    SearchHit,
    SyncOptions,
    SyncReport,
)
from objection_analyzer.models.pipeline_models import (
    CaseRecord,
    ClassificationRecord,
    ObjectionItem,
    ResolutionRecord,
    ValidationRecord,
)
from objection_analyzer.models.llm_models import (
    LLMGenerationRequest,
    LLMGenerationResponse,
)

__all__ = [
    # Enums
    "Verdict",
    "CaseOutcome",
    "PipelineState",
    # Catalog
    "FeedRow",
    "CategoryRecord",
    "SearchHit",
    "SyncOptions",
    "SyncReport",
    # Pipeline
    "ObjectionItem",
    "ClassificationRecord",
    "ValidationRecord",
    "ResolutionRecord",
    "CaseRecord",
    # LLM
    "LLMGenerationRequest",
    "LLMGenerationResponse",
]
