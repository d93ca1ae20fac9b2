"""
Data models that flow through the analysis pipeline.

Each stage record is a strict superset of the previous one:
ClassificationRecord -> ValidationRecord -> ResolutionRecord.
JSON aliases are the canonical camelCase keys used in model output and in
persisted case records.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

from objection_analyzer.models.enums import Verdict


class ObjectionItem(BaseModel):
    """A customer objection extracted from a transcript."""

    model_config = ConfigDict(frozen=True)

    problem: str = Field(..., min_length=1, description="Short statement of the objection")
    excerpt: str = Field(default="", description="Verbatim transcript excerpt")
    rationale: str = Field(default="", description="Why this counts as an objection")


class ClassificationRecord(BaseModel):
    """An objection mapped onto the category catalog."""

    model_config = ConfigDict(populate_by_name=True)

    target_problem: str = Field(default="", alias="targetProblem")
    major_code: str = Field(default="", alias="majorCode")
    major_name: str = Field(default="", alias="majorName")
    minor_code: str = Field(default="", alias="minorCode")
    minor_name: str = Field(default="", alias="minorName")
    agent_answer: str = Field(default="", alias="agentAnswer")
    excerpt: str = Field(default="")
    rationale: str = Field(default="")

    @field_validator(
        "target_problem", "major_code", "major_name", "minor_code", "minor_name",
        "agent_answer", "excerpt", "rationale",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value):
        # Models occasionally emit numbers for codes or null for blanks
        if value is None:
            return ""
        return value.strip() if isinstance(value, str) else str(value)

    def classification_fields(self) -> dict:
        """Fields carried unchanged into every later stage."""
        return {name: getattr(self, name) for name in ClassificationRecord.model_fields}


class ValidationRecord(ClassificationRecord):
    """Stage-1 output: was the agent's answer a real answer?"""

    is_answer_valid: Verdict = Field(default=Verdict.NO, alias="isAnswerValid")
    validity_reason: str = Field(default="", alias="validityReason")


class ResolutionRecord(ValidationRecord):
    """Stage-2 output: did the valid answer resolve the objection?"""

    is_resolved: Verdict = Field(default=Verdict.NO, alias="isResolved")
    resolution_reason: str = Field(default="", alias="resolutionReason")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CaseRecord(BaseModel):
    """Append-only row in the success or failure case store."""

    transcript: str
    ordered_record_json: str
    problem: str = ""
    answer: str = ""
    reason: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
