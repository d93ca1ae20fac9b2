"""
Validation Pipeline: transcript -> case records.

Per objection the pipeline walks
    EXTRACTED -> CLASSIFIED -> ANSWER_CHECKED -> RESOLVED | STORED
and every objection that survives classification ends in exactly one case
store:
- stage-1 "no"  -> failure store, stage-1 reason, no resolution fields
- stage-2 "yes" -> success store, resolution reason
- stage-2 "no"  -> failure store, "[stage-2] " + resolution reason

An unexpected error while validating one objection sends that objection to
the failure store with a processing-error reason; the others carry on.
Whole-transcript failures (nothing extracted, nothing classified, any
other unexpected error) are recorded as one failure case with an empty
record. process() never raises.
"""

from typing import Optional

import structlog

from objection_analyzer.config import Settings
from objection_analyzer.llm.base_client import BaseLLMClient
from objection_analyzer.llm.prompt_builder import PromptBuilder
from objection_analyzer.models.enums import PipelineState, Verdict
from objection_analyzer.models.pipeline_models import ClassificationRecord, ValidationRecord
from objection_analyzer.monitoring.metrics import transcripts_processed_total
from objection_analyzer.persistence.case_store import CaseStore
from objection_analyzer.persistence.category_store import CategoryVectorStore
from objection_analyzer.rag.classifier import RagClassifier
from objection_analyzer.rag.extractor import ObjectionExtractor
from objection_analyzer.validation import reasons
from objection_analyzer.validation.exceptions import (
    ClassificationEmpty,
    ExtractionEmpty,
    PipelineError,
)
from objection_analyzer.validation.normalizer import OutputNormalizer, build_ordered, to_ordered_json
from objection_analyzer.validation.stage1_answer_validity import AnswerValidityJudge
from objection_analyzer.validation.stage2_resolution import ResolutionJudge

logger = structlog.get_logger(__name__)


class ValidationPipeline:
    """Orchestrates extraction, classification, both validation stages and case routing."""

    def __init__(
        self,
        extractor: ObjectionExtractor,
        classifier: RagClassifier,
        answer_judge: AnswerValidityJudge,
        resolution_judge: ResolutionJudge,
        case_store: CaseStore,
    ):
        self.extractor = extractor
        self.classifier = classifier
        self.answer_judge = answer_judge
        self.resolution_judge = resolution_judge
        self.case_store = case_store

    async def process(self, transcript: str) -> list[dict[str, str]]:
        """
        Analyze one transcript and write its cases.

        Args:
            transcript: Full call transcript

        Returns:
            Canonical-ordered records of every objection that reached a
            case store; [] when the transcript failed as a whole
        """
        try:
            results = await self._run(transcript)
        except PipelineError as e:
            logger.warning("Transcript produced no classified objections", reason=e.reason, error=e.message)
            self._record_transcript_failure(transcript, e.reason)
            status = "no_objections" if isinstance(e, ExtractionEmpty) else "classification_empty"
            transcripts_processed_total.labels(status=status).inc()
            return []
        except Exception as e:
            logger.exception("Transcript processing failed", error_type=type(e).__name__)
            self._record_transcript_failure(transcript, reasons.processing_error(e))
            transcripts_processed_total.labels(status="error").inc()
            return []

        transcripts_processed_total.labels(status="completed").inc()
        logger.info("Transcript processed", records=len(results))
        return results

    async def _run(self, transcript: str) -> list[dict[str, str]]:
        if not transcript or not transcript.strip():
            raise ExtractionEmpty("Transcript is blank")

        objections = await self.extractor.extract(transcript)
        if not objections:
            raise ExtractionEmpty("Extractor returned no objections")
        self._transition(PipelineState.EXTRACTED, count=len(objections))

        records = await self.classifier.classify_all(transcript, objections)
        if not records:
            raise ClassificationEmpty(
                "Every objection failed classification",
                details={"objections": len(objections)},
            )
        self._transition(PipelineState.CLASSIFIED, count=len(records), dropped=len(objections) - len(records))

        return [await self._validate_isolated(transcript, record) for record in records]

    async def _validate_isolated(self, transcript: str, record: ClassificationRecord) -> dict[str, str]:
        """Validate one record; an unexpected error fails that record only."""
        try:
            return await self._validate(transcript, record)
        except Exception as e:
            logger.exception(
                "Objection validation failed",
                problem=record.target_problem,
                error_type=type(e).__name__,
            )
            failed = ValidationRecord(
                **record.classification_fields(),
                is_answer_valid=Verdict.NO,
                validity_reason=reasons.processing_error(e),
            )
            self.case_store.append_failure(
                transcript,
                to_ordered_json(failed),
                failed.target_problem,
                failed.agent_answer,
                failed.validity_reason,
            )
            self._transition(PipelineState.STORED, problem=failed.target_problem, outcome="failure")
            return build_ordered(failed)

    async def _validate(self, transcript: str, record: ClassificationRecord) -> dict[str, str]:
        validated = await self.answer_judge.judge(transcript, record)
        self._transition(
            PipelineState.ANSWER_CHECKED,
            problem=validated.target_problem,
            verdict=validated.is_answer_valid.value,
        )

        if validated.is_answer_valid != Verdict.YES:
            self.case_store.append_failure(
                transcript,
                to_ordered_json(validated),
                validated.target_problem,
                validated.agent_answer,
                validated.validity_reason,
            )
            self._transition(PipelineState.STORED, problem=validated.target_problem, outcome="failure")
            return build_ordered(validated)

        resolved = await self.resolution_judge.judge(transcript, validated)
        self._transition(PipelineState.RESOLVED, problem=resolved.target_problem, verdict=resolved.is_resolved.value)

        ordered_json = to_ordered_json(resolved, include_resolution=True)
        if resolved.is_resolved == Verdict.YES:
            self.case_store.append_success(
                transcript, ordered_json, resolved.target_problem, resolved.agent_answer, resolved.resolution_reason
            )
            outcome = "success"
        else:
            self.case_store.append_failure(
                transcript,
                ordered_json,
                resolved.target_problem,
                resolved.agent_answer,
                reasons.STAGE2_PREFIX + resolved.resolution_reason,
            )
            outcome = "failure"
        self._transition(PipelineState.STORED, problem=resolved.target_problem, outcome=outcome)
        return build_ordered(resolved, include_resolution=True)

    def _record_transcript_failure(self, transcript: str, reason: str) -> None:
        self.case_store.append_failure(transcript, to_ordered_json({}), "", "", reason)

    @staticmethod
    def _transition(state: PipelineState, **fields) -> None:
        logger.debug("Pipeline state", state=state.value, **fields)


def build_pipeline(
    settings: Settings,
    llm_client: BaseLLMClient,
    category_store: CategoryVectorStore,
    case_store: CaseStore,
    prompt_builder: Optional[PromptBuilder] = None,
) -> ValidationPipeline:
    """Wire the default component graph from settings."""
    prompt_builder = prompt_builder or PromptBuilder(
        transcript_truncation_limit=settings.TRANSCRIPT_TRUNCATION_LIMIT,
    )
    normalizer = OutputNormalizer()
    return ValidationPipeline(
        extractor=ObjectionExtractor(llm_client, prompt_builder, normalizer),
        classifier=RagClassifier(
            llm_client,
            category_store,
            prompt_builder,
            normalizer,
            top_k=settings.RAG_TOP_K,
            similarity_threshold=settings.RAG_SIMILARITY_THRESHOLD,
        ),
        answer_judge=AnswerValidityJudge(llm_client, prompt_builder, normalizer),
        resolution_judge=ResolutionJudge(llm_client, prompt_builder, normalizer),
        case_store=case_store,
    )
