"""
Stage 2: Problem resolution.

Runs only for records whose answer passed stage 1.
"""

from typing import Optional

import structlog

from objection_analyzer.llm.base_client import BaseLLMClient
from objection_analyzer.llm.exceptions import LLMClientError
from objection_analyzer.llm.prompt_builder import PromptBuilder
from objection_analyzer.models.enums import Verdict
from objection_analyzer.models.pipeline_models import ResolutionRecord, ValidationRecord
from objection_analyzer.monitoring.metrics import judgment_outcomes_total
from objection_analyzer.validation import reasons
from objection_analyzer.validation.exceptions import JudgmentUnparsable
from objection_analyzer.validation.normalizer import OutputNormalizer, first_object

logger = structlog.get_logger(__name__)


class ResolutionJudge:
    """Stage 2 judge: ValidationRecord (valid answer) -> ResolutionRecord."""

    stage = "resolution"

    def __init__(
        self,
        llm_client: BaseLLMClient,
        prompt_builder: PromptBuilder,
        normalizer: Optional[OutputNormalizer] = None,
    ):
        self.llm_client = llm_client
        self.prompt_builder = prompt_builder
        self.normalizer = normalizer or OutputNormalizer()

    async def judge(self, transcript: str, record: ValidationRecord) -> ResolutionRecord:
        """
        Judge whether a valid answer resolved the objection.

        Raises:
            ValueError: record did not pass stage 1
        """
        if record.is_answer_valid != Verdict.YES:
            raise ValueError("Resolution is only judged for valid answers")

        system, user = self.prompt_builder.build_resolution_prompt(transcript, record)

        try:
            raw = await self.llm_client.judge(user, system=system)
        except LLMClientError as e:
            logger.error("Resolution call failed", problem=record.target_problem, error=str(e))
            return self._result(record, Verdict.NO, reasons.PROVIDER_FAILURE)

        try:
            payload = first_object(self.normalizer.repair(raw, source=self.stage))
        except JudgmentUnparsable:
            payload = None
        if payload is None:
            return self._result(record, Verdict.NO, reasons.UNPARSABLE_OUTPUT)

        verdict = Verdict.parse(payload.get("isResolved"))
        reason = str(payload.get("resolutionReason") or "").strip()
        return self._result(record, verdict, reason)

    def _result(self, record: ValidationRecord, verdict: Verdict, reason: str) -> ResolutionRecord:
        judgment_outcomes_total.labels(stage=self.stage, verdict=verdict.value).inc()
        logger.info("Resolution judged", problem=record.target_problem, verdict=verdict.value, reason=reason)
        return ResolutionRecord(
            **record.model_dump(),
            is_resolved=verdict,
            resolution_reason=reason,
        )
