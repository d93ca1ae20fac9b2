"""
Stage 1: Answer validity.

Did the agent actually answer the objection? A blank answer is decided
without a model call. Every failure mode resolves to a negative verdict
with a reason, so stage 1 never raises for model problems.
"""

from typing import Optional

import structlog

from objection_analyzer.llm.base_client import BaseLLMClient
from objection_analyzer.llm.exceptions import LLMClientError
from objection_analyzer.llm.prompt_builder import PromptBuilder
from objection_analyzer.models.enums import Verdict
from objection_analyzer.models.pipeline_models import ClassificationRecord, ValidationRecord
from objection_analyzer.monitoring.metrics import judgment_outcomes_total
from objection_analyzer.validation import reasons
from objection_analyzer.validation.exceptions import JudgmentUnparsable
from objection_analyzer.validation.normalizer import OutputNormalizer, first_object

logger = structlog.get_logger(__name__)


class AnswerValidityJudge:
    """
    Stage 1 judge: classification record -> ValidationRecord.

    Classification fields are always copied from the input record; only
    isAnswerValid and validityReason come from the model.
    """

    stage = "answer_validity"

    def __init__(
        self,
        llm_client: BaseLLMClient,
        prompt_builder: PromptBuilder,
        normalizer: Optional[OutputNormalizer] = None,
    ):
        self.llm_client = llm_client
        self.prompt_builder = prompt_builder
        self.normalizer = normalizer or OutputNormalizer()

    async def judge(self, transcript: str, record: ClassificationRecord) -> ValidationRecord:
        """
        Judge whether the agent's answer is a valid answer.

        Args:
            transcript: Full call transcript
            record: Classified objection

        Returns:
            ValidationRecord; negative verdict on blank answer or any failure
        """
        if not record.agent_answer.strip():
            return self._result(record, Verdict.NO, reasons.NO_AGENT_ANSWER)

        system, user = self.prompt_builder.build_answer_validity_prompt(transcript, record)

        try:
            raw = await self.llm_client.judge(user, system=system)
        except LLMClientError as e:
            logger.error("Answer validity call failed", problem=record.target_problem, error=str(e))
            return self._result(record, Verdict.NO, reasons.PROVIDER_FAILURE)

        try:
            payload = first_object(self.normalizer.repair(raw, source=self.stage))
        except JudgmentUnparsable:
            payload = None
        if payload is None:
            return self._result(record, Verdict.NO, reasons.UNPARSABLE_OUTPUT)

        verdict = Verdict.parse(payload.get("isAnswerValid"))
        reason = str(payload.get("validityReason") or "").strip()
        return self._result(record, verdict, reason)

    def _result(self, record: ClassificationRecord, verdict: Verdict, reason: str) -> ValidationRecord:
        judgment_outcomes_total.labels(stage=self.stage, verdict=verdict.value).inc()
        logger.info(
            "Answer validity judged",
            problem=record.target_problem,
            verdict=verdict.value,
            reason=reason,
        )
        return ValidationRecord(
            **record.classification_fields(),
            is_answer_valid=verdict,
            validity_reason=reason,
        )
