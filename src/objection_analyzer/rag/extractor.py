"""
Objection extractor: transcript -> 1..n ObjectionItem.
"""

from typing import Any, Optional

import structlog

from objection_analyzer.llm.base_client import BaseLLMClient
from objection_analyzer.llm.exceptions import LLMClientError
from objection_analyzer.llm.prompt_builder import PromptBuilder
from objection_analyzer.models.pipeline_models import ObjectionItem
from objection_analyzer.validation.exceptions import JudgmentUnparsable
from objection_analyzer.validation.normalizer import OutputNormalizer

logger = structlog.get_logger(__name__)


class ObjectionExtractor:
    """
    Ask the judgment model for the customer's objections.

    Provider errors and unparsable output both yield an empty list; the
    pipeline turns that into a single "no objections extracted" case.
    """

    def __init__(
        self,
        llm_client: BaseLLMClient,
        prompt_builder: PromptBuilder,
        normalizer: Optional[OutputNormalizer] = None,
    ):
        self.llm_client = llm_client
        self.prompt_builder = prompt_builder
        self.normalizer = normalizer or OutputNormalizer()

    async def extract(self, transcript: str) -> list[ObjectionItem]:
        """
        Extract objections from a transcript.

        Args:
            transcript: Full call transcript

        Returns:
            Objections in model order; [] on any failure
        """
        system, user = self.prompt_builder.build_extraction_prompt(transcript)

        try:
            raw = await self.llm_client.judge(user, system=system)
        except LLMClientError as e:
            logger.error("Objection extraction call failed", error=str(e))
            return []

        try:
            value = self.normalizer.repair(raw, source="extraction")
        except JudgmentUnparsable:
            return []

        objections = []
        for item in self._items(value):
            if not isinstance(item, dict):
                continue
            problem = str(item.get("problem") or "").strip()
            if not problem:
                logger.debug("Skipping extracted item without problem", item=item)
                continue
            objections.append(
                ObjectionItem(
                    problem=problem,
                    excerpt=str(item.get("excerpt") or "").strip(),
                    rationale=str(item.get("rationale") or "").strip(),
                )
            )

        logger.info("Objections extracted", count=len(objections), problems=[o.problem for o in objections])
        return objections

    @staticmethod
    def _items(value: Any) -> list:
        # Accept {"objections": [...]}, a bare array, or a single object
        if isinstance(value, list):
            return value
        if isinstance(value, dict):
            if "objections" in value:
                items = value["objections"]
                return items if isinstance(items, list) else []
            if "problem" in value:
                return [value]
        return []
