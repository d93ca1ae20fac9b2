"""
RAG classifier: map one objection onto the category catalog.

Retrieval narrows the catalog to the nearest minor categories; the
judgment model then picks one (or declares a new category, major code
"00") and quotes the agent's answer.
"""

from typing import Optional, Sequence

import structlog
from pydantic import ValidationError as PydanticValidationError

from objection_analyzer.llm.base_client import BaseLLMClient
from objection_analyzer.llm.exceptions import EmbeddingFailure, LLMClientError
from objection_analyzer.llm.prompt_builder import PromptBuilder
from objection_analyzer.models.pipeline_models import ClassificationRecord, ObjectionItem
from objection_analyzer.persistence.category_store import CategoryVectorStore
from objection_analyzer.persistence.exceptions import PersistenceFailure
from objection_analyzer.validation.exceptions import JudgmentUnparsable
from objection_analyzer.validation.normalizer import OutputNormalizer, first_object

logger = structlog.get_logger(__name__)


class RagClassifier:
    """
    Classify objections one at a time.

    An objection whose retrieval, judgment or parsing fails is dropped
    (logged, not retried); the others continue.
    """

    def __init__(
        self,
        llm_client: BaseLLMClient,
        category_store: CategoryVectorStore,
        prompt_builder: PromptBuilder,
        normalizer: Optional[OutputNormalizer] = None,
        top_k: int = 8,
        similarity_threshold: float = 0.1,
    ):
        """
        Initialize classifier.

        Args:
            llm_client: Judgment provider
            category_store: Catalog used for retrieval
            prompt_builder: Renders the classification prompt
            normalizer: Output repair (a fresh one by default)
            top_k: Number of catalog candidates put in the prompt
            similarity_threshold: Minimum similarity of a candidate
        """
        self.llm_client = llm_client
        self.category_store = category_store
        self.prompt_builder = prompt_builder
        self.normalizer = normalizer or OutputNormalizer()
        self.top_k = top_k
        self.similarity_threshold = similarity_threshold

    async def classify(self, transcript: str, objection: ObjectionItem) -> Optional[ClassificationRecord]:
        """
        Classify one objection.

        Returns:
            ClassificationRecord with targetProblem set to the objection
            verbatim, or None when the objection has to be dropped
        """
        log = logger.bind(problem=objection.problem)

        try:
            hits = await self.category_store.search(
                objection.problem,
                top_k=self.top_k,
                similarity_threshold=self.similarity_threshold,
            )
        except (EmbeddingFailure, PersistenceFailure) as e:
            log.error("Catalog retrieval failed, objection dropped", error=str(e))
            return None

        log.debug("Retrieved catalog candidates", candidates=[h.record.code for h in hits])
        system, user = self.prompt_builder.build_classification_prompt(transcript, objection, hits)

        try:
            raw = await self.llm_client.judge(user, system=system)
        except LLMClientError as e:
            log.error("Classification call failed, objection dropped", error=str(e))
            return None

        try:
            value = self.normalizer.repair(raw, source="classification")
        except JudgmentUnparsable:
            log.warning("Classification output unparsable, objection dropped")
            return None

        payload = first_object(value)
        if payload is None:
            log.warning("Classification output empty, objection dropped")
            return None

        try:
            record = ClassificationRecord.model_validate(payload)
        except PydanticValidationError as e:
            log.warning("Classification output malformed, objection dropped", error=str(e))
            return None

        record = record.model_copy(
            update={
                "target_problem": objection.problem,
                "excerpt": record.excerpt or objection.excerpt,
                "rationale": record.rationale or objection.rationale,
            }
        )
        log.info(
            "Objection classified",
            major_code=record.major_code,
            minor_code=record.minor_code,
            has_answer=bool(record.agent_answer),
        )
        return record

    async def classify_all(
        self,
        transcript: str,
        objections: Sequence[ObjectionItem],
    ) -> list[ClassificationRecord]:
        """Classify objections sequentially, dropping the ones that fail."""
        records = []
        for objection in objections:
            record = await self.classify(transcript, objection)
            if record is not None:
                records.append(record)
        return records
