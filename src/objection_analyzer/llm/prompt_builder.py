"""
Prompt builder for judgment requests.

Responsible for:
- Loading and rendering Jinja2 templates (one system + user pair per task)
- Truncating transcripts at a sentence boundary
- Rendering retrieved catalog candidates as classification context

Prompt wording is business copy: operators edit the templates, code only
decides which variables they receive.
"""

from pathlib import Path
from typing import Optional, Sequence

import structlog
from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template

from objection_analyzer.llm.text_utils import normalize_whitespace, truncate_at_sentence_boundary
from objection_analyzer.models.catalog_models import SearchHit
from objection_analyzer.models.pipeline_models import (
    ClassificationRecord,
    ObjectionItem,
    ValidationRecord,
)

logger = structlog.get_logger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "prompts"

TASKS = ("extraction", "classification", "answer_validity", "resolution")


class PromptBuilder:
    """
    Build (system, user) prompt pairs for each judgment task.

    Templates are looked up as ``{task}_system.j2`` and ``{task}_user.j2``.
    """

    def __init__(
        self,
        templates_dir: Optional[Path] = None,
        transcript_truncation_limit: int = 12000,
    ):
        """
        Initialize prompt builder.

        Args:
            templates_dir: Directory containing prompt templates
                (defaults to the packaged prompts/)
            transcript_truncation_limit: Max transcript characters per prompt
        """
        self.templates_dir = Path(templates_dir) if templates_dir else DEFAULT_TEMPLATES_DIR
        self.transcript_truncation_limit = transcript_truncation_limit

        self.jinja_env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            autoescape=False,  # We're generating prompts, not HTML
            undefined=StrictUndefined,
            keep_trailing_newline=False,
        )

        self._templates: dict[tuple[str, str], Template] = {}
        try:
            for task in TASKS:
                for role in ("system", "user"):
                    self._templates[(task, role)] = self.jinja_env.get_template(f"{task}_{role}.j2")
        except Exception as e:
            logger.error("Failed to load prompt templates", error=str(e), templates_dir=str(self.templates_dir))
            raise

        logger.info(
            "PromptBuilder initialized",
            templates_dir=str(self.templates_dir),
            transcript_truncation_limit=transcript_truncation_limit,
        )

    def _render(self, task: str, **context) -> tuple[str, str]:
        system = self._templates[(task, "system")].render(**context).strip()
        user = self._templates[(task, "user")].render(**context).strip()
        return system, user

    def prepare_transcript(self, transcript: str) -> str:
        """Normalize whitespace and truncate to the configured limit."""
        text = normalize_whitespace(transcript)
        truncated = truncate_at_sentence_boundary(text, self.transcript_truncation_limit)
        if len(truncated) < len(text):
            logger.info(
                "Transcript truncated",
                original_chars=len(text),
                truncated_chars=len(truncated),
                limit=self.transcript_truncation_limit,
            )
        return truncated

    def build_extraction_prompt(self, transcript: str) -> tuple[str, str]:
        """Prompt asking for 1-3 objections from a transcript."""
        return self._render("extraction", transcript=self.prepare_transcript(transcript))

    def build_classification_prompt(
        self,
        transcript: str,
        objection: ObjectionItem,
        candidates: Sequence[SearchHit],
    ) -> tuple[str, str]:
        """Prompt asking to map one objection onto the retrieved catalog candidates."""
        return self._render(
            "classification",
            transcript=self.prepare_transcript(transcript),
            objection=objection,
            candidates=[hit.record for hit in candidates],
        )

    def build_answer_validity_prompt(self, transcript: str, record: ClassificationRecord) -> tuple[str, str]:
        """Stage-1 prompt: is the agent's answer a real answer to the objection?"""
        return self._render(
            "answer_validity",
            transcript=self.prepare_transcript(transcript),
            record=record,
        )

    def build_resolution_prompt(self, transcript: str, record: ValidationRecord) -> tuple[str, str]:
        """Stage-2 prompt: did the answer resolve the objection?"""
        return self._render(
            "resolution",
            transcript=self.prepare_transcript(transcript),
            record=record,
        )
