"""
Output repair and two-stage validation.

- normalizer.py: model output repair + canonical record layout
- stage1_answer_validity.py: did the agent answer? (hard gate)
- stage2_resolution.py: did the answer resolve the objection?
- pipeline.py: orchestrator routing every record to a case store
- reasons.py: reason texts for default verdicts and failure cases

The pipeline module is imported directly (objection_analyzer.validation.pipeline);
it depends on the rag package, which itself depends on this package.
"""

from .exceptions import (
    ClassificationEmpty,
    ExtractionEmpty,
    JudgmentUnparsable,
    PipelineError,
)
from .normalizer import OutputNormalizer, build_ordered, canonical_keys, to_ordered_json

__all__ = [
    "OutputNormalizer",
    "build_ordered",
    "to_ordered_json",
    "canonical_keys",
    "PipelineError",
    "ExtractionEmpty",
    "ClassificationEmpty",
    "JudgmentUnparsable",
]
