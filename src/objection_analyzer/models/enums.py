"""
Enumerations for the analyzer data models.

All enums are closed sets - no values outside these are permitted once a
record has been built.
"""

from enum import Enum
from typing import Any


# Tokens a judgment model may emit for an affirmative verdict.
YES_TOKENS = frozenset({"yes", "y", "true", "是"})


class Verdict(str, Enum):
    """
    Binary judgment outcome for answer validity and problem resolution.

    Anything the model emits that is not a recognised affirmative token is
    treated as a negative verdict.
    """

    YES = "yes"
    NO = "no"

    @classmethod
    def parse(cls, value: Any) -> "Verdict":
        """Map a raw model value (string, bool, None) onto a verdict."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.YES if value else cls.NO
        if value is None:
            return cls.NO
        return cls.YES if str(value).strip().lower() in YES_TOKENS else cls.NO


class CaseOutcome(str, Enum):
    """Which case store a finished record lands in."""

    SUCCESS = "success"
    FAILURE = "failure"


class PipelineState(str, Enum):
    """
    Lifecycle of a single objection through the validation pipeline.

    EXTRACTED -> CLASSIFIED -> ANSWER_CHECKED -> RESOLVED | STORED
    An invalid answer moves straight from ANSWER_CHECKED to STORED.
    """

    EXTRACTED = "extracted"
    CLASSIFIED = "classified"
    ANSWER_CHECKED = "answer_checked"
    RESOLVED = "resolved"
    STORED = "stored"
