"""
Exceptions raised while turning a transcript into case records.

None of these escape ValidationPipeline.process(): whole-transcript
failures become a single failure case, per-item failures become default
negative verdicts.
"""

from typing import Any


class PipelineError(Exception):
    """
    Base exception for pipeline errors.

    ``reason`` is the human-readable text written to the failure case store.
    """

    reason: str = "processing error"

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize pipeline error.

        Args:
            message: Human-readable error description (for logs)
            reason: Text recorded on the failure case (defaults to class reason)
            details: Structured error data for logging/metrics
        """
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ExtractionEmpty(PipelineError):
    """No objections could be extracted from the transcript."""

    reason = "no objections extracted"


class ClassificationEmpty(PipelineError):
    """Every extracted objection failed classification."""

    reason = "classification result empty"


class JudgmentUnparsable(PipelineError):
    """
    Model output could not be repaired into JSON.

    Carries the first 500 chars of the raw output for debugging.
    """

    reason = "unparsable judgment output"

    def __init__(self, message: str, raw_content: str | None = None, source: str | None = None):
        details = {}
        if raw_content:
            details["content_snippet"] = raw_content[:500]
        if source:
            details["source"] = source
        super().__init__(message, details=details)
