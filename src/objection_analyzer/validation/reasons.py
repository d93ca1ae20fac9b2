"""Reason texts written on default verdicts and failure cases."""

NO_AGENT_ANSWER = "no agent answer"
UNPARSABLE_OUTPUT = "unparsable judgment output"
PROVIDER_FAILURE = "judgment provider failure"

# Prefix of the failure-case reason for valid-but-unresolved answers
STAGE2_PREFIX = "[stage-2] "


def processing_error(exc: BaseException) -> str:
    return f"processing error: {exc}"
