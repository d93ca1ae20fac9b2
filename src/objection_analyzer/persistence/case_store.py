"""
Append-only case store for analysis outcomes.

Storage Strategy:
- Success cases: List "{prefix}:success" with JSON entries (RPUSH, oldest first)
- Failure cases: List "{prefix}:failure" with JSON entries
- No dedup, no update: reprocessing a transcript appends new rows
"""

import json
from datetime import datetime, timezone

import structlog
from redis import Redis
from redis.exceptions import RedisError

from objection_analyzer.models.enums import CaseOutcome
from objection_analyzer.models.pipeline_models import CaseRecord
from objection_analyzer.monitoring.metrics import case_writes_total
from objection_analyzer.persistence.exceptions import PersistenceFailure

logger = structlog.get_logger(__name__)


class CaseStore:
    """
    Repository for success and failure cases.

    Write failures are logged and reported through the return value; they
    never interrupt the pipeline that produced the case.
    """

    def __init__(self, redis_client: Redis, key_prefix: str = "cases"):
        """
        Initialize case store.

        Args:
            redis_client: Redis client instance
            key_prefix: Namespace for the two case lists
        """
        self.redis = redis_client
        self.key_prefix = key_prefix

    def list_key(self, outcome: CaseOutcome) -> str:
        return f"{self.key_prefix}:{CaseOutcome(outcome).value}"

    def append_success(self, transcript: str, ordered_json: str, problem: str, answer: str, reason: str) -> bool:
        """Append a resolved objection. Returns True if written."""
        return self._append(CaseOutcome.SUCCESS, transcript, ordered_json, problem, answer, reason)

    def append_failure(self, transcript: str, ordered_json: str, problem: str, answer: str, reason: str) -> bool:
        """Append an unanswered / unresolved objection or a transcript-level failure."""
        return self._append(CaseOutcome.FAILURE, transcript, ordered_json, problem, answer, reason)

    def _append(
        self,
        outcome: CaseOutcome,
        transcript: str,
        ordered_json: str,
        problem: str,
        answer: str,
        reason: str,
    ) -> bool:
        now = datetime.now(timezone.utc)
        case = CaseRecord(
            transcript=transcript,
            ordered_record_json=ordered_json,
            problem=problem or "",
            answer=answer or "",
            reason=reason or "",
            created_at=now,
            updated_at=now,
        )
        try:
            self._push(outcome, case)
        except PersistenceFailure as e:
            case_writes_total.labels(outcome=outcome.value, status="error").inc()
            logger.error(
                "Case write failed",
                outcome=outcome.value,
                problem=problem,
                reason=reason,
                error=str(e),
                exc_info=True,
            )
            return False

        case_writes_total.labels(outcome=outcome.value, status="ok").inc()
        logger.info("Case written", outcome=outcome.value, problem=problem, reason=reason)
        return True

    def _push(self, outcome: CaseOutcome, case: CaseRecord) -> None:
        try:
            self.redis.rpush(self.list_key(outcome), case.model_dump_json())
        except RedisError as e:
            raise PersistenceFailure(
                "Failed to append case",
                details={"outcome": outcome.value, "error": str(e)},
            ) from e

    def list_cases(self, outcome: CaseOutcome, limit: int = 100, offset: int = 0) -> list[CaseRecord]:
        """
        Read cases in insertion order.

        Args:
            outcome: Which store to read
            limit: Maximum number of cases
            offset: Number of cases to skip from the oldest

        Returns:
            List of CaseRecord (empty on error)
        """
        if limit <= 0:
            return []
        try:
            entries = self.redis.lrange(self.list_key(outcome), offset, offset + limit - 1)
            return [CaseRecord.model_validate_json(entry) for entry in entries]
        except (RedisError, ValueError) as e:
            logger.error("Failed to read cases", outcome=CaseOutcome(outcome).value, error=str(e), exc_info=True)
            return []

    def count(self, outcome: CaseOutcome) -> int:
        try:
            return int(self.redis.llen(self.list_key(outcome)))
        except RedisError as e:
            logger.error("Failed to count cases", outcome=CaseOutcome(outcome).value, error=str(e))
            return -1

    def get_stats(self) -> dict:
        """Case counts per outcome (-1 when Redis is unreachable)."""
        return {
            "success_cases": self.count(CaseOutcome.SUCCESS),
            "failure_cases": self.count(CaseOutcome.FAILURE),
        }


def parse_ordered_record(case: CaseRecord) -> dict:
    """Decode the ordered record JSON of a case, preserving key order."""
    return json.loads(case.ordered_record_json)
