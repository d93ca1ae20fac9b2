"""
Output normalizer: repair raw model text into JSON, and lay out records in
the canonical field order shared by every persisted stage.

Local models wrap their answers in Markdown fences, leak <think> blocks and
prepend chatter. repair() peels those layers off before decoding; anything
it cannot turn into a JSON value raises JudgmentUnparsable.
"""

import json
import re
from enum import Enum
from typing import Any, Mapping, NoReturn

import structlog
from pydantic import BaseModel

from objection_analyzer.models.pipeline_models import ResolutionRecord
from objection_analyzer.monitoring.metrics import normalizer_failures_total
from objection_analyzer.validation.exceptions import JudgmentUnparsable

logger = structlog.get_logger(__name__)

_THINK_BLOCK_RE = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
# Opening fence plus an optional language tag; the body may follow on the same line
_FENCE_OPEN_RE = re.compile(r"^```[A-Za-z0-9_+-]*")

CLASSIFICATION_KEYS = (
    "targetProblem",
    "majorCode",
    "majorName",
    "minorCode",
    "minorName",
    "agentAnswer",
)
VALIDITY_KEYS = ("isAnswerValid", "validityReason")
RESOLUTION_KEYS = ("isResolved", "resolutionReason")
TRAILING_KEYS = ("excerpt", "rationale")

# alias -> python field name, for records handed over as snake_case dicts
_FIELD_NAMES = {
    field.alias or name: name for name, field in ResolutionRecord.model_fields.items()
}


def canonical_keys(include_resolution: bool = False) -> tuple[str, ...]:
    """Key order of a persisted record."""
    keys = CLASSIFICATION_KEYS + VALIDITY_KEYS
    if include_resolution:
        keys += RESOLUTION_KEYS
    return keys + TRAILING_KEYS


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, str):
        return value
    return str(value)


def build_ordered(record: Mapping[str, Any] | BaseModel, include_resolution: bool = False) -> dict[str, str]:
    """
    Lay a record out in canonical order.

    Every canonical key is present; missing or None values become "" and
    non-string values are stringified. Keys outside the canonical set are
    dropped.

    Args:
        record: Pipeline record model or mapping (camelCase or snake_case keys)
        include_resolution: Emit isResolved/resolutionReason (stage-2 records)

    Returns:
        Insertion-ordered dict of strings
    """
    if isinstance(record, BaseModel):
        source: Mapping[str, Any] = record.model_dump(by_alias=True)
    else:
        source = record or {}

    ordered: dict[str, str] = {}
    for key in canonical_keys(include_resolution):
        value = source.get(key)
        if value is None:
            value = source.get(_FIELD_NAMES.get(key, key))
        ordered[key] = _as_text(value)
    return ordered


def to_ordered_json(record: Mapping[str, Any] | BaseModel, include_resolution: bool = False) -> str:
    """Compact JSON of build_ordered(); non-ASCII text kept as-is."""
    return json.dumps(
        build_ordered(record, include_resolution=include_resolution),
        ensure_ascii=False,
        separators=(",", ":"),
    )


class OutputNormalizer:
    """
    Repair raw judgment-model output into a JSON value.

    Steps:
    1. Drop one leading ``` / ```json fence token and one trailing fence
    2. Drop <think>...</think> blocks, then any remaining <...> tag
    3. Cut everything before the first '{' or '['
    4. Decode the first complete JSON value; trailing prose is ignored
    """

    def __init__(self) -> None:
        self._decoder = json.JSONDecoder()

    def repair(self, raw: str | None, source: str = "unknown") -> Any:
        """
        Repair and decode model output.

        Args:
            raw: Raw text returned by the judgment provider
            source: Pipeline step that produced it (metrics/log label)

        Returns:
            Decoded JSON value (dict or list)

        Raises:
            JudgmentUnparsable: No JSON object/array could be recovered
        """
        if raw is None or not raw.strip():
            self._fail(source, raw, "empty model output")

        text = self._strip_fence(raw.strip())
        text = _THINK_BLOCK_RE.sub("", text)
        text = _TAG_RE.sub("", text).strip()

        starts = [pos for pos in (text.find("{"), text.find("[")) if pos >= 0]
        if not starts:
            self._fail(source, raw, "no JSON object or array in model output")
        text = text[min(starts):]

        if not text.startswith(("{", "[")):
            self._fail(source, raw, "model output does not start with JSON")

        try:
            value, end = self._decoder.raw_decode(text)
        except json.JSONDecodeError as e:
            self._fail(source, raw, f"{e.msg} at line {e.lineno} col {e.colno}")

        if text[end:].strip():
            logger.debug("Ignored trailing text after JSON", source=source, trailing_chars=len(text[end:].strip()))
        return value

    @staticmethod
    def _strip_fence(text: str) -> str:
        if not text.startswith("```"):
            return text
        text = _FENCE_OPEN_RE.sub("", text, count=1).rstrip()
        if text.endswith("```"):
            text = text[:-3]
        return text.strip()

    @staticmethod
    def _fail(source: str, raw: str | None, reason: str) -> NoReturn:
        normalizer_failures_total.labels(source=source).inc()
        logger.warning("Unparsable model output", source=source, reason=reason)
        raise JudgmentUnparsable(f"Unparsable {source} output: {reason}", raw_content=raw, source=source)


def first_object(value: Any) -> dict | None:
    """First JSON object of a repaired value: the value itself or an array's first dict."""
    if isinstance(value, dict):
        return value
    if isinstance(value, list):
        for item in value:
            if isinstance(item, dict):
                return item
    return None
