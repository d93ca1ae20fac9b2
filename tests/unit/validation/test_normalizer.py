"""
Unit tests for the output normalizer and canonical record layout.
"""

import json

import pytest

from objection_analyzer.models.enums import Verdict
from objection_analyzer.models.pipeline_models import ResolutionRecord, ValidationRecord
from objection_analyzer.validation.exceptions import JudgmentUnparsable
from objection_analyzer.validation.normalizer import (
    OutputNormalizer,
    build_ordered,
    canonical_keys,
    first_object,
    to_ordered_json,
)


class TestRepair:
    """Test suite for OutputNormalizer.repair."""

    def setup_method(self):
        self.normalizer = OutputNormalizer()

    def test_plain_json_object(self):
        assert self.normalizer.repair('{"isAnswerValid": "yes"}') == {"isAnswerValid": "yes"}

    def test_json_fence_with_language_tag(self):
        raw = '```json\n{"isAnswerValid":"yes","validityReason":"ok"}\n```'

        result = self.normalizer.repair(raw)

        assert result == {"isAnswerValid": "yes", "validityReason": "ok"}

    def test_bare_fence(self):
        assert self.normalizer.repair("```\n[1, 2]\n```") == [1, 2]

    @pytest.mark.parametrize(
        "raw",
        [
            '```{"isAnswerValid":"yes"}```',
            '```json{"isAnswerValid":"yes"}```',
            '```json {"isAnswerValid":"yes"} ```',
        ],
    )
    def test_single_line_fence(self, raw):
        assert self.normalizer.repair(raw) == {"isAnswerValid": "yes"}

    def test_think_block_removed(self):
        raw = '<think>\nThe agent offered {a plan}.\n</think>\n{"isResolved": "no"}'

        assert self.normalizer.repair(raw) == {"isResolved": "no"}

    def test_stray_tags_and_leading_prose_removed(self):
        raw = 'Sure, here is the result: <answer>{"problem": "price"}</answer>'

        assert self.normalizer.repair(raw) == {"problem": "price"}

    def test_trailing_prose_ignored(self):
        raw = '{"isResolved": "yes"}\nLet me know if you need anything else.'

        assert self.normalizer.repair(raw) == {"isResolved": "yes"}

    def test_array_output(self):
        raw = '[{"problem": "a"}, {"problem": "b"}]'

        assert self.normalizer.repair(raw) == [{"problem": "a"}, {"problem": "b"}]

    def test_non_ascii_content_preserved(self):
        assert self.normalizer.repair('{"problem": "套餐太贵"}') == {"problem": "套餐太贵"}

    @pytest.mark.parametrize("raw", [None, "", "   \n"])
    def test_empty_output_raises(self, raw):
        with pytest.raises(JudgmentUnparsable):
            self.normalizer.repair(raw)

    def test_no_json_raises(self):
        with pytest.raises(JudgmentUnparsable) as exc_info:
            self.normalizer.repair("The agent did answer the question.", source="answer_validity")

        assert exc_info.value.details["source"] == "answer_validity"
        assert exc_info.value.reason == "unparsable judgment output"

    def test_truncated_json_raises(self):
        with pytest.raises(JudgmentUnparsable):
            self.normalizer.repair('{"isAnswerValid": "yes", "validityReason": "the agent')


class TestFirstObject:

    def test_dict_returned_as_is(self):
        assert first_object({"a": 1}) == {"a": 1}

    def test_first_dict_of_list(self):
        assert first_object(["x", {"a": 1}, {"b": 2}]) == {"a": 1}

    @pytest.mark.parametrize("value", [[], ["x"], "text", 3, None])
    def test_no_object(self, value):
        assert first_object(value) is None


class TestBuildOrdered:

    def test_stage1_key_order(self):
        assert canonical_keys() == (
            "targetProblem", "majorCode", "majorName", "minorCode", "minorName", "agentAnswer",
            "isAnswerValid", "validityReason", "excerpt", "rationale",
        )

    def test_stage2_key_order_inserts_resolution_before_trailing_keys(self):
        keys = canonical_keys(include_resolution=True)

        assert keys[6:10] == ("isAnswerValid", "validityReason", "isResolved", "resolutionReason")
        assert keys[-2:] == ("excerpt", "rationale")

    def test_empty_mapping_gives_all_keys_empty(self):
        ordered = build_ordered({})

        assert list(ordered) == list(canonical_keys())
        assert set(ordered.values()) == {""}

    def test_model_is_laid_out_by_alias(self):
        record = ValidationRecord(
            target_problem="price",
            agent_answer="switch plan",
            is_answer_valid=Verdict.YES,
            validity_reason="offered alternative",
            rationale="r",
        )

        ordered = build_ordered(record)

        assert list(ordered) == list(canonical_keys())
        assert ordered["isAnswerValid"] == "yes"
        assert ordered["validityReason"] == "offered alternative"
        assert ordered["rationale"] == "r"
        assert "isResolved" not in ordered

    def test_snake_case_mapping_and_stringification(self):
        ordered = build_ordered({"target_problem": "p", "majorCode": 1, "minorName": None, "extra": "dropped"})

        assert ordered["targetProblem"] == "p"
        assert ordered["majorCode"] == "1"
        assert ordered["minorName"] == ""
        assert "extra" not in ordered

    def test_ordered_json_is_compact_and_keeps_unicode(self):
        record = ResolutionRecord(target_problem="套餐太贵", is_answer_valid=Verdict.YES, is_resolved=Verdict.YES)

        text = to_ordered_json(record, include_resolution=True)

        assert text.startswith('{"targetProblem":"套餐太贵","majorCode":""')
        assert '"isResolved":"yes"' in text
        assert list(json.loads(text)) == list(canonical_keys(include_resolution=True))
