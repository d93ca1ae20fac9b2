"""
Unit tests for ObjectionExtractor.
"""

import pytest

from objection_analyzer.llm.exceptions import LLMConnectionError
from objection_analyzer.rag.extractor import ObjectionExtractor


@pytest.mark.asyncio
async def test_objections_envelope(make_judge, prompt_builder):
    judge = make_judge([
        '{"objections": ['
        '{"problem": "套餐太贵", "excerpt": "客户：这个套餐太贵了", "rationale": "complains about price"},'
        '{"problem": "信号差", "excerpt": "客户：家里没信号"}'
        ']}'
    ])
    extractor = ObjectionExtractor(judge, prompt_builder)

    objections = await extractor.extract("客服：您好\n客户：这个套餐太贵了")

    assert [o.problem for o in objections] == ["套餐太贵", "信号差"]
    assert objections[0].excerpt == "客户：这个套餐太贵了"
    assert objections[1].rationale == ""


@pytest.mark.asyncio
async def test_prompt_carries_transcript(make_judge, prompt_builder):
    judge = make_judge(['{"objections": []}'])
    extractor = ObjectionExtractor(judge, prompt_builder)

    await extractor.extract("客户：我要退订")

    request = judge.requests[0]
    assert "<info>\n客户：我要退订\n</info>" in request.prompt
    assert "1 to 3" in request.system
    assert request.temperature == 0.0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "raw",
    [
        '```json\n[{"problem": "price"}]\n```',
        '<think>listing objections</think>{"problem": "price"}',
    ],
)
async def test_bare_array_and_single_object(make_judge, prompt_builder, raw):
    extractor = ObjectionExtractor(make_judge([raw]), prompt_builder)

    objections = await extractor.extract("transcript")

    assert [o.problem for o in objections] == ["price"]


@pytest.mark.asyncio
async def test_items_without_problem_skipped(make_judge, prompt_builder):
    raw = '{"objections": [{"problem": "  "}, "text", {"excerpt": "x"}, {"problem": "refund"}]}'
    extractor = ObjectionExtractor(make_judge([raw]), prompt_builder)

    objections = await extractor.extract("transcript")

    assert [o.problem for o in objections] == ["refund"]


@pytest.mark.asyncio
async def test_unparsable_output_is_empty(make_judge, prompt_builder):
    extractor = ObjectionExtractor(make_judge(["I could not find any objection."]), prompt_builder)

    assert await extractor.extract("transcript") == []


@pytest.mark.asyncio
async def test_provider_failure_is_empty(make_judge, prompt_builder):
    extractor = ObjectionExtractor(make_judge([LLMConnectionError("refused")]), prompt_builder)

    assert await extractor.extract("transcript") == []
