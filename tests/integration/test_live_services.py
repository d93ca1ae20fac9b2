"""Integration tests against live Ollama and Redis.

Run: docker-compose up ollama redis
The judgment and embedding models must be pulled:
    ollama pull qwen2.5:7b && ollama pull nomic-embed-text

Tests are skipped if a service is not reachable.
"""

import pytest

from objection_analyzer.catalog.sync import CatalogSyncEngine
from objection_analyzer.models.enums import CaseOutcome, Verdict
from objection_analyzer.persistence.case_store import CaseStore
from objection_analyzer.persistence.category_store import CategoryVectorStore
from objection_analyzer.validation.pipeline import build_pipeline

pytestmark = pytest.mark.integration


@pytest.mark.asyncio
async def test_ollama_health_and_embedding(real_ollama_client):
    assert await real_ollama_client.health_check() is True

    vector = await real_ollama_client.embed("套餐价格太贵")

    assert len(vector) > 0
    await real_ollama_client.close()


def test_case_store_roundtrip(real_redis_client):
    store = CaseStore(real_redis_client, key_prefix="it:cases")

    assert store.append_failure("t", "{}", "p", "", "no agent answer") is True

    cases = store.list_cases(CaseOutcome.FAILURE)
    assert [c.reason for c in cases] == ["no agent answer"]


@pytest.mark.asyncio
async def test_catalog_sync_and_search(real_ollama_client, real_redis_client, sample_feed_path):
    store = CategoryVectorStore(real_redis_client, real_ollama_client, key_prefix="it:catalog")
    engine = CatalogSyncEngine(store, real_ollama_client)

    report = await engine.sync_directory(sample_feed_path.parent, "catalog_feed.csv")
    second = await engine.sync_directory(sample_feed_path.parent, "catalog_feed.csv")
    hits = await store.search("家里手机没有信号", top_k=2)

    assert store.count() == 4
    assert len(report.inserted) == 4
    assert not second.changed
    assert second.embedded == 0
    assert hits
    await real_ollama_client.close()


@pytest.mark.asyncio
async def test_pipeline_on_sample_transcript(
    integration_settings, real_ollama_client, real_redis_client, sample_feed_path, sample_transcript
):
    category_store = CategoryVectorStore(real_redis_client, real_ollama_client, key_prefix="it:catalog")
    case_store = CaseStore(real_redis_client, key_prefix="it:cases")
    await CatalogSyncEngine(category_store, real_ollama_client).sync_directory(
        sample_feed_path.parent, "catalog_feed.csv"
    )
    pipeline = build_pipeline(integration_settings, real_ollama_client, category_store, case_store)

    records = await pipeline.process(sample_transcript)

    stored = case_store.count(CaseOutcome.SUCCESS) + case_store.count(CaseOutcome.FAILURE)
    assert stored == max(len(records), 1)
    for record in records:
        assert record["targetProblem"]
        assert record["isAnswerValid"] in {Verdict.YES.value, Verdict.NO.value}
    await real_ollama_client.close()
