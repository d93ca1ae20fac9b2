"""
Unit tests for CategoryVectorStore.
"""

import json

import pytest

from objection_analyzer.persistence.category_store import CategoryVectorStore
from objection_analyzer.persistence.exceptions import PersistenceFailure


@pytest.fixture
def vectors():
    return {
        "price": [0.0, 0.0],
        "Plan price": [0.1, 0.0],
        "Refund": [1.0, 0.0],
        "Signal": [3.0, 4.0],
    }


@pytest.fixture
def store(fake_redis, make_embedder, vectors):
    return CategoryVectorStore(fake_redis, make_embedder(vectors), key_prefix="catalog", default_top_k=2)


@pytest.fixture
def populated(store, make_row, vectors):
    for code, title in [("0101", "Plan price"), ("0102", "Refund"), ("0201", "Signal")]:
        store.upsert(make_row(code, small_title=title), vectors[title])
    return store


class TestWrites:

    def test_upsert_writes_hash_and_index(self, store, fake_redis, make_row):
        record = store.upsert(make_row("0101", small_title="Plan price"), [0.1, 0.2])

        assert fake_redis.smembers("catalog:codes") == {"0101"}
        data = fake_redis.hgetall("catalog:category:0101")
        assert data["small_title"] == "Plan price"
        assert json.loads(data["embedding"]) == [0.1, 0.2]
        assert record.created_at == record.updated_at

    def test_upsert_is_one_transaction(self, store, fake_redis, make_row):
        store.upsert(make_row("0101"), [0.1])

        assert fake_redis.pipelines_executed == [["hset", "sadd", "incr"]]

    def test_content_update_keeps_vector_and_created_at(self, store, make_row):
        first = store.upsert(make_row("0101", big_name="Billing"), [0.5, 0.5])

        second = store.upsert(make_row("0101", big_name="Charges"))

        assert second.embedding == [0.5, 0.5]
        assert second.created_at == first.created_at
        assert store.get("0101").big_name == "Charges"

    def test_upsert_without_any_vector_fails(self, store, make_row):
        with pytest.raises(PersistenceFailure):
            store.upsert(make_row("0101"))

        assert store.count() == 0

    def test_failed_transaction_leaves_no_partial_record(self, store, fake_redis, make_row):
        fake_redis.fail_when = lambda name, args: name == "sadd"

        with pytest.raises(PersistenceFailure):
            store.upsert(make_row("0101"), [0.1])

        assert fake_redis.hgetall("catalog:category:0101") == {}

    def test_delete_removes_hash_and_index_entry(self, populated, fake_redis):
        removed = populated.delete(["0101", "0102", "missing"])

        assert removed == 2
        assert fake_redis.smembers("catalog:codes") == {"0201"}
        assert populated.get("0101") is None

    def test_delete_nothing(self, store):
        assert store.delete([]) == 0


class TestReads:

    def test_load_all_in_code_order(self, populated):
        records = populated.load_all()

        assert list(records) == ["0101", "0102", "0201"]
        assert records["0102"].embedding == [1.0, 0.0]

    def test_load_all_skips_dangling_index_entries(self, populated, fake_redis):
        fake_redis.sadd("catalog:codes", "ghost")

        assert "ghost" not in populated.load_all()

    def test_redis_error_is_wrapped(self, store, fake_redis):
        fake_redis.fail_when = lambda name, args: True

        with pytest.raises(PersistenceFailure):
            store.count()


class TestSearch:

    @pytest.mark.asyncio
    async def test_ranked_by_distance(self, populated):
        hits = await populated.search("price", top_k=3)

        assert [h.record.code for h in hits] == ["0101", "0102", "0201"]
        assert hits[0].distance == pytest.approx(0.1)
        assert hits[0].similarity == pytest.approx(1 / 1.1)
        assert hits[2].distance == pytest.approx(5.0)

    @pytest.mark.asyncio
    async def test_default_top_k(self, populated):
        hits = await populated.search("price")

        assert len(hits) == 2

    @pytest.mark.asyncio
    async def test_threshold_drops_distant_hits(self, populated):
        # similarity 1/(1+5) ~= 0.167 for "Signal"
        hits = await populated.search("price", top_k=3, similarity_threshold=0.4)

        assert [h.record.code for h in hits] == ["0101", "0102"]

    @pytest.mark.asyncio
    async def test_hits_carry_no_embedding(self, populated):
        hits = await populated.search("price", top_k=1)

        assert hits[0].record.embedding == []

    @pytest.mark.asyncio
    async def test_blank_query_makes_no_embedding_call(self, populated):
        assert await populated.search("   ") == []
        assert populated.embedder.calls == []

    @pytest.mark.asyncio
    async def test_empty_catalog(self, store):
        assert await store.search("price") == []
        assert store.embedder.calls == []

    @pytest.mark.asyncio
    async def test_mismatched_dimensions_skipped(self, populated, make_row):
        populated.upsert(make_row("0900", small_title="odd"), [0.0, 0.0, 0.0])

        hits = await populated.search("price", top_k=10)

        assert "0900" not in [h.record.code for h in hits]

    @pytest.mark.asyncio
    async def test_repeated_search_loads_catalog_once(self, populated, fake_redis):
        fake_redis.pipelines_executed.clear()

        await populated.search("price")
        await populated.search("Refund")

        loads = [p for p in fake_redis.pipelines_executed if "hgetall" in p]
        assert len(loads) == 1

    @pytest.mark.asyncio
    async def test_write_through_another_instance_is_seen(self, populated, fake_redis, make_embedder, make_row):
        await populated.search("price")
        writer = CategoryVectorStore(fake_redis, make_embedder(), key_prefix="catalog")

        writer.upsert(make_row("0103", small_title="Exact price"), [0.0, 0.0])
        hits = await populated.search("price", top_k=1)

        assert hits[0].record.code == "0103"

    @pytest.mark.asyncio
    async def test_delete_drops_code_from_later_searches(self, populated):
        await populated.search("price")

        populated.delete(["0101"])
        hits = await populated.search("price", top_k=3)

        assert [h.record.code for h in hits] == ["0102", "0201"]
