"""Unit test fixtures (fakes and stubs).

Provides in-memory stand-ins for Redis and the model server so unit tests
run without external dependencies.
"""

import hashlib
from datetime import datetime
from typing import Any, Callable, Optional, Union

import pytest
from redis.exceptions import RedisError

from objection_analyzer.llm.base_client import BaseEmbeddingClient, BaseLLMClient
from objection_analyzer.llm.exceptions import EmbeddingFailure
from objection_analyzer.llm.prompt_builder import PromptBuilder
from objection_analyzer.models.catalog_models import FeedRow
from objection_analyzer.models.llm_models import LLMGenerationRequest, LLMGenerationResponse
from objection_analyzer.persistence.case_store import CaseStore
from objection_analyzer.persistence.category_store import CategoryVectorStore


class FakePipeline:
    """Queues commands; a transactional execute() checks them all before writing."""

    def __init__(self, redis: "FakeRedis", transaction: bool = True):
        self.redis = redis
        self.transaction = transaction
        self.commands: list[tuple[str, tuple, dict]] = []

    def __getattr__(self, name: str):
        def queue(*args, **kwargs):
            self.commands.append((name, args, kwargs))
            return self
        return queue

    def execute(self) -> list:
        self.redis.pipelines_executed.append([name for name, _, _ in self.commands])
        if self.transaction:
            for name, args, _ in self.commands:
                self.redis.check(name, args)
        results = [getattr(self.redis, name)(*args, **kwargs) for name, args, kwargs in self.commands]
        self.commands = []
        return results


class FakeRedis:
    """In-memory Redis (decode_responses=True) limited to the commands the stores issue.

    ``fail_when(name, args)`` returning True makes that command raise RedisError.
    """

    def __init__(self):
        self.data: dict[str, Any] = {}
        self.fail_when: Optional[Callable[[str, tuple], bool]] = None
        self.pipelines_executed: list[list[str]] = []

    def check(self, name: str, args: tuple) -> None:
        if self.fail_when is not None and self.fail_when(name, args):
            raise RedisError(f"simulated failure on {name}")

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self, transaction=transaction)

    def ping(self) -> bool:
        self.check("ping", ())
        return True

    def get(self, key: str) -> Optional[str]:
        self.check("get", (key,))
        return self.data.get(key)

    def incr(self, key: str) -> int:
        self.check("incr", (key,))
        value = int(self.data.get(key, 0)) + 1
        self.data[key] = str(value)
        return value

    def delete(self, *keys: str) -> int:
        self.check("delete", keys)
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    def hset(self, key: str, mapping: dict) -> int:
        self.check("hset", (key,))
        target = self.data.setdefault(key, {})
        added = sum(1 for k in mapping if k not in target)
        target.update({k: str(v) for k, v in mapping.items()})
        return added

    def hmget(self, key: str, *fields: str) -> list[Optional[str]]:
        self.check("hmget", (key,))
        return [self.data.get(key, {}).get(f) for f in fields]

    def hgetall(self, key: str) -> dict[str, str]:
        self.check("hgetall", (key,))
        return dict(self.data.get(key, {}))

    def sadd(self, key: str, *members: str) -> int:
        self.check("sadd", (key, *members))
        target = self.data.setdefault(key, set())
        added = len(set(members) - target)
        target.update(members)
        return added

    def srem(self, key: str, *members: str) -> int:
        self.check("srem", (key, *members))
        target = self.data.get(key, set())
        removed = len(target & set(members))
        target.difference_update(members)
        return removed

    def smembers(self, key: str) -> set[str]:
        self.check("smembers", (key,))
        return set(self.data.get(key, set()))

    def scard(self, key: str) -> int:
        self.check("scard", (key,))
        return len(self.data.get(key, set()))

    def rpush(self, key: str, *values: str) -> int:
        self.check("rpush", (key,))
        target = self.data.setdefault(key, [])
        target.extend(values)
        return len(target)

    def lrange(self, key: str, start: int, end: int) -> list[str]:
        self.check("lrange", (key,))
        stop = None if end == -1 else end + 1
        return self.data.get(key, [])[start:stop]

    def llen(self, key: str) -> int:
        self.check("llen", (key,))
        return len(self.data.get(key, []))


def text_vector(text: str, dim: int = 4) -> list[float]:
    """Deterministic pseudo-embedding of a text."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return [digest[i] / 255.0 for i in range(dim)]


class FakeEmbedder(BaseEmbeddingClient):
    """Embedding provider with fixed vectors per text and call recording."""

    def __init__(self, vectors: Optional[dict[str, list[float]]] = None, dim: int = 4):
        self.vectors = dict(vectors or {})
        self.dim = dim
        self.calls: list[str] = []
        self.fail_on: set[str] = set()

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if text in self.fail_on:
            raise EmbeddingFailure("simulated embedding failure", details={"text": text})
        return list(self.vectors.get(text) or text_vector(text, self.dim))


Response = Union[str, Exception]


class FakeJudge(BaseLLMClient):
    """Judgment provider returning scripted responses.

    ``responses`` is either a list consumed in call order or a callable
    ``(prompt, system) -> str``. An Exception in place of a response is raised.
    """

    def __init__(self, responses: Union[list[Response], Callable[[str, Optional[str]], Response], None] = None):
        super().__init__("http://fake-judge", "fake-model")
        self.responses = responses if responses is not None else []
        self.requests: list[LLMGenerationRequest] = []

    async def generate(self, request: LLMGenerationRequest) -> LLMGenerationResponse:
        self.requests.append(request)
        if callable(self.responses):
            result = self.responses(request.prompt, request.system)
        else:
            if not self.responses:
                raise AssertionError("FakeJudge ran out of scripted responses")
            result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return LLMGenerationResponse(
            content=result,
            model_version=self.model,
            finish_reason="stop",
            latency_ms=1,
            created_at=datetime.now().isoformat(),
        )

    async def health_check(self) -> bool:
        return True

    async def get_model_info(self, model_name: str) -> dict:
        return {"model": model_name}

    @property
    def call_count(self) -> int:
        return len(self.requests)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def category_store(fake_redis: FakeRedis, embedder: FakeEmbedder) -> CategoryVectorStore:
    return CategoryVectorStore(fake_redis, embedder, key_prefix="catalog", default_top_k=8)


@pytest.fixture
def case_store(fake_redis: FakeRedis) -> CaseStore:
    return CaseStore(fake_redis, key_prefix="cases")


@pytest.fixture
def prompt_builder() -> PromptBuilder:
    return PromptBuilder(transcript_truncation_limit=2000)


@pytest.fixture
def make_row():
    """Factory fixture for FeedRow with sensible defaults."""
    def _make(
        code: str,
        small_title: Optional[str] = None,
        big_code: str = "01",
        big_name: str = "Billing",
        small_code: Optional[str] = None,
    ) -> FeedRow:
        return FeedRow(
            code=code,
            big_code=big_code,
            big_name=big_name,
            small_code=small_code if small_code is not None else code,
            small_title=small_title or f"title {code}",
        )

    return _make


@pytest.fixture
def make_judge():
    """Factory fixture for FakeJudge.

    Usage:
        def test_something(make_judge):
            judge = make_judge(['{"isAnswerValid": "yes"}'])
    """
    return FakeJudge


@pytest.fixture
def make_embedder():
    """Factory fixture for FakeEmbedder with explicit vectors."""
    return FakeEmbedder
