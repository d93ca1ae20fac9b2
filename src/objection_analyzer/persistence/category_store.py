"""
Category vector store backed by Redis.

Storage layout:
- Record: Hash "{prefix}:category:{code}" with the CategoryRecord fields;
  the embedding is a JSON array string under "embedding"
- Index: Set "{prefix}:codes" with every stored code
- Version: String "{prefix}:version", INCR'd in every write transaction

Similarity search ranks the catalog by Euclidean distance with numpy over a
decoded embedding matrix. The matrix is cached per store instance and
rebuilt only when the version counter moves, so writers in other processes
(the refresh worker) invalidate it too. Catalogs are a few thousand short
titles, so a brute-force scan per query stays well under the latency of the
judgment call that follows it.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

import numpy as np
import structlog
from redis import Redis
from redis.exceptions import RedisError

from objection_analyzer.llm.base_client import BaseEmbeddingClient
from objection_analyzer.models.catalog_models import CategoryRecord, FeedRow, SearchHit
from objection_analyzer.persistence.exceptions import PersistenceFailure

logger = structlog.get_logger(__name__)

_TEXT_FIELDS = ("code", "big_code", "big_name", "small_code", "small_title", "source_file")


@dataclass
class _SearchIndex:
    """Decoded catalog snapshot with embedding matrices built per dimension."""

    version: Optional[str]
    records: list[CategoryRecord]
    matrices: dict[int, tuple[list[CategoryRecord], np.ndarray]] = field(default_factory=dict)

    def for_dim(self, dim: int) -> tuple[list[CategoryRecord], np.ndarray]:
        if dim not in self.matrices:
            candidates = [r for r in self.records if len(r.embedding) == dim]
            matrix = np.asarray([r.embedding for r in candidates], dtype=np.float64).reshape(len(candidates), dim)
            self.matrices[dim] = (candidates, matrix)
        return self.matrices[dim]


class CategoryVectorStore:
    """
    Persistent catalog of classification categories with nearest-neighbour search.

    Reads serve the classifier; writes belong to the catalog sync engine.
    """

    def __init__(
        self,
        redis_client: Redis,
        embedder: BaseEmbeddingClient,
        key_prefix: str = "catalog",
        default_top_k: int = 8,
    ):
        """
        Initialize store.

        Args:
            redis_client: Redis client instance (decode_responses=True)
            embedder: Embedding provider used for search queries
            key_prefix: Namespace for all catalog keys
            default_top_k: Used when a caller passes top_k <= 0
        """
        self.redis = redis_client
        self.embedder = embedder
        self.key_prefix = key_prefix
        self.default_top_k = default_top_k
        self._index: Optional[_SearchIndex] = None

    @property
    def codes_key(self) -> str:
        return f"{self.key_prefix}:codes"

    @property
    def version_key(self) -> str:
        return f"{self.key_prefix}:version"

    def record_key(self, code: str) -> str:
        return f"{self.key_prefix}:category:{code}"

    # --- reads ---

    def count(self) -> int:
        """Number of stored records."""
        try:
            return int(self.redis.scard(self.codes_key))
        except RedisError as e:
            raise PersistenceFailure("Failed to count catalog records", details={"error": str(e)}) from e

    def get(self, code: str) -> Optional[CategoryRecord]:
        try:
            data = self.redis.hgetall(self.record_key(code))
        except RedisError as e:
            raise PersistenceFailure("Failed to read catalog record", details={"code": code, "error": str(e)}) from e
        return self._decode(data) if data else None

    def load_all(self) -> dict[str, CategoryRecord]:
        """
        Load the whole catalog keyed by code, in code order.

        Codes present in the index but missing their hash are ignored.
        """
        try:
            codes = sorted(self.redis.smembers(self.codes_key))
            if not codes:
                return {}
            pipe = self.redis.pipeline(transaction=False)
            for code in codes:
                pipe.hgetall(self.record_key(code))
            rows = pipe.execute()
        except RedisError as e:
            raise PersistenceFailure("Failed to load catalog", details={"error": str(e)}) from e

        records: dict[str, CategoryRecord] = {}
        for code, data in zip(codes, rows):
            if not data:
                logger.warning("Catalog index points at missing record", code=code)
                continue
            records[code] = self._decode(data)
        return records

    # --- writes ---

    def upsert(self, row: FeedRow, embedding: Optional[list[float]] = None) -> CategoryRecord:
        """
        Insert or replace one record atomically.

        Args:
            row: Feed row with the new content
            embedding: Fresh vector, or None to keep the stored one
                (content-only update)

        Returns:
            The record as stored

        Raises:
            PersistenceFailure: Redis error, or no vector available for a new code
        """
        key = self.record_key(row.code)
        now = datetime.now(timezone.utc)

        try:
            created_raw, stored_embedding = self.redis.hmget(key, "created_at", "embedding")

            if embedding is None:
                if not stored_embedding:
                    raise PersistenceFailure(
                        "Cannot keep embedding of a record that has none",
                        details={"code": row.code},
                    )
                vector = json.loads(stored_embedding)
            else:
                vector = [float(x) for x in embedding]

            created_at = datetime.fromisoformat(created_raw) if created_raw else now
            record = CategoryRecord(
                **row.model_dump(),
                embedding=vector,
                created_at=created_at,
                updated_at=now,
            )

            mapping = self._encode(record, include_embedding=embedding is not None)
            pipe = self.redis.pipeline(transaction=True)
            pipe.hset(key, mapping=mapping)
            pipe.sadd(self.codes_key, row.code)
            pipe.incr(self.version_key)
            pipe.execute()
        except RedisError as e:
            raise PersistenceFailure("Failed to upsert catalog record", details={"code": row.code, "error": str(e)}) from e

        self._index = None
        logger.debug("Upserted catalog record", code=row.code, reembedded=embedding is not None)
        return record

    def delete(self, codes: Iterable[str]) -> int:
        """
        Remove records by code in one transaction.

        Returns:
            Number of records actually removed
        """
        codes = list(codes)
        if not codes:
            return 0
        try:
            pipe = self.redis.pipeline(transaction=True)
            for code in codes:
                pipe.delete(self.record_key(code))
            pipe.srem(self.codes_key, *codes)
            pipe.incr(self.version_key)
            results = pipe.execute()
        except RedisError as e:
            raise PersistenceFailure("Failed to delete catalog records", details={"count": len(codes), "error": str(e)}) from e

        self._index = None
        # Trailing results belong to srem and incr
        removed = sum(int(r) for r in results[:-2])
        logger.debug("Deleted catalog records", requested=len(codes), removed=removed)
        return removed

    # --- search ---

    async def search(
        self,
        query: str,
        top_k: int = 0,
        similarity_threshold: float = 0.0,
    ) -> list[SearchHit]:
        """
        Rank catalog entries by Euclidean distance to the query embedding.

        Args:
            query: Free text (an objection statement)
            top_k: Maximum hits; <= 0 means the store default
            similarity_threshold: Drop hits with 1 / (1 + distance) below this

        Returns:
            Hits ordered by ascending distance; [] for a blank query

        Raises:
            EmbeddingFailure: The query could not be embedded
            PersistenceFailure: The catalog could not be read
        """
        if not query or not query.strip():
            return []
        if top_k <= 0:
            top_k = self.default_top_k

        index = self._search_index()
        if not index.records:
            logger.warning("Catalog is empty, search returns no hits")
            return []

        query_vector = np.asarray(await self.embedder.embed(query), dtype=np.float64)
        dim = query_vector.shape[0]

        candidates, matrix = index.for_dim(dim)
        if len(candidates) < len(index.records):
            logger.warning(
                "Skipped catalog records with mismatched embedding size",
                skipped=len(index.records) - len(candidates),
                query_dim=dim,
            )
        if not candidates:
            return []

        distances = np.linalg.norm(matrix - query_vector, axis=1)
        order = np.argsort(distances, kind="stable")

        hits: list[SearchHit] = []
        for idx in order:
            distance = float(distances[idx])
            similarity = 1.0 / (1.0 + distance)
            if similarity < similarity_threshold:
                # Ascending distance: everything after is further away
                break
            hits.append(
                SearchHit(
                    record=candidates[idx].model_copy(update={"embedding": []}),
                    distance=distance,
                    similarity=similarity,
                )
            )
            if len(hits) >= top_k:
                break

        logger.debug("Catalog search", query_chars=len(query), hits=len(hits), top_k=top_k)
        return hits

    def _search_index(self) -> _SearchIndex:
        """Cached snapshot, reloaded when the version counter differs from the cached one."""
        try:
            version = self.redis.get(self.version_key)
        except RedisError as e:
            raise PersistenceFailure("Failed to read catalog version", details={"error": str(e)}) from e

        if self._index is not None and version is not None and self._index.version == version:
            return self._index

        self._index = _SearchIndex(version=version, records=list(self.load_all().values()))
        logger.debug("Catalog search index loaded", records=len(self._index.records), version=version)
        return self._index

    # --- (de)serialization ---

    @staticmethod
    def _encode(record: CategoryRecord, include_embedding: bool) -> dict[str, str]:
        mapping = {field: getattr(record, field) or "" for field in _TEXT_FIELDS}
        mapping["row_index"] = "" if record.row_index is None else str(record.row_index)
        mapping["created_at"] = record.created_at.isoformat() if record.created_at else ""
        mapping["updated_at"] = record.updated_at.isoformat() if record.updated_at else ""
        if include_embedding:
            mapping["embedding"] = json.dumps(record.embedding)
        return mapping

    @staticmethod
    def _decode(data: dict[str, str]) -> CategoryRecord:
        return CategoryRecord(
            code=data.get("code", ""),
            big_code=data.get("big_code", ""),
            big_name=data.get("big_name", ""),
            small_code=data.get("small_code", ""),
            small_title=data.get("small_title", ""),
            source_file=data.get("source_file") or None,
            row_index=int(data["row_index"]) if data.get("row_index") else None,
            embedding=json.loads(data["embedding"]) if data.get("embedding") else [],
            created_at=datetime.fromisoformat(data["created_at"]) if data.get("created_at") else None,
            updated_at=datetime.fromisoformat(data["updated_at"]) if data.get("updated_at") else None,
        )
