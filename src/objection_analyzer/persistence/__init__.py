"""
Redis persistence layer.

- redis_client.py: shared Redis connection pool
- category_store.py: category catalog with vector search
- case_store.py: append-only success / failure case lists

Storage Strategy:
- Catalog records stored as hashes, indexed by a set of codes
- Embeddings stored alongside each record as a JSON array
- Cases stored as JSON entries in two Redis lists
"""

from objection_analyzer.persistence.redis_client import RedisClient
from objection_analyzer.persistence.category_store import CategoryVectorStore
from objection_analyzer.persistence.case_store import CaseStore
from objection_analyzer.persistence.exceptions import PersistenceFailure

__all__ = [
    "RedisClient",
    "CategoryVectorStore",
    "CaseStore",
    "PersistenceFailure",
]
