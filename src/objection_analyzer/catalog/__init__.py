"""
Category catalog synchronization.

- feed.py: reads the business-maintained CSV exports
- sync.py: diffs the feed against the vector store and applies the changes
"""

from objection_analyzer.catalog.feed import (
    clean_cell,
    discover_feed_files,
    load_feed,
    normalize_header,
    read_feed_file,
)
from objection_analyzer.catalog.sync import (
    CatalogDiff,
    CatalogSyncEngine,
    batched,
    compute_diff,
    sync_catalog,
)

__all__ = [
    "clean_cell",
    "normalize_header",
    "discover_feed_files",
    "read_feed_file",
    "load_feed",
    "CatalogDiff",
    "CatalogSyncEngine",
    "compute_diff",
    "batched",
    "sync_catalog",
]
