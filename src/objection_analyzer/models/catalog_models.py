"""
Data models for the category catalog and its synchronization.

FeedRow is what the external feed says; CategoryRecord is what the vector
store holds. The sync engine compares the two on the four content fields.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FeedRow(BaseModel):
    """One category row parsed from the external feed."""

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., min_length=1, description="Unique category code")
    big_code: str = Field(default="", description="Major (parent) category code")
    big_name: str = Field(default="", description="Major category name")
    small_code: str = Field(default="", description="Minor category code")
    small_title: str = Field(..., min_length=1, description="Minor category title (embedding text)")
    source_file: Optional[str] = Field(default=None, description="Feed file the row came from")
    row_index: Optional[int] = Field(default=None, description="1-based data row number within the file")

    def content_key(self) -> tuple[str, str, str, str]:
        """Fields whose change makes a stored record stale."""
        return (self.big_code, self.big_name, self.small_code, self.small_title)


class CategoryRecord(BaseModel):
    """Persisted catalog entry, unique by code."""

    code: str
    big_code: str = ""
    big_name: str = ""
    small_code: str = ""
    small_title: str
    source_file: Optional[str] = None
    row_index: Optional[int] = None
    embedding: list[float] = Field(default_factory=list, repr=False)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def content_key(self) -> tuple[str, str, str, str]:
        return (self.big_code, self.big_name, self.small_code, self.small_title)

    def differs_from(self, row: FeedRow) -> bool:
        return self.content_key() != row.content_key()


class SearchHit(BaseModel):
    """Nearest-neighbour result from the category vector store."""

    record: CategoryRecord
    distance: float = Field(..., ge=0.0, description="Euclidean distance to the query vector")
    similarity: float = Field(..., ge=0.0, le=1.0, description="1 / (1 + distance)")


class SyncOptions(BaseModel):
    """Knobs for a single catalog sync run."""

    force_refresh: bool = False
    delete_batch_size: int = Field(default=200, ge=1)
    report_sample_size: int = Field(default=10, ge=0)


class SyncReport(BaseModel):
    """Outcome of a catalog sync run."""

    inserted: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)
    embedded: int = 0
    upserted: int = 0
    removed: int = 0
    embedding_failures: list[str] = Field(default_factory=list)
    upsert_failures: list[str] = Field(default_factory=list)
    failed_delete_batches: int = 0
    skipped: bool = False
    skip_reason: str = ""
    duration_ms: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.inserted or self.updated or self.deleted)

    def summary(self, sample_size: int = 10) -> str:
        """Human-readable report: counts plus the first codes of each set."""
        if self.skipped:
            return f"catalog sync skipped: {self.skip_reason or 'no reason given'}"
        lines = [
            f"insert: {len(self.inserted)} {_sample(self.inserted, sample_size)}",
            f"update: {len(self.updated)} {_sample(self.updated, sample_size)}",
            f"delete: {len(self.deleted)} {_sample(self.deleted, sample_size)}",
            f"embedded: {self.embedded}, upserted: {self.upserted}, removed: {self.removed}",
        ]
        if self.embedding_failures or self.upsert_failures or self.failed_delete_batches:
            lines.append(
                f"failures: embedding={len(self.embedding_failures)} "
                f"upsert={len(self.upsert_failures)} "
                f"delete_batches={self.failed_delete_batches}"
            )
        return "\n".join(lines)


def _sample(codes: list[str], size: int) -> str:
    if not codes:
        return "[]"
    head = ", ".join(codes[:size])
    if len(codes) > size:
        return f"[{head}] (and {len(codes) - size} more)"
    return f"[{head}]"
