"""Persistence-layer exceptions."""

from typing import Any


class PersistenceFailure(Exception):
    """
    Raised when a Redis read or write fails.

    The case store logs and swallows it per write; the category store lets
    it propagate so the sync engine can skip the affected code or batch.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message
