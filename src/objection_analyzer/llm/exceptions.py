"""
Custom exceptions for the LLM client layer.

Judgment and embedding failures are caught at the smallest unit of work
(one objection, one catalog row) so a single bad call never aborts a
transcript or a sync run.
"""


class LLMClientError(Exception):
    """
    Base exception for all LLM client errors.

    All provider-specific exceptions inherit from this so callers can catch
    any inference failure with a single except clause.
    """
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class LLMConnectionError(LLMClientError):
    """
    Raised when unable to connect to the inference server.

    Includes network errors, DNS failures and timeouts. Triggers
    connection-level retries with backoff inside the client.
    """
    pass


class LLMTimeoutError(LLMConnectionError):
    """Raised when a request exceeds the configured timeout."""
    pass


class LLMGenerationError(LLMClientError):
    """
    Raised when the server returns an error during generation.

    Examples: empty response, 4xx/5xx status, malformed response body.
    """
    pass


class LLMModelNotAvailableError(LLMGenerationError):
    """Raised when the requested model is not pulled on the server."""
    pass


class EmbeddingFailure(LLMClientError):
    """
    Raised when the embedding provider cannot vectorize a text.

    The catalog sync skips the affected code; retrieval returns no hits.
    """
    pass
