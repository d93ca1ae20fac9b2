"""
Ollama client implementation for judgment and embedding calls.

Communicates with the Ollama API using httpx AsyncClient. Supports:
- Text generation with separate system prompt (/api/generate)
- Embeddings (/api/embed)
- Connection pooling and retry on network errors
- Health checks and model introspection
"""

import asyncio
import json
import time
from typing import Dict, Any, Optional
import httpx
import structlog

from objection_analyzer.llm.base_client import BaseEmbeddingClient, BaseLLMClient
from objection_analyzer.llm.exceptions import (
    EmbeddingFailure,
    LLMClientError,
    LLMConnectionError,
    LLMGenerationError,
    LLMTimeoutError,
    LLMModelNotAvailableError,
)
from objection_analyzer.models.llm_models import LLMGenerationRequest, LLMGenerationResponse
from objection_analyzer.monitoring.metrics import (
    embedding_requests_total,
    llm_latency_seconds,
    llm_tokens_total,
)


logger = structlog.get_logger(__name__)


class OllamaClient(BaseLLMClient, BaseEmbeddingClient):
    """
    Ollama-specific client for both judgment and embedding capabilities.

    API Endpoints:
    - POST /api/generate: Generate completion
    - POST /api/embed: Embed text
    - GET /api/tags: List available models
    - POST /api/show: Get model details
    """

    def __init__(
        self,
        base_url: str = "http://ollama:11434",
        model: str = "qwen2.5:7b",
        embedding_model: str = "nomic-embed-text",
        timeout: int = 120,
        max_retries: int = 2,
        temperature: float = 0.0,
        top_p: Optional[float] = 1.0,
        max_tokens: int = 2048,
        connection_limits: Optional[httpx.Limits] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Ollama client.

        Args:
            base_url: Ollama server URL
            model: Judgment model
            embedding_model: Embedding model
            timeout: Request timeout in seconds
            max_retries: Connection-level retries for network errors
            temperature: Judgment sampling temperature
            top_p: Judgment nucleus sampling
            max_tokens: Judgment generation cap
            connection_limits: httpx connection pool limits (default: 10 max connections)
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        super().__init__(
            base_url,
            model,
            timeout=timeout,
            max_retries=max_retries,
            temperature=temperature,
            top_p=top_p,
            max_tokens=max_tokens,
        )
        self.embedding_model = embedding_model

        if connection_limits is None:
            connection_limits = httpx.Limits(
                max_keepalive_connections=5,
                max_connections=10,
                keepalive_expiry=30.0
            )

        self._client: Optional[httpx.AsyncClient] = None
        self._connection_limits = connection_limits
        self._transport = transport

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                limits=self._connection_limits,
                follow_redirects=True,
                transport=self._transport,
            )
            logger.debug("Created new httpx AsyncClient")
        return self._client

    async def _post_with_retry(self, path: str, payload: dict, model: str) -> dict:
        """
        POST with connection-level retries and exponential backoff.

        Timeouts, transport errors and 5xx responses are retried; 404 maps to
        LLMModelNotAvailableError; other 4xx fail immediately.
        """
        last_error: Optional[LLMClientError] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                client = await self._get_client()
                response = await client.post(path, json=payload, timeout=self.timeout)
                response.raise_for_status()
                return response.json()

            except httpx.TimeoutException as e:
                logger.warning(
                    "Ollama request timeout",
                    path=path,
                    attempt=attempt,
                    max_retries=self.max_retries,
                    error=str(e),
                )
                last_error = LLMTimeoutError(
                    f"Request timeout after {self.timeout}s",
                    details={"attempt": attempt, "timeout": self.timeout, "path": path}
                )

            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                error_text = e.response.text
                logger.error(
                    "Ollama HTTP error",
                    path=path,
                    status_code=status_code,
                    error_text=error_text,
                    attempt=attempt,
                )
                if status_code == 404:
                    raise LLMModelNotAvailableError(
                        f"Model not found: {model}",
                        details={"model": model, "status": status_code}
                    )
                if status_code < 500:
                    raise LLMGenerationError(
                        f"Ollama client error: {status_code}",
                        details={"status": status_code, "error": error_text}
                    )
                last_error = LLMGenerationError(
                    f"Ollama server error: {status_code}",
                    details={"status": status_code, "error": error_text}
                )

            except httpx.TransportError as e:
                # Connect, read, write and protocol errors (e.g. server disconnected)
                logger.warning(
                    "Ollama network error",
                    path=path,
                    attempt=attempt,
                    max_retries=self.max_retries,
                    error=str(e),
                )
                last_error = LLMConnectionError(
                    f"Network error: {str(e)}",
                    details={"attempt": attempt, "error_type": type(e).__name__}
                )

            except json.JSONDecodeError as e:
                raise LLMGenerationError(
                    "Invalid JSON response from Ollama",
                    details={"parse_error": str(e), "path": path}
                )

            if attempt < self.max_retries:
                backoff = 2 ** attempt
                logger.info("Retrying Ollama request", path=path, backoff_seconds=backoff)
                await asyncio.sleep(backoff)

        if last_error:
            raise last_error
        raise LLMGenerationError("Request failed after all retries", details={"path": path})

    async def generate(self, request: LLMGenerationRequest) -> LLMGenerationResponse:
        """
        Generate completion using POST /api/generate.

        Payload:
        {
            "model": "qwen2.5:7b",
            "prompt": "...",
            "system": "...",
            "stream": false,
            "options": {"temperature": 0.0, "num_predict": 2048, "top_p": 1.0}
        }
        """
        start_time = time.time()

        payload: dict[str, Any] = {
            "model": request.model,
            "prompt": request.prompt,
            "stream": False,
            "options": {
                "temperature": request.temperature,
                "num_predict": request.max_tokens,
            }
        }
        if request.system:
            payload["system"] = request.system
        if request.top_p is not None:
            payload["options"]["top_p"] = request.top_p
        if request.seed is not None:
            payload["options"]["seed"] = request.seed
        if request.json_mode:
            payload["format"] = "json"

        logger.info(
            "Sending generation request to Ollama",
            model=request.model,
            prompt_length=len(request.prompt),
            temperature=request.temperature,
            max_tokens=request.max_tokens,
        )

        try:
            response_data = await self._post_with_retry("/api/generate", payload, request.model)
        except LLMClientError:
            llm_latency_seconds.labels(model=request.model, success="false").observe(time.time() - start_time)
            raise

        latency_ms = int((time.time() - start_time) * 1000)
        content = response_data.get("response", "")
        if not content:
            raise LLMGenerationError(
                "Empty response from Ollama",
                details={"done_reason": response_data.get("done_reason")}
            )

        model_version = response_data.get("model", request.model)
        finish_reason = "stop" if response_data.get("done") else "incomplete"
        prompt_tokens = response_data.get("prompt_eval_count")
        completion_tokens = response_data.get("eval_count")

        logger.info(
            "Ollama generation successful",
            model=model_version,
            latency_ms=latency_ms,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            finish_reason=finish_reason,
        )

        llm_latency_seconds.labels(model=model_version, success="true").observe(latency_ms / 1000.0)
        if prompt_tokens:
            llm_tokens_total.labels(model=model_version, token_type="prompt").inc(prompt_tokens)
        if completion_tokens:
            llm_tokens_total.labels(model=model_version, token_type="completion").inc(completion_tokens)

        return LLMGenerationResponse(
            content=content,
            model_version=model_version,
            finish_reason=finish_reason,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            latency_ms=latency_ms,
            created_at=response_data.get("created_at"),
            raw_metadata={
                "total_duration": response_data.get("total_duration"),
                "load_duration": response_data.get("load_duration"),
                "eval_duration": response_data.get("eval_duration"),
            }
        )

    async def embed(self, text: str) -> list[float]:
        """
        Embed one text via POST /api/embed.

        Payload: {"model": "nomic-embed-text", "input": "..."}
        Response: {"model": "...", "embeddings": [[0.1, ...]]}

        Raises:
            EmbeddingFailure: Any transport error or an empty/malformed vector
        """
        payload = {"model": self.embedding_model, "input": text}
        try:
            data = await self._post_with_retry("/api/embed", payload, self.embedding_model)
            vector = self._parse_vector(data, text)
        except EmbeddingFailure:
            embedding_requests_total.labels(outcome="failure").inc()
            raise
        except LLMClientError as e:
            embedding_requests_total.labels(outcome="failure").inc()
            raise EmbeddingFailure(
                f"Embedding request failed: {e.message}",
                details={"model": self.embedding_model, **e.details}
            ) from e

        embedding_requests_total.labels(outcome="success").inc()
        return vector

    def _parse_vector(self, data: Any, text: str) -> list[float]:
        embeddings = data.get("embeddings") if isinstance(data, dict) else None
        vector = embeddings[0] if isinstance(embeddings, list) and embeddings else None
        if not isinstance(vector, list) or not vector:
            raise EmbeddingFailure(
                "Empty or malformed embedding returned",
                details={"model": self.embedding_model, "text_chars": len(text)}
            )
        try:
            return [float(x) for x in vector]
        except (TypeError, ValueError) as e:
            raise EmbeddingFailure(
                "Embedding contains non-numeric values",
                details={"model": self.embedding_model, "error": str(e)}
            ) from e

    async def health_check(self) -> bool:
        """Check Ollama server health via GET /api/tags."""
        try:
            client = await self._get_client()
            response = await client.get("/api/tags", timeout=5.0)
            response.raise_for_status()
            logger.debug("Ollama health check passed")
            return True
        except Exception as e:
            logger.warning("Ollama health check failed", error=str(e))
            return False

    async def get_model_info(self, model_name: str) -> Dict[str, Any]:
        """Get model information via POST /api/show."""
        try:
            client = await self._get_client()
            response = await client.post(
                "/api/show",
                json={"model": model_name},
                timeout=10.0
            )
            response.raise_for_status()

            data = response.json()
            logger.debug("Retrieved model info", model=model_name, info=data.get("details"))
            return data

        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise LLMModelNotAvailableError(
                    f"Model not found: {model_name}",
                    details={"model": model_name}
                )
            raise LLMConnectionError(
                f"Failed to get model info: {e}",
                details={"model": model_name, "status": e.response.status_code}
            )
        except httpx.HTTPError as e:
            raise LLMConnectionError(
                f"Error getting model info: {str(e)}",
                details={"model": model_name}
            )

    async def list_models(self) -> list[str]:
        """List all pulled models via GET /api/tags."""
        try:
            client = await self._get_client()
            response = await client.get("/api/tags", timeout=10.0)
            response.raise_for_status()

            data = response.json()
            models = [m["name"] for m in data.get("models", [])]
            logger.debug("Listed available models", count=len(models), models=models)
            return models

        except httpx.HTTPError as e:
            logger.error("Failed to list models", error=str(e))
            raise LLMConnectionError(
                f"Failed to list models: {str(e)}",
                details={"error": str(e)}
            )

    async def close(self):
        """Close the HTTP client connection."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            logger.debug("Closed Ollama client connection")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
