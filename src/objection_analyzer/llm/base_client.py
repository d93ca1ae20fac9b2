"""
Abstract base clients for judgment and embedding providers.

The pipeline only ever needs two capabilities: "send a prompt, get text
back" and "turn text into a vector". Everything provider-specific lives in
the concrete subclasses, which lets tests swap in deterministic fakes.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional
import structlog

from objection_analyzer.models.llm_models import LLMGenerationRequest, LLMGenerationResponse


logger = structlog.get_logger(__name__)


class BaseLLMClient(ABC):
    """
    Abstract base class for judgment (text generation) clients.

    Responsibilities:
    - Send generation requests to the inference server
    - Parse responses into LLMGenerationResponse
    - Handle connection errors and timeouts (connection-level retries)
    - Provide health check and model info

    Does NOT handle:
    - Prompt construction (PromptBuilder)
    - Repairing or interpreting the output (OutputNormalizer, stage judges)
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        timeout: int = 60,
        max_retries: int = 2,
        temperature: float = 0.0,
        top_p: Optional[float] = None,
        max_tokens: int = 2048,
    ):
        """
        Initialize base client.

        Args:
            base_url: Base URL of the inference server (e.g., http://ollama:11434)
            model: Judgment model name
            timeout: Request timeout in seconds
            max_retries: Connection-level retries for network errors
            temperature: Sampling temperature used by judge()
            top_p: Nucleus sampling parameter used by judge()
            max_tokens: Generation cap used by judge()
        """
        self.base_url = base_url.rstrip('/')
        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries
        self.temperature = temperature
        self.top_p = top_p
        self.max_tokens = max_tokens

        logger.info(
            "Initialized LLM client",
            client_class=self.__class__.__name__,
            base_url=self.base_url,
            model=model,
            timeout=timeout,
            max_retries=max_retries,
        )

    @abstractmethod
    async def generate(self, request: LLMGenerationRequest) -> LLMGenerationResponse:
        """
        Generate a completion.

        Raises:
            LLMConnectionError: Network/timeout errors
            LLMGenerationError: Server-side generation errors
            LLMModelNotAvailableError: Model not found
        """

    async def judge(self, prompt: str, system: Optional[str] = None) -> str:
        """
        Run one judgment call with the client's deterministic defaults.

        Args:
            prompt: User prompt
            system: Optional system prompt

        Returns:
            Raw generated text (may need repair)
        """
        request = LLMGenerationRequest(
            prompt=prompt,
            system=system,
            model=self.model,
            temperature=self.temperature,
            top_p=self.top_p,
            max_tokens=self.max_tokens,
        )
        response = await self.generate(request)
        return response.content

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the inference server is reachable.

        Must not raise - return False on error.
        """

    @abstractmethod
    async def get_model_info(self, model_name: str) -> Dict[str, Any]:
        """Return server-side metadata for a model."""

    async def close(self):
        """Release persistent connections. Default implementation does nothing."""
        logger.debug("Closing LLM client", client_class=self.__class__.__name__)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"base_url={self.base_url}, "
            f"model={self.model}, "
            f"timeout={self.timeout}s)"
        )


class BaseEmbeddingClient(ABC):
    """Text -> fixed-length vector. Failures raise EmbeddingFailure."""

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Embed a single text."""
