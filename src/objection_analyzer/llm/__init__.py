"""
Judgment and embedding provider abstraction.

Components:
- BaseLLMClient / BaseEmbeddingClient: abstract provider capabilities
- OllamaClient: implementation of both against an Ollama server
- PromptBuilder: renders the Jinja2 prompt templates
- text_utils: transcript normalization and truncation
- exceptions: provider exceptions
"""

from objection_analyzer.llm.base_client import BaseEmbeddingClient, BaseLLMClient
from objection_analyzer.llm.ollama_client import OllamaClient
from objection_analyzer.llm.prompt_builder import PromptBuilder
from objection_analyzer.llm.exceptions import (
    EmbeddingFailure,
    LLMClientError,
    LLMConnectionError,
    LLMGenerationError,
    LLMModelNotAvailableError,
    LLMTimeoutError,
)

__all__ = [
    "BaseLLMClient",
    "BaseEmbeddingClient",
    "OllamaClient",
    "PromptBuilder",
    "LLMClientError",
    "LLMConnectionError",
    "LLMGenerationError",
    "LLMTimeoutError",
    "LLMModelNotAvailableError",
    "EmbeddingFailure",
]
