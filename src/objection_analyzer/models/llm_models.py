"""
LLM-specific data models for the request/response cycle.

These are internal to the llm layer and describe the raw exchange with the
inference server. Business records live in pipeline_models.
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ConfigDict


class LLMGenerationRequest(BaseModel):
    """Standardized generation request handed to any LLM client."""

    model_config = ConfigDict(frozen=True)

    prompt: str = Field(..., description="User prompt")
    system: Optional[str] = Field(default=None, description="System prompt, sent separately")
    model: str = Field(..., description="Model name/identifier (e.g., 'qwen2.5:7b')")
    temperature: float = Field(default=0.0, ge=0.0, le=2.0, description="Sampling temperature")
    max_tokens: int = Field(default=2048, ge=1, le=8192, description="Maximum tokens to generate")
    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="Nucleus sampling parameter")
    seed: Optional[int] = Field(default=None, description="Random seed for reproducibility")
    json_mode: bool = Field(
        default=False,
        description="Ask the server to constrain output to JSON (Ollama format='json')"
    )


class LLMGenerationResponse(BaseModel):
    """Raw generated text plus metadata for logging."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(..., description="Generated text")
    model_version: str = Field(..., description="Model that actually answered")
    finish_reason: str = Field(..., description="'stop', 'incomplete', ...")
    prompt_tokens: Optional[int] = Field(default=None)
    completion_tokens: Optional[int] = Field(default=None)
    latency_ms: int = Field(..., ge=0, description="Generation latency in milliseconds")
    created_at: Optional[str] = Field(default=None, description="ISO timestamp from server")
    raw_metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def usage_tokens(self) -> Optional[int]:
        if self.prompt_tokens is None or self.completion_tokens is None:
            return None
        return self.prompt_tokens + self.completion_tokens
