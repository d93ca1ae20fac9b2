"""
FastAPI dependency injection for the objection analyzer.

Provides singleton instances of expensive resources (provider client,
prompt builder, stores) and the pipeline wired from them. Tests replace any
of these through ``app.dependency_overrides``.
"""

from functools import lru_cache

from redis import Redis

from objection_analyzer.catalog.sync import CatalogSyncEngine
from objection_analyzer.config import Settings, settings
from objection_analyzer.llm.ollama_client import OllamaClient
from objection_analyzer.llm.prompt_builder import PromptBuilder
from objection_analyzer.models.catalog_models import SyncOptions
from objection_analyzer.persistence.case_store import CaseStore
from objection_analyzer.persistence.category_store import CategoryVectorStore
from objection_analyzer.persistence.redis_client import RedisClient
from objection_analyzer.validation.pipeline import ValidationPipeline, build_pipeline


@lru_cache()
def get_settings() -> Settings:
    """
    Get settings singleton.

    Returns:
        Settings instance
    """
    return settings


@lru_cache()
def get_llm_client() -> OllamaClient:
    """
    Get singleton provider client with connection pooling.

    The same client serves judgment calls and embeddings.

    Returns:
        OllamaClient instance
    """
    config = get_settings()
    return OllamaClient(
        base_url=config.OLLAMA_BASE_URL,
        model=config.OLLAMA_MODEL,
        embedding_model=config.OLLAMA_EMBEDDING_MODEL,
        timeout=config.OLLAMA_TIMEOUT,
        max_retries=config.LLM_CONNECTION_RETRIES,
        temperature=config.LLM_TEMPERATURE,
        top_p=config.LLM_TOP_P,
        max_tokens=config.LLM_MAX_TOKENS,
    )


@lru_cache()
def get_prompt_builder() -> PromptBuilder:
    """Get singleton prompt builder (templates are loaded once)."""
    return PromptBuilder(transcript_truncation_limit=get_settings().TRANSCRIPT_TRUNCATION_LIMIT)


def get_redis() -> Redis:
    """Redis client bound to the shared connection pool."""
    return RedisClient.get_client(get_settings())


@lru_cache()
def get_category_store() -> CategoryVectorStore:
    config = get_settings()
    return CategoryVectorStore(
        get_redis(),
        get_llm_client(),
        key_prefix=config.CATALOG_KEY_PREFIX,
        default_top_k=config.RAG_TOP_K,
    )


@lru_cache()
def get_case_store() -> CaseStore:
    return CaseStore(get_redis(), key_prefix=get_settings().CASES_KEY_PREFIX)


def get_sync_options() -> SyncOptions:
    """Default catalog sync options from settings."""
    config = get_settings()
    return SyncOptions(
        force_refresh=config.CATALOG_FORCE_REFRESH,
        delete_batch_size=config.CATALOG_DELETE_BATCH_SIZE,
        report_sample_size=config.CATALOG_REPORT_SAMPLE_SIZE,
    )


@lru_cache()
def get_sync_engine() -> CatalogSyncEngine:
    """
    Get singleton catalog sync engine.

    Returns:
        CatalogSyncEngine writing to the shared category store
    """
    return CatalogSyncEngine(get_category_store(), get_llm_client(), get_sync_options())


@lru_cache()
def get_pipeline() -> ValidationPipeline:
    """
    Get singleton validation pipeline.

    Returns:
        ValidationPipeline wired from the shared client, stores and prompt builder
    """
    return build_pipeline(
        get_settings(),
        get_llm_client(),
        get_category_store(),
        get_case_store(),
        prompt_builder=get_prompt_builder(),
    )
