"""
Configuration settings for the Call Objection Analyzer.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development (see .env.example).
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "Call Objection Analyzer"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # === Ollama Configuration ===
    OLLAMA_BASE_URL: str = "http://ollama:11434"
    OLLAMA_MODEL: str = "qwen2.5:7b"  # Judgment model
    OLLAMA_EMBEDDING_MODEL: str = "nomic-embed-text"
    OLLAMA_TIMEOUT: int = 120  # seconds
    LLM_CONNECTION_RETRIES: int = 2

    # === LLM Generation Parameters ===
    LLM_TEMPERATURE: float = 0.0  # Judgments must be reproducible
    LLM_TOP_P: float = 1.0
    LLM_MAX_TOKENS: int = 2048

    # === Input Processing ===
    TRANSCRIPT_TRUNCATION_LIMIT: int = 12000  # chars

    # === Retrieval ===
    RAG_TOP_K: int = 8
    RAG_SIMILARITY_THRESHOLD: float = 0.1

    # === Category Catalog ===
    CATALOG_FEED_DIR: str = "data/catalog"
    CATALOG_FEED_PATTERN: str = "*.csv"
    CATALOG_FORCE_REFRESH: bool = False  # Re-embed every shared code on next sync
    CATALOG_DELETE_BATCH_SIZE: int = 200
    CATALOG_REPORT_SAMPLE_SIZE: int = 10
    CATALOG_SYNC_ON_STARTUP: bool = False
    CATALOG_REFRESH_INTERVAL_SECONDS: int = 3600

    # === Redis & Celery ===
    REDIS_URL: str = "redis://redis:6379/0"
    REDIS_MAX_CONNECTIONS: int = 50  # Connection pool size
    CATALOG_KEY_PREFIX: str = "catalog"
    CASES_KEY_PREFIX: str = "cases"
    CELERY_BROKER_URL: str = "redis://redis:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/1"
    CELERY_TASK_TIME_LIMIT: int = 900  # seconds, a transcript makes several judgment calls
    CELERY_WORKER_CONCURRENCY: int = 4

    # === Monitoring ===
    PROMETHEUS_ENABLED: bool = True

    # === Feature Flags ===
    ENABLE_ASYNC_API: bool = True  # Enable Celery-based endpoints


# Global settings instance
settings = Settings()
