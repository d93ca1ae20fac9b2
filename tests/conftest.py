"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration tests.
"""

from pathlib import Path

import pytest

from objection_analyzer.config import Settings


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with safe defaults for local testing.

    Override specific settings in individual tests as needed:
        def test_something(test_settings):
            test_settings.RAG_TOP_K = 3
    """
    return Settings(
        # === Application ===
        APP_NAME="Call Objection Analyzer (Test)",
        APP_VERSION="0.1.0",
        DEBUG=True,
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",

        # === Ollama ===
        OLLAMA_BASE_URL="http://localhost:11434",
        OLLAMA_MODEL="qwen2.5:7b",
        OLLAMA_EMBEDDING_MODEL="nomic-embed-text",
        OLLAMA_TIMEOUT=30,
        LLM_CONNECTION_RETRIES=1,

        # === Retrieval ===
        RAG_TOP_K=5,
        RAG_SIMILARITY_THRESHOLD=0.0,

        # === Redis ===
        REDIS_URL="redis://localhost:6379/0",
        REDIS_MAX_CONNECTIONS=10,
        CATALOG_KEY_PREFIX="test:catalog",
        CASES_KEY_PREFIX="test:cases",

        # === Feature Flags ===
        ENABLE_ASYNC_API=True,
        PROMETHEUS_ENABLED=False,  # Disable metrics in tests unless explicitly needed
    )


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_feed_path(fixtures_dir: Path) -> Path:
    """Spreadsheet export with BOM, ="..." wrapped codes and Chinese headers."""
    return fixtures_dir / "catalog_feed.csv"


@pytest.fixture
def sample_transcript(fixtures_dir: Path) -> str:
    """Short customer / agent call transcript."""
    return (fixtures_dir / "sample_transcript.txt").read_text(encoding="utf-8")


@pytest.fixture
def write_feed(tmp_path: Path):
    """Factory fixture writing a CSV feed file into a temp directory.

    Usage:
        def test_something(write_feed):
            path = write_feed("a.csv", [["code", ...], ["0101", ...]])
    """
    def _write(name: str, rows: list[list[str]], encoding: str = "utf-8-sig") -> Path:
        path = tmp_path / name
        lines = [",".join(cells) for cells in rows]
        path.write_text("\n".join(lines) + "\n", encoding=encoding)
        return path

    return _write
