"""
Hotel Concierge AI Configuration
Loads settings from environment variables
"""

import os
from typing import List
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application settings loaded from environment"""

    # LLM Configuration
    # If OPENAI_API_KEY is set we use OpenAI, otherwise a local Ollama server
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo")
    OPENAI_EMBEDDING_MODEL: str = os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small")
    LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.7"))
    LLM_MAX_TOKENS: int = int(os.getenv("LLM_MAX_TOKENS", "300"))

    # Ollama Configuration (local generation + embeddings)
    OLLAMA_BASE_URL: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    OLLAMA_MODEL: str = os.getenv("OLLAMA_MODEL", "llama3.2")
    OLLAMA_EMBEDDING_MODEL: str = os.getenv("OLLAMA_EMBEDDING_MODEL", "mxbai-embed-large")

    # Embedding cache (in-process LRU in front of the provider)
    EMBEDDING_CACHE_SIZE: int = int(os.getenv("EMBEDDING_CACHE_SIZE", "1000"))

    # Redis Configuration
    # Leave REDIS_HOST empty to run entirely in memory
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))
    REDIS_PASSWORD: str = os.getenv("REDIS_PASSWORD", "")

    # Response cache
    CACHE_TTL: int = int(os.getenv("CACHE_TTL", "3600"))
    CACHE_NAMESPACE: str = os.getenv("CACHE_NAMESPACE", "search")
    SEARCH_CACHE_NAMESPACE: str = os.getenv("SEARCH_CACHE_NAMESPACE", "hotels")
    CACHE_KEY_VERSION: int = int(os.getenv("CACHE_KEY_VERSION", "1"))
    CACHE_TIMEOUT_SECONDS: float = float(os.getenv("CACHE_TIMEOUT_SECONDS", "0.5"))
    MEMORY_CACHE_MAX_ENTRIES: int = int(os.getenv("MEMORY_CACHE_MAX_ENTRIES", "1000"))

    # Retrieval
    TOP_K: int = int(os.getenv("TOP_K", "5"))
    RETRIEVAL_CANDIDATE_MULTIPLIER: int = int(os.getenv("RETRIEVAL_CANDIDATE_MULTIPLIER", "4"))
    CATALOG_PATH: str = os.getenv("CATALOG_PATH", os.path.join(_PROJECT_ROOT, "data", "sample_hotels.json"))
    CATALOG_PERSIST: bool = _env_bool("CATALOG_PERSIST", "true")

    # Latency budgets per intent (seconds)
    QUICK_BUDGET_SECONDS: float = float(os.getenv("QUICK_BUDGET_SECONDS", "0.5"))
    SEARCH_BUDGET_SECONDS: float = float(os.getenv("SEARCH_BUDGET_SECONDS", "8"))
    GENERAL_BUDGET_SECONDS: float = float(os.getenv("GENERAL_BUDGET_SECONDS", "8"))
    MAX_QUERY_LENGTH: int = int(os.getenv("MAX_QUERY_LENGTH", "1000"))

    # Sessions
    SESSION_MAX_TURNS: int = int(os.getenv("SESSION_MAX_TURNS", "6"))
    SESSION_IDLE_TTL_SECONDS: int = int(os.getenv("SESSION_IDLE_TTL_SECONDS", "1800"))
    # Per call; a slower session store is skipped for that request
    SESSION_TIMEOUT_SECONDS: float = float(os.getenv("SESSION_TIMEOUT_SECONDS", "0.1"))

    # CMS webhook / reindex
    WEBHOOK_SIGNING_SECRET: str = os.getenv("WEBHOOK_SIGNING_SECRET", "")
    REINDEX_SHARED_SECRET: str = os.getenv("REINDEX_SHARED_SECRET", "")
    REINDEX_JOB_HISTORY: int = int(os.getenv("REINDEX_JOB_HISTORY", "100"))

    # API Configuration
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))
    API_ENV: str = os.getenv("API_ENV", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS Configuration
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")

    @property
    def cors_origins_list(self) -> List[str]:
        """Get CORS origins as a list"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def redis_enabled(self) -> bool:
        return bool(self.REDIS_HOST)

    @property
    def use_openai(self) -> bool:
        """OpenAI when a key is configured, Ollama otherwise"""
        return bool(self.OPENAI_API_KEY)

    @property
    def is_production(self) -> bool:
        return self.API_ENV.lower() == "production"

    def budget_for(self, intent: str) -> float:
        """
        Get the latency budget for an intent

        Args:
            intent: Intent label (QUICK, HOTEL_SEARCH, GENERAL)

        Returns:
            Budget in seconds
        """
        if intent == "QUICK":
            return self.QUICK_BUDGET_SECONDS
        if intent == "HOTEL_SEARCH":
            return self.SEARCH_BUDGET_SECONDS
        return self.GENERAL_BUDGET_SECONDS


# Global settings instance
settings = Settings()
