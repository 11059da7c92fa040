"""Application settings loaded from environment variables via pydantic-settings.

Values come from (highest priority first) environment variables, then a
``.env`` file in the working directory, then the defaults below.  Field
``openai_api_key`` maps to env var ``OPENAI_API_KEY`` and so on.

Only values that were actually set in the environment override
``config/config.yaml`` (see :func:`lexrag.config.loader.load_config`);
the defaults here exist so the settings object is always complete.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """lexrag runtime settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Provider credentials ===
    # Empty string = "not configured"; the orchestrator skips such fallbacks.
    openai_api_key: str = ""
    openai_organization: str = ""
    openai_base_url: str = ""
    gemini_api_key: str = ""
    anthropic_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434"

    # === Provider chain ===
    ai_primary_provider: str = "openai"
    ai_fallback_providers: str = ""  # comma-separated, e.g. "gemini,local"
    health_check_interval_ms: int = 0
    budget_limit: float | None = None

    # === Vector store ===
    chroma_persist_dir: str = "./data/chromadb"
    chroma_collection: str = "lexrag_documents"
    chroma_host: str = ""  # set to use a Chroma server instead of local files
    chroma_port: int = 8000

    # === Ingestion ===
    chunk_size: int = 500
    chunk_overlap: int = 100

    # === App ===
    config_path: str = "config/config.yaml"
    app_env: str = "development"
    log_level: str = "INFO"

    def fallback_providers(self) -> list[str]:
        return [p.strip() for p in self.ai_fallback_providers.split(",") if p.strip()]
