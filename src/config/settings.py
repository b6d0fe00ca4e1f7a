"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ─────────────────────────────────────────────────
#
# Values are read from, in priority order:
#
#   1. Environment variables, e.g. OPENAI_API_KEY=sk-abc123
#   2. A .env file in the working directory (local development)
#   3. The defaults declared below
#
# Field ``primary_llm_openai_model_name`` maps to the env var
# ``PRIMARY_LLM_OPENAI_MODEL_NAME`` (case-insensitive).
#
# A Settings instance is built once in ``main.create_app`` (or by a CLI
# command) and handed to every component that needs configuration.
# Nothing reads settings from a module-level global.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """supportDesk application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Language models ===
    # Attempt 1 of every model call goes to the primary (OpenAI) model,
    # later attempts go to the fallback (Anthropic) model.
    openai_api_key: str = ""
    openai_base_url: str = ""
    anthropic_api_key: str = ""
    primary_llm_openai_model_name: str = "gpt-4o-mini"
    fallback_llm_anthropic_model_name: str = "claude-3-5-sonnet-20241022"
    llm_max_retries: int = Field(default=1, ge=0)
    llm_timeout_seconds: float = Field(default=60.0, gt=0)
    llm_max_tool_steps: int = Field(default=10, ge=1)

    # === Embeddings ===
    openai_embedding_model: str = "text-embedding-3-small"
    embedding_batch_size: int = Field(default=20, ge=1)
    embedding_concurrency: int = Field(default=1, ge=1)
    query_embedding_cache_size: int = 512
    query_embedding_cache_ttl: int = 3600

    # === Vector store ===
    # "chromadb" persists to disk; "memory" keeps vectors in process (tests,
    # demos, single-shot CLI runs).
    vector_store_backend: str = "chromadb"
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "supportdesk_embeddings"

    # === Local persistence ===
    document_db_path: str = "data/documents.db"
    conversation_db_path: str = "data/conversations.db"
    lead_db_path: str = "data/leads.db"

    # === Ingestion ===
    ingestion_workers: int = Field(default=2, ge=1)
    document_fetch_timeout_seconds: float = 30.0

    # === Ticketing (Freshdesk) ===
    freshdesk_domain: str = ""
    freshdesk_api_key: str = ""

    # === CRM (Zoho) ===
    zoho_client_id: str = ""
    zoho_client_secret: str = ""
    zoho_refresh_token: str = ""
    zoho_accounts_url: str = "https://accounts.zoho.in/oauth/v2/token"
    zoho_api_base_url: str = "https://www.zohoapis.in/crm/v2"

    # === Transaction handler links ===
    transaction_registration_url: str = "https://example.com/registration/"
    transaction_cancellation_url: str = "https://example.com/cancellation/"
    transaction_modification_url: str = "https://example.com/modification/"

    # === Assistant persona ===
    assistant_name: str = "Support Assistant"

    # === App config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"
    cors_allowed_origins: list[str] = Field(default_factory=lambda: ["*"])

    def get_available_llm_providers(self) -> list[str]:
        """Return the LLM provider names that have API keys configured."""
        providers: list[str] = []
        if self.openai_api_key:
            providers.append("openai")
        if self.anthropic_api_key:
            providers.append("anthropic")
        return providers

    def freshdesk_configured(self) -> bool:
        return bool(self.freshdesk_domain and self.freshdesk_api_key)

    def zoho_configured(self) -> bool:
        return bool(self.zoho_client_id and self.zoho_client_secret and self.zoho_refresh_token)
