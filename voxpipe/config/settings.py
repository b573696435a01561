"""Application settings loaded from environment variables via pydantic-settings.

Values are read from (highest priority first):

    1. Environment variables, e.g. ``OPENAI_API_KEY=sk-abc123``
    2. A ``.env`` file in the working directory

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  Defaults apply
when neither source sets a value.  Pipeline tuning knobs (chunk sizes, sync
batch size, cost rate) live in ``config/config.yaml`` instead; see
:mod:`voxpipe.config.loader`.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """voxpipe application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Embeddings ===
    # Empty key = OpenAI not configured; main.py then falls back to Ollama.
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_embedding_model: str = ""
    ollama_base_url: str = "http://localhost:11434"

    # === Knowledge store ===
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "knowledge_documents"

    # === Relational storage ===
    storage_db_path: str = "data/voxpipe.db"

    # === Voice API (ElevenLabs) ===
    elevenlabs_base_url: str = "https://api.elevenlabs.io"
    voice_api_max_retries: int = 3
    voice_api_retry_delay: float = 1.0
    voice_api_timeout: float = 30.0

    # === Sync ===
    # Caller-level deadline around a whole sync run (HTTP and CLI).
    sync_timeout_seconds: float = 120.0

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def get_available_embedding_providers(self) -> list[str]:
        """Return embedding backends that have enough configuration to try."""
        providers: list[str] = []
        if self.openai_api_key:
            providers.append("openai")
        if self.ollama_base_url:
            providers.append("ollama")
        return providers
