"""
Semantic-Search-Service - Application Configuration

Patterns Applied:
- Pydantic Settings with SettingsConfigDict
- Environment variable prefix SSS_ for Semantic-Search-Service

Model artifacts are read from ``model_dir / model_name``; nothing is ever
downloaded at runtime.
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Files that must exist before a model load is attempted
DEFAULT_REQUIRED_MODEL_FILES: list[str] = [
    "config.json",
    "tokenizer.json",
    "tokenizer_config.json",
    "special_tokens_map.json",
    "model.safetensors",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables with SSS_ prefix.
    Example: SSS_PORT=8080, SSS_MODEL_DIR=/opt/models
    """

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 3000

    # Application metadata
    service_name: str = "semantic-search-service"
    version: str = "0.1.0"
    environment: str = "development"

    # Logging configuration
    log_level: str = "INFO"
    log_json: bool = True

    # Embedding model configuration
    model_dir: Path = Path("./models")
    model_name: str = "sentence-transformers/all-MiniLM-L6-v2"
    required_model_files: list[str] = DEFAULT_REQUIRED_MODEL_FILES.copy()
    model_max_length: int = 256
    model_device: str | None = None

    # Model lifecycle policy
    load_timeout_seconds: float = 30.0
    load_max_attempts: int = 3
    load_retry_delay_seconds: float = 5.0
    self_test_text: str = "semantic search self-test"
    eager_model_init: bool = True

    # Search configuration
    search_top_k: int = 5
    db_path: Path = Path("./data/search.db")

    # Tracing configuration
    tracing_enabled: bool = True
    tracing_console_export: bool = False

    model_config = SettingsConfigDict(
        env_prefix="SSS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=("settings_",),  # allow model_* field names
    )

    @property
    def model_path(self) -> Path:
        """Directory holding the model artifacts."""
        return self.model_dir / self.model_name


def get_settings() -> Settings:
    """Get application settings instance.

    Returns:
        Settings instance with values from environment
    """
    return Settings()
