"""
Application configuration via pydantic-settings.
All config read from environment variables with sensible defaults for local dev.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class ConfigurationError(RuntimeError):
    """Raised at startup when a required endpoint or credential is missing."""


class Settings(BaseSettings):
    # App
    app_name: str = "shopsearch-api"
    app_version: str = "0.1.0"
    environment: str = Field(default="development", pattern=r"^(development|staging|production)$")
    debug: bool = False

    # CORS
    cors_origins: list[str] = Field(default=["http://localhost:3000"])

    # Sentry
    sentry_dsn: str = ""
    sentry_traces_sample_rate: float = Field(default=0.1, ge=0.0, le=1.0)

    # Qdrant
    qdrant_url: str = Field(default="http://localhost:6333")
    qdrant_api_key: str = ""
    products_collection: str = "products"

    # Search
    search_timeout_s: float = 5.0
    search_default_top: int = Field(default=1000, ge=1, le=1000)
    search_knn: int = Field(default=10, ge=1)

    # Anthropic (assisting agent for category/brand analysis)
    anthropic_api_key: str = ""
    agent_model: str = "claude-haiku-4-5-20251001"
    agent_max_tokens: int = 256
    agent_timeout_s: float = 3.0

    # Embedding
    # multilingual-e5 handles the zh-TW catalog; 384 dims
    embedding_model: str = "intfloat/multilingual-e5-small"
    embedding_dimensions: int = 384
    embedding_timeout_s: float = 10.0

    # Catalog / personas
    inventory_path: str = ""  # empty -> packaged data/product_inventory.json
    recent_action_capacity: int = Field(default=100, ge=1)

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}


settings = Settings()
