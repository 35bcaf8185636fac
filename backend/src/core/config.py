"""Application configuration using pydantic-settings."""
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # MongoDB. An empty URI is allowed here so the app can be imported without a
    # database; the plain connection refuses to start with it.
    mongodb_uri: str = Field(default="", validation_alias="MONGODB_URI")
    database_name: str = Field(default="mongodb-notes", validation_alias="MONGODB_DATABASE")
    mongodb_timeout_ms: int = Field(default=10_000, validation_alias="MONGODB_TIMEOUT_MS")

    # Client-side field level encryption
    encryption_key_path: str = Field(
        default="master-key.bin",
        validation_alias="ENCRYPTION_KEY_PATH",
    )
    csfle_data_key_id: str = Field(default="", validation_alias="CSFLE_DATA_KEY_ID")
    crypt_shared_lib_path: str = Field(default="", validation_alias="CRYPT_SHARED_LIB_PATH")
    key_vault_collection: str = Field(
        default="encryption_keyVault",
        validation_alias="KEY_VAULT_COLLECTION",
    )
    data_key_alt_name: str = Field(default="vaultNotesKey", validation_alias="DATA_KEY_ALT_NAME")

    # Embeddings - optional, semantic search degrades to empty results without a key
    openai_api_key: str = Field(default="", validation_alias="OPENAI_API_KEY")
    embedding_model: str = Field(
        default="text-embedding-3-small",
        validation_alias="EMBEDDING_MODEL",
    )

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:5173,tauri://localhost,https://tauri.localhost",
        validation_alias="CORS_ORIGINS",
    )

    # Field length limits
    max_title_length: int = Field(default=500, validation_alias="MAX_TITLE_LENGTH")
    max_content_length: int = Field(default=2_000_000, validation_alias="MAX_CONTENT_LENGTH")

    @model_validator(mode="after")
    def validate_timeout(self) -> "Settings":
        """Reject a non-positive operation timeout, which would disable the deadline."""
        if self.mongodb_timeout_ms <= 0:
            raise ValueError("MONGODB_TIMEOUT_MS must be a positive number of milliseconds")
        return self

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @property
    def key_vault_namespace(self) -> str:
        """Get the key vault namespace, e.g. 'mongodb-notes.encryption_keyVault'."""
        return f"{self.database_name}.{self.key_vault_collection}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
