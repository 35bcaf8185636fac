"""Tests for application configuration."""
import pytest
from pydantic import ValidationError

from core.config import Settings, get_settings

ENV_VARS = (
    "MONGODB_URI",
    "MONGODB_DATABASE",
    "MONGODB_TIMEOUT_MS",
    "ENCRYPTION_KEY_PATH",
    "CSFLE_DATA_KEY_ID",
    "CRYPT_SHARED_LIB_PATH",
    "KEY_VAULT_COLLECTION",
    "DATA_KEY_ALT_NAME",
    "OPENAI_API_KEY",
    "CORS_ORIGINS",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove any settings that may be set in the shell."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    """Tests for default values."""

    def test__defaults_without_environment(self, clean_env: None) -> None:
        """Every setting has a usable default, including the empty URI."""
        settings = Settings(_env_file=None)
        assert settings.mongodb_uri == ""
        assert settings.database_name == "mongodb-notes"
        assert settings.mongodb_timeout_ms == 10_000
        assert settings.encryption_key_path == "master-key.bin"
        assert settings.csfle_data_key_id == ""
        assert settings.crypt_shared_lib_path == ""
        assert settings.data_key_alt_name == "vaultNotesKey"
        assert settings.openai_api_key == ""

    def test__key_vault_namespace_uses_database_name(self, clean_env: None) -> None:
        """The key vault lives in the application database by default."""
        settings = Settings(_env_file=None, MONGODB_DATABASE="notes-test")
        assert settings.key_vault_namespace == "notes-test.encryption_keyVault"

    def test__key_vault_collection_override(self, clean_env: None) -> None:
        settings = Settings(_env_file=None, KEY_VAULT_COLLECTION="__keyVault")
        assert settings.key_vault_namespace == "mongodb-notes.__keyVault"


class TestEnvironment:
    """Tests for reading settings from environment variables."""

    def test__reads_encryption_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017")
        monkeypatch.setenv("ENCRYPTION_KEY_PATH", "/secrets/master-key.bin")
        monkeypatch.setenv("CSFLE_DATA_KEY_ID", "AAAAAAAAAAAAAAAAAAAAAA==")
        monkeypatch.setenv("MONGODB_TIMEOUT_MS", "2500")

        settings = Settings(_env_file=None)

        assert settings.mongodb_uri == "mongodb://localhost:27017"
        assert settings.encryption_key_path == "/secrets/master-key.bin"
        assert settings.csfle_data_key_id == "AAAAAAAAAAAAAAAAAAAAAA=="
        assert settings.mongodb_timeout_ms == 2500

    def test__get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()


class TestTimeoutValidation:
    """A deadline must always be in force."""

    @pytest.mark.parametrize("timeout", [0, -1])
    def test__non_positive_timeout_rejected(self, timeout: int) -> None:
        with pytest.raises(ValidationError, match="MONGODB_TIMEOUT_MS"):
            Settings(_env_file=None, MONGODB_TIMEOUT_MS=timeout)


class TestCorsOriginsParsing:
    """Tests for CORS origins parsing from environment variables."""

    def test_parse_multiple_origins_comma_separated(self) -> None:
        """Multiple comma-separated origins are parsed correctly."""
        settings = Settings(
            _env_file=None,
            CORS_ORIGINS="http://localhost:5173,https://example.com",
        )
        assert settings.cors_origins == [
            "http://localhost:5173",
            "https://example.com",
        ]

    def test_parse_origins_with_whitespace_and_trailing_comma(self) -> None:
        """Whitespace is stripped and empty entries are dropped."""
        settings = Settings(
            _env_file=None,
            CORS_ORIGINS="  http://localhost:5173 , https://example.com, ",
        )
        assert settings.cors_origins == [
            "http://localhost:5173",
            "https://example.com",
        ]

    def test_parse_empty_string(self) -> None:
        """Empty string results in empty list."""
        settings = Settings(_env_file=None, CORS_ORIGINS="")
        assert settings.cors_origins == []
