"""Storage and configuration errors raised by the database layer."""
from collections.abc import Iterator
from contextlib import contextmanager

from pymongo import errors as mongo_errors


class ConfigurationError(Exception):
    """Raised when required database or encryption configuration is missing or invalid."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class EncryptionNotConfiguredError(ConfigurationError):
    """Raised when the encrypting connection is missing one or more required settings."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(
            f"Client-side encryption is not configured. Missing: {', '.join(missing)}",
        )


class KeyUnavailableError(ConfigurationError):
    """Raised when the master key cannot be read from its configured location."""


class UnknownDataKeyError(ConfigurationError):
    """Raised when the encryption schema references a data key absent from the key vault."""

    def __init__(self, key_ids: list[str]) -> None:
        self.key_ids = key_ids
        super().__init__(
            f"Encryption schema references data keys missing from the key vault: "
            f"{', '.join(key_ids)}",
        )


class NotConnectedError(Exception):
    """Raised when a connection handle is requested before connect() succeeded."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"The {name} connection is not established. Call connect() first.")


class DuplicateAltNameError(Exception):
    """Raised when a data key with the same alternate name already exists."""

    def __init__(self, alt_name: str) -> None:
        self.alt_name = alt_name
        super().__init__(f"A data key with alternate name '{alt_name}' already exists")


class StorageError(Exception):
    """Raised when the storage engine rejects an operation or cannot be reached."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class StorageTimeoutError(StorageError):
    """Raised when a storage operation exceeds the configured deadline."""


@contextmanager
def storage_errors() -> Iterator[None]:
    """
    Translate driver exceptions into the application's storage error types.

    PyMongo flags deadline expiry (timeoutMS, server selection, network timeouts)
    via ``PyMongoError.timeout``; those become StorageTimeoutError. Driver
    configuration errors (bad URI, missing encryption support) become
    ConfigurationError. Everything else becomes StorageError.
    """
    try:
        yield
    except mongo_errors.ConfigurationError as e:
        raise ConfigurationError(str(e)) from e
    except mongo_errors.PyMongoError as e:
        if e.timeout:
            raise StorageTimeoutError(str(e)) from e
        raise StorageError(str(e)) from e
