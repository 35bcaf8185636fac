"""Shared exceptions for service layer operations."""


class InvalidIdError(ValueError):
    """Raised when a document identifier is not a well-formed ObjectId."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Invalid id: '{value}'")


class VaultUnavailableError(Exception):
    """
    Raised when the vault cannot serve requests because the encrypting connection is not ready.

    Distinct from "not found": the note may exist, but the vault is locked or
    misconfigured (missing master key, missing data key id, unreachable
    database). Surfaced to HTTP clients as 503.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)
