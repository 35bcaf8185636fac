"""Shared utility functions for service layer."""
from datetime import UTC, datetime

from bson import ObjectId

from services.exceptions import InvalidIdError


def parse_object_id(value: str) -> ObjectId:
    """
    Convert a path identifier into an ObjectId.

    Raises:
        InvalidIdError: If value is not a 24-character hex string.
    """
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise InvalidIdError(str(value))
    return ObjectId(value)


def utc_now() -> datetime:
    """
    Return the current time truncated to millisecond precision.

    BSON dates only carry milliseconds; truncating up front keeps the value
    returned from create/update identical to what a later read returns.
    """
    now = datetime.now(UTC)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)
