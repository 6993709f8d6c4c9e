"""
Core Utilities.

Shared utility functions used across the backend.
All modules should import utilities from this module.
"""

import base64
import binascii
from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-naive datetime.

    All datetime values in the application should be timezone-naive
    and assumed to be UTC. This ensures consistent behavior across
    the codebase and simplifies database storage.

    Returns:
        Current UTC time with tzinfo stripped
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def decode_base64(value: str) -> bytes:
    """
    Decode standard base64, rejecting anything that would not re-encode
    to the same text.

    Raises:
        ValueError: If the value is not canonical base64
    """
    try:
        decoded = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("not valid base64") from e
    if base64.b64encode(decoded).decode("ascii") != value:
        raise ValueError("not canonical base64")
    return decoded


def encode_base64(value: bytes) -> str:
    """Encode bytes as standard padded base64 text."""
    return base64.b64encode(value).decode("ascii")
