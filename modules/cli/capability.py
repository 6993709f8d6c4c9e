"""
Client-Side Capability Key.

The note key is created, used and kept on the client. The server only
ever receives ciphertext and IV; the key travels to the recipient in
the URL fragment, which browsers and HTTP clients never send.

Link format:
    <origin>/view?id=<note_id>#key=<key>

Encryption is AES-256-GCM with a fresh 96-bit nonce per note, so a
wrong key or any tampering with ciphertext or IV fails authentication
instead of producing garbage plaintext.
"""

import base64
import binascii
import os
from datetime import datetime, timedelta
from urllib.parse import parse_qs, urlencode, urlsplit

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

KEY_BYTES = 32
NONCE_BYTES = 12
VIEW_PATH = "/view"


class DecryptionError(Exception):
    """Raised when ciphertext cannot be opened with the given key."""


class InvalidLinkError(ValueError):
    """Raised when a note link lacks an id or a well-formed key."""


def generate_key() -> bytes:
    """Generate a fresh 256-bit note key."""
    return AESGCM.generate_key(bit_length=KEY_BYTES * 8)


def encrypt(plaintext: str, key: bytes) -> tuple[bytes, bytes]:
    """
    Encrypt a note body.

    Returns:
        Tuple of (ciphertext, iv)
    """
    iv = os.urandom(NONCE_BYTES)
    ciphertext = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    return ciphertext, iv


def decrypt(ciphertext: bytes, iv: bytes, key: bytes) -> str:
    """
    Decrypt a note body.

    Raises:
        DecryptionError: On wrong key, tampered data or malformed input
    """
    try:
        plaintext = AESGCM(key).decrypt(iv, ciphertext, None)
        return plaintext.decode("utf-8")
    except (InvalidTag, ValueError) as e:
        raise DecryptionError("Note could not be decrypted with this key") from e


def export_key(key: bytes) -> str:
    """Encode a key for the link fragment (URL-safe base64, no padding)."""
    return base64.urlsafe_b64encode(key).rstrip(b"=").decode("ascii")


def import_key(text: str) -> bytes:
    """
    Decode a key taken from a link fragment.

    Raises:
        InvalidLinkError: If the text is not a 256-bit URL-safe base64 key
    """
    padded = text + "=" * (-len(text) % 4)
    try:
        key = base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError, ValueError) as e:
        raise InvalidLinkError("Malformed note key") from e
    if len(key) != KEY_BYTES or export_key(key) != text:
        raise InvalidLinkError("Malformed note key")
    return key


def compose_link(origin: str, note_id: str, key: bytes) -> str:
    """Build the shareable link. The key is placed only in the fragment."""
    query = urlencode({"id": note_id})
    return f"{origin.rstrip('/')}{VIEW_PATH}?{query}#key={export_key(key)}"


def parse_link(link: str) -> tuple[str, bytes]:
    """
    Split a link into its note id and key.

    Raises:
        InvalidLinkError: If the id or key is missing or malformed
    """
    parts = urlsplit(link.strip())
    note_ids = parse_qs(parts.query).get("id")
    if not note_ids or not note_ids[0]:
        raise InvalidLinkError("Link has no note id")

    keys = parse_qs(parts.fragment).get("key")
    if not keys or not keys[0]:
        raise InvalidLinkError("Link has no key")

    return note_ids[0], import_key(keys[0])


def remaining(now: datetime, expires_at: datetime) -> timedelta:
    """Time left before expiry, never negative."""
    return max(expires_at - now, timedelta(0))


def format_remaining(delta: timedelta) -> str:
    """Render a countdown as e.g. '1d 02:03:04' or '00:04:59'."""
    total = int(delta.total_seconds())
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)
    clock = f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{days}d {clock}" if days else clock
