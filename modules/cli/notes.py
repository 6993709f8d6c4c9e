"""
Note Client.

Client-side flows for creating, inspecting, opening and revoking notes.
Encryption and decryption happen here; the backend only sees ciphertext.

Usage:
    async with APIClient(token=token) as api:
        notes = NoteClient(api)
        created = await notes.create("ABCD", ttl_minutes=5, view_once=True)
        print(created.link)

    async with APIClient() as api:
        plaintext = await NoteClient(api).open(link, verifier, subject_id)
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any
from urllib.parse import parse_qs, urlsplit

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from modules.backend.core.config import get_app_config
from modules.backend.core.exceptions import StorageError
from modules.backend.core.logging import get_logger, log_with_source
from modules.backend.core.resilience import log_retry
from modules.backend.core.utils import decode_base64, encode_base64, utc_now
from modules.cli.capability import (
    InvalidLinkError,
    compose_link,
    decrypt,
    encrypt,
    generate_key,
    parse_link,
    remaining,
)
from modules.cli.client import APIClient, raise_for_error

logger = get_logger(__name__)

NOTES_PATH = "/api/v1/notes"

# Create is never retried. Spending an attempt is retried only when the
# request provably did not commit: a rolled-back StorageError or a
# connection that was never established.
_retry_transient = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.2, max=2),
    retry=retry_if_exception_type((StorageError, httpx.TransportError)),
    before_sleep=log_retry,
    reraise=True,
)
_retry_uncommitted = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.2, max=2),
    retry=retry_if_exception_type((StorageError, httpx.ConnectError)),
    before_sleep=log_retry,
    reraise=True,
)


class IdentityVerificationError(Exception):
    """Raised when the viewer fails identity verification."""

    def __init__(self, attempts_remaining: int | None) -> None:
        self.attempts_remaining = attempts_remaining
        if attempts_remaining is None:
            message = "Identity verification failed"
        else:
            message = f"Identity verification failed, {attempts_remaining} attempt(s) left"
        super().__init__(message)


class IdentityVerifier(ABC):
    """Contract for the external identity check run before a note is decrypted."""

    @abstractmethod
    def verify(self, subject_id: str) -> bool:
        """Return True if the subject proved their identity."""
        ...


@dataclass
class CreatedNote:
    """Result of creating a note. The link is the only copy of the key."""

    note_id: str
    link: str
    expires_at: datetime


@dataclass
class NoteStatus:
    """Public state of a readable note."""

    note_id: str
    view_once: bool
    expires_at: datetime
    attempts_remaining: int | None
    time_left: timedelta


@dataclass
class _FetchedNote:
    ciphertext: bytes
    iv: bytes
    view_once: bool
    expires_at: datetime
    attempts_remaining: int | None


def note_id_from(link_or_id: str) -> str:
    """Accept either a full note link or a bare note id."""
    value = link_or_id.strip()
    if "?" not in value and "://" not in value:
        return value
    ids = parse_qs(urlsplit(value).query).get("id")
    if not ids or not ids[0]:
        raise InvalidLinkError("Link has no note id")
    return ids[0]


class NoteClient:
    """
    Note flows over the access protocol.

    Args:
        api: HTTP client; needs a bearer token for create and revoke
        link_origin: Origin for composed links; defaults to notes.yaml
        clock: Returns naive UTC now, used for countdowns
    """

    def __init__(
        self,
        api: APIClient,
        link_origin: str | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._api = api
        self._link_origin = link_origin or get_app_config().notes.link_origin
        self._clock = clock

    async def create(
        self,
        plaintext: str,
        ttl_minutes: float,
        view_once: bool = False,
        attempt_limit: int | None = None,
    ) -> CreatedNote:
        """
        Encrypt locally, store the ciphertext, and build the share link.

        Raises:
            ValidationError: If the backend rejects the policy
            AuthenticationError: If the client has no valid token
        """
        key = generate_key()
        ciphertext, iv = encrypt(plaintext, key)
        payload: dict[str, Any] = {
            "ciphertext": encode_base64(ciphertext),
            "iv": encode_base64(iv),
            "ttl_minutes": ttl_minutes,
            "view_once": view_once,
        }
        if attempt_limit is not None:
            payload["attempt_limit"] = attempt_limit

        response = await self._api.post(NOTES_PATH, json=payload)
        raise_for_error(response)
        data = response.json()["data"]

        log_with_source(
            logger, "cli", "info", "Note created",
            note_id=data["note_id"], view_once=view_once, attempt_limit=attempt_limit,
        )
        return CreatedNote(
            note_id=data["note_id"],
            link=compose_link(self._link_origin, data["note_id"], key),
            expires_at=datetime.fromisoformat(data["expires_at"]),
        )

    async def status(self, link_or_id: str) -> NoteStatus:
        """Fetch the note's policy state without verifying or consuming it."""
        note_id = note_id_from(link_or_id)
        note = await self._fetch(note_id)
        return NoteStatus(
            note_id=note_id,
            view_once=note.view_once,
            expires_at=note.expires_at,
            attempts_remaining=note.attempts_remaining,
            time_left=remaining(self._clock(), note.expires_at),
        )

    async def open(self, link: str, verifier: IdentityVerifier, subject_id: str) -> str:
        """
        Verify the viewer, decrypt the note and acknowledge the read.

        The plaintext is returned only after the backend acknowledged
        the consume, so a view-once note is never shown without being
        destroyed.

        Raises:
            InvalidLinkError: If the link has no id or key
            IdentityVerificationError: If verification fails (an attempt is spent)
            DecryptionError: If the key does not open the note
            NotFoundError, ExpiredError, AttemptsExhaustedError: Lifecycle gates
        """
        note_id, key = parse_link(link)
        note = await self._fetch(note_id)

        if not verifier.verify(subject_id):
            attempts_left = await self._record_failed_attempt(note_id)
            log_with_source(
                logger, "cli", "warning", "Identity verification failed",
                note_id=note_id, attempts_remaining=attempts_left,
            )
            raise IdentityVerificationError(attempts_left)

        plaintext = decrypt(note.ciphertext, note.iv, key)
        await self._consume(note_id)

        log_with_source(
            logger, "cli", "info", "Note opened",
            note_id=note_id, view_once=note.view_once,
        )
        return plaintext

    async def revoke(self, link_or_id: str) -> None:
        """Delete a note as its owner. Repeat calls succeed."""
        note_id = note_id_from(link_or_id)
        await self._delete(note_id)
        log_with_source(logger, "cli", "info", "Note revoked", note_id=note_id)

    @_retry_transient
    async def _fetch(self, note_id: str) -> _FetchedNote:
        response = await self._api.get(f"{NOTES_PATH}/{note_id}")
        raise_for_error(response)
        data = response.json()["data"]
        return _FetchedNote(
            ciphertext=decode_base64(data["ciphertext"]),
            iv=decode_base64(data["iv"]),
            view_once=data["view_once"],
            expires_at=datetime.fromisoformat(data["expires_at"]),
            attempts_remaining=data["attempts_remaining"],
        )

    @_retry_uncommitted
    async def _record_failed_attempt(self, note_id: str) -> int | None:
        response = await self._api.post(f"{NOTES_PATH}/{note_id}/attempts")
        raise_for_error(response)
        return response.json()["data"]["attempts_remaining"]

    @_retry_transient
    async def _consume(self, note_id: str) -> None:
        response = await self._api.post(f"{NOTES_PATH}/{note_id}/consume")
        raise_for_error(response)

    @_retry_transient
    async def _delete(self, note_id: str) -> None:
        response = await self._api.delete(f"{NOTES_PATH}/{note_id}")
        raise_for_error(response)
