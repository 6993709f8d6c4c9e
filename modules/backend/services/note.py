"""
Note Service.

The note lifecycle engine. Decides whether a note may be read, spends
verification attempts, destroys view-once notes and handles owner
revocation. All durable state lives in the store; the engine keeps
nothing between calls.

State machine:
    Active  -- fetch / failed attempt with attempts left / consume
               of a reusable note --------------------------> Active
    Active  -- consume of a view-once note / owner delete -> Deleted
    Active  -- last attempt spent -------------------------> Exhausted
    Active  -- read after expires_at ----------------------> Expired (computed)

Deleted is terminal. Exhausted notes stay gated but are not deleted.
"""

import math
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from modules.backend.core.exceptions import (
    AttemptsExhaustedError,
    ExpiredError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from modules.backend.core.security import generate_note_id
from modules.backend.core.utils import decode_base64, utc_now
from modules.backend.models.note import Note
from modules.backend.repositories.note import NoteRepository
from modules.backend.schemas.note import NoteCreate
from modules.backend.services.base import BaseService

NOT_FOUND_MESSAGE = "Note not found or deleted"


class NoteService(BaseService):
    """
    Service for note lifecycle rules.

    Args:
        session: Request-scoped database session
        clock: Returns the current naive UTC time; injectable for tests
        store_timeout: Seconds allowed per database operation
        max_ttl_minutes: Upper bound for a note's lifetime, None for no bound
        max_content_bytes: Upper bound for decoded ciphertext, None for no bound
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Callable[[], datetime] = utc_now,
        store_timeout: float | None = None,
        max_ttl_minutes: float | None = None,
        max_content_bytes: int | None = None,
    ) -> None:
        super().__init__(session, store_timeout=store_timeout)
        self.repo = NoteRepository(session)
        self._clock = clock
        self._max_ttl_minutes = max_ttl_minutes
        self._max_content_bytes = max_content_bytes

    async def create_note(self, data: NoteCreate, owner_id: str) -> Note:
        """
        Create a new note.

        Args:
            data: Encrypted payload and lifecycle policy
            owner_id: Account reference of the creator

        Returns:
            Created note

        Raises:
            ValidationError: If the payload or policy is invalid
            ConflictError: If the generated id already exists
            StorageError: If the store fails or times out
        """
        self._validate_required(
            {"ciphertext": data.ciphertext, "iv": data.iv, "owner_id": owner_id},
            ["ciphertext", "iv", "owner_id"],
        )
        ciphertext = self._decode_field("ciphertext", data.ciphertext)
        iv = self._decode_field("iv", data.iv)

        if self._max_content_bytes is not None and len(ciphertext) > self._max_content_bytes:
            raise ValidationError(
                "Note content too large",
                details={"ciphertext": f"Maximum size is {self._max_content_bytes} bytes"},
            )

        self._validate_ttl(data.ttl_minutes)

        if data.attempt_limit is not None and data.attempt_limit < 1:
            raise ValidationError(
                "Invalid attempt limit",
                details={"attempt_limit": "Must be at least 1"},
            )

        created_at = self._clock()
        try:
            expires_at = created_at + timedelta(minutes=data.ttl_minutes)
        except OverflowError:
            raise ValidationError(
                "Invalid lifetime",
                details={"ttl_minutes": "Lifetime is out of range"},
            )
        if expires_at <= created_at:
            raise ValidationError(
                "Invalid lifetime",
                details={"ttl_minutes": "Lifetime rounds to zero"},
            )

        note = Note(
            id=generate_note_id(),
            owner_id=owner_id,
            ciphertext=ciphertext,
            iv=iv,
            created_at=created_at,
            expires_at=expires_at,
            view_once=data.view_once,
            attempt_limit=data.attempt_limit,
            attempts_remaining=data.attempt_limit or 0,
            is_deleted=False,
        )

        await self._execute_db_operation("create_note", self.repo.add(note))

        self._log_operation(
            "Note created",
            note_id=note.id,
            view_once=note.view_once,
            attempt_limit=note.attempt_limit,
            expires_at=note.expires_at.isoformat(),
        )
        return note

    async def fetch_note(self, note_id: str) -> Note:
        """
        Get a readable note. Read-only; never spends an attempt.

        Raises:
            NotFoundError: If the note is absent or deleted
            ExpiredError: If the current time is past expires_at
            AttemptsExhaustedError: If a limited note has no attempts left
        """
        note = await self._load(note_id)
        if note is None or note.is_deleted:
            raise NotFoundError(NOT_FOUND_MESSAGE)
        self._check_readable(note)
        return note

    async def record_failed_attempt(self, note_id: str) -> int | None:
        """
        Spend one identity-verification attempt.

        Returns:
            Attempts left after this one, or None for unlimited notes

        Raises:
            NotFoundError: If the note is absent or deleted
            ExpiredError: If the note has expired
            AttemptsExhaustedError: If no attempts were left to spend
        """
        note = await self.fetch_note(note_id)
        if not note.has_attempt_limit:
            self._log_debug("Failed attempt on unlimited note", note_id=note_id)
            return None

        remaining = await self._execute_db_operation(
            "record_failed_attempt", self.repo.decrement_attempts(note_id),
        )
        if remaining is None:
            raise AttemptsExhaustedError()

        self._log_operation(
            "Failed verification attempt recorded",
            note_id=note_id,
            attempts_remaining=remaining,
        )
        return remaining

    async def consume_note(self, note_id: str) -> None:
        """
        Mark a successful read. Destroys view-once notes.

        Consuming a deleted or never-stored note is a no-op, so a retried
        consume after a lost acknowledgement succeeds and the answer does
        not reveal whether the id ever existed.

        Raises:
            ExpiredError: If the note has expired
            AttemptsExhaustedError: If a limited note has no attempts left
        """
        note = await self._load(note_id)
        if note is None or note.is_deleted:
            self._log_debug("Consume on missing note ignored", note_id=note_id)
            return

        self._check_readable(note)
        if not note.view_once:
            return

        destroyed = await self._execute_db_operation(
            "consume_note", self.repo.soft_delete(note_id),
        )
        if destroyed:
            self._log_operation("View-once note destroyed", note_id=note_id)

    async def delete_note(self, note_id: str, requester_id: str) -> None:
        """
        Revoke a note. Only its owner may revoke a live note.

        Acknowledged whenever no live note exists, whoever asks, so
        deleted and never-stored ids are indistinguishable.

        Raises:
            ForbiddenError: If the note is live and the requester is not the owner
        """
        note = await self._load(note_id)
        if note is None or note.is_deleted:
            self._log_debug("Delete on missing note ignored", note_id=note_id)
            return
        if note.owner_id != requester_id:
            self._logger.warning(
                "Note delete refused",
                extra={"note_id": note_id, "reason": "not_owner"},
            )
            raise ForbiddenError("Only the note owner can delete it")

        deleted = await self._execute_db_operation(
            "delete_note", self.repo.soft_delete(note_id),
        )
        if deleted:
            self._log_operation("Note deleted by owner", note_id=note_id)

    async def purge_expired(self, retention_days: int) -> int:
        """
        Hard-delete notes that expired more than retention_days ago.

        Housekeeping only; lifecycle rules never depend on it.

        Returns:
            Number of notes removed
        """
        cutoff = self._clock() - timedelta(days=retention_days)
        purged = await self._execute_db_operation(
            "purge_expired", self.repo.purge_expired(cutoff),
        )
        self._log_operation(
            "Expired notes purged",
            purged=purged,
            cutoff=cutoff.isoformat(),
        )
        return purged

    async def _load(self, note_id: str) -> Note | None:
        return await self._execute_db_operation(
            "load_note", self.repo.get_by_id_or_none(note_id),
        )

    def _check_readable(self, note: Note) -> None:
        # The expiry instant itself is still readable.
        if self._clock() > note.expires_at:
            raise ExpiredError()
        if note.has_attempt_limit and note.attempts_remaining <= 0:
            raise AttemptsExhaustedError()

    def _validate_ttl(self, ttl_minutes: float) -> None:
        if not math.isfinite(ttl_minutes) or ttl_minutes <= 0:
            raise ValidationError(
                "Invalid lifetime",
                details={"ttl_minutes": "Must be a positive number of minutes"},
            )
        if self._max_ttl_minutes is not None and ttl_minutes > self._max_ttl_minutes:
            raise ValidationError(
                "Invalid lifetime",
                details={"ttl_minutes": f"Maximum is {self._max_ttl_minutes:g} minutes"},
            )

    @staticmethod
    def _decode_field(name: str, value: str) -> bytes:
        try:
            decoded = decode_base64(value)
        except ValueError:
            raise ValidationError(
                "Malformed encrypted payload",
                details={name: "Must be standard base64"},
            )
        if not decoded:
            raise ValidationError(
                "Malformed encrypted payload",
                details={name: "Must not be empty"},
            )
        return decoded
