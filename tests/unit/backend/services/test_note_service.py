"""
Unit Tests for Note Service.

Tests the note lifecycle rules with a mocked repository and a fixed clock.
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest

from modules.backend.core.exceptions import (
    AttemptsExhaustedError,
    ConflictError,
    ExpiredError,
    ForbiddenError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from modules.backend.schemas.note import NoteCreate
from modules.backend.services.note import NoteService


def _create_request(**overrides) -> NoteCreate:
    values = {"ciphertext": "3q2+7w==", "iv": "AAECAwQFBgcICQoL", "ttl_minutes": 5}
    values.update(overrides)
    return NoteCreate(**values)


@pytest.fixture
def service(clock):
    """NoteService with a mocked session, the fixed clock and policy ceilings."""
    return NoteService(
        AsyncMock(),
        clock=clock,
        max_ttl_minutes=60,
        max_content_bytes=16,
    )


class TestNoteServiceCreate:
    """Tests for note creation."""

    @pytest.mark.asyncio
    async def test_create_note_success(self, service, clock):
        """Should store decoded bytes with the computed expiry."""
        with patch.object(service.repo, "add", side_effect=lambda note: note) as mock_add:
            note = await service.create_note(_create_request(), owner_id="alice")

        mock_add.assert_awaited_once()
        assert note.owner_id == "alice"
        assert note.ciphertext == b"\xde\xad\xbe\xef"
        assert note.iv == bytes(range(12))
        assert note.created_at == clock.now
        assert note.expires_at == clock.now + timedelta(minutes=5)
        assert note.view_once is False
        assert note.attempt_limit is None
        assert note.is_deleted is False

    @pytest.mark.asyncio
    async def test_create_note_generates_distinct_ids(self, service):
        """Each note gets its own unguessable id."""
        with patch.object(service.repo, "add", side_effect=lambda note: note):
            first = await service.create_note(_create_request(), owner_id="alice")
            second = await service.create_note(_create_request(), owner_id="alice")

        assert first.id != second.id
        assert len(first.id) >= 16

    @pytest.mark.asyncio
    async def test_create_note_with_attempt_limit(self, service):
        """Attempts remaining starts at the limit."""
        with patch.object(service.repo, "add", side_effect=lambda note: note):
            note = await service.create_note(
                _create_request(attempt_limit=3, view_once=True), owner_id="alice",
            )

        assert note.attempt_limit == 3
        assert note.attempts_remaining == 3
        assert note.view_once is True

    @pytest.mark.asyncio
    async def test_create_note_fractional_ttl(self, service, clock):
        """Fractional minutes are honoured."""
        with patch.object(service.repo, "add", side_effect=lambda note: note):
            note = await service.create_note(_create_request(ttl_minutes=0.5), owner_id="alice")

        assert note.expires_at == clock.now + timedelta(seconds=30)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ttl", [0, -1, float("inf"), float("nan")])
    async def test_create_note_rejects_invalid_ttl(self, service, ttl):
        """Non-positive or non-finite lifetimes are rejected."""
        with patch.object(service.repo, "add") as mock_add:
            with pytest.raises(ValidationError) as exc_info:
                await service.create_note(_create_request(ttl_minutes=ttl), owner_id="alice")

        assert "ttl_minutes" in exc_info.value.details
        mock_add.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_note_rejects_ttl_above_ceiling(self, service):
        """Lifetimes above the configured maximum are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            await service.create_note(_create_request(ttl_minutes=61), owner_id="alice")

        assert "60" in exc_info.value.details["ttl_minutes"]

    @pytest.mark.asyncio
    async def test_create_note_without_ceiling_rejects_overflow(self, clock):
        """A lifetime beyond the datetime range is a validation error."""
        service = NoteService(AsyncMock(), clock=clock)

        with pytest.raises(ValidationError):
            await service.create_note(_create_request(ttl_minutes=1e15), owner_id="alice")

    @pytest.mark.asyncio
    async def test_create_note_rejects_ttl_rounding_to_zero(self, service):
        """A lifetime below one microsecond would expire at creation."""
        with pytest.raises(ValidationError):
            await service.create_note(_create_request(ttl_minutes=1e-12), owner_id="alice")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, -2])
    async def test_create_note_rejects_attempt_limit_below_one(self, service, limit):
        """An attempt limit must allow at least one verification."""
        with pytest.raises(ValidationError) as exc_info:
            await service.create_note(_create_request(attempt_limit=limit), owner_id="alice")

        assert "attempt_limit" in exc_info.value.details

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field,value", [
        ("ciphertext", "not base64!"),
        ("ciphertext", "3q2+7w"),
        ("iv", "AAECAwQFBgcICQoL\n"),
        ("iv", "3q2-7w=="),
    ])
    async def test_create_note_rejects_malformed_base64(self, service, field, value):
        """Only canonical standard base64 is accepted."""
        with pytest.raises(ValidationError) as exc_info:
            await service.create_note(_create_request(**{field: value}), owner_id="alice")

        assert field in exc_info.value.details

    @pytest.mark.asyncio
    async def test_create_note_rejects_empty_ciphertext(self, service):
        """Empty payloads are missing fields."""
        with pytest.raises(ValidationError) as exc_info:
            await service.create_note(_create_request(ciphertext=""), owner_id="alice")

        assert exc_info.value.details == {"missing_fields": ["ciphertext"]}

    @pytest.mark.asyncio
    async def test_create_note_rejects_oversized_content(self, service):
        """Decoded ciphertext above the size ceiling is rejected."""
        too_big = "A" * 24  # 18 bytes decoded

        with pytest.raises(ValidationError) as exc_info:
            await service.create_note(_create_request(ciphertext=too_big), owner_id="alice")

        assert "ciphertext" in exc_info.value.details

    @pytest.mark.asyncio
    async def test_create_note_requires_owner(self, service):
        """A note always has an owner."""
        with pytest.raises(ValidationError):
            await service.create_note(_create_request(), owner_id="  ")

    @pytest.mark.asyncio
    async def test_create_note_id_collision_is_conflict(self, service):
        """A duplicate id surfaces as ConflictError, never an overwrite."""
        from sqlalchemy.exc import IntegrityError

        error = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: notes.id"))
        with patch.object(service.repo, "add", side_effect=error):
            with pytest.raises(ConflictError):
                await service.create_note(_create_request(), owner_id="alice")


class TestNoteServiceFetch:
    """Tests for reading notes."""

    @pytest.mark.asyncio
    async def test_fetch_note_success(self, service, make_note):
        """A live note is returned unchanged."""
        note = make_note()

        with patch.object(service.repo, "get_by_id_or_none", return_value=note):
            result = await service.fetch_note("note-123")

        assert result is note

    @pytest.mark.asyncio
    async def test_fetch_note_not_found(self, service):
        """Unknown ids are NotFound."""
        with patch.object(service.repo, "get_by_id_or_none", return_value=None):
            with pytest.raises(NotFoundError):
                await service.fetch_note("missing")

    @pytest.mark.asyncio
    async def test_fetch_deleted_note_is_not_found(self, service, make_note):
        """Deleted notes are indistinguishable from absent ones."""
        note = make_note(is_deleted=True)

        with patch.object(service.repo, "get_by_id_or_none", return_value=note):
            with pytest.raises(NotFoundError) as exc_info:
                await service.fetch_note("note-123")

        assert exc_info.value.message == "Note not found or deleted"

    @pytest.mark.asyncio
    async def test_fetch_at_expiry_instant_is_readable(self, service, clock, make_note):
        """The expiry instant itself is still within the lifetime."""
        note = make_note(created_at=clock.now)
        clock.advance(minutes=5)

        with patch.object(service.repo, "get_by_id_or_none", return_value=note):
            assert await service.fetch_note("note-123") is note

    @pytest.mark.asyncio
    async def test_fetch_after_expiry_is_expired(self, service, clock, make_note):
        """One tick past expires_at the note is gone."""
        note = make_note(created_at=clock.now)
        clock.advance(minutes=5, microseconds=1)

        with patch.object(service.repo, "get_by_id_or_none", return_value=note):
            with pytest.raises(ExpiredError):
                await service.fetch_note("note-123")

    @pytest.mark.asyncio
    async def test_fetch_exhausted_note(self, service, make_note):
        """A limited note with no attempts left is gated."""
        note = make_note(attempt_limit=3, attempts_remaining=0)

        with patch.object(service.repo, "get_by_id_or_none", return_value=note):
            with pytest.raises(AttemptsExhaustedError):
                await service.fetch_note("note-123")

    @pytest.mark.asyncio
    async def test_fetch_expiry_takes_precedence_over_exhaustion(self, service, clock, make_note):
        """Expired and exhausted reports as expired."""
        note = make_note(created_at=clock.now, attempt_limit=1, attempts_remaining=0)
        clock.advance(hours=1)

        with patch.object(service.repo, "get_by_id_or_none", return_value=note):
            with pytest.raises(ExpiredError):
                await service.fetch_note("note-123")

    @pytest.mark.asyncio
    async def test_fetch_store_timeout_is_storage_error(self, clock):
        """A store that does not answer in time is a retryable StorageError."""
        import asyncio

        service = NoteService(AsyncMock(), clock=clock, store_timeout=0.01)

        async def slow(note_id):
            await asyncio.sleep(1)

        with patch.object(service.repo, "get_by_id_or_none", side_effect=slow):
            with pytest.raises(StorageError):
                await service.fetch_note("note-123")


class TestNoteServiceAttempts:
    """Tests for spending verification attempts."""

    @pytest.mark.asyncio
    async def test_record_attempt_decrements(self, service, make_note):
        """The counter drops by one per failure."""
        note = make_note(attempt_limit=3)

        with patch.object(service.repo, "get_by_id_or_none", return_value=note), \
             patch.object(service.repo, "decrement_attempts", return_value=2) as mock_dec:
            remaining = await service.record_failed_attempt("note-123")

        assert remaining == 2
        mock_dec.assert_awaited_once_with("note-123")

    @pytest.mark.asyncio
    async def test_record_attempt_unlimited_note(self, service, make_note):
        """Unlimited notes never spend anything."""
        note = make_note()

        with patch.object(service.repo, "get_by_id_or_none", return_value=note), \
             patch.object(service.repo, "decrement_attempts") as mock_dec:
            remaining = await service.record_failed_attempt("note-123")

        assert remaining is None
        mock_dec.assert_not_called()

    @pytest.mark.asyncio
    async def test_record_attempt_lost_race(self, service, make_note):
        """When a concurrent caller spent the last attempt, this one is refused."""
        note = make_note(attempt_limit=1, attempts_remaining=1)

        with patch.object(service.repo, "get_by_id_or_none", return_value=note), \
             patch.object(service.repo, "decrement_attempts", return_value=None):
            with pytest.raises(AttemptsExhaustedError):
                await service.record_failed_attempt("note-123")

    @pytest.mark.asyncio
    async def test_record_attempt_on_exhausted_note(self, service, make_note):
        """An exhausted note refuses further attempts without touching the counter."""
        note = make_note(attempt_limit=2, attempts_remaining=0)

        with patch.object(service.repo, "get_by_id_or_none", return_value=note), \
             patch.object(service.repo, "decrement_attempts") as mock_dec:
            with pytest.raises(AttemptsExhaustedError):
                await service.record_failed_attempt("note-123")

        mock_dec.assert_not_called()

    @pytest.mark.asyncio
    async def test_record_attempt_on_expired_note(self, service, clock, make_note):
        """Expired notes cannot be attempted."""
        note = make_note(created_at=clock.now, attempt_limit=3)
        clock.advance(minutes=10)

        with patch.object(service.repo, "get_by_id_or_none", return_value=note):
            with pytest.raises(ExpiredError):
                await service.record_failed_attempt("note-123")


class TestNoteServiceConsume:
    """Tests for acknowledging reads."""

    @pytest.mark.asyncio
    async def test_consume_view_once_deletes(self, service, make_note):
        """A view-once note is destroyed by its first consume."""
        note = make_note(view_once=True)

        with patch.object(service.repo, "get_by_id_or_none", return_value=note), \
             patch.object(service.repo, "soft_delete", return_value=True) as mock_delete:
            await service.consume_note("note-123")

        mock_delete.assert_awaited_once_with("note-123")

    @pytest.mark.asyncio
    async def test_consume_reusable_note_keeps_it(self, service, make_note):
        """Notes without view-once survive any number of reads."""
        note = make_note(view_once=False)

        with patch.object(service.repo, "get_by_id_or_none", return_value=note), \
             patch.object(service.repo, "soft_delete") as mock_delete:
            await service.consume_note("note-123")
            await service.consume_note("note-123")

        mock_delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_consume_deleted_note_is_noop(self, service, make_note):
        """A repeated consume after destruction succeeds silently."""
        note = make_note(view_once=True, is_deleted=True)

        with patch.object(service.repo, "get_by_id_or_none", return_value=note), \
             patch.object(service.repo, "soft_delete") as mock_delete:
            await service.consume_note("note-123")

        mock_delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_consume_unknown_note_is_noop(self, service):
        """An id that never existed is answered like a deleted one."""
        with patch.object(service.repo, "get_by_id_or_none", return_value=None), \
             patch.object(service.repo, "soft_delete") as mock_delete:
            await service.consume_note("missing")

        mock_delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_consume_expired_note(self, service, clock, make_note):
        """Expired notes cannot be consumed."""
        note = make_note(created_at=clock.now, view_once=True)
        clock.advance(minutes=6)

        with patch.object(service.repo, "get_by_id_or_none", return_value=note), \
             patch.object(service.repo, "soft_delete") as mock_delete:
            with pytest.raises(ExpiredError):
                await service.consume_note("note-123")

        mock_delete.assert_not_called()


class TestNoteServiceDelete:
    """Tests for owner revocation."""

    @pytest.mark.asyncio
    async def test_delete_by_owner(self, service, make_note):
        """The owner can delete their note."""
        note = make_note(owner_id="alice")

        with patch.object(service.repo, "get_by_id_or_none", return_value=note), \
             patch.object(service.repo, "soft_delete", return_value=True) as mock_delete:
            await service.delete_note("note-123", requester_id="alice")

        mock_delete.assert_awaited_once_with("note-123")

    @pytest.mark.asyncio
    async def test_delete_by_other_user_is_forbidden(self, service, make_note):
        """Nobody but the owner may delete."""
        note = make_note(owner_id="alice")

        with patch.object(service.repo, "get_by_id_or_none", return_value=note), \
             patch.object(service.repo, "soft_delete") as mock_delete:
            with pytest.raises(ForbiddenError):
                await service.delete_note("note-123", requester_id="mallory")

        mock_delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, service, make_note):
        """Deleting an already-deleted note succeeds."""
        note = make_note(owner_id="alice", is_deleted=True)

        with patch.object(service.repo, "get_by_id_or_none", return_value=note), \
             patch.object(service.repo, "soft_delete", return_value=False):
            await service.delete_note("note-123", requester_id="alice")

    @pytest.mark.asyncio
    async def test_delete_expired_note_allowed(self, service, clock, make_note):
        """Owners can clean up notes that already expired."""
        note = make_note(owner_id="alice", created_at=clock.now)
        clock.advance(days=1)

        with patch.object(service.repo, "get_by_id_or_none", return_value=note), \
             patch.object(service.repo, "soft_delete", return_value=True) as mock_delete:
            await service.delete_note("note-123", requester_id="alice")

        mock_delete.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_unknown_note_is_acknowledged(self, service):
        """An id that never existed is answered like a deleted one."""
        with patch.object(service.repo, "get_by_id_or_none", return_value=None), \
             patch.object(service.repo, "soft_delete") as mock_delete:
            await service.delete_note("missing", requester_id="alice")

        mock_delete.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("requester", ["alice", "mallory"])
    async def test_delete_of_deleted_note_ignores_requester(self, service, make_note, requester):
        """Once deleted, nobody learns who owned the note."""
        note = make_note(owner_id="alice", is_deleted=True)

        with patch.object(service.repo, "get_by_id_or_none", return_value=note), \
             patch.object(service.repo, "soft_delete") as mock_delete:
            await service.delete_note("note-123", requester_id=requester)

        mock_delete.assert_not_called()


class TestNoteServicePurge:
    """Tests for the housekeeping purge."""

    @pytest.mark.asyncio
    async def test_purge_uses_retention_cutoff(self, service, clock):
        """Only notes expired before now minus retention are purged."""
        with patch.object(service.repo, "purge_expired", return_value=4) as mock_purge:
            purged = await service.purge_expired(retention_days=7)

        assert purged == 4
        mock_purge.assert_awaited_once_with(clock.now - timedelta(days=7))

    @pytest.mark.asyncio
    async def test_purge_zero_retention(self, service, clock):
        """Zero retention purges everything already expired."""
        with patch.object(service.repo, "purge_expired", return_value=0) as mock_purge:
            await service.purge_expired(retention_days=0)

        mock_purge.assert_awaited_once_with(datetime(2026, 1, 1, 12, 0, 0))
