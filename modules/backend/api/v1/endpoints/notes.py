"""
Notes API Endpoints.

HTTP mapping of the note access protocol. Fetch, record-attempt and
consume are addressed by the unguessable note id alone; create and
delete need the owner's bearer token.
"""

from fastapi import APIRouter, Response

from modules.backend.core.dependencies import CurrentUserId, NoteServiceDep, RequestId
from modules.backend.schemas.base import ApiResponse, ResponseMetadata
from modules.backend.schemas.note import (
    AttemptRecorded,
    NoteCreate,
    NoteCreated,
    NoteView,
)

router = APIRouter()


@router.post(
    "",
    response_model=ApiResponse[NoteCreated],
    status_code=201,
    summary="Create a note",
    description="Store an encrypted note with its expiry and access policy.",
)
async def create_note(
    data: NoteCreate,
    service: NoteServiceDep,
    owner_id: CurrentUserId,
    request_id: RequestId,
) -> ApiResponse[NoteCreated]:
    """Create a new note."""
    note = await service.create_note(data, owner_id)
    return ApiResponse(
        data=NoteCreated(note_id=note.id, expires_at=note.expires_at),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.get(
    "/{note_id}",
    response_model=ApiResponse[NoteView],
    summary="Fetch a note",
    description="Return ciphertext and policy for a readable note. Does not consume it.",
)
async def fetch_note(
    note_id: str,
    service: NoteServiceDep,
    request_id: RequestId,
) -> ApiResponse[NoteView]:
    """Fetch a note for viewing."""
    note = await service.fetch_note(note_id)
    return ApiResponse(
        data=NoteView.from_note(note),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.post(
    "/{note_id}/attempts",
    response_model=ApiResponse[AttemptRecorded],
    summary="Record a failed verification",
    description="Spend one identity-verification attempt.",
)
async def record_failed_attempt(
    note_id: str,
    service: NoteServiceDep,
    request_id: RequestId,
) -> ApiResponse[AttemptRecorded]:
    """Record a failed identity verification."""
    remaining = await service.record_failed_attempt(note_id)
    return ApiResponse(
        data=AttemptRecorded(attempts_remaining=remaining),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.post(
    "/{note_id}/consume",
    status_code=204,
    summary="Consume a note",
    description="Acknowledge a successful read. View-once notes are destroyed.",
)
async def consume_note(
    note_id: str,
    service: NoteServiceDep,
) -> Response:
    """Consume a note."""
    await service.consume_note(note_id)
    return Response(status_code=204)


@router.delete(
    "/{note_id}",
    status_code=204,
    summary="Delete a note",
    description="Owner revocation. Irreversible and idempotent.",
)
async def delete_note(
    note_id: str,
    service: NoteServiceDep,
    owner_id: CurrentUserId,
) -> Response:
    """Delete a note."""
    await service.delete_note(note_id, owner_id)
    return Response(status_code=204)
