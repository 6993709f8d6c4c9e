"""
Note Schemas.

Pydantic schemas for the note access protocol. Request schemas check
shape and types only; value rules (base64, ttl ceiling, attempt limit)
belong to NoteService so every caller gets the same ValidationError.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from modules.backend.core.utils import encode_base64
from modules.backend.models.note import Note


class NoteCreate(BaseModel):
    """Schema for creating a new note."""

    ciphertext: str = Field(
        ...,
        description="Base64 ciphertext produced by the client",
        examples=["3q2+7w=="],
    )
    iv: str = Field(
        ...,
        description="Base64 initialization vector paired with the ciphertext",
        examples=["AAECAwQFBgcICQoL"],
    )
    ttl_minutes: float = Field(
        ...,
        description="Minutes until the note expires",
        examples=[60],
    )
    view_once: bool = Field(
        default=False,
        description="Destroy the note after its first consumed read",
    )
    attempt_limit: int | None = Field(
        default=None,
        description="Failed identity verifications allowed; omit for unlimited",
        examples=[3],
    )

    model_config = ConfigDict(extra="forbid")


class NoteCreated(BaseModel):
    """Schema returned after a note is created."""

    note_id: str = Field(description="Opaque note identifier")
    expires_at: datetime = Field(description="Expiry instant (UTC)")


class NoteView(BaseModel):
    """Schema for a fetched note. Never carries the owner or any key."""

    ciphertext: str = Field(description="Base64 ciphertext, byte-identical to creation")
    iv: str = Field(description="Base64 initialization vector")
    view_once: bool = Field(description="Whether consuming destroys the note")
    expires_at: datetime = Field(description="Expiry instant (UTC)")
    attempts_remaining: int | None = Field(
        description="Verification attempts left; null when unlimited",
    )

    @classmethod
    def from_note(cls, note: Note) -> "NoteView":
        return cls(
            ciphertext=encode_base64(note.ciphertext),
            iv=encode_base64(note.iv),
            view_once=note.view_once,
            expires_at=note.expires_at,
            attempts_remaining=note.attempts_remaining if note.has_attempt_limit else None,
        )


class AttemptRecorded(BaseModel):
    """Schema returned after a failed verification is recorded."""

    attempts_remaining: int | None = Field(
        description="Verification attempts left; null when unlimited",
    )
