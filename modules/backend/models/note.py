"""
Note Model.

Database model for an encrypted, short-lived note. The server stores
ciphertext and IV only; the decryption key never reaches this table.
"""

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from modules.backend.core.utils import utc_now
from modules.backend.models.base import Base


class Note(Base):
    """
    Note database model.

    Lifecycle columns:
        expires_at          - fixed at creation, never extended
        attempts_remaining  - only ever decremented, floor 0; ignored when
                              attempt_limit is NULL
        is_deleted          - terminal soft-delete flag, never cleared
    """

    __tablename__ = "notes"
    __table_args__ = (
        CheckConstraint("attempts_remaining >= 0", name="ck_notes_attempts_remaining_non_negative"),
        CheckConstraint("expires_at > created_at", name="ck_notes_expires_after_created"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    ciphertext: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    iv: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    view_once: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    attempt_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    attempts_remaining: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    @property
    def has_attempt_limit(self) -> bool:
        return self.attempt_limit is not None

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, expires_at={self.expires_at}, is_deleted={self.is_deleted})>"
