"""
FastAPI Dependencies.

Shared dependencies for request handling.
"""

import uuid
from typing import Annotated

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from modules.backend.core.config import get_app_config
from modules.backend.core.database import get_db_session
from modules.backend.core.exceptions import AuthenticationError
from modules.backend.core.logging import get_logger
from modules.backend.core.security import decode_token
from modules.backend.services.note import NoteService

logger = get_logger(__name__)

_bearer = HTTPBearer(auto_error=False)

# Function scope commits before the response is sent
DbSession = Annotated[AsyncSession, Depends(get_db_session, scope="function")]


async def get_request_id(x_request_id: str | None = Header(None)) -> str:
    """
    Extract or generate request ID from headers.

    Used for request tracing and correlation.
    """
    return x_request_id or str(uuid.uuid4())


RequestId = Annotated[str, Depends(get_request_id)]


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> str:
    """
    Resolve the authenticated owner from the bearer token.

    Raises:
        AuthenticationError: If the token is missing, invalid, expired
            or not an access token
    """
    if credentials is None:
        raise AuthenticationError("Authentication required")

    payload = decode_token(credentials.credentials)
    subject = payload.get("sub")
    if payload.get("type") != "access" or not subject:
        raise AuthenticationError("Invalid or expired token")
    return str(subject)


CurrentUserId = Annotated[str, Depends(get_current_user_id)]


async def get_note_service(db: DbSession) -> NoteService:
    """Build the note lifecycle service for the current request session."""
    app_config = get_app_config()
    return NoteService(
        db,
        store_timeout=float(app_config.application.timeouts.database),
        max_ttl_minutes=app_config.notes.max_ttl_minutes,
        max_content_bytes=app_config.notes.max_content_bytes,
    )


NoteServiceDep = Annotated[NoteService, Depends(get_note_service)]
