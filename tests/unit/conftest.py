"""
Unit Test Fixtures.

Fixtures for unit tests - all external dependencies are mocked.
Unit tests should be fast and isolated, never touching real databases.
"""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from modules.backend.models.note import Note


# =============================================================================
# Database Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """
    Mock database session for unit tests.

    Provides a fully mocked AsyncSession with common methods.

    Usage:
        def test_repository(mock_db_session: AsyncMock):
            repo = NoteRepository(mock_db_session)
            # Test repository methods
    """
    session = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.execute = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def mock_db_result() -> MagicMock:
    """
    Mock database query result.

    Use this to mock the result of session.execute().

    Usage:
        def test_query(mock_db_session, mock_db_result):
            mock_db_result.scalar_one_or_none.return_value = note
            mock_db_session.execute.return_value = mock_db_result
    """
    result = MagicMock()
    result.scalar_one_or_none = MagicMock(return_value=None)
    result.rowcount = 0
    return result


# =============================================================================
# Settings Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_app_config() -> MagicMock:
    """
    Mock YAML application configuration with attribute access.

    Usage:
        def test_with_config(mock_app_config):
            with patch("module.get_app_config", return_value=mock_app_config):
                # Test code that uses app config
    """
    config = MagicMock()
    config.application.name = "Test App"
    config.application.version = "1.0.0"
    config.application.environment = "test"
    config.application.debug = True
    config.application.docs_enabled = True
    config.application.cors.origins = []
    config.application.timeouts.database = 5
    config.application.timeouts.background = 120
    config.features.api_detailed_errors = False
    config.features.security_cors_enforce_production = True
    config.features.tasks_purge_enabled = True
    config.security.secrets_validation.jwt_secret_min_length = 32
    config.security.jwt.algorithm = "HS256"
    config.security.jwt.access_token_expire_minutes = 30
    config.security.jwt.audience = "prive-note-api"
    config.notes.max_ttl_minutes = 10080
    config.notes.max_content_bytes = 1024
    config.notes.link_origin = "https://notes.example"
    config.notes.purge.retention_days = 7
    config.notes.purge.cron = "0 3 * * *"
    return config


# =============================================================================
# Domain Fixtures
# =============================================================================


@pytest.fixture
def make_note() -> Callable[..., Note]:
    """
    Build unsaved Note instances with sensible defaults.

    Usage:
        def test_view(make_note):
            note = make_note(view_once=True, attempt_limit=3)
    """
    def _make(**overrides: Any) -> Note:
        created_at = overrides.pop("created_at", datetime(2026, 1, 1, 12, 0, 0))
        attempt_limit = overrides.pop("attempt_limit", None)
        values: dict[str, Any] = {
            "id": "note-123",
            "owner_id": "alice",
            "ciphertext": b"\x01\x02\x03",
            "iv": b"\x00" * 12,
            "created_at": created_at,
            "expires_at": created_at + timedelta(minutes=5),
            "view_once": False,
            "attempt_limit": attempt_limit,
            "attempts_remaining": attempt_limit or 0,
            "is_deleted": False,
        }
        values.update(overrides)
        return Note(**values)

    return _make


# =============================================================================
# Logging Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_logger() -> MagicMock:
    """
    Mock logger for testing logging calls.

    Usage:
        def test_logging(mock_logger):
            with patch("module.logger", mock_logger):
                # Test code that logs
                mock_logger.info.assert_called_once()
    """
    logger = MagicMock()
    logger.debug = MagicMock()
    logger.info = MagicMock()
    logger.warning = MagicMock()
    logger.error = MagicMock()
    logger.exception = MagicMock()
    return logger
