"""
Integration Test Fixtures.

Fixtures for integration tests - uses real database and services.
These fixtures build on the root conftest.py database fixtures.
"""

from collections.abc import AsyncGenerator, Callable, Generator
from typing import Any
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from modules.backend.core.config import Settings
from modules.backend.core.database import get_db_session


# =============================================================================
# Application Fixtures
# =============================================================================


@pytest.fixture
def app(
    db_session: AsyncSession,
    db_session_factory: async_sessionmaker[AsyncSession],
    test_secrets: Settings,
) -> Generator[FastAPI, None, None]:
    """
    Create the application wired to the test database.

    Requests share the test session, so everything is rolled back after
    the test. The health check uses a session from the same engine.
    """
    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    from modules.backend.main import create_app

    application = create_app()
    application.dependency_overrides[get_db_session] = override_get_db_session

    with patch("modules.backend.api.health.get_session_factory", return_value=db_session_factory):
        yield application

    application.dependency_overrides.clear()


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test client bound to the application.

    Usage:
        async def test_health_endpoint(client: AsyncClient):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client


# =============================================================================
# API Response Assertion Helpers
# =============================================================================


class ApiAssertions:
    """Helper class for API response assertions."""

    @staticmethod
    def assert_success(response: Any, expected_status: int = 200) -> dict[str, Any]:
        """
        Assert API response is successful.

        Args:
            response: httpx Response object
            expected_status: Expected HTTP status code

        Returns:
            Response JSON data

        Raises:
            AssertionError: If response is not successful
        """
        assert response.status_code == expected_status, (
            f"Expected status {expected_status}, got {response.status_code}: "
            f"{response.text}"
        )
        data = response.json()
        assert data.get("success") is True, f"Response not successful: {data}"
        return data

    @staticmethod
    def assert_error(
        response: Any,
        expected_status: int,
        expected_code: str | None = None,
    ) -> dict[str, Any]:
        """
        Assert API response is an error.

        Args:
            response: httpx Response object
            expected_status: Expected HTTP status code
            expected_code: Expected error code (optional)

        Returns:
            Response JSON data

        Raises:
            AssertionError: If response is not an error or codes don't match
        """
        assert response.status_code == expected_status, (
            f"Expected status {expected_status}, got {response.status_code}: "
            f"{response.text}"
        )
        data = response.json()
        assert data.get("success") is False, f"Response should be error: {data}"
        assert data.get("error") is not None, f"Missing error details: {data}"

        if expected_code:
            actual_code = data["error"].get("code")
            assert actual_code == expected_code, (
                f"Expected error code {expected_code}, got {actual_code}"
            )

        return data

    @staticmethod
    def assert_validation_error(
        response: Any,
        field: str | None = None,
    ) -> dict[str, Any]:
        """
        Assert API response is a request validation error (422).

        Args:
            response: httpx Response object
            field: Expected field with validation error (optional)

        Returns:
            Response JSON data
        """
        data = ApiAssertions.assert_error(response, 422, "VAL_REQUEST_INVALID")

        if field:
            errors = data["error"].get("details", {}).get("validation_errors", [])
            fields = [e.get("field", "") for e in errors]
            assert any(field in f for f in fields), (
                f"Expected validation error for field '{field}', "
                f"got errors for: {fields}"
            )

        return data


@pytest.fixture
def api() -> ApiAssertions:
    """Provide API assertion helpers."""
    return ApiAssertions()


# =============================================================================
# Authentication Fixtures
# =============================================================================


@pytest.fixture
def token_for(test_secrets: Settings) -> Callable[[str], str]:
    """Mint owner access tokens signed with the test secret."""
    from modules.backend.core.security import create_access_token

    def _token(subject: str) -> str:
        return create_access_token(data={"sub": subject})

    return _token


@pytest.fixture
def auth_headers(token_for: Callable[[str], str]) -> dict[str, str]:
    """
    Provide authentication headers for the owner "alice".

    Usage:
        async def test_create(client: AsyncClient, auth_headers: dict):
            response = await client.post("/api/v1/notes", json=..., headers=auth_headers)
    """
    return {"Authorization": f"Bearer {token_for('alice')}"}


@pytest.fixture
def note_payload() -> dict[str, Any]:
    """A valid create request body (ciphertext and IV are opaque bytes)."""
    return {
        "ciphertext": "3q2+7w==",
        "iv": "AAECAwQFBgcICQoL",
        "ttl_minutes": 5,
    }
