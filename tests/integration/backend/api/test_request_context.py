"""
Integration Tests for Request Context.

Every response, including the error envelopes of the note endpoints,
carries the request id and timing headers.
"""

from typing import Any

import pytest
from httpx import AsyncClient


class TestRequestIdHeader:
    """X-Request-ID generation and propagation."""

    @pytest.mark.parametrize("path", ["/health", "/health/ready", "/api/v1/notes/unknown"])
    async def test_generated_when_absent(self, client: AsyncClient, path: str):
        response = await client.get(path)

        # uuid4 string form
        assert len(response.headers["X-Request-ID"]) == 36

    async def test_caller_value_echoed(self, client: AsyncClient):
        response = await client.get("/health", headers={"X-Request-ID": "trace-7f3a"})

        assert response.headers["X-Request-ID"] == "trace-7f3a"

    async def test_fresh_id_per_request(self, client: AsyncClient):
        first = await client.get("/health")
        second = await client.get("/health")

        assert first.headers["X-Request-ID"] != second.headers["X-Request-ID"]


class TestResponseTimeHeader:
    """X-Response-Time on success and failure."""

    async def test_whole_milliseconds(self, client: AsyncClient):
        response = await client.get("/health")

        value = response.headers["X-Response-Time"]
        assert value.endswith("ms")
        assert value[:-2].isdigit()

    async def test_present_on_unknown_note(self, client: AsyncClient):
        response = await client.get("/api/v1/notes/never-stored")

        assert response.status_code == 404
        assert "X-Response-Time" in response.headers


class TestRequestIdInEnvelopes:
    """The error envelope metadata repeats the request id."""

    async def test_not_found(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/notes/never-stored",
            headers={"X-Request-ID": "lookup-404"},
        )

        assert response.status_code == 404
        assert response.json()["metadata"]["request_id"] == "lookup-404"

    async def test_request_validation(
        self, client: AsyncClient, auth_headers: dict[str, str],
    ):
        response = await client.post(
            "/api/v1/notes",
            json={},
            headers={**auth_headers, "X-Request-ID": "create-422"},
        )

        assert response.status_code == 422
        assert response.json()["metadata"]["request_id"] == "create-422"

    async def test_created_note(
        self,
        client: AsyncClient,
        auth_headers: dict[str, str],
        note_payload: dict[str, Any],
    ):
        response = await client.post(
            "/api/v1/notes",
            json=note_payload,
            headers={**auth_headers, "X-Request-ID": "create-201"},
        )

        assert response.status_code == 201
        assert response.headers["X-Request-ID"] == "create-201"
        assert response.json()["metadata"]["request_id"] == "create-201"
