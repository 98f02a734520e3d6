"""Tests for clock, logging context and request middleware."""

from datetime import UTC

from fastapi.testclient import TestClient

from learngrow.core.clock import SystemClock, get_clock
from learngrow.core.context import (
    clear_context,
    get_context,
    get_request_id,
    get_user_id,
    set_request_id,
    set_user_id,
)
from learngrow.core.middleware import RequestContextMiddleware


class TestClock:
    def test_system_clock_is_utc(self) -> None:
        assert SystemClock().now().tzinfo is UTC

    def test_dependency_returns_the_process_clock(self) -> None:
        assert get_clock() is get_clock()


class TestRequestContext:
    def test_binds_values(self) -> None:
        clear_context()
        set_request_id("req-1")
        set_user_id("user-1")

        assert get_context() == {"request_id": "req-1", "user_id": "user-1"}
        clear_context()

    def test_generates_request_id(self) -> None:
        generated = set_request_id()
        assert get_request_id() == generated
        assert generated
        clear_context()

    def test_clear_context(self) -> None:
        set_user_id("user-2")
        clear_context()
        assert get_context() == {}


class TestRequestContextMiddleware:
    def test_echoes_caller_request_id(self, client: TestClient) -> None:
        response = client.get("/health/live", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"

    def test_generates_request_id(self, client: TestClient) -> None:
        response = client.get("/")
        assert response.headers["X-Request-ID"]

    def test_error_body_carries_request_id(self, client: TestClient) -> None:
        response = client.get(
            "/v1/missing", headers={"X-Request-ID": "req-404"}
        )
        assert response.status_code == 404
        assert response.json()["request_id"] == "req-404"

    def test_traceparent_parsing(self) -> None:
        traceparent = "00-4bf92f3577b34da6a3ce929d0e0e4736-00f067aa0ba902b7-01"
        assert (
            RequestContextMiddleware._extract_traceparent(traceparent)
            == "4bf92f3577b34da6a3ce929d0e0e4736"
        )
        assert RequestContextMiddleware._extract_traceparent("garbage") is None
