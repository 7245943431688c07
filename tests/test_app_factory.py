"""Tests for the app factory, store lifecycle and correlation IDs."""

from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from coworkly.api.factory import create_app
from coworkly.config import Settings
from coworkly.domain.scheduling import SchedulingService
from coworkly.infra.memory_store import MemoryStore


class TestHealth:
    def test_health_available(self, store):
        client = TestClient(create_app(Settings(), store=store))
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestStoreLifecycle:
    def test_injected_store_attached_immediately(self, store):
        app = create_app(Settings(), store=store)
        assert app.state.store is store
        assert isinstance(app.state.scheduling, SchedulingService)

    def test_store_built_at_startup_and_closed(self):
        built = MagicMock()
        with patch("coworkly.api.factory.build_store", return_value=built) as mock_build:
            app = create_app(Settings())
            with TestClient(app) as client:
                assert client.get("/health").status_code == 200
                assert app.state.store is built
            mock_build.assert_called_once()
        built.close.assert_called_once()

    def test_injected_store_not_closed(self):
        store = MagicMock(spec=MemoryStore)
        app = create_app(Settings(), store=store)
        with TestClient(app):
            pass
        store.close.assert_not_called()

    def test_auto_capture_setting_passed_through(self, store):
        app = create_app(Settings(payment_auto_capture=False), store=store)
        assert app.state.scheduling._payment_auto_capture is False


class TestCorrelationId:
    """Tests for correlation ID middleware."""

    def test_generates_correlation_id(self, store):
        client = TestClient(create_app(Settings(), store=store))
        response = client.get("/health")
        assert "X-Correlation-ID" in response.headers
        # UUID format check
        assert len(response.headers["X-Correlation-ID"]) == 36

    def test_preserves_incoming_correlation_id(self, store):
        client = TestClient(create_app(Settings(), store=store))
        response = client.get("/health", headers={"X-Correlation-ID": "test-123"})
        assert response.headers["X-Correlation-ID"] == "test-123"
