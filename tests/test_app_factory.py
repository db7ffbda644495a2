"""Tests for the app factory, health route and boot-time session start."""

import time

import pytest
from fastapi.testclient import TestClient

from wabridge.api.factory import build_controller, create_app
from wabridge.infra.settings import get_settings
from wabridge.session.lifecycle import SessionLifecycleController
from wabridge.session.loopback import LoopbackSessionFactory
from wabridge.session.state import BridgeState

from .helpers import FakeQrRenderer, MemoryCredentialStore


def _wait_for_status(client: TestClient, expected: str, timeout: float = 2.0) -> str:
    deadline = time.monotonic() + timeout
    status = ""
    while time.monotonic() < deadline:
        status = client.get("/api/status").json()["status"]
        if status == expected:
            break
        time.sleep(0.01)
    return status


class TestHealth:
    def test_health_returns_ok(self):
        client = TestClient(create_app(state=BridgeState()))
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_unknown_route_is_404(self):
        client = TestClient(create_app(state=BridgeState()))
        assert client.get("/api/nope").status_code == 404


class TestCorrelationId:
    """Tests for correlation ID middleware."""

    def test_generates_correlation_id(self):
        client = TestClient(create_app(state=BridgeState()))
        response = client.get("/health")
        assert "X-Correlation-ID" in response.headers
        # UUID format check
        assert len(response.headers["X-Correlation-ID"]) == 36

    def test_preserves_incoming_correlation_id(self):
        client = TestClient(create_app(state=BridgeState()))
        response = client.get("/health", headers={"X-Correlation-ID": "test-123"})
        assert response.headers["X-Correlation-ID"] == "test-123"

    def test_replaces_unsafe_incoming_correlation_id(self):
        client = TestClient(create_app(state=BridgeState()))
        response = client.get("/health", headers={"X-Correlation-ID": "x" * 500})
        assert len(response.headers["X-Correlation-ID"]) == 36


class TestBootLifecycle:
    """The app starts the session lifecycle once at boot."""

    def test_boot_connects_and_relays(self):
        factory = LoopbackSessionFactory()
        controller = SessionLifecycleController(
            BridgeState(),
            factory,
            MemoryCredentialStore(),
            qr_renderer=FakeQrRenderer(),
        )

        with TestClient(create_app(controller=controller)) as client:
            assert _wait_for_status(client, "connected") == "connected"

            response = client.post(
                "/api/send", json={"recipient": "15551234567", "message": "hi"}
            )
            assert response.status_code == 200
            sent_jid, sent_text, message_id = factory.current.sent[0]
            assert sent_jid == "15551234567@s.whatsapp.net"
            assert sent_text == "hi"
            assert response.json()["message_id"] == message_id

        # Lifespan shutdown closes the session
        assert factory.current.closed is True

    def test_pairing_without_auto_pair_waits_on_qr(self):
        controller = SessionLifecycleController(
            BridgeState(),
            LoopbackSessionFactory(auto_pair=False),
            MemoryCredentialStore(),
            qr_renderer=FakeQrRenderer(),
        )

        with TestClient(create_app(controller=controller)) as client:
            assert _wait_for_status(client, "qr_pending") == "qr_pending"
            assert client.get("/api/qr").json()["qr"].startswith("data:image/png;base64,")

    def test_default_app_builds_from_settings(self, monkeypatch):
        monkeypatch.setenv("BRIDGE_SESSION_FACTORY", "wabridge.session.loopback:LoopbackSessionFactory")
        app = create_app()
        assert isinstance(app.state.controller, SessionLifecycleController)
        assert app.state.bridge is app.state.controller.state

    def test_build_controller_uses_settings(self, monkeypatch):
        monkeypatch.setenv("BRIDGE_SESSION_FACTORY", "wabridge.session.loopback:LoopbackSessionFactory")
        controller = build_controller(get_settings())
        assert isinstance(controller, SessionLifecycleController)

    def test_default_app_requires_a_session_backend(self):
        with pytest.raises(RuntimeError, match="BRIDGE_SESSION_FACTORY required"):
            create_app()
