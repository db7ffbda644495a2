"""Shared pytest fixtures for bridge tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402

from wabridge.session.state import BridgeState  # noqa: E402

from .helpers import FakeQrRenderer, MemoryCredentialStore, RecordingScheduler  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_bridge_env(monkeypatch, tmp_path):
    """Keep tests away from the developer's real auth dir and env overrides."""
    for name in (
        "BRIDGE_HOST",
        "BRIDGE_PORT",
        "BRIDGE_SESSION_FACTORY",
        "BRIDGE_BROWSER",
        "BRIDGE_AUTH_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("BRIDGE_AUTH_DIR", str(tmp_path / "auth_info"))
    monkeypatch.setenv("BRIDGE_PRINT_QR", "false")


@pytest.fixture
def bridge_state():
    return BridgeState()


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def qr_renderer():
    return FakeQrRenderer()


@pytest.fixture
def credential_store():
    return MemoryCredentialStore()
