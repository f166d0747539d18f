"""Shared test fixtures and configuration for relay tests."""
import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketState

from relay.chat.service import ChatRelay
from relay.config import RelayConfig, reset_config
from relay.main import create_app


class FakeSocket:
    """Stand-in for a Starlette WebSocket that records what it was sent."""

    def __init__(self, fail: bool = False, open: bool = True) -> None:
        self.sent = []
        self.fail = fail
        state = WebSocketState.CONNECTED if open else WebSocketState.DISCONNECTED
        self.application_state = state
        self.client_state = state

    async def send_json(self, data: dict) -> None:
        if self.fail:
            raise RuntimeError("socket send failed")
        self.sent.append(data)

    def types(self):
        return [event["type"] for event in self.sent]


@pytest.fixture
def socket_factory():
    """Return the FakeSocket class so tests can build sockets inline."""
    return FakeSocket


@pytest.fixture
def relay():
    return ChatRelay()


@pytest.fixture
def app():
    """Fresh application (and relay state) per test."""
    return create_app(RelayConfig())


@pytest.fixture
def api_client(app):
    """Provide a TestClient for a fresh relay app."""
    # Entering the client shares one event loop across all its connections.
    with TestClient(app) as client:
        yield client


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep env overrides and the cached config from leaking between tests."""
    monkeypatch.delenv("WS_PORT", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    reset_config()
    yield
    reset_config()
