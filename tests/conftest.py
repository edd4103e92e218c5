"""
Pytest configuration and fixtures for relay tests.
"""

import pytest
from fastapi.testclient import TestClient

from app import create_app
from registry import ConnectionRegistry
from relay import ChannelRelay


class RecordingTransport:
    """Transport double that records every frame handed to it."""

    def __init__(self):
        self.frames = []
        self.on_deliver = None

    def deliver(self, connection_id, event, payload):
        self.frames.append((connection_id, event, payload))
        if self.on_deliver is not None:
            self.on_deliver(connection_id, event, payload)
        return True

    def received(self, connection_id):
        return [(event, payload) for conn, event, payload in self.frames if conn == connection_id]


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def relay(transport):
    return ChannelRelay(ConnectionRegistry(), transport)


@pytest.fixture
def api_client(relay, transport):
    """HTTP client over a relay whose connections are created directly in the test."""
    app = create_app(relay=relay, transport=transport, redis_ingress=False)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def app():
    return create_app(redis_ingress=False)


@pytest.fixture
def client(app):
    """Client for full socket flows, sharing one event loop across sockets and requests."""
    with TestClient(app) as client:
        yield client
