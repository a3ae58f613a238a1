"""Tests for the OAuth callback receiver."""

import asyncio
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from repo_integrator.main import create_app
from repo_integrator.messaging import MessageChannel
from repo_integrator.services import OAuthConnectionBroker, OAuthResult

from conftest import settle


@pytest.fixture
def channel():
    return MessageChannel()


@pytest.fixture
def app(channel, settings):
    return create_app(channel, settings)


class TestOAuthCallback:
    """Test callback delivery onto the message channel."""

    def test_success_published(self, app, channel):
        listener = Mock()
        channel.subscribe(listener)

        with TestClient(app) as http:
            response = http.get("/oauth/callback", params={"connectionId": "c1"})

        assert response.status_code == 200
        assert "GitHub connected" in response.text
        message = listener.call_args[0][0]
        assert message.type == "oauth-success"
        assert message.data["connectionId"] == "c1"
        assert message.origin == "http://testserver"

    def test_error_published(self, app, channel):
        listener = Mock()
        channel.subscribe(listener)

        with TestClient(app) as http:
            response = http.get("/oauth/callback", params={"error": "access_denied"})

        assert response.status_code == 400
        assert "access_denied" in response.text
        message = listener.call_args[0][0]
        assert message.type == "oauth-error"
        assert message.data["message"] == "access_denied"

    def test_missing_connection_id(self, app, channel):
        listener = Mock()
        channel.subscribe(listener)

        with TestClient(app) as http:
            response = http.get("/oauth/callback")

        assert response.status_code == 400
        assert listener.call_args[0][0].data["message"] == "Missing connection id"

    def test_error_message_escaped(self, app):
        with TestClient(app) as http:
            response = http.get("/oauth/callback", params={"error": "<script>alert(1)</script>"})

        assert "<script>" not in response.text

    def test_health(self, app, channel):
        with TestClient(app) as http:
            response = http.get("/health")

        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "repo-integrator"
        assert data["environment"] == "test"
        assert data["handshake_pending"] is False

    @pytest.mark.asyncio
    async def test_callback_completes_handshake(self, app, channel, client, backend, launcher, settings, clock):
        """A redirect to the callback page resolves the waiting broker."""
        backend.on("GET", "/github/auth", json_body={"authUrl": "https://github.com/login/oauth/authorize", "state": "s1"})
        broker = OAuthConnectionBroker(client, channel, launcher, settings, sleep=clock.sleep)
        task = asyncio.create_task(broker.connect())
        await settle()

        with TestClient(app, base_url=settings.callback_origin) as http:
            response = await asyncio.to_thread(http.get, "/oauth/callback", params={"connectionId": "c1"})

        assert response.status_code == 200
        assert await task == OAuthResult("c1")
        assert not channel.busy

    @pytest.mark.asyncio
    @pytest.mark.parametrize("base_url", ["http://localhost:8765", "http://[::1]:8765"])
    async def test_callback_on_loopback_alias_completes_handshake(
        self, app, channel, client, backend, launcher, settings, clock, base_url
    ):
        """The backend may redirect to localhost rather than the bind address."""
        backend.on("GET", "/github/auth", json_body={"authUrl": "https://github.com/login/oauth/authorize", "state": "s1"})
        broker = OAuthConnectionBroker(client, channel, launcher, settings, sleep=clock.sleep)
        task = asyncio.create_task(broker.connect())
        await settle()

        with TestClient(app, base_url=base_url) as http:
            response = await asyncio.to_thread(http.get, "/oauth/callback", params={"connectionId": "c1"})

        assert response.status_code == 200
        assert "GitHub connected" in response.text
        assert await task == OAuthResult("c1")

    @pytest.mark.asyncio
    async def test_untrusted_origin_not_reported_as_connected(self, app, channel, client, backend, launcher, settings, clock):
        backend.on("GET", "/github/auth", json_body={"authUrl": "https://github.com/login/oauth/authorize", "state": "s1"})
        broker = OAuthConnectionBroker(client, channel, launcher, settings, sleep=clock.sleep)
        task = asyncio.create_task(broker.connect())
        await settle()

        with TestClient(app, base_url="http://attacker.test") as http:
            response = await asyncio.to_thread(http.get, "/oauth/callback", params={"connectionId": "c1"})

        assert response.status_code == 409
        assert "No pending connection" in response.text
        await settle()
        assert not task.done()

        launcher.last.user_closes()
        await clock.advance(0.5)
        assert await task is None

    def test_callback_without_pending_handshake(self, app, channel):
        with TestClient(app) as http:
            response = http.get("/oauth/callback", params={"connectionId": "c1"})

        assert response.status_code == 409
        assert "No pending connection" in response.text
        assert "GitHub connected" not in response.text
