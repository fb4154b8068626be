"""Tests for the aiohttp Discord webhook transport."""

import asyncio

import aiohttp
import pytest

from smtp_discord_bridge.credentials import WebhookIdentity
from smtp_discord_bridge.models import Embed, EmbedField, WebhookMessage
from smtp_discord_bridge.webhook import DiscordWebhookTransport, WebhookTransportError

IDENTITY = WebhookIdentity(123, "abc")


class DummyResponse:
    def __init__(self, status=200, payload=None, text=""):
        self.status = status
        self._payload = payload if payload is not None else {}
        self._text = text

    async def json(self):
        return self._payload

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class DummySession:
    def __init__(self, response=None, error=None, timeout=None):
        self.response = response or DummyResponse()
        self.error = error
        self.timeout = timeout
        self.requests = []
        self.closed = False

    def _request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def get(self, url, **kwargs):
        return self._request("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._request("POST", url, **kwargs)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        self.closed = True
        return False


@pytest.fixture
def sessions(monkeypatch):
    created = []
    state = {"response": None, "error": None}

    def factory(**kwargs):
        session = DummySession(state["response"], state["error"], **kwargs)
        created.append(session)
        return session

    monkeypatch.setattr("smtp_discord_bridge.webhook.aiohttp.ClientSession", factory)
    return created, state


def make_message():
    return WebhookMessage(
        embeds=[Embed(title="New Email", fields=[EmbedField(name="From", value="a@example.com", inline=True)])]
    )


def test_webhook_url_uses_api_base():
    transport = DiscordWebhookTransport(api_base="https://example.test/api/")
    assert transport.webhook_url(IDENTITY) == "https://example.test/api/webhooks/123/abc"


@pytest.mark.asyncio
async def test_post_sends_payload_and_waits(sessions):
    created, state = sessions
    state["response"] = DummyResponse(200, {"id": "999"})
    transport = DiscordWebhookTransport(timeout=5)

    result = await transport.post(IDENTITY, make_message())

    assert result == {"id": "999"}
    session = created[0]
    method, url, kwargs = session.requests[0]
    assert method == "POST"
    assert url == "https://discord.com/api/webhooks/123/abc"
    assert kwargs["params"] == {"wait": "true"}
    assert kwargs["json"] == {
        "embeds": [
            {"title": "New Email", "fields": [{"name": "From", "value": "a@example.com", "inline": True}]}
        ]
    }
    assert session.timeout.total == 5
    assert session.closed is True


@pytest.mark.asyncio
async def test_post_no_content_response(sessions):
    _, state = sessions
    state["response"] = DummyResponse(204)

    assert await DiscordWebhookTransport().post(IDENTITY, make_message()) is None


@pytest.mark.asyncio
async def test_post_http_error_raises_transport_error(sessions):
    _, state = sessions
    state["response"] = DummyResponse(400, text='{"message": "Invalid Form Body"}')

    with pytest.raises(WebhookTransportError) as excinfo:
        await DiscordWebhookTransport().post(IDENTITY, make_message())
    assert excinfo.value.status == 400
    assert "Invalid Form Body" in str(excinfo.value)


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [aiohttp.ClientConnectionError("refused"), asyncio.TimeoutError()])
async def test_post_network_errors_raise_transport_error(sessions, error):
    _, state = sessions
    state["error"] = error

    with pytest.raises(WebhookTransportError) as excinfo:
        await DiscordWebhookTransport().post(IDENTITY, make_message())
    assert excinfo.value.status is None


@pytest.mark.asyncio
async def test_verify_fetches_webhook(sessions):
    created, state = sessions
    state["response"] = DummyResponse(200, {"id": "123", "name": "Mail"})

    webhook = await DiscordWebhookTransport().verify(IDENTITY)

    assert webhook["name"] == "Mail"
    method, url, _ = created[0].requests[0]
    assert (method, url) == ("GET", "https://discord.com/api/webhooks/123/abc")


@pytest.mark.asyncio
async def test_verify_unknown_webhook_raises(sessions):
    _, state = sessions
    state["response"] = DummyResponse(404)

    with pytest.raises(WebhookTransportError) as excinfo:
        await DiscordWebhookTransport().verify(IDENTITY)
    assert excinfo.value.status == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [[{"id": "123"}], "Mail", 42])
async def test_verify_rejects_non_object_response(sessions, payload):
    _, state = sessions
    state["response"] = DummyResponse(200, payload)

    with pytest.raises(WebhookTransportError) as excinfo:
        await DiscordWebhookTransport().verify(IDENTITY)
    assert "expected an object" in str(excinfo.value)
