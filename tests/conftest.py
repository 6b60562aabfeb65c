"""Shared fixtures: a deterministic stand-in for the Gemini provider."""

import pytest
from fastapi.testclient import TestClient

from app.main import app, get_gateway
from app.services.exchange import ExchangeGateway


class FakeSession:
    def __init__(self, provider):
        self._provider = provider

    async def send(self, text):
        self._provider.sent.append(text)
        if self._provider.error is not None:
            raise self._provider.error
        return self._provider.reply_text


class FakeProvider:
    """Returns `reply_text`, or raises `error` when one is set."""

    def __init__(self, reply_text="Hi there", error=None):
        self.reply_text = reply_text
        self.error = error
        self.histories = []
        self.sent = []

    @property
    def call_count(self):
        return len(self.sent)

    def start_session(self, history):
        self.histories.append(history)
        return FakeSession(self)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def gateway(provider):
    return ExchangeGateway(api_key="fake-key", provider_factory=lambda key: provider, timeout=5)


@pytest.fixture
def client(gateway):
    app.dependency_overrides[get_gateway] = lambda: gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
