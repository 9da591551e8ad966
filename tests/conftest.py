import json

import httpx
import pytest
from fastapi.testclient import TestClient

from risklens.config import get_settings
from risklens.kv_store import InMemoryKeyValueStore, get_kv_store
from risklens.main import app, get_summarizer
from risklens.services.billing import SubscriptionLedger

TEXAS_CONTRACT = (
    "This Agreement shall be governed by the laws of Texas. "
    "Payment is due within 30 days. "
    "This contract automatically renews annually."
)

REMOTE_SUMMARY = "The parties agree to a Texas-governed services arrangement with monthly payments."


class FakeClock:
    """Monotonic clock the tests can move forward."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def summary_transport(summary_text=REMOTE_SUMMARY, status_code=200, calls=None):
    """MockTransport answering like the inference API."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(json.loads(request.content))
        if status_code != 200:
            return httpx.Response(status_code, json={"error": "model loading"})
        return httpx.Response(200, json=[{"summary_text": summary_text}])

    return httpx.MockTransport(handler)


def summary_client(transport: httpx.MockTransport) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url="https://summarizer.test/models/", transport=transport)


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch):
    monkeypatch.delenv("JWT_SECRET", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemoryKeyValueStore(clock=clock)


@pytest.fixture
def ledger(store):
    return SubscriptionLedger(store)


@pytest.fixture
def summarizer_calls():
    return []


@pytest.fixture
def summarizer(summarizer_calls):
    return summary_client(summary_transport(calls=summarizer_calls))


@pytest.fixture
def failing_summarizer():
    return summary_client(summary_transport(status_code=503))


@pytest.fixture
def client(store, summarizer):
    app.dependency_overrides[get_kv_store] = lambda: store
    app.dependency_overrides[get_summarizer] = lambda: summarizer
    yield TestClient(app)
    app.dependency_overrides.clear()
