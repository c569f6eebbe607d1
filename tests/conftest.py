import os

# Must be in place before chartjournal reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "testing"
os.environ["GEMINI_API_KEY"] = ""
os.environ["FINNHUB_API_KEY"] = ""

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from chartjournal.config import settings
from chartjournal.database import Base, engine, SessionLocal
from chartjournal.main import app


def completion(content, prompt_tokens=10, completion_tokens=5):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        ),
    )


class FakeCompletions:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return completion(reply)


class FakeOpenAI:
    """Stands in for openai.OpenAI; replies are returned (or raised) in order"""

    def __init__(self, *replies):
        self.completions = FakeCompletions(replies)
        self.chat = SimpleNamespace(completions=self.completions)


class FakeMarketData:
    def __init__(self, quotes=None, events=None):
        self.quotes = quotes or {}
        self.events = events or []

    def get_quotes(self, symbols):
        return {s: self.quotes[s] for s in symbols if s in self.quotes}

    def get_economic_calendar(self, start=None, end=None):
        return self.events


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(autouse=True)
def no_retry_delay(monkeypatch):
    monkeypatch.setattr(settings, "AI_RETRY_DELAY_SECONDS", 0)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def register(client, email="trader@example.com", password="secret123", name="Test Trader"):
    """Create an account and return bearer headers for it"""
    response = client.post("/api/auth/register", json={"email": email, "password": password, "name": name})
    assert response.status_code == 201, response.text
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    client.cookies.clear()
    return {"Authorization": f"Bearer {response.json()['accessToken']}"}


@pytest.fixture
def auth_headers(client):
    return register(client)


def manual_trade(mode="day", status="pending", outcome_amount=None, trade_type="Long",
                 entry=100.0, stop=95.0, target=110.0):
    body = {
        "mode": mode,
        "marketTrend": "Uptrend",
        "keyPattern": "Bull flag",
        "indicatorAnalysis": "RSI 60",
        "tradeBias": "Bullish",
        "tradeSetup": {"tradeType": trade_type, "entryPrice": entry, "stopLoss": stop, "takeProfit": target},
        "rationale": "- Higher highs",
        "confidenceScore": 70,
        "status": status,
    }
    if outcome_amount is not None:
        body["outcomeAmount"] = outcome_amount
    return body


@pytest.fixture
def fake_openai():
    return FakeOpenAI


@pytest.fixture
def fake_market():
    return FakeMarketData
