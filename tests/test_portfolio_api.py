# tests/test_portfolio_api.py
from types import SimpleNamespace

import pytest

from chartjournal.ai_service import GeminiAnalyzer, get_analyzer
from chartjournal.main import app
from chartjournal.market_data import get_market_data
from chartjournal.portfolio import summarize_portfolio

AAPL = {"symbol": "aapl", "name": "Apple", "amount": 10, "avgBuyPrice": 150, "currentPrice": 170}


def test_summarize_portfolio():
    assets = [
        SimpleNamespace(symbol="AAPL", name="Apple", amount=10, avg_buy_price=150, current_price=170),
        SimpleNamespace(symbol="BTC", name="Bitcoin", amount=0.5, avg_buy_price=40000, current_price=38000),
    ]
    summary = summarize_portfolio(assets, {"AAPL": 160})
    assert summary["total_value"] == 1700 + 19000
    assert summary["total_pl"] == 200 - 1000
    assert summary["pl_24h"] == 100
    assert summary["pl_24h_percent"] == pytest.approx(100 / 20600 * 100)


def test_empty_portfolio_has_no_division_error():
    summary = summarize_portfolio([])
    assert summary["total_value"] == 0
    assert summary["pl_24h_percent"] == 0


def test_asset_crud(client, auth_headers, fake_market):
    app.dependency_overrides[get_market_data] = lambda: fake_market()

    created = client.post("/api/portfolio/assets", json=AAPL, headers=auth_headers)
    assert created.status_code == 201
    asset = created.json()
    assert asset["symbol"] == "AAPL"
    assert asset["value"] == 1700
    assert asset["totalPl"] == 200

    updated = client.patch(f"/api/portfolio/assets/{asset['id']}", json={"amount": 20}, headers=auth_headers)
    assert updated.json()["value"] == 3400
    assert updated.json()["avgBuyPrice"] == 150

    portfolio = client.get("/api/portfolio", headers=auth_headers).json()
    assert portfolio["totalValue"] == 3400
    assert portfolio["pl24h"] == 0

    assert client.delete(f"/api/portfolio/assets/{asset['id']}", headers=auth_headers).status_code == 204
    assert client.get("/api/portfolio", headers=auth_headers).json()["assets"] == []
    assert client.patch("/api/portfolio/assets/missing", json={"amount": 1}, headers=auth_headers).status_code == 404


def test_invalid_asset_rejected(client, auth_headers):
    body = dict(AAPL, amount=-1)
    assert client.post("/api/portfolio/assets", json=body, headers=auth_headers).status_code == 422


def test_quotes_drive_prices_and_24h_change(client, auth_headers, fake_market):
    quotes = {"AAPL": {"current": 180.0, "previous_close": 175.0}}
    app.dependency_overrides[get_market_data] = lambda: fake_market(quotes=quotes)
    client.post("/api/portfolio/assets", json=AAPL, headers=auth_headers)

    assert client.post("/api/portfolio/refresh-prices", headers=auth_headers).json() == {"updated": 1}
    portfolio = client.get("/api/portfolio", headers=auth_headers).json()
    assert portfolio["assets"][0]["currentPrice"] == 180
    assert portfolio["totalValue"] == 1800
    assert portfolio["pl24h"] == 50
    assert portfolio["pl24hPercent"] == pytest.approx(50 / 1750 * 100)


def test_advice(client, auth_headers, fake_market, fake_openai):
    fake = fake_openai("Consider diversifying.")
    app.dependency_overrides[get_market_data] = lambda: fake_market()
    app.dependency_overrides[get_analyzer] = lambda: GeminiAnalyzer("k", client=fake)
    client.post("/api/portfolio/assets", json=AAPL, headers=auth_headers)

    response = client.post("/api/portfolio/advice", json={"question": "Am I too concentrated?"}, headers=auth_headers)
    assert response.json()["analysisText"] == "Consider diversifying."
    assert "AAPL" in fake.completions.calls[0]["messages"][1]["content"]
