# chartjournal/market_data.py
import logging
from datetime import date, datetime, time, timezone
from typing import Dict, Iterable, List, Optional

import finnhub
import requests
from finnhub.exceptions import FinnhubAPIException, FinnhubRequestException

from .config import settings

logger = logging.getLogger(__name__)

MARKET_DATA_ERRORS = (FinnhubAPIException, FinnhubRequestException, requests.RequestException)

COUNTRY_CURRENCIES = {
    "US": "USD", "EU": "EUR", "DE": "EUR", "FR": "EUR", "IT": "EUR", "ES": "EUR",
    "GB": "GBP", "UK": "GBP", "JP": "JPY", "CN": "CNY", "AU": "AUD", "CA": "CAD",
    "CH": "CHF", "NZ": "NZD",
}
IMPACT_IMPORTANCE = {"high": 3, "medium": 2, "low": 1}

# Shown when no Finnhub key is configured or the calendar cannot be fetched
SAMPLE_EVENTS = (
    (time(14, 30), "USD", 3, "Federal Reserve Interest Rate Decision", "5.50%", "5.50%", "5.50%", False),
    (time(13, 0), "EUR", 2, "ECB President Lagarde Speech", None, None, None, None),
    (time(12, 30), "GBP", 1, "UK CPI (YoY)", "3.9%", "4.0%", "4.2%", True),
)


def sample_calendar(day: Optional[date] = None) -> List[Dict]:
    day = day or datetime.now(timezone.utc).date()
    return [
        {
            "id": index,
            "time": datetime.combine(day, at, tzinfo=timezone.utc).isoformat(),
            "currency": currency,
            "importance": importance,
            "event": event,
            "actual": actual,
            "forecast": forecast,
            "previous": previous,
            "better_than_forecast": better,
        }
        for index, (at, currency, importance, event, actual, forecast, previous, better)
        in enumerate(SAMPLE_EVENTS, start=1)
    ]


def _format_value(value, unit: str) -> Optional[str]:
    if value is None or value == "":
        return None
    return f"{value}{unit or ''}"


def normalize_event(index: int, raw: Dict) -> Dict:
    """Finnhub calendar row -> calendar event"""
    actual, estimate = raw.get("actual"), raw.get("estimate")
    better = None
    if isinstance(actual, (int, float)) and isinstance(estimate, (int, float)):
        better = actual > estimate
    unit = raw.get("unit") or ""
    country = (raw.get("country") or "").upper()

    return {
        "id": index,
        "time": str(raw.get("time") or ""),
        "currency": COUNTRY_CURRENCIES.get(country, country or "N/A"),
        "importance": IMPACT_IMPORTANCE.get(str(raw.get("impact") or "").lower(), 1),
        "event": raw.get("event") or "Unnamed event",
        "actual": _format_value(actual, unit),
        "forecast": _format_value(estimate, unit),
        "previous": _format_value(raw.get("prev"), unit),
        "better_than_forecast": better,
    }


class MarketDataClient:
    def __init__(self, api_key: Optional[str] = None, client=None):
        self.api_key = settings.FINNHUB_API_KEY if api_key is None else api_key
        self.client = client
        if self.client is None and self.api_key:
            self.client = finnhub.Client(api_key=self.api_key)

    def get_economic_calendar(self, start: Optional[date] = None, end: Optional[date] = None) -> List[Dict]:
        start = start or datetime.now(timezone.utc).date()
        end = end or start
        if not self.client:
            return sample_calendar(start)

        try:
            payload = self.client.calendar_economic(_from=start.isoformat(), to=end.isoformat())
        except MARKET_DATA_ERRORS as e:
            logger.warning("Economic calendar fetch failed, using sample events: %s", e)
            return sample_calendar(start)

        rows = (payload or {}).get("economicCalendar") or []
        events = [normalize_event(index, row) for index, row in enumerate(rows, start=1)]
        events.sort(key=lambda e: e["time"])
        return events

    def get_quote(self, symbol: str) -> Optional[Dict[str, float]]:
        if not symbol or not self.client:
            return None
        try:
            quote = self.client.quote(symbol)
        except MARKET_DATA_ERRORS as e:
            logger.warning("Quote fetch failed for %s: %s", symbol, e)
            return None
        # Finnhub answers unknown symbols with zeros
        if not quote or not quote.get("c"):
            return None
        return {"current": float(quote["c"]), "previous_close": float(quote.get("pc") or 0) or None}

    def get_quotes(self, symbols: Iterable[str]) -> Dict[str, Dict[str, float]]:
        quotes = {}
        for symbol in dict.fromkeys(symbols):
            quote = self.get_quote(symbol)
            if quote:
                quotes[symbol] = quote
        return quotes


def get_market_data() -> MarketDataClient:
    return MarketDataClient()
