# chartjournal/portfolio.py
from typing import Dict, Iterable, Optional


def summarize_portfolio(assets: Iterable, previous_closes: Optional[Dict[str, float]] = None) -> Dict:
    """Value, unrealized P/L and 24h change of a set of holdings.

    ``assets`` are objects with symbol, amount, avg_buy_price and
    current_price. Without a previous close for a symbol its 24h change
    is taken as 0.
    """
    previous_closes = previous_closes or {}
    rows = []
    total_value = total_pl = change_24h = 0.0

    for asset in assets:
        value = asset.amount * asset.current_price
        pl = (asset.current_price - asset.avg_buy_price) * asset.amount
        previous = previous_closes.get(asset.symbol)
        if previous:
            change_24h += value - asset.amount * previous

        total_value += value
        total_pl += pl
        rows.append({
            "id": getattr(asset, "id", None),
            "symbol": asset.symbol,
            "name": asset.name,
            "logo_url": getattr(asset, "logo_url", "") or "",
            "category": getattr(asset, "category", None),
            "amount": asset.amount,
            "avg_buy_price": asset.avg_buy_price,
            "current_price": asset.current_price,
            "value": value,
            "total_pl": pl,
        })

    value_24h_ago = total_value - change_24h
    return {
        "assets": rows,
        "total_value": total_value,
        "total_pl": total_pl,
        "pl_24h": change_24h,
        "pl_24h_percent": change_24h / value_24h_ago * 100 if value_24h_ago > 0 else 0.0,
    }
