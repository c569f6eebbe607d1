# chartjournal/export.py
import csv
import io
from typing import Iterable

CSV_HEADERS = [
    "id", "mode", "timestamp", "status", "outcomeAmount", "tradeType", "entryPrice", "stopLoss", "takeProfit",
    "marketTrend", "keyPattern", "indicatorAnalysis", "tradeBias", "rationale", "confidenceScore",
]


def trades_to_csv(trades: Iterable) -> str:
    """Full trade history as CSV text; empty string when there is nothing to export"""
    trades = list(trades)
    if not trades:
        return ""

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for t in trades:
        writer.writerow([
            t.id,
            t.mode,
            t.timestamp.isoformat(),
            t.status,
            "" if t.outcome_amount is None else t.outcome_amount,
            t.trade_setup.trade_type,
            t.trade_setup.entry_price,
            t.trade_setup.stop_loss,
            t.trade_setup.take_profit,
            t.market_trend,
            t.key_pattern,
            t.indicator_analysis,
            t.trade_bias,
            t.rationale,
            t.confidence_score,
        ])
    return buffer.getvalue()
