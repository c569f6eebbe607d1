# tests/test_export.py
import csv
import io
from datetime import datetime

from chartjournal import schemas
from chartjournal.export import CSV_HEADERS, trades_to_csv


def make_trade(**overrides):
    values = dict(
        id="t-1",
        timestamp=datetime(2024, 2, 1, 9, 30),
        mode="swing",
        trade_setup={"trade_type": "Short", "entry_price": 10, "stop_loss": 11, "take_profit": 8},
        rationale='- Broke support, "clean" retest\n- Volume up',
        status="stop-loss",
        outcome_amount=42.0,
    )
    values.update(overrides)
    return schemas.Trade(**values)


def test_empty_history_exports_nothing():
    assert trades_to_csv([]) == ""


def test_rows_quote_embedded_text():
    text = trades_to_csv([make_trade(), make_trade(id="t-2", status="pending", outcome_amount=None)])
    rows = list(csv.reader(io.StringIO(text)))
    assert rows[0] == CSV_HEADERS
    assert len(rows) == 3
    first = dict(zip(CSV_HEADERS, rows[1]))
    assert first["status"] == "stop-loss"
    assert first["outcomeAmount"] == "42.0"
    assert first["tradeType"] == "Short"
    assert first["rationale"] == '- Broke support, "clean" retest\n- Volume up'
    assert dict(zip(CSV_HEADERS, rows[2]))["outcomeAmount"] == ""
