# tests/test_stats.py
import math
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
import pytz

from chartjournal import stats

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def trade(status, amount=None, mode="day", at=None):
    return SimpleNamespace(status=status, outcome_amount=amount, mode=mode, timestamp=at or T0)


def scenario_one():
    return [trade("profit", 100), trade("profit", 50), trade("stop-loss", 30), trade("pending")]


def test_mixed_trades_win_rate_net_pl_profit_factor():
    result = stats.compute_mode_stats(scenario_one())
    assert result["win_rate"] == 67
    assert result["net_pl"] == 120
    assert result["completed"] == 3
    assert result["pending"] == 1
    assert stats.compute_advanced_metrics(scenario_one())["profit_factor"] == 5.0


def test_empty_list_is_all_zeros():
    result = stats.compute_mode_stats([])
    assert result["win_rate"] == 0
    assert result["net_pl"] == 0
    assert result["total_trades"] == result["completed"] == result["wins"] == result["losses"] == 0

    advanced = stats.compute_advanced_metrics([])
    assert advanced["profit_factor"] == 0
    assert advanced["max_drawdown"] == 0
    assert advanced["average_win"] == advanced["average_loss"] == 0


def test_single_loss_has_zero_profit_factor_and_negative_pl():
    trades = [trade("stop-loss", 40)]
    assert stats.compute_advanced_metrics(trades)["profit_factor"] == 0
    assert stats.compute_mode_stats(trades)["net_pl"] == -40


def test_equity_is_capital_plus_net_pl_for_all_view_only():
    trades = [trade("profit", 300, mode="swing"), trade("stop-loss", 50, mode="day")]
    assert stats.compute_mode_stats(trades, "all", initial_capital=1000)["current_equity"] == 1250

    swing = stats.compute_mode_stats(trades, "swing", initial_capital=1000)
    assert swing["net_pl"] == 300
    assert swing["current_equity"] is None
    assert swing["initial_capital"] is None


def test_withdrawal_beyond_capital_is_rejected():
    with pytest.raises(ValueError, match="exceeds"):
        stats.apply_withdrawal(1000, 1200)
    assert stats.apply_withdrawal(1000, 1000) == 0


@pytest.mark.parametrize("amount", [0, -5, float("nan"), float("inf")])
def test_withdrawal_requires_positive_finite_amount(amount):
    with pytest.raises(ValueError, match="positive"):
        stats.apply_withdrawal(1000, amount)


def test_loss_outcome_is_a_magnitude_that_gets_subtracted():
    # Stored amounts are positive for both outcomes
    trades = [trade("profit", 80), trade("stop-loss", 20)]
    assert stats.net_pl(trades) == 60
    assert stats.signed_outcome(trades[1]) == -20
    assert stats.compute_advanced_metrics(trades)["average_loss"] == 20


def test_non_finite_or_missing_outcomes_count_as_zero():
    trades = [trade("profit", float("nan")), trade("profit", None), trade("stop-loss", float("inf")), trade("profit", 10)]
    result = stats.compute_mode_stats(trades)
    assert result["net_pl"] == 10
    assert result["wins"] == 3
    advanced = stats.compute_advanced_metrics(trades)
    assert math.isfinite(advanced["profit_factor"])


def test_pending_trades_never_move_net_pl():
    trades = [trade("pending"), trade("pending")]
    assert stats.compute_mode_stats(trades)["net_pl"] == 0
    assert stats.compute_mode_stats(trades)["win_rate"] == 0


def test_win_rate_rounds_half_up():
    # 1 of 8 = 12.5%
    trades = [trade("profit", 1)] + [trade("stop-loss", 1) for _ in range(7)]
    assert stats.compute_mode_stats(trades)["win_rate"] == 13


def test_aggregation_is_idempotent_and_does_not_mutate_input():
    trades = scenario_one()
    snapshot = [vars(t).copy() for t in trades]
    assert stats.compute_mode_stats(trades) == stats.compute_mode_stats(trades)
    assert stats.compute_advanced_metrics(trades) == stats.compute_advanced_metrics(trades)
    assert [vars(t) for t in trades] == snapshot


def test_unknown_mode_is_rejected():
    with pytest.raises(ValueError):
        stats.filter_by_mode([], "hodl")


def test_summary_covers_all_then_each_mode():
    summary = stats.compute_stats_summary([trade("profit", 10, mode="scalp")], initial_capital=500)
    assert [s["mode"] for s in summary] == ["all", "scalp", "day", "swing", "position"]
    assert summary[1]["wins"] == 1
    assert summary[2]["total_trades"] == 0


def test_max_drawdown_walks_trades_in_time_order():
    trades = [
        trade("stop-loss", 70, at=T0 + timedelta(hours=2)),
        trade("profit", 100, at=T0),
        trade("profit", 20, at=T0 + timedelta(hours=3)),
        trade("stop-loss", 10, at=T0 + timedelta(hours=1)),
    ]
    # 100, 90, 20, 40: peak 100, trough 20
    assert stats.compute_advanced_metrics(trades)["max_drawdown"] == 80


def test_max_drawdown_is_zero_for_non_decreasing_walk():
    trades = [trade("profit", 10, at=T0 + timedelta(minutes=i)) for i in range(5)]
    assert stats.compute_advanced_metrics(trades)["max_drawdown"] == 0


def test_drawdown_counts_from_zero_when_first_trade_loses():
    assert stats.compute_advanced_metrics([trade("stop-loss", 25)])["max_drawdown"] == 25


def test_best_worst_and_streaks():
    trades = [
        trade("profit", 10, at=T0),
        trade("profit", 40, at=T0 + timedelta(hours=1)),
        trade("stop-loss", 5, at=T0 + timedelta(hours=2)),
        trade("stop-loss", 15, at=T0 + timedelta(hours=3)),
        trade("stop-loss", 1, at=T0 + timedelta(hours=4)),
        trade("profit", 2, at=T0 + timedelta(hours=5)),
    ]
    advanced = stats.compute_advanced_metrics(trades)
    assert advanced["best_trade"] == 40
    assert advanced["worst_trade"] == 15
    assert advanced["longest_win_streak"] == 2
    assert advanced["longest_loss_streak"] == 3
    assert advanced["average_win"] == pytest.approx(52 / 3)


def test_bucket_keys():
    moment = datetime(2024, 12, 30, 10, 0, tzinfo=timezone.utc)
    assert stats.bucket_key(moment, "daily") == "2024-12-30"
    # ISO week 1 of 2025 starts on Monday 2024-12-30
    assert stats.bucket_key(moment, "weekly") == "2025-W01"
    assert stats.bucket_key(moment, "monthly") == "2024-12"
    with pytest.raises(ValueError):
        stats.bucket_key(moment, "hourly")


def test_bucket_key_uses_display_timezone():
    moment = datetime(2024, 3, 1, 2, 0)  # naive, read as UTC
    assert stats.bucket_key(moment, "daily") == "2024-03-01"
    assert stats.bucket_key(moment, "daily", pytz.timezone("America/New_York")) == "2024-02-29"
    series = stats.build_performance_series([trade("profit", 5, at=moment)], "daily", "America/New_York")
    assert series["labels"] == ["2024-02-29"]


def test_performance_series_counts_and_cumulative_pl():
    trades = [
        trade("profit", 100, at=datetime(2024, 1, 15, tzinfo=timezone.utc)),
        trade("pending", at=datetime(2024, 1, 20, tzinfo=timezone.utc)),
        trade("stop-loss", 30, at=datetime(2024, 2, 3, tzinfo=timezone.utc)),
        trade("profit", 10, at=datetime(2023, 12, 31, tzinfo=timezone.utc)),
    ]
    series = stats.build_performance_series(trades, "monthly")
    assert series["labels"] == ["2023-12", "2024-01", "2024-02"]
    assert series["profit"] == [1, 1, 0]
    assert series["loss"] == [0, 0, 1]
    assert series["pending"] == [0, 1, 0]
    assert series["cumulative_pl"] == [10, 110, 80]


def test_weekly_labels_sort_chronologically_across_years():
    trades = [
        trade("profit", 1, at=datetime(2025, 1, 8, tzinfo=timezone.utc)),
        trade("profit", 1, at=datetime(2024, 11, 20, tzinfo=timezone.utc)),
    ]
    assert stats.build_performance_series(trades, "weekly")["labels"] == ["2024-W47", "2025-W02"]


@pytest.mark.parametrize("count,wins,expected", [
    (0, 0, "Novice Navigator"),
    (10, 4, "Market Apprentice"),
    (10, 3, "Novice Navigator"),
    (30, 17, "Pattern Pursuer"),
    (50, 33, "Strategy Sentinel"),
    (80, 60, "Elite Executor"),
    (80, 40, "Market Apprentice"),
])
def test_tier_thresholds(count, wins, expected):
    trades = [trade("profit", 1) for _ in range(wins)] + [trade("stop-loss", 1) for _ in range(count - wins)]
    assert stats.derive_tier(trades)["tier"] == expected


def test_tier_ignores_pending_trades():
    trades = [trade("pending") for _ in range(20)]
    profile = stats.derive_tier(trades)
    assert profile["tier"] == "Novice Navigator"
    assert profile["total_trades"] == 0
