# chartjournal/stats.py
"""Trading statistics over a plain list of trades.

Everything here is pure: no database, no network, inputs are never mutated.
A trade is any object with ``mode``, ``status``, ``outcome_amount`` and
``timestamp`` attributes (ORM ``created_at`` is accepted as the timestamp).
Callers are expected to drop malformed trades before aggregating.
"""
import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pytz

TRADING_MODES = ("scalp", "day", "swing", "position")
DASHBOARD_MODES = ("all",) + TRADING_MODES
TIMEFRAMES = ("daily", "weekly", "monthly")

# Highest tier first: (tier, min completed trades, min win rate %, description)
TIERS = (
    ("Elite Executor", 75, 75,
     "You operate at a high level of precision and mastery. Your execution is sharp, "
     "and your performance is exceptional."),
    ("Strategy Sentinel", 50, 65,
     "You trade with a clear plan and strong discipline. Your strategy is robust, "
     "leading to consistent positive results."),
    ("Pattern Pursuer", 30, 55,
     "You have a knack for spotting opportunities and are developing a consistent approach. "
     "Your discipline is starting to pay off."),
    ("Market Apprentice", 10, 40,
     "You're gaining experience and learning the ropes. Consistency is developing, "
     "and you're starting to understand market movements."),
)
DEFAULT_TIER = (
    "Novice Navigator",
    "You're at the beginning of your trading journey, exploring the markets. "
    "Every trade is a valuable lesson.",
)


def outcome(trade) -> float:
    """Realized amount as stored (a positive magnitude); missing or non-finite counts as 0."""
    value = getattr(trade, "outcome_amount", None)
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def signed_outcome(trade) -> float:
    if trade.status == "profit":
        return outcome(trade)
    if trade.status == "stop-loss":
        return -outcome(trade)
    return 0.0


def trade_time(trade) -> Optional[datetime]:
    value = getattr(trade, "timestamp", None)
    if value is None:
        value = getattr(trade, "created_at", None)
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return value


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percent(part: int, whole: int) -> int:
    return round_half_up(part / whole * 100) if whole > 0 else 0


def filter_by_mode(trades: Iterable, mode: str = "all") -> List:
    if mode not in DASHBOARD_MODES:
        raise ValueError(f"Unknown trading mode: {mode}")
    if mode == "all":
        return list(trades)
    return [t for t in trades if t.mode == mode]


def completed_trades(trades: Iterable) -> List:
    return [t for t in trades if t.status in ("profit", "stop-loss")]


def net_pl(trades: Iterable) -> float:
    return sum(signed_outcome(t) for t in trades)


def compute_mode_stats(trades: Sequence, mode: str = "all", initial_capital: float = 0) -> Dict[str, Any]:
    """Counts, win rate and net P/L for one dashboard view.

    Equity is only reported for the ``all`` view; base capital is not split
    between modes, so per-mode views carry ``None`` there.
    """
    scoped = filter_by_mode(trades, mode)
    completed = completed_trades(scoped)
    wins = sum(1 for t in completed if t.status == "profit")
    losses = len(completed) - wins
    pl = net_pl(completed)

    stats = {
        "mode": mode,
        "total_trades": len(scoped),
        "completed": len(completed),
        "wins": wins,
        "losses": losses,
        "pending": sum(1 for t in scoped if t.status == "pending"),
        "win_rate": percent(wins, len(completed)),
        "net_pl": pl,
        "initial_capital": None,
        "current_equity": None,
    }
    if mode == "all":
        stats["initial_capital"] = initial_capital
        stats["current_equity"] = initial_capital + pl
    return stats


def compute_stats_summary(trades: Sequence, initial_capital: float = 0) -> List[Dict[str, Any]]:
    return [compute_mode_stats(trades, mode, initial_capital) for mode in DASHBOARD_MODES]


def _chronological(trades: Sequence) -> List:
    # Stable: trades without a timestamp, or with equal ones, keep their order
    indexed = list(enumerate(trades))
    indexed.sort(key=lambda pair: (_sort_key(trade_time(pair[1])), pair[0]))
    return [t for _, t in indexed]


def _sort_key(value: Optional[datetime]) -> float:
    if value is None:
        return float("-inf")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def compute_advanced_metrics(trades: Sequence, mode: str = "all") -> Dict[str, Any]:
    completed = completed_trades(filter_by_mode(trades, mode))
    win_amounts = [outcome(t) for t in completed if t.status == "profit"]
    loss_amounts = [outcome(t) for t in completed if t.status == "stop-loss"]
    gross_win = sum(win_amounts)
    gross_loss = sum(loss_amounts)

    running = peak = max_drawdown = 0.0
    win_streak = loss_streak = longest_win = longest_loss = 0
    for trade in _chronological(completed):
        running += signed_outcome(trade)
        peak = max(peak, running)
        max_drawdown = max(max_drawdown, peak - running)

        if trade.status == "profit":
            win_streak, loss_streak = win_streak + 1, 0
        else:
            win_streak, loss_streak = 0, loss_streak + 1
        longest_win = max(longest_win, win_streak)
        longest_loss = max(longest_loss, loss_streak)

    return {
        "total_trades": len(completed),
        "win_rate": percent(len(win_amounts), len(completed)),
        "total_wins": len(win_amounts),
        "total_losses": len(loss_amounts),
        "average_win": gross_win / len(win_amounts) if win_amounts else 0.0,
        "average_loss": gross_loss / len(loss_amounts) if loss_amounts else 0.0,
        "profit_factor": gross_win / gross_loss if gross_loss > 0 else 0.0,
        "max_drawdown": max_drawdown,
        "best_trade": max(win_amounts, default=0.0),
        "worst_trade": max(loss_amounts, default=0.0),
        "longest_win_streak": longest_win,
        "longest_loss_streak": longest_loss,
    }


def bucket_key(moment: datetime, timeframe: str, tz=None) -> str:
    """Calendar key for a timestamp; keys sort in chronological order."""
    if tz is not None:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        moment = moment.astimezone(tz)
    if timeframe == "daily":
        return moment.strftime("%Y-%m-%d")
    if timeframe == "weekly":
        iso_year, iso_week, _ = moment.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    if timeframe == "monthly":
        return moment.strftime("%Y-%m")
    raise ValueError(f"Unknown timeframe: {timeframe}")


def build_performance_series(trades: Sequence, timeframe: str = "daily", tz=None) -> Dict[str, Any]:
    """Per-bucket profit/loss/pending counts plus cumulative net P/L.

    ``tz`` is a tzinfo or a timezone name; naive timestamps are read as UTC.
    """
    if isinstance(tz, str):
        tz = pytz.timezone(tz)

    buckets: Dict[str, Dict[str, float]] = {}
    for trade in trades:
        moment = trade_time(trade)
        if moment is None:
            continue
        bucket = buckets.setdefault(
            bucket_key(moment, timeframe, tz), {"profit": 0, "loss": 0, "pending": 0, "pl": 0.0}
        )
        if trade.status == "profit":
            bucket["profit"] += 1
        elif trade.status == "stop-loss":
            bucket["loss"] += 1
        elif trade.status == "pending":
            bucket["pending"] += 1
        bucket["pl"] += signed_outcome(trade)

    labels = sorted(buckets)
    cumulative = []
    running = 0.0
    for label in labels:
        running += buckets[label]["pl"]
        cumulative.append(running)

    return {
        "timeframe": timeframe,
        "labels": labels,
        "profit": [buckets[k]["profit"] for k in labels],
        "loss": [buckets[k]["loss"] for k in labels],
        "pending": [buckets[k]["pending"] for k in labels],
        "cumulative_pl": cumulative,
    }


def derive_tier(trades: Sequence) -> Dict[str, Any]:
    completed = completed_trades(trades)
    total = len(completed)
    wins = sum(1 for t in completed if t.status == "profit")
    win_rate = wins / total * 100 if total > 0 else 0

    tier, description = DEFAULT_TIER
    for name, min_trades, min_win_rate, text in TIERS:
        if total >= min_trades and win_rate >= min_win_rate:
            tier, description = name, text
            break

    return {
        "tier": tier,
        "description": description,
        "win_rate": round_half_up(win_rate),
        "total_trades": total,
    }


def apply_withdrawal(capital: float, amount: float) -> float:
    """New base capital after a withdrawal; never negative."""
    if not math.isfinite(amount) or amount <= 0:
        raise ValueError("Please enter a valid positive withdrawal amount.")
    remaining = capital - amount
    if remaining < 0:
        raise ValueError("Withdrawal amount exceeds available capital.")
    return remaining
