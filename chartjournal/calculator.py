# chartjournal/calculator.py
from typing import Dict, Optional


def calculate_trade_setup(
    account_balance: float,
    risk_per_trade: float,
    stop_loss_distance: float,
    leverage: float,
    risk_reward_ratio: float,
    entry_price: float,
    trade_type: str = "Long",
    exit_price: Optional[float] = None,
) -> Dict:
    """Position sizing for a fixed-percentage risk.

    ``risk_per_trade`` is a percent of ``account_balance``; the stop loss
    is a price distance from entry. With an ``exit_price`` the result also
    carries the P/L and initial margin of closing there. Raises ValueError
    when a size, price or ratio is not positive.
    """
    for name, value in (
        ("account_balance", account_balance),
        ("stop_loss_distance", stop_loss_distance),
        ("leverage", leverage),
        ("risk_reward_ratio", risk_reward_ratio),
        ("entry_price", entry_price),
    ):
        if value <= 0:
            raise ValueError(f"{name} must be greater than 0")
    if risk_per_trade < 0:
        raise ValueError("risk_per_trade cannot be negative")
    if exit_price is not None and exit_price <= 0:
        raise ValueError("exit_price must be greater than 0")

    is_long = trade_type.lower() == "long"
    risk_amount = account_balance * risk_per_trade / 100
    position_size = risk_amount / stop_loss_distance
    position_value = position_size * entry_price
    take_profit_distance = stop_loss_distance * risk_reward_ratio

    if is_long:
        take_profit_price = entry_price + take_profit_distance
        liquidation_price = entry_price * (1 - 1 / leverage)
    else:
        take_profit_price = entry_price - take_profit_distance
        liquidation_price = entry_price * (1 + 1 / leverage)

    result = {
        "trade_type": "Long" if is_long else "Short",
        "risk_amount": risk_amount,
        "position_size": position_size,
        "position_value": position_value,
        "margin_required": position_value / leverage,
        "take_profit_distance": take_profit_distance,
        "take_profit_price": take_profit_price,
        "potential_profit": risk_amount * risk_reward_ratio,
        "potential_loss": risk_amount,
        "liquidation_price": liquidation_price,
        "pnl": None,
        "initial_margin": None,
    }

    # Closing P/L only makes sense for an open position
    if exit_price is not None and position_size > 0:
        move = exit_price - entry_price if is_long else entry_price - exit_price
        result["pnl"] = move * position_size
        result["initial_margin"] = entry_price * position_size / leverage
    return result
