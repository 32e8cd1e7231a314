"""Position sizing utilities.

Standalone advisory functions; nothing here gates execution.
"""

import structlog

logger = structlog.get_logger()

KELLY_CAP = 0.25


def kelly_criterion(win_rate: float, average_win: float, average_loss: float) -> float:
    """Kelly fraction from realised trade statistics.

    Parameters
    ----------
    win_rate:
        Win rate in percent (0-100).
    average_win:
        Mean profit of winning trades.
    average_loss:
        Mean absolute loss of losing trades.

    Returns
    -------
    float
        Fraction of capital to risk, clamped to ``[0, 0.25]``.
    """
    if average_loss == 0 or win_rate == 0 or average_win <= 0:
        return 0.0

    p = win_rate / 100.0
    q = 1.0 - p
    win_loss_ratio = average_win / average_loss

    kelly = p - q / win_loss_ratio
    fraction = max(0.0, min(KELLY_CAP, kelly))

    logger.debug(
        "kelly_criterion",
        win_rate=win_rate,
        win_loss_ratio=win_loss_ratio,
        raw_kelly=kelly,
        fraction=fraction,
    )
    return fraction


def optimal_position_size(
    price: float,
    stop_loss: float,
    quantity: float,
    balance: float,
    risk_per_trade: float,
    max_position_size: float,
) -> float:
    """Quantity that risks ``risk_per_trade`` percent of balance if stopped out.

    Capped by the flat notional limit and by the quantity originally proposed.
    """
    stop_distance = abs(price - stop_loss)
    if stop_distance == 0 or price <= 0:
        return 0.0

    risk_amount = balance * (risk_per_trade / 100.0)
    by_risk = risk_amount / stop_distance
    by_notional = max_position_size / price

    return max(0.0, min(by_risk, by_notional, quantity))
