"""
Position Health Calculator - Solvency metrics for positions at a pool state
"""

from typing import Iterable, List

import pandas as pd

from ..state.models import Position, PositionMetrics
from ..state.pool import PoolState

INF = float("inf")


def compute_position_metrics(
    pool: PoolState,
    external_price: float,
    position: Position,
    include_exposure: bool = False,
) -> PositionMetrics:
    """
    Compute LTV, health score and liquidation price for one position

    Liquidation is a function of collateral value against debt only. The
    position's quote asset exposure is counted as collateral only when
    include_exposure is set.

    Args:
        pool: Pool state pricing the risk asset
        external_price: Price of one quote unit in external units
        position: Position to score
        include_exposure: Count exposure_amount at external_price as collateral

    Returns:
        PositionMetrics for the position
    """
    risk_price = pool.price_in_external_units(external_price)
    collateral_value = position.collateral_amount * risk_price
    exposure_value = position.exposure_amount * external_price if include_exposure else 0.0
    collateral_value += exposure_value

    debt = position.debt_amount
    lltv = position.liquidation_ltv

    if debt == 0:
        return PositionMetrics(position=position, ltv=0.0, health_score=INF, liquidation_price=0.0)

    if collateral_value == 0:
        ltv = INF
        health_score = 0.0
    else:
        ltv = debt / collateral_value
        # Single rounding step so debt == lltv * collateral_value scores exactly 1.0
        health_score = lltv * collateral_value / debt

    # Risk asset price at which health = 1, with any counted exposure held at external_price
    uncovered_debt = max(0.0, debt - lltv * exposure_value)
    if position.collateral_amount == 0:
        liquidation_price = INF if uncovered_debt > 0 else 0.0
    else:
        liquidation_price = uncovered_debt / (lltv * position.collateral_amount)

    return PositionMetrics(
        position=position,
        ltv=ltv,
        health_score=health_score,
        liquidation_price=liquidation_price,
    )


def compute_all_metrics(
    pool: PoolState,
    external_price: float,
    positions: Iterable[Position],
    include_exposure: bool = False,
) -> List[PositionMetrics]:
    """Score every position against the same pool state and price"""
    return [
        compute_position_metrics(pool, external_price, p, include_exposure=include_exposure)
        for p in positions
    ]


def min_health(metrics: Iterable[PositionMetrics]) -> float:
    """Lowest health score, or inf when there are no positions"""
    return min((m.health_score for m in metrics), default=INF)


def metrics_frame(metrics: Iterable[PositionMetrics]) -> pd.DataFrame:
    """
    Tabulate position metrics

    Returns:
        DataFrame with one row per position, sorted by health score
    """
    rows = [m.to_dict() for m in metrics]
    columns = [
        "collateral_amount", "debt_amount", "liquidation_ltv", "exposure_amount",
        "entry_price", "ltv", "health_score", "liquidation_price", "is_safe",
    ]

    if not rows:
        return pd.DataFrame(columns=columns)

    return pd.DataFrame(rows, columns=columns).sort_values("health_score").reset_index(drop=True)
