"""
Safety Gate - Reduces a scenario battery to a single safe/unsafe decision
"""

from typing import Sequence

from ..state.models import Position
from ..state.pool import PoolState
from ..stress.engine import evaluate_scenario
from ..stress.models import StressScenario


def is_borrow_safe(
    borrow: float,
    scenarios: Sequence[StressScenario],
    positions: Sequence[Position],
    external_spot_price: float,
    pool: PoolState,
    target_ltv: float,
    liquidation_ltv: float,
    include_exposure: bool = False,
) -> bool:
    """
    Check that a borrow keeps every position solvent in every gating scenario

    Warning-only scenarios are never evaluated here. Evaluation stops at the
    first scenario whose minimum health falls below 1.0.

    Returns:
        True if all non-warning scenarios end with minimum health >= 1.0
    """
    for scenario in scenarios:
        if scenario.is_warning_only:
            continue

        result = evaluate_scenario(
            borrow,
            scenario,
            positions,
            external_spot_price,
            target_ltv,
            liquidation_ltv,
            pool,
            include_exposure=include_exposure,
        )

        if not result.min_health >= 1.0:
            return False

    return True
