"""
Stress Testing Engine - Evaluates a candidate borrow under market stress scenarios
"""

import math
from typing import List, Optional, Sequence

import pandas as pd

from ..errors import InvalidInputError
from ..metrics.core import compute_all_metrics, min_health
from ..state.models import Position
from ..state.pool import PoolState
from .models import ScenarioResult, StressScenario


def evaluate_scenario(
    borrow: float,
    scenario: StressScenario,
    positions: Sequence[Position],
    external_spot_price: float,
    target_ltv: float,
    liquidation_ltv: float,
    pool: PoolState,
    include_exposure: bool = False,
) -> ScenarioResult:
    """
    Add a new borrow of the given size, then apply a stress scenario

    The borrowed funds buy quote asset at the external spot price, which is
    paired in equal external value with freshly minted risk asset and added to
    the pool. That deposit is price-neutral and only deepens the pool. The
    scenario's market sell and external price shock are applied afterwards.

    Args:
        borrow: New debt to issue (0 evaluates existing positions only)
        scenario: Stress to apply
        positions: Existing positions
        external_spot_price: Current price of one quote unit in external units
        target_ltv: LTV the new borrow is opened at
        liquidation_ltv: Liquidation LTV of the new borrow
        pool: Live pool state (never modified)
        include_exposure: Count exposure as collateral when scoring

    Returns:
        ScenarioResult with the minimum health across all positions
    """
    if not math.isfinite(borrow) or borrow < 0:
        raise InvalidInputError(f"borrow must be a non-negative finite number, got {borrow!r}")
    if not math.isfinite(external_spot_price) or external_spot_price <= 0:
        raise InvalidInputError(f"external_spot_price must be positive, got {external_spot_price!r}")

    trial_pool = pool.clone()
    all_positions: List[Position] = list(positions)

    if borrow > 0:
        if not (0 < target_ltv <= 1):
            raise InvalidInputError(f"target_ltv must be in (0, 1], got {target_ltv!r}")

        risk_price = trial_pool.price_in_external_units(external_spot_price)

        collateral = borrow / (target_ltv * risk_price)
        exposure = borrow / external_spot_price
        # Minted, not bought: paired 1:1 in external value with the exposure
        minted_risk = borrow / risk_price

        trial_pool.add_liquidity(risk_amount=minted_risk, quote_amount=exposure)

        all_positions.append(Position(
            collateral_amount=collateral,
            debt_amount=borrow,
            liquidation_ltv=liquidation_ltv,
            exposure_amount=exposure,
            entry_price=external_spot_price,
        ))

    if scenario.sell_amount > 0:
        trial_pool.sell_risk(scenario.sell_amount)

    shocked_price = external_spot_price * scenario.price_multiplier

    metrics = compute_all_metrics(
        trial_pool, shocked_price, all_positions, include_exposure=include_exposure
    )

    return ScenarioResult(
        min_health=min_health(metrics),
        position_metrics=metrics,
        resulting_pool=trial_pool,
        shocked_external_price=shocked_price,
    )


class StressTestEngine:
    """Runs stress scenarios against a fixed market context"""

    def __init__(
        self,
        pool: PoolState,
        positions: Sequence[Position],
        external_spot_price: float,
        scenarios: Sequence[StressScenario],
        target_ltv: float,
        liquidation_ltv: float,
        include_exposure: bool = False,
    ):
        """
        Initialize stress test engine

        Args:
            pool: Live pool state
            positions: Existing positions
            external_spot_price: Current price of one quote unit in external units
            scenarios: Scenarios to evaluate, in reporting order
            target_ltv: LTV for any new borrow
            liquidation_ltv: Liquidation LTV for any new borrow
            include_exposure: Count exposure as collateral when scoring
        """
        self.pool = pool
        self.positions = list(positions)
        self.external_spot_price = external_spot_price
        self.scenarios = list(scenarios)
        self.target_ltv = target_ltv
        self.liquidation_ltv = liquidation_ltv
        self.include_exposure = include_exposure

    def evaluate(self, scenario: StressScenario, borrow: float = 0.0) -> ScenarioResult:
        """Evaluate a single scenario for a candidate borrow"""
        return evaluate_scenario(
            borrow,
            scenario,
            self.positions,
            self.external_spot_price,
            self.target_ltv,
            self.liquidation_ltv,
            self.pool,
            include_exposure=self.include_exposure,
        )

    def run_all_scenarios(self, borrow: float = 0.0) -> pd.DataFrame:
        """
        Run all stress scenarios for a candidate borrow

        Returns:
            DataFrame with one row per scenario
        """
        results = []

        for scenario in self.scenarios:
            result = self.evaluate(scenario, borrow)

            results.append({
                'scenario_name': scenario.name,
                'is_warning_only': scenario.is_warning_only,
                'sell_amount': scenario.sell_amount,
                'price_multiplier': scenario.price_multiplier,
                'min_health': result.min_health,
                'shocked_external_price': result.shocked_external_price,
                'risk_price': result.risk_price,
                'is_safe': result.is_safe,
            })

        return pd.DataFrame(results)

    def worst_scenario(self, borrow: float = 0.0) -> Optional[dict]:
        """
        Find the scenario with the lowest minimum health

        Returns:
            Row of run_all_scenarios as a dict, or None without scenarios
        """
        results = self.run_all_scenarios(borrow)

        if results.empty:
            return None

        return results.loc[results['min_health'].idxmin()].to_dict()
