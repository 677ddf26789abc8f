"""Solver configuration, supply profile and YAML loading"""

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence, Tuple, Union

import pandas as pd
import yaml

from .errors import InvalidInputError
from .state.models import Position
from .state.pool import PoolState
from .state.reconstructor import StateReconstructor
from .stress.models import StressScenario

logger = logging.getLogger(__name__)

DEFAULT_LTV_STEP = 0.05


@dataclass(frozen=True)
class LTVRange:
    """Inclusive range of candidate LTVs swept by the solver"""

    min: float = 0.3
    max: float = 0.8
    step: float = DEFAULT_LTV_STEP

    def __post_init__(self):
        if not (0 < self.min <= self.max <= 1):
            raise InvalidInputError(
                f"LTV range must satisfy 0 < min <= max <= 1, got [{self.min}, {self.max}]"
            )
        if not self.step > 0:
            raise InvalidInputError(f"LTV step must be positive, got {self.step}")


@dataclass(frozen=True)
class SupplyProfile:
    """
    Circulating supply breakdown of the risk asset

    Used to size sell-pressure scenarios from who could plausibly sell.
    """

    circulating: float = 0.0
    staked: float = 0.0
    treasury_unstaked: float = 0.0
    liquid_staking_pool: float = 0.0
    withdrawal_queue: float = 0.0

    def holders_float(self, pool_reserve: float) -> float:
        """Risk asset held by outside holders (not staked, treasury or pooled)"""
        return max(0.0, self.circulating - self.staked - self.treasury_unstaked - pool_reserve)

    def max_sell_pressure(self, pool_reserve: float) -> float:
        """Everything that can reach the market quickly"""
        return self.liquid_staking_pool + self.withdrawal_queue + self.holders_float(pool_reserve)

    def resolve_sell_amount(self, value: Union[float, str], pool_reserve: float) -> float:
        """
        Resolve a scenario sell amount given as a number or a named level

        Args:
            value: Number, or one of holders_float, max_pressure,
                withdrawal_queue, liquid_staking_pool
            pool_reserve: Risk asset reserve of the pool

        Returns:
            Sell amount in risk asset units
        """
        if isinstance(value, str):
            levels = {
                "holders_float": self.holders_float(pool_reserve),
                "max_pressure": self.max_sell_pressure(pool_reserve),
                "withdrawal_queue": self.withdrawal_queue,
                "liquid_staking_pool": self.liquid_staking_pool,
            }
            if value not in levels:
                raise InvalidInputError(
                    f"Unknown sell level '{value}', expected one of {sorted(levels)}"
                )
            return levels[value]

        return float(value)


@dataclass(frozen=True)
class SolverConfig:
    """Everything the borrow solver needs besides the scenario list"""

    pool: PoolState
    external_spot_price: float
    supply_cap: float
    positions: Tuple[Position, ...] = ()
    tolerance: float = 1.0
    ltv_range: LTVRange = field(default_factory=LTVRange)
    liquidation_ltv: float = 0.9
    base_ltv: float = 0.8
    max_iterations: int = 256
    monotonicity_samples: int = 0
    scan_fallback: bool = True
    include_exposure: bool = False
    market_name: str = "market"

    def __post_init__(self):
        object.__setattr__(self, "positions", tuple(self.positions))

        if not math.isfinite(self.external_spot_price) or self.external_spot_price <= 0:
            raise InvalidInputError(
                f"external_spot_price must be positive, got {self.external_spot_price!r}"
            )
        if not math.isfinite(self.supply_cap) or self.supply_cap < 0:
            raise InvalidInputError(f"supply_cap must be >= 0, got {self.supply_cap!r}")
        if not math.isfinite(self.tolerance) or self.tolerance <= 0:
            raise InvalidInputError(f"tolerance must be positive, got {self.tolerance!r}")
        if not (0 < self.liquidation_ltv <= 1):
            raise InvalidInputError(f"liquidation_ltv must be in (0, 1], got {self.liquidation_ltv!r}")
        if not (0 < self.base_ltv <= 1):
            raise InvalidInputError(f"base_ltv must be in (0, 1], got {self.base_ltv!r}")
        if self.max_iterations < 1:
            raise InvalidInputError(f"max_iterations must be >= 1, got {self.max_iterations!r}")
        if self.monotonicity_samples < 0:
            raise InvalidInputError(
                f"monotonicity_samples must be >= 0, got {self.monotonicity_samples!r}"
            )


def default_scenarios(supply: SupplyProfile, pool: PoolState) -> List[StressScenario]:
    """
    Reference scenario battery

    Sell sizes above the holder float and the deepest external shocks are
    reported as warnings only.
    """
    holders = supply.holders_float(pool.reserve_risk)
    max_pressure = supply.max_sell_pressure(pool.reserve_risk)

    return [
        StressScenario("No stress", 0, 1.0),
        StressScenario("Mild sell (5k)", 5_000, 1.0),
        StressScenario("Moderate sell (30k)", 30_000, 1.0, is_warning_only=True),
        StressScenario("All holders sell", holders, 1.0, is_warning_only=True),
        StressScenario("Max pressure", max_pressure, 1.0, is_warning_only=True),
        StressScenario("External -15%", 0, 0.85),
        StressScenario("External -30%", 0, 0.7),
        StressScenario("External -50%", 0, 0.5),
        StressScenario("External -80%", 0, 0.2, is_warning_only=True),
        StressScenario("External -30% + 30k sold", 30_000, 0.7, is_warning_only=True),
        StressScenario("External -50% + 30k sold", 30_000, 0.5, is_warning_only=True),
        StressScenario("External -30% + Max pressure", max_pressure, 0.7, is_warning_only=True),
        StressScenario("External +15%", 0, 1.15),
    ]


def parse_scenarios(
    raw_scenarios: Sequence[dict], supply: SupplyProfile, pool: PoolState
) -> List[StressScenario]:
    """Build scenarios from config entries, resolving named sell levels"""
    scenarios = []

    for entry in raw_scenarios:
        scenarios.append(StressScenario(
            name=entry["name"],
            sell_amount=supply.resolve_sell_amount(entry.get("sell_amount", 0), pool.reserve_risk),
            price_multiplier=float(entry.get("price_multiplier", 1.0)),
            is_warning_only=bool(entry.get("warning_only", False)),
        ))

    return scenarios


def load_config(config_path: Union[str, Path]) -> Tuple[SolverConfig, List[StressScenario]]:
    """
    Load solver configuration and scenarios from a YAML file

    Args:
        config_path: Path to YAML with market, supply, solver, positions and
            scenarios sections

    Returns:
        Tuple of (SolverConfig, scenarios)
    """
    config_path = Path(config_path)

    with open(config_path, "r") as f:
        raw = yaml.safe_load(f) or {}

    if "market" not in raw:
        raise InvalidInputError(f"{config_path}: missing 'market' section")

    reconstructor = StateReconstructor(raw["market"])
    snapshot = reconstructor.create_snapshot(pd.DataFrame(raw.get("positions") or []))

    supply = SupplyProfile(**(raw.get("supply") or {}))
    solver = raw.get("solver") or {}
    ltv_range = LTVRange(**(solver.get("ltv_range") or {}))

    config = SolverConfig(
        pool=snapshot.pool,
        external_spot_price=snapshot.external_spot_price,
        supply_cap=float(solver.get("supply_cap", 0)),
        positions=tuple(snapshot.positions),
        tolerance=float(solver.get("tolerance", 1.0)),
        ltv_range=ltv_range,
        liquidation_ltv=float(solver.get("liquidation_ltv", 0.9)),
        base_ltv=float(solver.get("base_ltv", 0.8)),
        max_iterations=int(solver.get("max_iterations", 256)),
        monotonicity_samples=int(solver.get("monotonicity_samples", 0)),
        scan_fallback=bool(solver.get("scan_fallback", True)),
        include_exposure=bool(solver.get("include_exposure", False)),
        market_name=snapshot.name,
    )

    if raw.get("scenarios"):
        scenarios = parse_scenarios(raw["scenarios"], supply, snapshot.pool)
    else:
        scenarios = default_scenarios(supply, snapshot.pool)

    logger.info(f"Loaded {len(scenarios)} scenarios and {len(config.positions)} positions "
                f"from {config_path}")

    return config, scenarios
