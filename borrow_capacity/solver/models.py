"""
Solver Models - Results of the maximum safe borrow search
"""

from dataclasses import dataclass, field
from typing import Dict, List

import pandas as pd

from ..state.models import PositionMetrics
from ..state.pool import PoolState
from ..stress.models import ScenarioResult


@dataclass
class ScenarioDiagnostic:
    """One configured scenario evaluated at the discovered optimum"""

    scenario_name: str
    is_warning_only: bool
    result: ScenarioResult

    @property
    def min_health(self) -> float:
        return self.result.min_health

    @property
    def position_metrics(self) -> List[PositionMetrics]:
        return self.result.position_metrics

    @property
    def shocked_external_price(self) -> float:
        return self.result.shocked_external_price

    @property
    def resulting_pool(self) -> PoolState:
        return self.result.resulting_pool

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization"""
        data = {"scenario_name": self.scenario_name, "is_warning_only": self.is_warning_only}
        data.update(self.result.to_dict())
        return data


@dataclass
class LTVResult:
    """Outcome of the borrow search at one candidate LTV"""

    ltv: float
    feasible: bool
    max_borrow: float
    iterations: int

    def to_dict(self) -> Dict:
        return {
            "ltv": self.ltv,
            "feasible": self.feasible,
            "max_borrow": self.max_borrow,
            "iterations": self.iterations,
        }


@dataclass
class MonotonicityViolation:
    """A sampled borrow whose safety contradicts the bisection result"""

    ltv: float
    borrow: float
    search_result: float
    observed_safe: bool

    @property
    def message(self) -> str:
        expected = "safe" if self.borrow <= self.search_result else "unsafe"
        observed = "safe" if self.observed_safe else "unsafe"
        return (
            f"LTV {self.ltv:.2f}: borrow {self.borrow:,.2f} expected {expected} "
            f"(search result {self.search_result:,.2f}) but was {observed}"
        )

    def to_dict(self) -> Dict:
        return {
            "ltv": self.ltv,
            "borrow": self.borrow,
            "search_result": self.search_result,
            "observed_safe": self.observed_safe,
            "message": self.message,
        }


@dataclass
class SolverResult:
    """Maximum safe borrow, its LTV and the diagnostics behind them"""

    max_safe_borrow: int
    optimal_ltv: float
    diagnostics: List[ScenarioDiagnostic]
    ltv_results: List[LTVResult] = field(default_factory=list)
    warnings: List[MonotonicityViolation] = field(default_factory=list)

    @property
    def has_safe_borrow(self) -> bool:
        return self.max_safe_borrow > 0

    def diagnostics_frame(self) -> pd.DataFrame:
        """
        Tabulate scenario diagnostics

        Returns:
            DataFrame with one row per configured scenario, in configured order
        """
        rows = []

        for d in self.diagnostics:
            rows.append({
                'scenario_name': d.scenario_name,
                'is_warning_only': d.is_warning_only,
                'min_health': d.min_health,
                'shocked_external_price': d.shocked_external_price,
                'risk_price': d.result.risk_price,
                'reserve_risk': d.resulting_pool.reserve_risk,
                'reserve_quote': d.resulting_pool.reserve_quote,
            })

        return pd.DataFrame(rows)

    def ltv_frame(self) -> pd.DataFrame:
        """Tabulate the per-LTV search outcomes"""
        return pd.DataFrame([r.to_dict() for r in self.ltv_results])

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization"""
        return {
            "max_safe_borrow": self.max_safe_borrow,
            "optimal_ltv": self.optimal_ltv,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "ltv_results": [r.to_dict() for r in self.ltv_results],
            "warnings": [w.to_dict() for w in self.warnings],
        }

    def summary(self) -> str:
        """Generate human-readable summary"""
        failing = [d.scenario_name for d in self.diagnostics if d.min_health < 1.0]

        return f"""
Max Safe Borrow
----------------------------------------
Max Safe Borrow: ${self.max_safe_borrow:,}
Optimal LTV: {self.optimal_ltv:.3f}
Scenarios Evaluated: {len(self.diagnostics)}
Scenarios Below 1.0: {len(failing)}
Monotonicity Warnings: {len(self.warnings)}
"""
