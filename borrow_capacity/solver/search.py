"""
Borrow Solver - Finds the maximum safe borrow and the LTV that achieves it

For a fixed LTV the search assumes that once a borrow size is unsafe, every
larger size is unsafe too. Market sells can break that assumption (a larger
borrow deepens the pool and softens the sell), so it can be sampled at runtime
with ``monotonicity_samples`` and repaired with ``scan_fallback``.
"""

import logging
import math
from typing import List, Sequence, Tuple

import numpy as np

from ..config import LTVRange, SolverConfig
from ..errors import NonConvergenceError
from ..stress.engine import evaluate_scenario
from ..stress.models import StressScenario
from . import gate
from .models import LTVResult, MonotonicityViolation, ScenarioDiagnostic, SolverResult

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def ltv_grid(ltv_range: LTVRange) -> List[float]:
    """
    Candidate LTVs from min to max inclusive

    Values are generated from the step index, not by accumulation, and
    rounded so the boundary is neither skipped nor duplicated.
    """
    span = ltv_range.max - ltv_range.min
    count = int(math.floor(span / ltv_range.step + 1e-9)) + 1
    grid = np.round(ltv_range.min + np.arange(count) * ltv_range.step, 10)
    return [float(ltv) for ltv in grid]


class BorrowSolver:
    """Sweeps candidate LTVs and bisects the maximum safe borrow at each"""

    def __init__(self, scenarios: Sequence[StressScenario], config: SolverConfig):
        """
        Initialize borrow solver

        Args:
            scenarios: Scenario battery (warning-only ones are reported, not gated)
            config: Solver configuration
        """
        self.scenarios = list(scenarios)
        self.config = config

        # Search runs over borrow = n * tolerance for n in [0, grid_size]
        self.grid_size = int(math.floor(config.supply_cap / config.tolerance + 1e-9))

    def _amount(self, n: int) -> float:
        return min(n * self.config.tolerance, self.config.supply_cap)

    def is_safe(self, borrow: float, ltv: float) -> bool:
        """Safety gate for one borrow size at one LTV"""
        return gate.is_borrow_safe(
            borrow,
            self.scenarios,
            self.config.positions,
            self.config.external_spot_price,
            self.config.pool,
            ltv,
            self.config.liquidation_ltv,
            include_exposure=self.config.include_exposure,
        )

    def _bisect(self, lo: int, hi: int, ltv: float) -> Tuple[int, int]:
        """
        Narrow a bracket whose lower end is safe and upper end is unsafe

        Args:
            lo: Grid index known to be safe
            hi: Grid index known to be unsafe (grid_size + 1 stands for beyond the cap)
            ltv: LTV of the new borrow

        Returns:
            Tuple of (largest safe grid index, iterations used)
        """
        iterations = 0

        while hi - lo > 1:
            if iterations >= self.config.max_iterations:
                raise NonConvergenceError(ltv, iterations, self._amount(lo), self._amount(hi))

            iterations += 1
            mid = (lo + hi) // 2

            if self.is_safe(self._amount(mid), ltv):
                lo = mid
            else:
                hi = mid

        return lo, iterations

    def _check_monotonicity(
        self, ltv: float, best: int
    ) -> Tuple[int, List[MonotonicityViolation], int]:
        """
        Sample the grid and compare each point with the bisection result

        Returns:
            Tuple of (possibly improved best grid index, violations found,
            bisection iterations spent by the scan fallback)
        """
        samples = self.config.monotonicity_samples
        if samples == 0 or self.grid_size == 0:
            return best, [], 0

        points = sorted({int(round(self.grid_size * j / samples)) for j in range(1, samples + 1)})
        observed = [(p, self.is_safe(self._amount(p), ltv)) for p in points]

        violations = [
            MonotonicityViolation(
                ltv=ltv,
                borrow=self._amount(p),
                search_result=self._amount(best),
                observed_safe=safe,
            )
            for p, safe in observed
            if safe != (p <= best)
        ]

        for v in violations:
            logger.warning(f"Monotonicity violation: {v.message}")

        fallback_iterations = 0

        if violations and self.config.scan_fallback:
            top_safe = max((p for p, safe in observed if safe), default=0)

            if top_safe > best:
                next_sample = min((p for p, _ in observed if p > top_safe), default=self.grid_size + 1)
                refined, fallback_iterations = self._bisect(top_safe, next_sample, ltv)
                logger.warning(
                    f"LTV {ltv:.2f}: scan fallback raised max borrow from "
                    f"{self._amount(best):,.2f} to {self._amount(refined):,.2f}"
                )
                best = refined

        return best, violations, fallback_iterations

    def search_ltv(self, ltv: float) -> Tuple[LTVResult, List[MonotonicityViolation]]:
        """
        Find the maximum safe borrow at a single LTV

        Returns:
            Tuple of (LTVResult, monotonicity violations)
        """
        if not self.is_safe(0.0, ltv):
            logger.debug(f"LTV {ltv:.2f}: existing positions already unsafe, skipping")
            return LTVResult(ltv=ltv, feasible=False, max_borrow=0.0, iterations=0), []

        best, iterations = self._bisect(0, self.grid_size + 1, ltv)
        best, violations, fallback_iterations = self._check_monotonicity(ltv, best)
        iterations += fallback_iterations

        result = LTVResult(ltv=ltv, feasible=True, max_borrow=self._amount(best), iterations=iterations)
        logger.debug(f"LTV {ltv:.2f}: max borrow {result.max_borrow:,.2f} "
                     f"after {iterations} iterations")

        return result, violations

    def diagnose(self, borrow: float, ltv: float) -> List[ScenarioDiagnostic]:
        """Evaluate every configured scenario, warning-only included, at one borrow and LTV"""
        diagnostics = []

        for scenario in self.scenarios:
            result = evaluate_scenario(
                borrow,
                scenario,
                self.config.positions,
                self.config.external_spot_price,
                ltv,
                self.config.liquidation_ltv,
                self.config.pool,
                include_exposure=self.config.include_exposure,
            )
            diagnostics.append(ScenarioDiagnostic(
                scenario_name=scenario.name,
                is_warning_only=scenario.is_warning_only,
                result=result,
            ))

        return diagnostics

    def solve(self) -> SolverResult:
        """
        Run the LTV sweep and report the global optimum

        Returns:
            SolverResult (max_safe_borrow is 0 when no borrow is safe)
        """
        grid = ltv_grid(self.config.ltv_range)
        logger.info(f"Searching max safe borrow over {len(grid)} LTVs "
                    f"({grid[0]:.2f}-{grid[-1]:.2f}), cap={self.config.supply_cap:,.2f}")

        best_amount = 0.0
        best_ltv = self.config.ltv_range.min
        ltv_results = []
        warnings = []

        for ltv in grid:
            result, violations = self.search_ltv(ltv)
            ltv_results.append(result)
            warnings.extend(violations)

            # Strict comparison keeps the smallest LTV on ties
            if result.max_borrow > best_amount:
                best_amount = result.max_borrow
                best_ltv = ltv

        solution = SolverResult(
            max_safe_borrow=int(math.floor(best_amount)),
            optimal_ltv=best_ltv,
            diagnostics=self.diagnose(best_amount, best_ltv),
            ltv_results=ltv_results,
            warnings=warnings,
        )

        logger.info(f"Max safe borrow: {solution.max_safe_borrow:,} at LTV {best_ltv:.2f}")

        return solution


def solve_max_borrow(scenarios: Sequence[StressScenario], config: SolverConfig) -> SolverResult:
    """
    Find the maximum safe borrow across a scenario battery

    Args:
        scenarios: Scenario battery
        config: Solver configuration

    Returns:
        SolverResult with the optimum and per-scenario diagnostics
    """
    return BorrowSolver(scenarios, config).solve()
