"""
Tests for the scenario evaluator and StressTestEngine
"""

import pytest

from borrow_capacity.errors import InvalidInputError
from borrow_capacity.state.models import Position
from borrow_capacity.state.pool import PoolState
from borrow_capacity.stress.engine import StressTestEngine, evaluate_scenario
from borrow_capacity.stress.models import ScenarioResult, StressScenario

EXTERNAL_SPOT = 2000.0
TARGET_LTV = 0.4
NEW_LLTV = 0.6


@pytest.fixture
def pool():
    """1000 risk / 100 quote: risk asset at 200 external units"""
    return PoolState(1000, 100)


@pytest.fixture
def positions():
    """Two existing positions (health 1.0667 and 0.9375 at spot)"""
    return [
        Position(collateral_amount=100, debt_amount=15000, liquidation_ltv=0.8,
                 exposure_amount=5, entry_price=2000),
        Position(collateral_amount=50, debt_amount=8000, liquidation_ltv=0.75,
                 exposure_amount=3, entry_price=2000),
    ]


def run(borrow, scenario, positions, pool):
    return evaluate_scenario(borrow, scenario, positions, EXTERNAL_SPOT, TARGET_LTV, NEW_LLTV, pool)


class TestEvaluateWithoutBorrow:
    """Test scenarios applied to existing positions only"""

    def test_no_stress(self, pool, positions):
        """Test unstressed evaluation reproduces spot health"""
        result = run(0, StressScenario("No stress"), positions, pool)

        assert isinstance(result, ScenarioResult)
        assert result.shocked_external_price == 2000
        assert len(result.position_metrics) == 2
        assert result.min_health == pytest.approx(0.75 / 0.8)
        assert result.resulting_pool == pool

    def test_market_sell(self, pool, positions):
        """Test a risk sell deepens the risk reserve and lowers health"""
        result = run(0, StressScenario("Sell", sell_amount=50), positions, pool)

        assert result.resulting_pool.reserve_risk == pytest.approx(1050.0)
        assert result.resulting_pool.reserve_quote == pytest.approx(100_000 / 1050)

        price = result.resulting_pool.price_in_external_units(2000)
        expected = min(0.8 * 100 * price / 15000, 0.75 * 50 * price / 8000)
        assert result.min_health == pytest.approx(expected)

    def test_external_price_shock(self, pool, positions):
        """Test external shock lowers every position's health"""
        base = run(0, StressScenario("No stress"), positions, pool)
        result = run(0, StressScenario("Crash", price_multiplier=0.7), positions, pool)

        assert result.shocked_external_price == pytest.approx(1400)
        for shocked, unshocked in zip(result.position_metrics, base.position_metrics):
            assert shocked.health_score == pytest.approx(unshocked.health_score * 0.7)

    def test_empty_positions(self, pool):
        """Test no positions is vacuously safe"""
        result = run(0, StressScenario("Crash", sell_amount=500, price_multiplier=0.1), [], pool)

        assert result.min_health == float("inf")
        assert result.position_metrics == []
        assert result.is_safe


class TestEvaluateWithBorrow:
    """Test the new-borrow injection"""

    def test_new_position_sizing(self, pool, positions):
        """Test collateral, exposure and minted liquidity for a 10k borrow"""
        result = run(10_000, StressScenario("No stress"), positions, pool)

        assert len(result.position_metrics) == 3
        new = result.position_metrics[-1].position

        assert new.collateral_amount == pytest.approx(10_000 / (0.4 * 200))
        assert new.collateral_amount == pytest.approx(125.0)
        assert new.exposure_amount == pytest.approx(5.0)
        assert new.debt_amount == 10_000
        assert new.liquidation_ltv == NEW_LLTV
        assert new.entry_price == EXTERNAL_SPOT

    def test_liquidity_added_price_neutral(self, pool, positions):
        """Test the pool gains 50 risk and 5 quote at an unchanged price"""
        result = run(10_000, StressScenario("No stress"), positions, pool)

        assert result.resulting_pool.reserve_risk == pytest.approx(1050.0)
        assert result.resulting_pool.reserve_quote == pytest.approx(105.0)
        assert result.risk_price == pytest.approx(200.0)

    def test_new_position_health_at_spot(self, pool):
        """Test unstressed health of the new borrow is LLTV / target LTV"""
        result = run(10_000, StressScenario("No stress"), [], pool)

        assert result.min_health == pytest.approx(NEW_LLTV / TARGET_LTV)

    def test_liquidity_added_before_sell(self, pool, positions):
        """Test the sell hits the deepened pool"""
        result = run(10_000, StressScenario("Sell", sell_amount=30), positions, pool)

        assert result.resulting_pool.reserve_risk == pytest.approx(1080.0)
        assert result.resulting_pool.reserve_quote == pytest.approx(1050 * 105 / 1080)

    def test_deeper_pool_softens_sell(self, pool):
        """Test a larger borrow leaves a higher post-sell price"""
        scenario = StressScenario("Sell", sell_amount=100)

        small = run(1_000, scenario, [], pool)
        large = run(50_000, scenario, [], pool)

        assert large.risk_price > small.risk_price
        assert large.min_health > small.min_health


class TestPurity:
    """Test that evaluation never mutates its inputs"""

    def test_pool_not_modified(self, pool, positions):
        """Test the caller's pool is untouched"""
        run(10_000, StressScenario("Sell", sell_amount=300, price_multiplier=0.5), positions, pool)

        assert pool.reserve_risk == 1000.0
        assert pool.reserve_quote == 100.0

    def test_positions_not_modified(self, pool, positions):
        """Test the caller's position list is untouched"""
        run(10_000, StressScenario("No stress"), positions, pool)

        assert len(positions) == 2

    def test_results_are_independent(self, pool, positions):
        """Test two evaluations do not share pool state"""
        a = run(10_000, StressScenario("Sell", sell_amount=300), positions, pool)
        b = run(10_000, StressScenario("No stress"), positions, pool)

        assert a.resulting_pool is not b.resulting_pool
        assert b.resulting_pool.reserve_risk == pytest.approx(1050.0)


class TestInvalidInputs:
    """Test input validation at the evaluator boundary"""

    def test_negative_borrow(self, pool, positions):
        with pytest.raises(InvalidInputError):
            run(-1, StressScenario("No stress"), positions, pool)

    def test_non_positive_spot(self, pool, positions):
        with pytest.raises(InvalidInputError):
            evaluate_scenario(0, StressScenario("No stress"), positions, 0, TARGET_LTV, NEW_LLTV, pool)

    def test_invalid_target_ltv(self, pool, positions):
        with pytest.raises(InvalidInputError):
            evaluate_scenario(1000, StressScenario("No stress"), positions, EXTERNAL_SPOT, 0, NEW_LLTV, pool)

    def test_invalid_new_liquidation_ltv(self, pool, positions):
        with pytest.raises(InvalidInputError):
            evaluate_scenario(1000, StressScenario("No stress"), positions, EXTERNAL_SPOT, TARGET_LTV, 1.5, pool)

    def test_negative_price_multiplier(self):
        with pytest.raises(InvalidInputError):
            StressScenario("Bad", price_multiplier=-0.5)

    def test_negative_sell_amount(self):
        with pytest.raises(InvalidInputError):
            StressScenario("Bad", sell_amount=-10)


class TestStressTestEngine:
    """Test the engine wrapper"""

    @pytest.fixture
    def engine(self, pool, positions):
        scenarios = [
            StressScenario("No stress"),
            StressScenario("Crash", price_multiplier=0.5),
            StressScenario("Sell", sell_amount=200, is_warning_only=True),
        ]
        return StressTestEngine(pool, positions, EXTERNAL_SPOT, scenarios, TARGET_LTV, NEW_LLTV)

    def test_run_all_scenarios(self, engine):
        """Test one row per scenario in configured order"""
        df = engine.run_all_scenarios()

        assert len(df) == 3
        assert list(df["scenario_name"]) == ["No stress", "Crash", "Sell"]
        assert "min_health" in df.columns
        assert "is_warning_only" in df.columns
        assert bool(df.iloc[2]["is_warning_only"])

    def test_worst_scenario(self, engine):
        """Test the crash is the worst scenario"""
        worst = engine.worst_scenario()

        assert worst["scenario_name"] == "Crash"
        assert worst["min_health"] == pytest.approx(0.9375 * 0.5)

    def test_worst_scenario_empty(self, pool, positions):
        engine = StressTestEngine(pool, positions, EXTERNAL_SPOT, [], TARGET_LTV, NEW_LLTV)
        assert engine.worst_scenario() is None

    def test_evaluate_with_borrow(self, engine):
        result = engine.evaluate(StressScenario("No stress"), borrow=10_000)
        assert len(result.position_metrics) == 3


class TestScenarioModels:
    """Test scenario and result models"""

    def test_scenario_to_dict(self):
        s = StressScenario("Crash", sell_amount=5, price_multiplier=0.7, is_warning_only=True)

        assert s.to_dict() == {
            "name": "Crash",
            "sell_amount": 5,
            "price_multiplier": 0.7,
            "is_warning_only": True,
        }

    def test_zero_multiplier_accepted(self):
        """Test a total external wipe-out is a valid scenario"""
        assert StressScenario("Wipe-out", price_multiplier=0).price_multiplier == 0

    def test_result_summary_and_dict(self, pool, positions):
        result = run(0, StressScenario("No stress"), positions, pool)

        summary = result.summary()
        data = result.to_dict()

        assert "Min Health: 0.93" in summary
        assert "Safe: NO" in summary
        assert len(data["position_metrics"]) == 2
        assert data["resulting_pool"]["reserve_risk"] == 1000.0
