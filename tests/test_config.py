"""Tests for solver configuration, supply profile and YAML loading"""

from pathlib import Path

import pytest
import yaml

from borrow_capacity.config import (
    LTVRange,
    SolverConfig,
    SupplyProfile,
    default_scenarios,
    load_config,
    parse_scenarios,
)
from borrow_capacity.errors import InvalidInputError
from borrow_capacity.state.pool import PoolState

REPO_CONFIG = Path(__file__).parent.parent / "config" / "solver.yaml"


@pytest.fixture
def supply():
    """Reference supply breakdown"""
    return SupplyProfile(
        circulating=652183,
        staked=231693,
        treasury_unstaked=304153.5,
        liquid_staking_pool=4000,
        withdrawal_queue=2737,
    )


@pytest.fixture
def pool():
    return PoolState(55260.24910078, 182)


@pytest.fixture
def config_dict():
    """Minimal config file contents"""
    return {
        'market': {
            'name': 'TEST/ETH',
            'external_spot_price': 2000,
            'pool': {'reserve_risk': 1000, 'reserve_quote': 100},
        },
        'supply': {'circulating': 10000, 'staked': 2000, 'treasury_unstaked': 1000},
        'solver': {
            'supply_cap': 50000,
            'tolerance': 10,
            'ltv_range': {'min': 0.4, 'max': 0.6, 'step': 0.1},
            'liquidation_ltv': 0.85,
        },
        'positions': [
            {'collateral_amount': 100, 'debt_amount': 10000, 'liquidation_ltv': 0.8},
        ],
        'scenarios': [
            {'name': 'No stress'},
            {'name': 'Float sell', 'sell_amount': 'holders_float', 'warning_only': True},
            {'name': 'Crash', 'price_multiplier': 0.7},
        ],
    }


def write_config(tmp_path, data):
    path = tmp_path / "solver.yaml"
    with open(path, "w") as f:
        yaml.safe_dump(data, f)
    return path


class TestLTVRange:
    """Test LTV range validation"""

    def test_defaults(self):
        ltv_range = LTVRange()

        assert (ltv_range.min, ltv_range.max, ltv_range.step) == (0.3, 0.8, 0.05)

    @pytest.mark.parametrize("lo,hi", [(0, 0.5), (0.6, 0.5), (0.5, 1.1), (-0.1, 0.5)])
    def test_invalid_bounds(self, lo, hi):
        with pytest.raises(InvalidInputError):
            LTVRange(lo, hi)

    @pytest.mark.parametrize("step", [0, -0.05])
    def test_invalid_step(self, step):
        with pytest.raises(InvalidInputError):
            LTVRange(0.3, 0.8, step)


class TestSupplyProfile:
    """Test named sell levels derived from supply"""

    def test_holders_float(self, supply, pool):
        assert supply.holders_float(pool.reserve_risk) == pytest.approx(61076.25089922)

    def test_max_sell_pressure(self, supply, pool):
        assert supply.max_sell_pressure(pool.reserve_risk) == pytest.approx(67813.25089922)

    def test_holders_float_never_negative(self):
        supply = SupplyProfile(circulating=100, staked=90)
        assert supply.holders_float(50) == 0.0

    def test_resolve_numeric(self, supply):
        assert supply.resolve_sell_amount(5000, 0) == 5000.0

    @pytest.mark.parametrize("name,expected", [
        ("withdrawal_queue", 2737),
        ("liquid_staking_pool", 4000),
    ])
    def test_resolve_named(self, supply, name, expected):
        assert supply.resolve_sell_amount(name, 0) == expected

    def test_resolve_unknown(self, supply):
        with pytest.raises(InvalidInputError, match="Unknown sell level"):
            supply.resolve_sell_amount("everyone", 0)


class TestSolverConfig:
    """Test solver config validation"""

    def test_defaults(self):
        config = SolverConfig(pool=PoolState(1000, 100), external_spot_price=2000, supply_cap=1000)

        assert config.tolerance == 1.0
        assert config.liquidation_ltv == 0.9
        assert config.max_iterations == 256
        assert config.monotonicity_samples == 0
        assert config.positions == ()
        assert not config.include_exposure
        assert config.market_name == "market"

    def test_positions_frozen_to_tuple(self):
        config = SolverConfig(
            pool=PoolState(1000, 100), external_spot_price=2000, supply_cap=1000, positions=[]
        )
        assert isinstance(config.positions, tuple)

    @pytest.mark.parametrize("overrides", [
        {'external_spot_price': 0},
        {'supply_cap': -1},
        {'tolerance': 0},
        {'liquidation_ltv': 1.5},
        {'base_ltv': 0},
        {'max_iterations': 0},
        {'monotonicity_samples': -1},
    ])
    def test_invalid_values(self, overrides):
        params = dict(pool=PoolState(1000, 100), external_spot_price=2000, supply_cap=1000)
        params.update(overrides)

        with pytest.raises(InvalidInputError):
            SolverConfig(**params)


class TestScenarios:
    """Test scenario construction"""

    def test_default_scenarios(self, supply, pool):
        scenarios = default_scenarios(supply, pool)
        names = [s.name for s in scenarios]

        assert len(scenarios) == 13
        assert names[0] == "No stress"
        assert names[-1] == "External +15%"
        assert len([s for s in scenarios if not s.is_warning_only]) == 6

    def test_default_max_pressure(self, supply, pool):
        by_name = {s.name: s for s in default_scenarios(supply, pool)}

        assert by_name["Max pressure"].sell_amount == pytest.approx(67813.25089922)
        assert by_name["Max pressure"].is_warning_only
        assert by_name["External -30% + Max pressure"].price_multiplier == 0.7

    def test_parse_scenarios(self, supply, pool):
        raw = [
            {'name': 'Sell', 'sell_amount': 5000},
            {'name': 'All holders', 'sell_amount': 'holders_float', 'warning_only': True},
            {'name': 'Crash', 'price_multiplier': 0.5},
        ]

        scenarios = parse_scenarios(raw, supply, pool)

        assert scenarios[0].sell_amount == 5000
        assert scenarios[0].price_multiplier == 1.0
        assert scenarios[1].sell_amount == pytest.approx(61076.25089922)
        assert scenarios[1].is_warning_only
        assert scenarios[2].sell_amount == 0
        assert not scenarios[2].is_warning_only


class TestLoadConfig:
    """Test YAML loading"""

    def test_load(self, tmp_path, config_dict):
        config, scenarios = load_config(write_config(tmp_path, config_dict))

        assert config.pool == PoolState(1000, 100)
        assert config.external_spot_price == 2000
        assert config.supply_cap == 50000
        assert config.tolerance == 10
        assert config.ltv_range == LTVRange(0.4, 0.6, 0.1)
        assert config.liquidation_ltv == 0.85
        assert config.market_name == "TEST/ETH"
        assert len(config.positions) == 1
        assert config.positions[0].debt_amount == 10000

        assert [s.name for s in scenarios] == ['No stress', 'Float sell', 'Crash']
        # 10000 - 2000 - 1000 - 1000 (pool reserve)
        assert scenarios[1].sell_amount == 6000

    def test_default_scenarios_when_omitted(self, tmp_path, config_dict):
        del config_dict['scenarios']

        _, scenarios = load_config(write_config(tmp_path, config_dict))

        assert len(scenarios) == 13

    def test_no_positions(self, tmp_path, config_dict):
        config_dict['positions'] = []

        config, _ = load_config(write_config(tmp_path, config_dict))

        assert config.positions == ()

    def test_missing_market(self, tmp_path, config_dict):
        del config_dict['market']

        with pytest.raises(InvalidInputError, match="market"):
            load_config(write_config(tmp_path, config_dict))

    def test_invalid_solver_values(self, tmp_path, config_dict):
        config_dict['solver']['tolerance'] = 0

        with pytest.raises(InvalidInputError):
            load_config(write_config(tmp_path, config_dict))

    def test_repo_config(self):
        """Test the shipped reference configuration loads"""
        config, scenarios = load_config(REPO_CONFIG)

        assert config.external_spot_price == 4200
        assert config.supply_cap == 2_000_000
        assert config.monotonicity_samples == 8
        assert config.market_name == "RZR/ETH"
        assert len(scenarios) == 13

        by_name = {s.name: s for s in scenarios}
        assert by_name["All holders sell"].sell_amount == pytest.approx(61076.25089922)
        assert by_name["Max pressure"].sell_amount == pytest.approx(67813.25089922)
