"""
Stress Testing Models - Scenario definitions and evaluation results
"""

import math
from dataclasses import dataclass
from typing import Dict, List

from ..errors import InvalidInputError
from ..state.models import PositionMetrics
from ..state.pool import PoolState


@dataclass(frozen=True)
class StressScenario:
    """A market sell of the risk asset combined with an external price shock"""

    name: str
    sell_amount: float = 0.0
    price_multiplier: float = 1.0
    is_warning_only: bool = False

    def __post_init__(self):
        if not math.isfinite(self.sell_amount) or self.sell_amount < 0:
            raise InvalidInputError(
                f"Scenario '{self.name}': sell_amount must be >= 0, got {self.sell_amount!r}"
            )
        # Zero is a valid total external wipe-out
        if not math.isfinite(self.price_multiplier) or self.price_multiplier < 0:
            raise InvalidInputError(
                f"Scenario '{self.name}': price_multiplier must be >= 0, got {self.price_multiplier!r}"
            )

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization"""
        return {
            "name": self.name,
            "sell_amount": self.sell_amount,
            "price_multiplier": self.price_multiplier,
            "is_warning_only": self.is_warning_only,
        }


@dataclass
class ScenarioResult:
    """Results from evaluating one scenario"""

    min_health: float
    position_metrics: List[PositionMetrics]
    resulting_pool: PoolState
    shocked_external_price: float

    @property
    def is_safe(self) -> bool:
        """Every position at or above the liquidation threshold"""
        return self.min_health >= 1.0

    @property
    def risk_price(self) -> float:
        """Risk asset price in external units after the stress"""
        return self.resulting_pool.price_in_external_units(self.shocked_external_price)

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization"""
        return {
            "min_health": self.min_health,
            "shocked_external_price": self.shocked_external_price,
            "resulting_pool": self.resulting_pool.to_dict(),
            "risk_price": self.risk_price,
            "position_metrics": [m.to_dict() for m in self.position_metrics],
        }

    def summary(self) -> str:
        """Generate human-readable summary"""
        return f"""
Scenario Result
----------------------------------------
Min Health: {self.min_health:.3f}
Positions: {len(self.position_metrics)}
External Price: ${self.shocked_external_price:,.2f}
Risk Asset Price: ${self.risk_price:,.4f}
Safe: {'YES' if self.is_safe else 'NO'}
"""
