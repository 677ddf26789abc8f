"""Data models for borrow positions and market snapshots"""

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import List

from ..errors import InvalidInputError
from .pool import PoolState


@dataclass(frozen=True)
class Position:
    """Represents a single borrow position collateralized by the risk asset"""

    collateral_amount: float
    debt_amount: float
    liquidation_ltv: float
    # Tracking only: quote asset bought with the borrowed funds and its entry price
    exposure_amount: float = 0.0
    entry_price: float = 0.0

    def __post_init__(self):
        for name in ("collateral_amount", "debt_amount", "exposure_amount", "entry_price"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise InvalidInputError(f"{name} must be a non-negative finite number, got {value!r}")

        if not (0 < self.liquidation_ltv <= 1):
            raise InvalidInputError(
                f"liquidation_ltv must be in (0, 1], got {self.liquidation_ltv!r}"
            )

    def to_dict(self) -> dict:
        """Convert position to dictionary"""
        return asdict(self)


@dataclass(frozen=True)
class PositionMetrics:
    """Position with solvency metrics derived at one pool state and external price"""

    position: Position
    ltv: float
    health_score: float
    liquidation_price: float

    @property
    def is_safe(self) -> bool:
        """Check if position is at or above the liquidation threshold"""
        return self.health_score >= 1.0

    @property
    def liquidation_buffer(self) -> float:
        """
        Calculate buffer above liquidation threshold

        Returns:
            Health score minus one (e.g., 0.15 means 15% above liquidation)
        """
        if self.health_score == float("inf"):
            return float("inf")

        return self.health_score - 1.0

    def to_dict(self) -> dict:
        """Convert metrics to a flat dictionary"""
        data = self.position.to_dict()
        data.update({
            "ltv": self.ltv,
            "health_score": self.health_score,
            "liquidation_price": self.liquidation_price,
            "is_safe": self.is_safe,
        })
        return data


@dataclass
class MarketSnapshot:
    """Materialized market inputs handed to the solver"""

    name: str
    timestamp: datetime
    pool: PoolState
    external_spot_price: float
    positions: List[Position] = field(default_factory=list)

    @property
    def risk_price(self) -> float:
        """Risk asset price in external units at the snapshot"""
        return self.pool.price_in_external_units(self.external_spot_price)

    @property
    def total_debt(self) -> float:
        """Total debt across all positions"""
        return sum(p.debt_amount for p in self.positions)

    @property
    def total_collateral(self) -> float:
        """Total risk asset posted as collateral"""
        return sum(p.collateral_amount for p in self.positions)

    @property
    def num_positions(self) -> int:
        """Number of open positions"""
        return len(self.positions)

    def to_dict(self) -> dict:
        """Convert snapshot to dictionary"""
        return {
            "name": self.name,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "pool": self.pool.to_dict(),
            "external_spot_price": self.external_spot_price,
            "risk_price": self.risk_price,
            "num_positions": self.num_positions,
            "total_debt": self.total_debt,
            "total_collateral": self.total_collateral,
        }
