"""Pool and position state"""

from .models import MarketSnapshot, Position, PositionMetrics
from .pool import PoolState, SwapResult

__all__ = ["PoolState", "SwapResult", "Position", "PositionMetrics", "MarketSnapshot"]
