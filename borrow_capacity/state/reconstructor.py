"""State reconstruction from configured or fetched market data"""

import pandas as pd
from typing import List, Optional
from datetime import datetime
import logging

from ..errors import InvalidInputError
from .models import MarketSnapshot, Position
from .pool import PoolState

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

COLUMN_ALIASES = {
    'collateral': 'collateral_amount',
    'debt': 'debt_amount',
    'lltv': 'liquidation_ltv',
    'exposure': 'exposure_amount',
}


class StateReconstructor:
    """Reconstructs pool and position state from raw market data"""

    def __init__(self, market_config: dict):
        """
        Initialize state reconstructor

        Args:
            market_config: Market section of the solver config, with
                external_spot_price and a pool entry holding either
                reserve_risk/reserve_quote or raw on-chain reserves plus
                token decimals
        """
        self.market_config = market_config
        self.name = market_config.get('name', 'market')

        if 'external_spot_price' not in market_config:
            raise InvalidInputError(f"Market '{self.name}' has no external_spot_price")
        if 'pool' not in market_config:
            raise InvalidInputError(f"Market '{self.name}' has no pool reserves")

        self.external_spot_price = float(market_config['external_spot_price'])

        logger.info(f"Initialized reconstructor for {self.name}")

    def reconstruct_pool(self) -> PoolState:
        """
        Build the pool from configured reserves

        Raw integer reserves (reserve_risk_raw/reserve_quote_raw) are scaled by
        10 ** decimals of each token.

        Returns:
            PoolState with human-readable reserves
        """
        pool_config = self.market_config['pool']

        if 'reserve_risk_raw' in pool_config:
            risk_decimals = pool_config.get('risk_decimals', 18)
            quote_decimals = pool_config.get('quote_decimals', 18)
            reserve_risk = float(pool_config['reserve_risk_raw']) / (10 ** risk_decimals)
            reserve_quote = float(pool_config['reserve_quote_raw']) / (10 ** quote_decimals)
        else:
            reserve_risk = float(pool_config['reserve_risk'])
            reserve_quote = float(pool_config['reserve_quote'])

        pool = PoolState(reserve_risk, reserve_quote)

        logger.info(f"  Pool reserves: {pool.describe(self.external_spot_price)}")

        return pool

    def reconstruct_positions(self, positions_df: pd.DataFrame) -> List[Position]:
        """
        Convert raw position rows into Position objects

        Args:
            positions_df: DataFrame with collateral, debt and liquidation LTV
                columns (exposure and entry price optional)

        Returns:
            List of Position objects
        """
        logger.info("Reconstructing positions...")

        if positions_df.empty:
            logger.info("No existing positions")
            return []

        positions_df = positions_df.rename(
            columns={k: v for k, v in COLUMN_ALIASES.items() if v not in positions_df.columns}
        )

        missing = {'collateral_amount', 'debt_amount', 'liquidation_ltv'} - set(positions_df.columns)
        if missing:
            raise InvalidInputError(f"Positions are missing columns: {sorted(missing)}")

        for column in ('exposure_amount', 'entry_price'):
            if column not in positions_df.columns:
                positions_df[column] = 0.0
        positions_df = positions_df.fillna({'exposure_amount': 0.0, 'entry_price': 0.0})

        positions = []

        for idx, row in positions_df.iterrows():
            try:
                position = Position(
                    collateral_amount=float(row['collateral_amount']),
                    debt_amount=float(row['debt_amount']),
                    liquidation_ltv=float(row['liquidation_ltv']),
                    exposure_amount=float(row['exposure_amount']),
                    entry_price=float(row['entry_price']),
                )
            except (TypeError, ValueError) as e:
                raise InvalidInputError(f"Invalid position at row {idx}: {e}") from e

            positions.append(position)

        logger.info(f"Reconstructed {len(positions)} positions")

        total_debt = sum(p.debt_amount for p in positions)
        total_collateral = sum(p.collateral_amount for p in positions)
        logger.info(f"  Total debt: {total_debt:,.2f}, total collateral: {total_collateral:,.2f}")

        return positions

    def create_snapshot(
        self,
        positions_df: pd.DataFrame,
        timestamp: Optional[datetime] = None
    ) -> MarketSnapshot:
        """
        Create a complete market snapshot

        Args:
            positions_df: DataFrame with existing positions
            timestamp: Snapshot timestamp (default: now)

        Returns:
            MarketSnapshot object
        """
        logger.info(f"Creating snapshot for {self.name}...")

        snapshot = MarketSnapshot(
            name=self.name,
            timestamp=timestamp or datetime.now(),
            pool=self.reconstruct_pool(),
            external_spot_price=self.external_spot_price,
            positions=self.reconstruct_positions(positions_df),
        )

        logger.info(f"Snapshot created: {snapshot.num_positions} positions, "
                    f"risk price={snapshot.risk_price:,.4f}")

        return snapshot
