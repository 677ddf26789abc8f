"""Constant-product AMM pool model"""

import math
from dataclasses import dataclass

from ..errors import InvalidInputError


def _require_positive(name: str, value: float):
    if not (isinstance(value, (int, float)) and math.isfinite(value) and value > 0):
        raise InvalidInputError(f"{name} must be a positive finite number, got {value!r}")


def _require_non_negative(name: str, value: float):
    if not (isinstance(value, (int, float)) and math.isfinite(value) and value >= 0):
        raise InvalidInputError(f"{name} must be a non-negative finite number, got {value!r}")


@dataclass(frozen=True)
class SwapResult:
    """Outcome of a single swap against the pool"""

    amount_in: float
    amount_out: float
    spot_price: float


class PoolState:
    """
    Two-reserve x*y=k pool pairing the risk asset with the quote asset

    Prices are expressed as quote per unit of risk asset. The invariant k is
    always derived from the current reserves, so it can never drift from
    reserve_risk * reserve_quote.
    """

    def __init__(self, reserve_risk: float, reserve_quote: float):
        _require_positive("reserve_risk", reserve_risk)
        _require_positive("reserve_quote", reserve_quote)

        self.reserve_risk = float(reserve_risk)
        self.reserve_quote = float(reserve_quote)

    @property
    def k(self) -> float:
        """Constant-product invariant"""
        return self.reserve_risk * self.reserve_quote

    def reserves(self) -> dict:
        """Current reserves keyed by asset role"""
        return {"reserve_risk": self.reserve_risk, "reserve_quote": self.reserve_quote}

    def spot_price(self) -> float:
        """Marginal price of the risk asset in quote units"""
        return self.reserve_quote / self.reserve_risk

    def price_in_external_units(self, external_price: float) -> float:
        """
        Price of the risk asset in external (debt) units

        Args:
            external_price: Price of one quote unit in external units

        Returns:
            Risk asset price in external units
        """
        return self.spot_price() * external_price

    def sell_risk(self, amount: float) -> SwapResult:
        """
        Sell risk asset into the pool for quote asset

        Args:
            amount: Risk asset units deposited by the seller

        Returns:
            SwapResult with the quote asset paid out
        """
        _require_positive("sell amount", amount)

        k = self.k
        new_risk = self.reserve_risk + amount
        new_quote = k / new_risk
        quote_out = self.reserve_quote - new_quote

        self.reserve_risk = new_risk
        self.reserve_quote = new_quote

        return SwapResult(amount_in=amount, amount_out=quote_out, spot_price=self.spot_price())

    def sell_quote(self, amount: float) -> SwapResult:
        """
        Sell quote asset into the pool for risk asset

        Args:
            amount: Quote asset units deposited by the buyer

        Returns:
            SwapResult with the risk asset paid out
        """
        _require_positive("sell amount", amount)

        k = self.k
        new_quote = self.reserve_quote + amount
        new_risk = k / new_quote
        risk_out = self.reserve_risk - new_risk

        self.reserve_quote = new_quote
        self.reserve_risk = new_risk

        return SwapResult(amount_in=amount, amount_out=risk_out, spot_price=self.spot_price())

    def add_liquidity(self, risk_amount: float, quote_amount: float):
        """
        Deposit both assets into the pool

        Depositing in the current spot ratio deepens the pool without moving
        the price.
        """
        _require_non_negative("risk_amount", risk_amount)
        _require_non_negative("quote_amount", quote_amount)

        self.reserve_risk += risk_amount
        self.reserve_quote += quote_amount

    def remove_liquidity(self, risk_amount: float, quote_amount: float):
        """Withdraw both assets from the pool"""
        _require_non_negative("risk_amount", risk_amount)
        _require_non_negative("quote_amount", quote_amount)

        if risk_amount >= self.reserve_risk or quote_amount >= self.reserve_quote:
            raise InvalidInputError(
                f"Cannot remove ({risk_amount}, {quote_amount}) from reserves "
                f"({self.reserve_risk}, {self.reserve_quote})"
            )

        self.reserve_risk -= risk_amount
        self.reserve_quote -= quote_amount

    def clone(self) -> "PoolState":
        """Independent copy for speculative evaluation"""
        return PoolState(self.reserve_risk, self.reserve_quote)

    def to_dict(self) -> dict:
        """Convert pool state to dictionary"""
        return {
            "reserve_risk": self.reserve_risk,
            "reserve_quote": self.reserve_quote,
            "k": self.k,
            "spot_price": self.spot_price(),
        }

    def describe(self, external_price: float) -> str:
        """Human-readable reserves and external price"""
        return (
            f"PoolState (quote_reserve={self.reserve_quote:.2f}, "
            f"risk_reserve={self.reserve_risk:.2f}, "
            f"price={self.price_in_external_units(external_price):.2f})"
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, PoolState):
            return NotImplemented
        return (
            self.reserve_risk == other.reserve_risk
            and self.reserve_quote == other.reserve_quote
        )

    def __repr__(self) -> str:
        return f"PoolState(reserve_risk={self.reserve_risk!r}, reserve_quote={self.reserve_quote!r})"
