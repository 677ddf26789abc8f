"""Maximum safe borrow estimation against AMM-backed collateral"""

__version__ = "0.1.0"
