"""Custom errors for the borrow capacity model"""


class BorrowCapacityError(Exception):
    """Base error class for borrow capacity errors"""
    pass


class InvalidInputError(BorrowCapacityError, ValueError):
    """Error for reserves, amounts, prices or ratios outside their valid domain"""
    pass


class NonConvergenceError(BorrowCapacityError, RuntimeError):
    """Error for a borrow search that hit its iteration cap before reaching tolerance"""

    def __init__(self, ltv: float, iterations: int, lo: float, hi: float):
        self.ltv = ltv
        self.iterations = iterations
        self.lo = lo
        self.hi = hi
        super().__init__(
            f"Borrow search at LTV {ltv:.4f} did not converge after {iterations} "
            f"iterations (bracket [{lo:,.4f}, {hi:,.4f}])"
        )
