"""Safety gate and maximum safe borrow solver"""

from .gate import is_borrow_safe
from .models import LTVResult, MonotonicityViolation, ScenarioDiagnostic, SolverResult
from .search import BorrowSolver, ltv_grid, solve_max_borrow

__all__ = [
    "is_borrow_safe",
    "BorrowSolver",
    "ltv_grid",
    "solve_max_borrow",
    "SolverResult",
    "LTVResult",
    "ScenarioDiagnostic",
    "MonotonicityViolation",
]
