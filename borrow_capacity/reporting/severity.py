"""Severity tags for scenario diagnostics"""

from ..solver.models import ScenarioDiagnostic

OK = "ok"
WARNING = "warning"
UNSAFE = "unsafe"


def scenario_severity(diagnostic: ScenarioDiagnostic) -> str:
    """
    Classify a scenario diagnostic for display

    Returns:
        UNSAFE for a gating scenario below 1.0, WARNING for a warning-only
        scenario below 1.0, OK otherwise
    """
    if diagnostic.min_health >= 1.0:
        return OK

    return WARNING if diagnostic.is_warning_only else UNSAFE
