"""Stress testing modules"""

from .engine import StressTestEngine, evaluate_scenario
from .models import ScenarioResult, StressScenario

__all__ = ['StressTestEngine', 'evaluate_scenario', 'ScenarioResult', 'StressScenario']
