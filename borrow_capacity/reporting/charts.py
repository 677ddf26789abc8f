"""Chart generation for markdown reports using matplotlib"""

import matplotlib

matplotlib.use("Agg")  # Use non-interactive backend
from pathlib import Path
from typing import Dict

import matplotlib.pyplot as plt
import numpy as np

from ..solver.models import SolverResult
from .severity import OK, UNSAFE, WARNING, scenario_severity

SEVERITY_COLORS = {
    OK: "#388e3c",  # Green
    WARNING: "#fbc02d",  # Yellow
    UNSAFE: "#d32f2f",  # Red
}


class ChartGenerator:
    """Generates matplotlib charts for markdown reports"""

    def __init__(self, output_dir: Path):
        """
        Initialize chart generator

        Args:
            output_dir: Directory to save chart images
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        # Set style for GitHub-friendly appearance (light theme, clean)
        plt.style.use("seaborn-v0_8-darkgrid")

        self.fig_width = 10
        self.fig_height = 6
        self.dpi = 100

    def _save(self, filename: str) -> Path:
        plt.tight_layout()
        output_path = self.output_dir / filename
        plt.savefig(output_path, dpi=self.dpi, bbox_inches="tight", facecolor="white")
        plt.close()
        return output_path

    def generate_borrow_by_ltv(
        self, result: SolverResult, filename: str = "max_borrow_by_ltv.png"
    ) -> Path:
        """
        Generate max safe borrow per candidate LTV bar chart

        Args:
            result: Solver result with per-LTV outcomes
            filename: Output filename

        Returns:
            Path to saved chart
        """
        fig, ax = plt.subplots(figsize=(self.fig_width, self.fig_height), dpi=self.dpi)

        ltvs = [r.ltv for r in result.ltv_results]
        borrows = np.array([r.max_borrow for r in result.ltv_results]) / 1_000  # Thousands
        colors = [
            "#1976d2" if r.ltv == result.optimal_ltv and result.has_safe_borrow
            else ("#90a4ae" if r.feasible else "#d32f2f")
            for r in result.ltv_results
        ]

        labels = [f"{ltv:.2f}" for ltv in ltvs]
        bars = ax.bar(labels, borrows, color=colors, alpha=0.8, edgecolor="black", linewidth=1)

        for bar, value in zip(bars, borrows):
            if value > 0:
                ax.text(
                    bar.get_x() + bar.get_width() / 2.0,
                    bar.get_height(),
                    f"{value:,.0f}K",
                    ha="center",
                    va="bottom",
                    fontsize=9,
                    fontweight="bold",
                )

        ax.set_xlabel("Target LTV", fontsize=12, fontweight="bold")
        ax.set_ylabel("Max Safe Borrow (K)", fontsize=12, fontweight="bold")
        ax.set_title("Max Safe Borrow by LTV", fontsize=14, fontweight="bold", pad=20)
        ax.grid(axis="y", alpha=0.3)

        return self._save(filename)

    def generate_scenario_health(
        self, result: SolverResult, filename: str = "scenario_health.png"
    ) -> Path:
        """
        Generate minimum health per scenario at the optimum

        Args:
            result: Solver result with diagnostics
            filename: Output filename

        Returns:
            Path to saved chart
        """
        fig, ax = plt.subplots(figsize=(self.fig_width, self.fig_height), dpi=self.dpi)

        names = [d.scenario_name for d in result.diagnostics]
        # Infinite health (no debt) is drawn at the top of the axis
        healths = np.array([d.min_health for d in result.diagnostics], dtype=float)
        finite = healths[np.isfinite(healths)]
        cap = max(2.0, float(finite.max()) * 1.1) if finite.size else 2.0
        healths = np.where(np.isfinite(healths), healths, cap)
        colors = [SEVERITY_COLORS[scenario_severity(d)] for d in result.diagnostics]

        ax.barh(names, healths, color=colors, alpha=0.8, edgecolor="black", linewidth=1)
        ax.axvline(x=1.0, color="red", linestyle="--", linewidth=2, alpha=0.7, label="Liquidation (1.0)")

        ax.set_xlabel("Minimum Health Score", fontsize=12, fontweight="bold")
        ax.set_title("Scenario Health at Optimum", fontsize=14, fontweight="bold", pad=20)
        ax.set_xlim(0, cap)
        ax.invert_yaxis()
        ax.legend(loc="lower right", framealpha=0.9)

        return self._save(filename)

    def generate_all_charts(self, result: SolverResult) -> Dict[str, Path]:
        """
        Generate all charts for a report

        Returns:
            Dictionary mapping chart names to their file paths
        """
        charts = {}

        charts["borrow_by_ltv"] = self.generate_borrow_by_ltv(result)
        charts["scenario_health"] = self.generate_scenario_health(result)

        return charts
