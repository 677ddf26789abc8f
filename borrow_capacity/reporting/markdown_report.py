"""Markdown report generator for borrow capacity analysis"""

from datetime import datetime
from pathlib import Path
from typing import Optional

from ..config import SolverConfig
from ..solver.models import SolverResult
from .charts import ChartGenerator
from .severity import OK, UNSAFE, WARNING, scenario_severity

SEVERITY_LABELS = {OK: "OK", WARNING: "Warning", UNSAFE: "UNSAFE"}


class MarkdownReportGenerator:
    """Generates markdown reports for solver results"""

    def __init__(self, output_dir: Path = None):
        """
        Initialize report generator

        Args:
            output_dir: Directory to save reports (default: reports/)
        """
        if output_dir is None:
            output_dir = Path(__file__).parent.parent.parent / "reports"

        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def generate_report(
        self,
        result: SolverResult,
        config: SolverConfig,
        market_name: Optional[str] = None,
        save_timestamped: bool = True,
        save_latest: bool = True,
        include_charts: bool = True,
    ) -> tuple[Optional[Path], Optional[Path]]:
        """
        Generate markdown report for a solver run

        Args:
            result: Solver result
            config: Configuration the solver ran with
            market_name: Name used for the report directory and title
                (default: config.market_name)
            save_timestamped: Whether to save timestamped report
            save_latest: Whether to save/overwrite latest report
            include_charts: Whether to render and embed charts

        Returns:
            Tuple of (timestamped_path, latest_path)
        """
        market_name = market_name or config.market_name
        content = self.generate_content(result, config, market_name)

        market_dir = self.output_dir / market_name.replace("/", "-")
        market_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M")

        if include_charts:
            images_dir = market_dir / "images" / timestamp
            ChartGenerator(images_dir).generate_all_charts(result)
            content = self._add_chart_references(content, timestamp)

        timestamped_path = None
        latest_path = None

        if save_timestamped:
            timestamped_path = market_dir / f"{timestamp}.md"
            with open(timestamped_path, "w", encoding="utf-8") as f:
                f.write(content)

        if save_latest:
            latest_path = market_dir / "latest.md"
            with open(latest_path, "w", encoding="utf-8") as f:
                f.write(content)

        return timestamped_path, latest_path

    def generate_content(self, result: SolverResult, config: SolverConfig, market_name: str) -> str:
        """Generate markdown content"""
        sections = [
            self._generate_header(result, market_name),
            self._generate_market(config),
            self._generate_ltv_sweep(result),
            self._generate_scenarios(result),
            self._generate_footer(),
        ]

        if result.warnings:
            sections.insert(-1, self._generate_warnings(result))

        return "\n\n".join(sections)

    def _generate_header(self, result: SolverResult, market_name: str) -> str:
        """Generate report header"""
        if result.has_safe_borrow:
            verdict = (
                f"**Max Safe Borrow:** ${self._format_number(result.max_safe_borrow)} "
                f"at LTV {result.optimal_ltv:.2f}"
            )
        else:
            verdict = "**No safe borrow found** in the configured LTV range."

        return f"""# Borrow Capacity Report: {market_name}

**Generated:** {datetime.now().strftime("%Y-%m-%d %H:%M:%S")}

{verdict}"""

    def _generate_market(self, config: SolverConfig) -> str:
        """Generate market inputs section"""
        pool = config.pool

        return f"""## Market Inputs

| Input | Value |
|--------|-------|
| **Risk Reserve** | {self._format_number(pool.reserve_risk)} |
| **Quote Reserve** | {self._format_number(pool.reserve_quote)} |
| **External Spot Price** | ${config.external_spot_price:,.2f} |
| **Risk Asset Price** | ${pool.price_in_external_units(config.external_spot_price):,.4f} |
| **Existing Positions** | {len(config.positions)} |
| **Supply Cap** | ${self._format_number(config.supply_cap)} |
| **Liquidation LTV** | {config.liquidation_ltv * 100:.1f}% |
| **Tolerance** | {config.tolerance:g} |"""

    def _generate_ltv_sweep(self, result: SolverResult) -> str:
        """Generate per-LTV search section"""
        content = """## LTV Sweep

| LTV | Feasible | Max Safe Borrow | Iterations |
|-----|----------|-----------------|------------|
"""

        for r in result.ltv_results:
            marker = " **(optimal)**" if r.ltv == result.optimal_ltv and result.has_safe_borrow else ""
            feasible = "Yes" if r.feasible else "No"
            content += (
                f"| {r.ltv:.2f}{marker} | {feasible} | ${self._format_number(r.max_borrow)} "
                f"| {r.iterations} |\n"
            )

        return content

    def _generate_scenarios(self, result: SolverResult) -> str:
        """Generate scenario diagnostics section"""
        content = """## Scenario Diagnostics

Minimum health across all positions at the optimum:

| Scenario | Type | Min Health | External Price | Risk Price | Status |
|----------|------|------------|----------------|------------|--------|
"""

        for d in result.diagnostics:
            kind = "warning" if d.is_warning_only else "gating"
            risk_price = d.resulting_pool.price_in_external_units(d.shocked_external_price)
            status = SEVERITY_LABELS[scenario_severity(d)]
            content += (
                f"| {d.scenario_name} | {kind} | {d.min_health:.3f} "
                f"| ${d.shocked_external_price:,.2f} | ${risk_price:,.4f} | {status} |\n"
            )

        return content

    def _generate_warnings(self, result: SolverResult) -> str:
        """Generate monotonicity warnings section"""
        lines = "\n".join(f"- {w.message}" for w in result.warnings)
        return f"""## Monotonicity Warnings

Sampled borrow sizes disagreed with the bisection result:

{lines}"""

    def _generate_footer(self) -> str:
        """Generate report footer"""
        return """---

**Report generated by Borrow Capacity**

*This report is for informational purposes only. Always verify inputs independently before issuing debt.*"""

    def _add_chart_references(self, content: str, timestamp: str) -> str:
        """Add chart image references to markdown content"""
        ltv_chart = f"\n![Max Safe Borrow by LTV](images/{timestamp}/max_borrow_by_ltv.png)\n"
        content = content.replace("## LTV Sweep", f"## LTV Sweep\n{ltv_chart}")

        health_chart = f"\n![Scenario Health](images/{timestamp}/scenario_health.png)\n"
        content = content.replace(
            "## Scenario Diagnostics",
            f"## Scenario Diagnostics\n{health_chart}",
        )

        return content

    def _format_number(self, num: float) -> str:
        """Format number with K/M/B suffix"""
        if abs(num) < 1000:
            return f"{num:.2f}"

        for unit in ["K", "M", "B", "T"]:
            num /= 1000
            if abs(num) < 1000:
                return f"{num:.2f}{unit}"

        return f"{num:.2f}P"
