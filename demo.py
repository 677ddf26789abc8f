"""
Demo script to run the maximum safe borrow solver end to end

This script demonstrates:
1. Loading market, supply and scenario configuration
2. Stress testing the existing positions
3. Solving for the maximum safe borrow and its LTV
4. Printing scenario diagnostics at the optimum
5. Optionally saving a markdown report

Environment (.env supported):
- BORROW_CAPACITY_CONFIG: path to the solver YAML (default: config/solver.yaml)
- BORROW_CAPACITY_REPORTS: report output directory (default: reports/)
"""

import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from borrow_capacity.config import load_config
from borrow_capacity.errors import BorrowCapacityError
from borrow_capacity.reporting import MarkdownReportGenerator, scenario_severity
from borrow_capacity.reporting.severity import UNSAFE, WARNING
from borrow_capacity.solver import solve_max_borrow
from borrow_capacity.stress import StressTestEngine


# ANSI color codes for pretty output
class Colors:
    HEADER = "\033[95m"
    OKBLUE = "\033[94m"
    OKCYAN = "\033[96m"
    OKGREEN = "\033[92m"
    WARNING = "\033[93m"
    FAIL = "\033[91m"
    ENDC = "\033[0m"
    BOLD = "\033[1m"


SEVERITY_COLORS = {UNSAFE: Colors.FAIL, WARNING: Colors.WARNING}


def readable_number(num):
    """Convert number to K/M/B notation"""
    if abs(num) < 1000:
        return f"{num:.2f}"

    for unit in ["K", "M", "B", "T"]:
        num /= 1000
        if abs(num) < 1000:
            return f"{num:.2f}{unit}"
    return f"{num:.2f}P"


def print_header(text):
    """Print a colored header"""
    print(f"\n{Colors.HEADER}{Colors.BOLD}{'=' * 60}{Colors.ENDC}")
    print(f"{Colors.HEADER}{Colors.BOLD}{text.center(60)}{Colors.ENDC}")
    print(f"{Colors.HEADER}{Colors.BOLD}{'=' * 60}{Colors.ENDC}\n")


def print_success(text):
    """Print success message"""
    print(f"{Colors.OKGREEN}[OK] {text}{Colors.ENDC}")


def print_info(text):
    """Print info message"""
    print(f"{Colors.OKCYAN}  {text}{Colors.ENDC}")


def print_warning(text):
    """Print warning message"""
    print(f"{Colors.WARNING}[WARNING] {text}{Colors.ENDC}")


def print_error(text):
    """Print error message"""
    print(f"{Colors.FAIL}[ERROR] {text}{Colors.ENDC}")


def load_configuration():
    """Load solver configuration"""
    print_header("Loading Configuration")

    default_path = Path(__file__).parent / "config" / "solver.yaml"
    config_path = Path(os.getenv("BORROW_CAPACITY_CONFIG", default_path))

    if not config_path.exists():
        print_error(f"Configuration file not found: {config_path}")
        sys.exit(1)

    config, scenarios = load_config(config_path)
    print_success(f"Loaded {config.market_name} configuration from {config_path.name}")

    pool = config.pool
    print_info(f"Pool: {pool.describe(config.external_spot_price)}")
    print_info(f"External spot price: ${config.external_spot_price:,.2f}")
    print_info(f"Existing positions: {len(config.positions)}")
    print_info(f"Supply cap: ${readable_number(config.supply_cap)}")

    gating = [s for s in scenarios if not s.is_warning_only]
    print_info(f"Scenarios: {len(scenarios)} ({len(gating)} gating, "
               f"{len(scenarios) - len(gating)} warning-only)")

    return config, scenarios


def run_baseline_stress(config, scenarios):
    """Stress test existing positions before any new borrow"""
    print_header("Baseline Stress Test")

    engine = StressTestEngine(
        config.pool,
        config.positions,
        config.external_spot_price,
        scenarios,
        target_ltv=config.base_ltv,
        liquidation_ltv=config.liquidation_ltv,
        include_exposure=config.include_exposure,
    )

    if not config.positions:
        print_info("No existing positions: every scenario is vacuously safe")
        return engine

    results = engine.run_all_scenarios()

    for _, row in results.iterrows():
        line = (f"{row['scenario_name']}: minHealth={row['min_health']:.3f} | "
                f"risk price=${row['risk_price']:,.4f}")
        if row['is_safe']:
            print_info(line)
        else:
            print_warning(line)

    worst = engine.worst_scenario()
    print_info(f"Worst scenario: {worst['scenario_name']} ({worst['min_health']:.3f})")

    return engine


def solve(config, scenarios):
    """Run the solver and print its diagnostics"""
    print_header("Max Safe Borrow")

    result = solve_max_borrow(scenarios, config)

    if result.has_safe_borrow:
        print_success(f"Max safe borrow: ${result.max_safe_borrow:,}")
        print_success(f"Optimal LTV for the new borrow: {result.optimal_ltv:.3f}")
    else:
        print_warning("No safe borrow in the configured LTV range")

    print(f"\n{Colors.BOLD}Scenario diagnostics (min health across positions):{Colors.ENDC}")

    for d in result.diagnostics:
        tag = "[warning]" if d.is_warning_only else "[normal]"
        color = SEVERITY_COLORS.get(scenario_severity(d), "")
        end = Colors.ENDC if color else ""
        risk_price = d.resulting_pool.price_in_external_units(d.shocked_external_price)
        print(
            f"{color}- {d.scenario_name} {tag}: minHealth={d.min_health:.3f} | "
            f"External=${d.shocked_external_price:,.2f} | Risk=${risk_price:,.4f}{end}"
        )

    for w in result.warnings:
        print_warning(w.message)

    return result


def main():
    """Main demo function"""
    import argparse

    parser = argparse.ArgumentParser(description="Maximum safe borrow solver")
    parser.add_argument(
        "--save-report",
        action="store_true",
        help="Save a markdown report for the solver run",
    )
    args = parser.parse_args()

    load_dotenv()

    print(f"\n{Colors.HEADER}{Colors.BOLD}")
    print("╔════════════════════════════════════════════════════════════╗")
    print("║                      Borrow Capacity                       ║")
    print("║              Max Safe Borrow Under AMM Stress              ║")
    print("╚════════════════════════════════════════════════════════════╝")
    print(f"{Colors.ENDC}\n")

    try:
        config, scenarios = load_configuration()
        run_baseline_stress(config, scenarios)
        result = solve(config, scenarios)

        if args.save_report:
            print_header("Generating Report")
            report_dir = os.getenv("BORROW_CAPACITY_REPORTS")
            report_gen = MarkdownReportGenerator(Path(report_dir) if report_dir else None)
            timestamped_path, latest_path = report_gen.generate_report(
                result, config, market_name=config.market_name
            )
            if timestamped_path:
                print_success(f"Saved timestamped report: {timestamped_path.name}")
            if latest_path:
                print_success(f"Saved latest report: {latest_path.name}")

    except KeyboardInterrupt:
        print_warning("\n\nDemo interrupted by user")
        sys.exit(0)
    except BorrowCapacityError as e:
        print_error(f"\nSolver failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
