#!/usr/bin/env python3
"""
Main entry point for the basket arbitrage agent.

Runs flash-loan arbitrage cycles on the local message-driven host and the
sizing analysis built on top of them.
"""

import sys
import argparse
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from basket_arb.analysis.charts import plot_sizing_curve
from basket_arb.analysis.reports import cycle_report, summarize_cycle
from basket_arb.analysis.sizing import profit_sweep, sweep_mispricing
from basket_arb.core.errors import ArbitrageError
from basket_arb.engine.config import ArbitrageConfig, create_default_config, load_config
from basket_arb.engine.factory import MarketFactory, ScenarioConfig

logger = logging.getLogger("basket_arb")
console = Console()

DEFAULT_RATIOS = {"redeem": Decimal("0.8"), "create": Decimal("1.25")}


def setup_logging(verbose: bool = False, log_file: Optional[str] = None):
    """Rich console output plus an optional plain-text file"""
    handlers = [RichHandler(rich_tracebacks=True, markup=False, show_path=verbose)]
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)s | %(name)s - %(message)s"
        ))
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )
    logging.getLogger("matplotlib").setLevel(logging.WARNING)


def run_scenario(config: ArbitrageConfig, scenario: str, ratio: Optional[Decimal],
                 profit_threshold: int, show_log: bool) -> int:
    """Build one local market and run a single cycle against it"""
    ratio = ratio if ratio is not None else DEFAULT_RATIOS[scenario]
    market = MarketFactory(config).build(ScenarioConfig(market_to_intrinsic=ratio))
    beneficiary = "beneficiary"

    console.rule(f"[bold]{scenario} scenario, market/intrinsic = {ratio}")
    estimate = market.estimate()
    logger.info("Market %s, intrinsic %s, %s path, loan %s",
                estimate.market_price, estimate.intrinsic_price,
                estimate.strategy.value, estimate.trade_size)

    result = market.run_cycle(beneficiary=beneficiary, profit_threshold=profit_threshold)
    summary = summarize_cycle(market, result, beneficiary)

    table = Table(title="Cycle summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    for key, value in summary.items():
        table.add_row(key, str(value))
    console.print(table)

    if show_log:
        console.print(cycle_report(result.records).to_string(index=False))
    return 0


def run_sweep(config: ArbitrageConfig, chart: Optional[str], csv: Optional[str]) -> int:
    """Closed-form sweep plus one full cycle per ratio"""
    console.rule("[bold]Mispricing sweep")
    sizing = sweep_mispricing()
    profits = profit_sweep(factory=MarketFactory(config))

    console.print(sizing[["ratio", "strategy", "trade_size", "price_error"]].to_string(index=False))
    console.print(profits[["ratio", "completed", "strategy", "loan_amount", "profit",
                           "profit_bps", "reason"]].to_string(index=False))

    if csv:
        profits.merge(sizing, on="ratio", how="left", suffixes=("", "_sizing")).to_csv(csv, index=False)
        logger.info("Sweep written to %s", csv)
    if chart:
        path = plot_sizing_curve(sizing, chart, profits=profits)
        logger.info("Chart written to %s", path)
    return 0


def parse_ratio(value: str) -> Decimal:
    try:
        ratio = Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"invalid ratio {value!r}")
    if ratio <= 0:
        raise argparse.ArgumentTypeError("ratio must be positive")
    return ratio


def main():
    """Main entry point with command-line interface"""

    parser = argparse.ArgumentParser(
        description="Basket flash-loan arbitrage agent on a local host",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --scenario redeem                 # index token 20% below intrinsic
  python main.py --scenario create --ratio 1.1     # index token 10% above intrinsic
  python main.py --sweep --chart results/sizing.png --csv results/sweep.csv
        """
    )

    parser.add_argument('--scenario', choices=sorted(DEFAULT_RATIOS),
                        help='Run one arbitrage cycle on a freshly built market')
    parser.add_argument('--ratio', type=parse_ratio,
                        help='Pool price as a fraction of intrinsic price')
    parser.add_argument('--profit-threshold', type=int, default=0,
                        help='Abort the cycle if profit falls below this (base units)')
    parser.add_argument('--show-log', action='store_true',
                        help='Print every message the cycle dispatched')

    parser.add_argument('--sweep', action='store_true',
                        help='Sweep mispricing: trade size, price error and cycle profit')
    parser.add_argument('--chart', type=str, metavar='PATH',
                        help='Write the sweep chart to this PNG file')
    parser.add_argument('--csv', type=str, metavar='PATH',
                        help='Write the sweep results to this CSV file')

    parser.add_argument('--config', type=str, metavar='PATH',
                        help='Arbitrage configuration JSON (default: local addresses)')
    parser.add_argument('--log-file', type=str, metavar='PATH',
                        help='Also write logs to this file')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Verbose output, including host dispatch')

    args = parser.parse_args()

    if not any([args.scenario, args.sweep]):
        parser.print_help()
        return 1

    setup_logging(args.verbose, args.log_file)

    try:
        config = load_config(args.config) if args.config else create_default_config()

        if args.scenario:
            run_scenario(config, args.scenario, args.ratio, args.profit_threshold, args.show_log)
        if args.sweep:
            run_sweep(config, args.chart, args.csv)
        return 0

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 1
    except ArbitrageError as e:
        logger.error("Cycle aborted: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
