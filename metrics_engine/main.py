"""CLI entry point for the financial metrics engine."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from metrics_engine.config import (
    DEFAULT_MARKET_RISK_PREMIUM,
    DEFAULT_TERMINAL_GROWTH_RATE,
    CalculatorConfig,
    TotalScorePolicy,
)
from metrics_engine.data import load_with_live_macro
from metrics_engine.data.contracts import to_plain
from metrics_engine.data.fred import FredClient, FredConfigError
from metrics_engine.metrics.macro import compute_macro
from metrics_engine.runner import calculate_all

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list (defaults to sys.argv[1:]).

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        prog="metrics-engine",
        description="Financial metrics engine",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # calculate command
    calc_parser = subparsers.add_parser(
        "calculate", help="Compute all metrics for a snapshot file"
    )
    calc_parser.add_argument(
        "snapshot",
        type=Path,
        help="Snapshot JSON path",
    )
    calc_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output JSON path (default: stdout)",
    )
    calc_parser.add_argument(
        "--risk-free-rate",
        type=float,
        default=None,
        help="Risk-free rate as a decimal (default: 10Y treasury, else 0.04)",
    )
    calc_parser.add_argument(
        "--market-risk-premium",
        type=float,
        default=DEFAULT_MARKET_RISK_PREMIUM,
        help=f"Equity market risk premium (default: {DEFAULT_MARKET_RISK_PREMIUM})",
    )
    calc_parser.add_argument(
        "--terminal-growth-rate",
        type=float,
        default=DEFAULT_TERMINAL_GROWTH_RATE,
        help=f"Terminal growth rate (default: {DEFAULT_TERMINAL_GROWTH_RATE})",
    )
    calc_parser.add_argument(
        "--tax-rate",
        type=float,
        default=None,
        help="Tax rate override (default: effective rate, else 0.21)",
    )
    calc_parser.add_argument(
        "--wacc",
        type=float,
        default=None,
        help="WACC override (default: derived from the snapshot)",
    )
    calc_parser.add_argument(
        "--cost-of-equity",
        type=float,
        default=None,
        help="Cost of equity override (default: CAPM)",
    )
    calc_parser.add_argument(
        "--projection-years",
        type=int,
        default=5,
        help="Explicit forecast years for the multi-stage DCF (default: 5)",
    )
    calc_parser.add_argument(
        "--reweight-total",
        action="store_true",
        help="Compute the total score from available categories only "
        "(default: require all five)",
    )
    calc_parser.add_argument(
        "--fetch-macro",
        action="store_true",
        help="Overlay live FRED macro series (requires FRED_API_KEY)",
    )
    calc_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    # macro command
    macro_parser = subparsers.add_parser(
        "macro", help="Fetch FRED macro series and print derived indicators"
    )
    macro_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output JSON path (default: stdout)",
    )
    macro_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser.parse_args(argv)


def _write_json(payload: dict, output: Path | None) -> None:
    text = json.dumps(payload, indent=2, allow_nan=False)
    if output is None:
        sys.stdout.write(text + "\n")
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding="utf-8")
    logger.info("Results written to %s", output)


def _fred_client() -> FredClient:
    try:
        return FredClient.from_env()
    except FredConfigError as e:
        logger.error("%s", e)
        sys.exit(1)


def run_calculate(args: argparse.Namespace) -> None:
    """Execute the calculate command.

    Args:
        args: Parsed CLI arguments.
    """
    try:
        config = CalculatorConfig(
            market_risk_premium=args.market_risk_premium,
            terminal_growth_rate=args.terminal_growth_rate,
            tax_rate=args.tax_rate,
            risk_free_rate=args.risk_free_rate,
            wacc=args.wacc,
            cost_of_equity=args.cost_of_equity,
            projection_years=args.projection_years,
            total_score_policy=(
                TotalScorePolicy.REWEIGHT
                if args.reweight_total
                else TotalScorePolicy.REQUIRE_ALL
            ),
        )
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)

    # Load snapshot
    client = _fred_client() if args.fetch_macro else None
    try:
        snapshot = load_with_live_macro(args.snapshot, client)
    except (FileNotFoundError, ValueError) as e:
        logger.error("%s: failed to load snapshot: %s", args.snapshot, e)
        sys.exit(1)

    result = calculate_all(snapshot, config)
    _write_json(result.to_dict(), args.output)


def run_macro(args: argparse.Namespace) -> None:
    """Execute the macro command.

    Args:
        args: Parsed CLI arguments.
    """
    client = _fred_client()
    metrics = compute_macro(client.fetch_macro_data())
    _write_json(to_plain(asdict(metrics)), args.output)
    logger.info("Cache: %s", client.cache.stats())


def main(argv: list[str] | None = None) -> None:
    """Main entry point.

    Args:
        argv: Argument list (defaults to sys.argv[1:]).
    """
    args = _parse_args(argv)

    # Configure logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.command == "calculate":
        run_calculate(args)
    elif args.command == "macro":
        run_macro(args)
    else:
        logger.error("Unknown command: %s", args.command)
        sys.exit(1)


if __name__ == "__main__":
    main()
