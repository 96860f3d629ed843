#!/usr/bin/env python3
"""
Inventory risk command line.

Usage:
    inventory-risk analyze skus.csv [--simulations N] [--days D] [--seed S]
                                    [--workers W] [--timeout T]
                                    [--scenario INV,DEM,LEAD,VAR] [--json]
    inventory-risk settings PATH        write a default settings file

Exit codes:
    0 = analysis completed
    1 = input error or failed batch
    130 = interrupted (batch cancelled)
"""
import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .analytics.risk import explain_risk, risk_level
from .config import SimulationSettings, load_settings, save_settings, default_settings
from .domain.models import WhatIfScenario
from .exceptions import BatchAbortedError, InventoryRiskError
from .utils.logging_config import get_logger, setup_logging
from .workflows.batch import PortfolioBatch
from .workflows.sku_import import SKUImporter

logger = get_logger(__name__)


def _build_settings(args: argparse.Namespace) -> SimulationSettings:
    settings = load_settings(Path(args.settings)) if args.settings else default_settings()
    section = settings["simulation"]
    overrides = {
        "n_simulations": args.simulations,
        "forecast_days": args.days,
        "random_seed": args.seed,
        "n_workers": args.workers,
        "timeout_s": args.timeout,
    }
    for key, value in overrides.items():
        if value is not None:
            section[key]["value"] = value
    return SimulationSettings.from_settings(settings)


def _print_table(skus, result) -> None:
    header = (
        f"{'SKU':<12} {'Name':<24} {'Under':>5} {'Over':>5} {'Dead':>5} "
        f"{'DoS':>5} {'OOS':>4} {'SS':>6} {'ROP':>6}  Level"
    )
    print(header)
    print("-" * len(header))
    for sku in skus:
        a = result.analyses[sku.id]
        worst = max(a.understock_risk, a.overstock_risk, a.dead_inventory_risk)
        stockout_day = "-" if a.projected_stockout is None else str(a.projected_stockout)
        print(
            f"{sku.id:<12.12} {sku.name:<24.24} {a.understock_risk:>5} {a.overstock_risk:>5} "
            f"{a.dead_inventory_risk:>5} {a.days_of_supply:>5} {stockout_day:>4} "
            f"{a.safety_stock:>6} {a.optimal_reorder_point:>6}  {risk_level(worst).value}"
        )

    m = result.metrics
    if m is not None:
        print()
        print(f"SKUs: {m.total_skus}  at risk: {m.at_risk_skus}  healthy: {m.healthy_skus}")
        print(
            f"Average risk  understock: {m.average_understock_risk}  "
            f"overstock: {m.average_overstock_risk}  dead: {m.average_dead_inventory_risk}"
        )
        print(f"Inventory value: {m.total_inventory_value}  projected losses: {m.projected_losses}")


def _result_to_json(skus, result) -> dict:
    return {
        "skus": [
            {
                **dataclasses.asdict(result.analyses[sku.id]),
                "explanation": explain_risk(result.analyses[sku.id], sku),
            }
            for sku in skus
        ],
        "metrics": dataclasses.asdict(result.metrics) if result.metrics else None,
        "elapsed_s": result.elapsed_s,
    }


def cmd_analyze(args: argparse.Namespace) -> int:
    preview = SKUImporter().read_csv(Path(args.csv))
    for row in preview.rows:
        for message in row.errors:
            logger.error("Row %d: %s", row.row_number, message)
        for message in row.warnings:
            logger.warning("Row %d: %s", row.row_number, message)
    skus = preview.skus
    if not skus:
        print(f"No valid SKU rows in {args.csv}", file=sys.stderr)
        return 1

    settings = _build_settings(args)
    scenario = WhatIfScenario.parse(args.scenario) if args.scenario else None

    def _progress(done: int, total: int) -> None:
        logger.info("Analyzed %d/%d SKUs", done, total)

    batch = PortfolioBatch.from_settings(skus, settings, scenario=scenario, on_progress=_progress)
    future = batch.start()
    try:
        result = future.result()
    except KeyboardInterrupt:
        batch.cancel()
        try:
            future.result()
        except BatchAbortedError:
            pass
        print("Analysis cancelled", file=sys.stderr)
        return 130
    except BatchAbortedError as e:
        print(f"Analysis aborted: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(_result_to_json(skus, result), indent=2))
    else:
        _print_table(skus, result)
    return 0


def cmd_settings(args: argparse.Namespace) -> int:
    path = Path(args.path)
    save_settings(default_settings(), path)
    print(f"Wrote default settings to {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inventory-risk",
        description="Monte Carlo inventory risk forecasting",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--log-dir", type=str, help="Also write warnings to rotating log files here")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyze SKUs from a CSV file")
    analyze.add_argument("csv", help="CSV file with one SKU per row")
    analyze.add_argument("--settings", type=str, help="Settings JSON file")
    analyze.add_argument("--simulations", type=int, help="Monte Carlo paths per SKU")
    analyze.add_argument("--days", type=int, help="Forecast horizon in days")
    analyze.add_argument("--seed", type=int, help="Random seed (0 = unseeded)")
    analyze.add_argument("--workers", type=int, help="Worker processes")
    analyze.add_argument("--timeout", type=float, help="Time box in seconds")
    analyze.add_argument("--scenario", type=str, help="What-if multipliers INV,DEM,LEAD,VAR")
    analyze.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    analyze.set_defaults(func=cmd_analyze)

    settings = sub.add_parser("settings", help="Write a default settings file")
    settings.add_argument("path", help="Destination JSON path")
    settings.set_defaults(func=cmd_settings)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_dir, console_level=logging.INFO if args.verbose else logging.WARNING)

    try:
        return args.func(args)
    except (InventoryRiskError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
