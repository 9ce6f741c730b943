#!/usr/bin/env python
# coding: utf-8

"""
Command-line entrypoint for portfolio ledger runs.

Examples:
    python run_ledger.py --input-dir data/ --output-dir out/
    python run_ledger.py --config ledger.yaml --cash-fix -12.5
    python run_ledger.py --input-dir data/ --json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

from helpers_display import (
    print_category_table,
    print_performance_table,
    print_position_table,
)
from portfolio_ledger.errors import LedgerError
from portfolio_ledger.report import ReportConfig, load_report_config, run_ledger_report


def build_report_config(args: argparse.Namespace) -> ReportConfig:
    """Merge the optional YAML config with explicit command-line overrides."""
    cfg = load_report_config(args.config) if args.config else ReportConfig()
    if args.input_dir:
        cfg.input_dir = Path(args.input_dir)
    if args.output_dir:
        cfg.output_dir = Path(args.output_dir)
    if args.cash_fix is not None:
        cfg.cash_fix = float(args.cash_fix)
    if args.workers is not None:
        cfg.max_workers = args.workers
    if args.daily_export:
        cfg.files["daily_export"] = args.daily_export
    if args.no_export:
        cfg.export = False
    return cfg


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Reconcile prices, trades and dividends into portfolio performance tables")
    parser.add_argument("--config", type=str, help="Path to YAML report config")
    parser.add_argument("--input-dir", type=str, help="Directory holding portfolio/transactions/cash (and optional prices/dividends) CSVs")
    parser.add_argument("--output-dir", type=str, help="Directory for CSV exports")
    parser.add_argument("--cash-fix", type=float, help="Amount added to the cumulative cash balance")
    parser.add_argument("--workers", type=int, help="Thread pool size for per-symbol computation")
    parser.add_argument("--daily-export", type=str, help="Also export the daily state under this file name")
    parser.add_argument("--no-export", action="store_true", help="Skip writing CSV exports")
    parser.add_argument("--json", action="store_true", help="Print the JSON payload instead of tables")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable INFO logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        report = run_ledger_report(build_report_config(args))
    except (LedgerError, FileNotFoundError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(report.to_api_response(), indent=2))
        return 0

    print(report.to_cli_report())
    print_performance_table(report.performance)
    print_position_table(report.positions)
    print_category_table(report.categories)
    for path in report.metadata.get("exports", []):
        print(f"💾  {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
