#!/usr/bin/env python3
# coding: utf-8

"""
Full ledger run: load → reconcile → aggregate → summarize → export.

Agent orientation:
    Orchestration layer above the pure table builders. Every path and option
    arrives through ``ReportConfig``; nothing here changes the working
    directory or reads ambient process state.

Called by:
    - ``run_ledger.py`` (CLI)

Primary flow:
    1) Load roster, transactions and cash (and history when present on disk).
    2) Otherwise assemble price/dividend history through the price provider.
    3) Build daily state, performance series and position snapshot.
    4) Export CSVs and return ``LedgerReport``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

import pandas as pd
import yaml

from portfolio_ledger import config as ledger_config
from portfolio_ledger._logging import (
    log_errors,
    log_operation,
    log_portfolio_operation,
    log_timing,
)
from portfolio_ledger._vendor import _to_float, safe_divide
from portfolio_ledger.constants import DIVIDEND_COLUMNS
from portfolio_ledger.daily_state import build_daily_state
from portfolio_ledger.data_loader import load_ledger_inputs
from portfolio_ledger.history import assemble_history, empty_table
from portfolio_ledger.performance import build_performance_summary
from portfolio_ledger.positions import summarize_positions
from portfolio_ledger.providers import PriceProvider
from portfolio_ledger.results import LedgerReport

logger = logging.getLogger(__name__)

_FILE_KEYS = (
    "portfolio_file",
    "transactions_file",
    "cash_file",
    "prices_file",
    "dividends_file",
    "performance_export",
    "positions_export",
    "daily_export",
)


def _default(key: str) -> Any:
    return ledger_config.REPORT_DEFAULTS.get(key)


@dataclass
class ReportConfig:
    """Explicit settings for one ledger run (paths, cash adjustment, exports)."""

    input_dir: Path = field(default_factory=lambda: Path(_default("input_dir") or "."))
    output_dir: Path = field(default_factory=lambda: Path(_default("output_dir") or "."))
    cash_fix: float = field(default_factory=lambda: float(_default("cash_fix") or 0.0))
    max_workers: Optional[int] = None
    include_quote: bool = False
    export: bool = True
    files: Dict[str, Optional[str]] = field(
        default_factory=lambda: {key: _default(key) for key in _FILE_KEYS}
    )

    def __post_init__(self):
        self.input_dir = Path(self.input_dir)
        self.output_dir = Path(self.output_dir)
        self.cash_fix = float(self.cash_fix)
        merged = {key: _default(key) for key in _FILE_KEYS}
        unknown = set(self.files) - set(_FILE_KEYS)
        if unknown:
            raise ValueError(f"Unknown file keys in report config: {sorted(unknown)}")
        merged.update(self.files)
        self.files = merged


def load_report_config(path: Union[str, Path]) -> ReportConfig:
    """
    Build a ``ReportConfig`` from a YAML file.

    Relative ``input_dir``/``output_dir`` values are resolved against the
    YAML file's directory. Unknown top-level keys raise ``ValueError``.
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    allowed = {f.name for f in fields(ReportConfig)}
    unknown = set(raw) - allowed
    if unknown:
        raise ValueError(f"Unknown keys in report config {path}: {sorted(unknown)}")

    for key in ("input_dir", "output_dir"):
        if key in raw and not Path(raw[key]).is_absolute():
            raw[key] = path.parent / raw[key]
    return ReportConfig(**raw)


def _latest(frame: pd.DataFrame, column: str) -> float:
    if frame.empty:
        return 0.0
    return _to_float(frame.sort_values("Date", ascending=False).iloc[0][column])


def headline_summary(
    performance: pd.DataFrame,
    positions: pd.DataFrame,
    daily: pd.DataFrame,
    transactions: pd.DataFrame,
    cash: pd.DataFrame,
) -> Dict[str, Any]:
    """Key figures of the latest date for report captions and CLI output."""
    as_of = None
    if not daily.empty:
        as_of = pd.to_datetime(daily["Date"]).max().strftime("%Y-%m-%d")

    stocks_value = _latest(performance, "DailyStocks")
    traded = _to_float(pd.to_numeric(performance["DailyTrans"], errors="coerce").sum())
    return {
        "as_of": as_of,
        "positions": int(len(positions)),
        "portfolio_value": _latest(performance, "CumPortfolio"),
        "stocks_value": stocks_value,
        "cash_balance": _latest(performance, "CumCash"),
        "total_return_pct": _latest(performance, "TotalPer"),
        "total_return_usd": round(stocks_value - traded, 2),
        "daily_return_pct": _latest(performance, "RelPer"),
        "daily_return_usd": _latest(performance, "RelUSD"),
        "invested": round(_to_float(pd.to_numeric(transactions["Amount"], errors="coerce").sum()), 2),
        "deposited": round(_to_float(pd.to_numeric(cash["Cash"], errors="coerce").sum()), 2),
        "dividends": round(_to_float(pd.to_numeric(daily["DailyDiv"], errors="coerce").sum()), 2),
        "expenses": round(_to_float(pd.to_numeric(daily["Expenses"], errors="coerce").sum()), 2),
    }


def cumulative_symbol_change(daily: pd.DataFrame, portfolio: pd.DataFrame) -> pd.DataFrame:
    """
    Running sum of each symbol's daily % change, tagged with its category.

    Returns ``Date, Symbol, Type, Close, Amount, RelChangeP, Hist, BuySell``
    in ascending date order, where ``Hist`` is the cumulative ``RelChangeP``
    and ``BuySell`` marks days with a trade fee.
    """
    frame = daily.merge(
        portfolio[["Symbol", "Type"]].astype({"Symbol": str}), on="Symbol", how="left"
    )
    frame["Date"] = pd.to_datetime(frame["Date"])
    frame = frame.sort_values(["Symbol", "Date"], kind="mergesort")
    frame["Hist"] = frame.groupby("Symbol", sort=False)["RelChangeP"].cumsum().round(2)
    frame["BuySell"] = frame["Expenses"] > 0
    frame = frame.sort_values(["Date", "Symbol"], kind="mergesort")
    return frame[
        ["Date", "Symbol", "Type", "Close", "Amount", "RelChangeP", "Hist", "BuySell"]
    ].reset_index(drop=True)


def category_breakdown(positions: pd.DataFrame) -> pd.DataFrame:
    """
    Market value, weight and return per position category (``Type``).

    Returns ``Type, DailyValue, Perc, DifPer`` ordered by weight descending.
    """
    if positions.empty:
        return pd.DataFrame(columns=["Type", "DailyValue", "Perc", "DifPer"])

    grouped = positions.groupby("Type", sort=True).agg(
        DailyValue=("DailyValue", "sum"),
        Invested=("StockIniValue", "sum"),
    )
    total = grouped["DailyValue"].sum()
    grouped["Perc"] = safe_divide(100.0 * grouped["DailyValue"], total).round(2)
    grouped["DifPer"] = (safe_divide(100.0 * grouped["DailyValue"], grouped["Invested"]) - 100.0).where(
        grouped["Invested"] != 0, 0.0
    ).round(2)
    return (
        grouped.reset_index()[["Type", "DailyValue", "Perc", "DifPer"]]
        .sort_values("Perc", ascending=False, kind="mergesort")
        .reset_index(drop=True)
    )


@log_errors("high")
@log_operation("ledger_report")
@log_timing(10.0)
def run_ledger_report(
    report_config: Optional[ReportConfig] = None,
    *,
    provider: Optional[PriceProvider] = None,
) -> LedgerReport:
    """
    Execute one complete ledger run.

    Parameters
    ----------
    report_config : ReportConfig, optional
        Paths and options; defaults come from ``config.REPORT_DEFAULTS``.
    provider : PriceProvider, optional
        Used only when no price history file is present in ``input_dir``.

    Returns
    -------
    LedgerReport
        Daily, performance and position tables plus headline metadata. When
        ``report_config.export`` is set the CSV paths are listed under
        ``metadata["exports"]``.

    Raises
    ------
    SchemaMismatch
        If any table violates its column contract; nothing is exported.
    """
    cfg = report_config or ReportConfig()
    inputs = load_ledger_inputs(cfg.input_dir, cfg.files)
    log_portfolio_operation("ledger_inputs_loaded", {"positions": len(inputs.portfolio)})

    dailys, dividends = inputs.dailys, inputs.dividends
    if dailys is None:
        history = assemble_history(
            inputs.portfolio["Symbol"].tolist(),
            inputs.portfolio["StartDate"].tolist(),
            provider=provider,
            include_quote=cfg.include_quote,
        )
        dailys, dividends = history.values, history.dividends
    if dividends is None:
        dividends = empty_table(DIVIDEND_COLUMNS)

    daily = build_daily_state(dailys, dividends, inputs.transactions, max_workers=cfg.max_workers)
    performance = build_performance_summary(daily, inputs.cash, cfg.cash_fix)
    positions = summarize_positions(inputs.portfolio, daily)

    headline = headline_summary(performance, positions, daily, inputs.transactions, inputs.cash)
    report = LedgerReport(
        daily=daily,
        performance=performance,
        positions=positions,
        categories=category_breakdown(positions),
        symbol_history=cumulative_symbol_change(daily, inputs.portfolio),
        metadata={
            "as_of": headline["as_of"],
            "headline": headline,
            "missing_symbols": list(positions.attrs.get("missing_symbols", [])),
            "unmatched_trades": [list(key) for key in daily.attrs.get("unmatched_trades", [])],
            "cash_fix": cfg.cash_fix,
            "input_dir": str(cfg.input_dir),
            "analysis_date": datetime.now(UTC).isoformat(),
        },
    )

    if cfg.export:
        written = report.export(
            cfg.output_dir,
            performance_name=cfg.files["performance_export"],
            positions_name=cfg.files["positions_export"],
            daily_name=cfg.files.get("daily_export"),
        )
        report.metadata["exports"] = [str(p) for p in written]
        logger.info("Exported %d tables to %s", len(written), cfg.output_dir)

    log_portfolio_operation("ledger_report_ready", {"as_of": headline["as_of"]})
    return report
