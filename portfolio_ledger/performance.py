"""Portfolio-level daily performance series built from the daily state.

Called by:
- ``portfolio_ledger.report.run_ledger_report``.

Contract notes:
- One output row per date present in the daily state; cash flows on dates
  without any daily-state rows are not carried (left join from the daily side).
- Every running total is accumulated on ascending dates and only then
  re-sorted newest-first for display.
- Ratios with a zero denominator are defined as 0.
"""

from __future__ import annotations

import logging
import warnings
from typing import Optional

import pandas as pd

from portfolio_ledger import config
from portfolio_ledger._logging import log_errors, log_operation, log_timing
from portfolio_ledger._vendor import safe_divide
from portfolio_ledger.constants import (
    CASH_FLOW_COLUMNS,
    DAILY_STATE_COLUMNS,
    PERFORMANCE_COLUMNS,
)
from portfolio_ledger.errors import EmptyResult
from portfolio_ledger.schema import validate_columns

logger = logging.getLogger(__name__)

_SUMMED = {
    "DailyStocks": "DailyValue",
    "DailyTrans": "Amount",
    "DailyExpen": "Expenses",
    "DailyDiv": "DailyDiv",
    "RelUSD": "RelChangeUSD",
}


def empty_performance() -> pd.DataFrame:
    frame = pd.DataFrame({col: pd.Series(dtype=float) for col in PERFORMANCE_COLUMNS})
    frame["Date"] = pd.Series(dtype="datetime64[ns]")
    return frame[PERFORMANCE_COLUMNS]


def aggregate_cash(cash_in: pd.DataFrame) -> pd.DataFrame:
    """Sum deposits/withdrawals per date. Returns ``Date, DailyCash``."""
    if cash_in.empty:
        return pd.DataFrame(
            {"Date": pd.Series(dtype="datetime64[ns]"), "DailyCash": pd.Series(dtype=float)}
        )
    cash = pd.DataFrame(
        {
            "Date": pd.to_datetime(cash_in["Date"]).dt.normalize().astype("datetime64[ns]"),
            "DailyCash": pd.to_numeric(cash_in["Cash"], errors="coerce").fillna(0.0).astype(float),
        }
    )
    return cash.groupby("Date", sort=True)["DailyCash"].sum().reset_index()


def aggregate_by_date(dailys: pd.DataFrame) -> pd.DataFrame:
    """
    Collapse the daily state across symbols, ascending by date.

    Returns ``Date, Positions, DailyStocks, DailyTrans, DailyExpen, DailyDiv,
    RelUSD``.
    """
    frame = dailys.copy()
    frame["Date"] = pd.to_datetime(frame["Date"]).dt.normalize().astype("datetime64[ns]")
    for source in _SUMMED.values():
        frame[source] = pd.to_numeric(frame[source], errors="coerce").fillna(0.0).astype(float)

    named = {target: (source, "sum") for target, source in _SUMMED.items()}
    return (
        frame.groupby("Date", sort=True)
        .agg(Positions=("Symbol", "size"), **named)
        .reset_index()
    )


@log_errors("high")
@log_operation("performance_summary")
@log_timing(2.0)
def build_performance_summary(
    dailys: pd.DataFrame,
    cash_in: pd.DataFrame,
    cash_fix: Optional[float] = None,
    *,
    decimals: Optional[int] = None,
) -> pd.DataFrame:
    """
    Aggregate the daily state into one portfolio row per date.

    Parameters
    ----------
    dailys : pd.DataFrame
        Output of ``build_daily_state`` (any row order).
    cash_in : pd.DataFrame
        Deposits and withdrawals: ``ID, Date, Cash``.
    cash_fix : float, optional
        Constant added to the cumulative cash balance (manual reconciliation).
        Defaults to ``config.REPORT_DEFAULTS["cash_fix"]``.

    Returns
    -------
    pd.DataFrame
        PerformanceSummary columns, newest date first:

        - ``CumPortfolio``: cumulative cash + stocks value
        - ``TotalPer``: stocks value over cumulative traded amount, in % gain
        - ``RelUSD`` / ``RelPer``: day-over-day change in USD and %
        - ``DailyStocks``, ``DailyTrans``, ``DailyDiv``, ``DailyCash``: per-day sums
        - ``CumDiv``, ``CumExpen``, ``CumCash``: running totals
    """
    validate_columns(dailys, DAILY_STATE_COLUMNS, "dailys")
    validate_columns(cash_in, CASH_FLOW_COLUMNS, "cash_in")

    if cash_fix is None:
        cash_fix = config.REPORT_DEFAULTS.get("cash_fix", 0.0) or 0.0
    decimals = config.ROUND_DECIMALS if decimals is None else int(decimals)

    if dailys.empty:
        # Point past the three logging wrappers at the caller
        warnings.warn("Daily state is empty; no performance rows", EmptyResult, stacklevel=5)
        return empty_performance()

    perf = aggregate_by_date(dailys)

    perf["RelPer"] = safe_divide(100.0 * perf["RelUSD"], perf["DailyStocks"]).round(decimals)
    perf["CumDiv"] = perf["DailyDiv"].cumsum()
    perf["CumExpen"] = perf["DailyExpen"].cumsum()

    cash = aggregate_cash(cash_in)
    outside = ~cash["Date"].isin(perf["Date"])
    if outside.any():
        logger.debug("%d cash dates fall outside the daily-state calendar", int(outside.sum()))
    perf = perf.merge(cash, on="Date", how="left")
    perf["DailyCash"] = perf["DailyCash"].fillna(0.0)

    cum_traded = perf["DailyTrans"].cumsum()
    perf["CumCash"] = (
        perf["DailyCash"].cumsum() - cum_traded + perf["DailyDiv"].cumsum() + float(cash_fix)
    )
    perf["CumPortfolio"] = perf["CumCash"] + perf["DailyStocks"]
    perf["TotalPer"] = (safe_divide(100.0 * perf["DailyStocks"], cum_traded).round(decimals) - 100.0).where(
        cum_traded != 0, 0.0
    )

    numeric = [c for c in PERFORMANCE_COLUMNS if c != "Date"]
    perf[numeric] = perf[numeric].astype(float).round(decimals).fillna(0.0)
    perf = perf.sort_values("Date", ascending=False, kind="mergesort")
    return perf[PERFORMANCE_COLUMNS].reset_index(drop=True)
