"""Per-position return and allocation snapshot.

Combines the position roster with the newest daily-state row of each symbol
and with each symbol's full dividend/trade history.
"""

from __future__ import annotations

import logging
import warnings
from typing import Optional

import pandas as pd

from portfolio_ledger import config
from portfolio_ledger._logging import log_critical_alert, log_errors, log_operation
from portfolio_ledger._vendor import safe_divide
from portfolio_ledger.constants import (
    DAILY_STATE_COLUMNS,
    PORTFOLIO_COLUMNS,
    POSITION_SUMMARY_COLUMNS,
)
from portfolio_ledger.daily_state import latest_rows, normalize_keys
from portfolio_ledger.errors import EmptyResult
from portfolio_ledger.schema import validate_columns

logger = logging.getLogger(__name__)

_ROSTER_NUMERIC = ["Stocks", "StockIniValue", "InvPerc", "Trans"]


def dividend_income_by_symbol(dailys: pd.DataFrame, decimals: int = 2) -> pd.DataFrame:
    """
    Total after-tax dividend income per symbol and its yield on invested amount.

    Returns ``Symbol, DivIncome, DivPerc`` sorted by ``DivPerc`` descending.
    """
    hist = dailys[["Symbol", "DailyDiv", "Amount"]].copy()
    hist["Symbol"] = hist["Symbol"].astype(str)
    for col in ("DailyDiv", "Amount"):
        hist[col] = pd.to_numeric(hist[col], errors="coerce").fillna(0.0)

    totals = hist.groupby("Symbol", sort=True).agg(
        DivIncome=("DailyDiv", "sum"),
        Invested=("Amount", "sum"),
    )
    totals["DivPerc"] = safe_divide(100.0 * totals["DivIncome"], totals["Invested"]).round(decimals)
    return (
        totals.reset_index()[["Symbol", "DivIncome", "DivPerc"]]
        .sort_values("DivPerc", ascending=False, kind="mergesort")
        .reset_index(drop=True)
    )


def _empty_summary() -> pd.DataFrame:
    return pd.DataFrame({col: pd.Series(dtype=float) for col in POSITION_SUMMARY_COLUMNS})


@log_errors("high")
@log_operation("position_summary")
def summarize_positions(
    portfolio: pd.DataFrame,
    dailys: pd.DataFrame,
    *,
    decimals: Optional[int] = None,
) -> pd.DataFrame:
    """
    Build one snapshot row per roster symbol.

    Parameters
    ----------
    portfolio : pd.DataFrame
        Position roster: ``Symbol, Stocks, StockIniValue, InvPerc, Type,
        Trans, StartDate``. ``InvPerc`` is the target weight as a fraction.
    dailys : pd.DataFrame
        Full DailyState history (any order); the newest row per symbol is
        selected here.

    Returns
    -------
    pd.DataFrame
        Roster columns (``InvPerc`` rescaled to percent) plus:

        - ``DailyValue``: latest market value
        - ``StockValue``: latest market value per share held
        - ``DifUSD`` / ``DifPer``: unrealized gain vs ``StockIniValue``
        - ``RealPerc``: share of the roster's total market value, in %
        - ``DivIncome`` / ``DivPerc``: after-tax dividends and their yield on
          the symbol's traded amount

        ``attrs["missing_symbols"]`` lists roster symbols without any daily
        state; they are reported with zero market value.
    """
    validate_columns(portfolio, PORTFOLIO_COLUMNS, "portfolio")
    validate_columns(dailys, DAILY_STATE_COLUMNS, "dailys")
    decimals = config.ROUND_DECIMALS if decimals is None else int(decimals)

    if portfolio.empty:
        # Point past the two logging wrappers at the caller
        warnings.warn("Position roster is empty; no position rows", EmptyResult, stacklevel=4)
        result = _empty_summary()
        result.attrs["missing_symbols"] = []
        return result

    roster = portfolio.copy()
    roster["Symbol"] = roster["Symbol"].astype(str)
    for col in _ROSTER_NUMERIC:
        roster[col] = pd.to_numeric(roster[col], errors="coerce").astype(float)

    if dailys.empty:
        latest = pd.DataFrame({"Symbol": pd.Series(dtype=str), "DailyValue": pd.Series(dtype=float)})
    else:
        latest = latest_rows(normalize_keys(dailys))[["Symbol", "DailyValue"]]
        latest["DailyValue"] = pd.to_numeric(latest["DailyValue"], errors="coerce")

    result = roster.merge(latest, on="Symbol", how="left")

    missing = result.loc[result["DailyValue"].isna(), "Symbol"].tolist()
    if missing:
        # Either a fully exited position or a gap in the price history
        log_critical_alert(
            "roster_symbol_without_history",
            "medium",
            f"{len(missing)} roster symbol(s) have no daily state; valued at 0",
            "Check price history coverage or remove exited positions from the roster",
            {"symbols": missing},
        )
    result["DailyValue"] = result["DailyValue"].fillna(0.0)

    result["DifUSD"] = result["DailyValue"] - result["StockIniValue"]
    result["DifPer"] = safe_divide(100.0 * result["DifUSD"], result["StockIniValue"]).round(decimals)
    result["StockValue"] = safe_divide(result["DailyValue"], result["Stocks"])
    result["InvPerc"] = 100.0 * result["InvPerc"]
    result["RealPerc"] = safe_divide(100.0 * result["DailyValue"], result["DailyValue"].sum()).round(decimals)

    if dailys.empty:
        result["DivIncome"] = 0.0
        result["DivPerc"] = 0.0
    else:
        result = result.merge(dividend_income_by_symbol(dailys, decimals), on="Symbol", how="left")
        result[["DivIncome", "DivPerc"]] = result[["DivIncome", "DivPerc"]].fillna(0.0)

    numeric = [c for c in POSITION_SUMMARY_COLUMNS if c not in ("Symbol", "Type", "StartDate")]
    result[numeric] = result[numeric].astype(float).round(decimals).fillna(0.0)

    result = result[POSITION_SUMMARY_COLUMNS].reset_index(drop=True)
    result.attrs["missing_symbols"] = missing
    logger.info("Summarized %d positions (%d without history)", len(result), len(missing))
    return result
