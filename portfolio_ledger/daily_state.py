"""Daily portfolio state: price bars reconciled with trades and dividends.

Called by:
- ``portfolio_ledger.report.run_ledger_report``.
- Callers that already hold the raw price/dividend/transaction tables.

Primary flow:
1) Validate the three input contracts.
2) Collapse same-day transaction legs and dividend rows per (Symbol, Date).
3) Left-join both onto the price bars; unmatched keys become zero.
4) Per symbol, in ascending date order: running share count, dividend
   income, market value and day-over-day change.
5) Round, zero-fill and return newest-first.

Contract notes:
- Running totals are always computed on ascending dates before the
  newest-first display sort is applied.
- Trades on a (Symbol, Date) without a price bar are not joined; they are
  alerted and listed in ``attrs["unmatched_trades"]`` of the result.
- Per-symbol work is independent; with ``max_workers > 1`` it fans out over a
  thread pool and is concatenated once after every task has finished.
"""

from __future__ import annotations

import logging
import warnings
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from portfolio_ledger import config
from portfolio_ledger._logging import log_critical_alert, log_errors, log_operation, log_timing
from portfolio_ledger.constants import (
    DAILY_STATE_COLUMNS,
    DIVIDEND_COLUMNS,
    PRICE_BAR_COLUMNS,
    TRANSACTION_COLUMNS,
)
from portfolio_ledger.errors import EmptyResult
from portfolio_ledger.schema import validate_columns

logger = logging.getLogger(__name__)

_KEYS = ["Symbol", "Date"]
_PRICE_FIELDS = ["Open", "High", "Low", "Close", "Volume", "Adjusted"]


def normalize_keys(frame: pd.DataFrame) -> pd.DataFrame:
    """Return a copy with ``Date`` as midnight timestamps and ``Symbol`` as str."""
    out = frame.copy()
    out["Date"] = pd.to_datetime(out["Date"]).dt.normalize().astype("datetime64[ns]")
    out["Symbol"] = out["Symbol"].astype(str)
    return out


def _to_numeric(frame: pd.DataFrame, columns: List[str]) -> pd.DataFrame:
    for col in columns:
        frame[col] = pd.to_numeric(frame[col], errors="coerce").astype(float)
    return frame


def aggregate_transactions(transactions: pd.DataFrame) -> pd.DataFrame:
    """
    Collapse transaction legs to one row per (Symbol, Date).

    Quant and Amount are summed. Value (unit price) becomes the mean of the
    legs' prices weighted by absolute quantity, falling back to the plain mean
    when every leg has zero quantity.

    Returns
    -------
    pd.DataFrame
        Columns ``Symbol, Date, Quant, Value, Amount``.
    """
    if transactions.empty:
        return pd.DataFrame(
            {
                "Symbol": pd.Series(dtype=str),
                "Date": pd.Series(dtype="datetime64[ns]"),
                "Quant": pd.Series(dtype=float),
                "Value": pd.Series(dtype=float),
                "Amount": pd.Series(dtype=float),
            }
        )

    trans = _to_numeric(normalize_keys(transactions), ["Quant", "Value", "Amount"])
    trans[["Quant", "Value", "Amount"]] = trans[["Quant", "Value", "Amount"]].fillna(0.0)
    trans["_abs_quant"] = trans["Quant"].abs()
    trans["_weighted_value"] = trans["Value"] * trans["_abs_quant"]

    grouped = trans.groupby(_KEYS, sort=True).agg(
        Quant=("Quant", "sum"),
        Amount=("Amount", "sum"),
        _abs_quant=("_abs_quant", "sum"),
        _weighted_value=("_weighted_value", "sum"),
        _mean_value=("Value", "mean"),
    )
    weights = grouped["_abs_quant"]
    grouped["Value"] = np.where(
        weights > 0,
        grouped["_weighted_value"] / weights.where(weights > 0, 1.0),
        grouped["_mean_value"],
    )
    legs = len(trans)
    if legs != len(grouped):
        logger.debug("Collapsed %d transaction legs into %d trade days", legs, len(grouped))
    return grouped.reset_index()[["Symbol", "Date", "Quant", "Value", "Amount"]]


def aggregate_dividends(dividends: pd.DataFrame) -> pd.DataFrame:
    """Collapse dividend rows to one row per (Symbol, Date) by summation."""
    if dividends.empty:
        return pd.DataFrame(
            {
                "Symbol": pd.Series(dtype=str),
                "Date": pd.Series(dtype="datetime64[ns]"),
                "Div": pd.Series(dtype=float),
                "DivReal": pd.Series(dtype=float),
            }
        )
    divs = _to_numeric(normalize_keys(dividends), ["Div", "DivReal"])
    return (
        divs.groupby(_KEYS, sort=True)[["Div", "DivReal"]]
        .sum(min_count=1)
        .reset_index()
    )


def unmatched_trade_keys(trades: pd.DataFrame, bars: pd.DataFrame) -> List[Tuple[str, str]]:
    """
    Aggregated trade keys with no price bar on the same (Symbol, Date).

    The left join from the price side drops these trades, so their quantity
    never reaches ``Stocks``. Returns ``(symbol, "YYYY-MM-DD")`` pairs.
    """
    if trades.empty:
        return []
    keyed = trades[_KEYS].merge(bars[_KEYS].drop_duplicates(), on=_KEYS, how="left", indicator=True)
    lost = keyed.loc[keyed["_merge"] == "left_only"]
    return [(str(symbol), day.strftime("%Y-%m-%d")) for symbol, day in zip(lost["Symbol"], lost["Date"])]


def _report_unmatched(unmatched: List[Tuple[str, str]]) -> None:
    if not unmatched:
        return
    log_critical_alert(
        "trades_without_price_bar",
        "high",
        f"{len(unmatched)} trade day(s) have no price bar; their quantity is missing from Stocks",
        "Align trade dates with the price calendar (weekends, settlement dates, history start)",
        {"trades": unmatched},
    )


def _symbol_state(frame: pd.DataFrame) -> pd.DataFrame:
    """Running position and change metrics for a single symbol."""
    out = frame.sort_values("Date", kind="mergesort").copy()

    out["Stocks"] = out["Quant"].cumsum()
    out["DailyDiv"] = out["Stocks"] * out["DivReal"]
    out["DailyValue"] = out["Close"] * out["Stocks"]

    prior_close = out["Close"].shift(1)
    with np.errstate(divide="ignore", invalid="ignore"):
        rel_pct = 100.0 * (1.0 - prior_close / out["Close"])
    out["RelChangeP"] = rel_pct.replace([np.inf, -np.inf], np.nan)
    out["RelChangeUSD"] = out["Stocks"] * (out["Close"] - prior_close) - out["Expenses"]
    # No prior close on the symbol's first observed date
    first = prior_close.isna()
    out.loc[first, ["RelChangeP", "RelChangeUSD"]] = 0.0
    return out


def _run_per_symbol(frame: pd.DataFrame, max_workers: int) -> pd.DataFrame:
    groups: Dict[str, pd.DataFrame] = {
        str(symbol): group for symbol, group in frame.groupby("Symbol", sort=True)
    }

    results: Dict[str, pd.DataFrame] = {}
    if max_workers > 1 and len(groups) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as ex:
            futures = {ex.submit(_symbol_state, group): symbol for symbol, group in groups.items()}
            for fut in as_completed(futures):
                results[futures[fut]] = fut.result()
    else:
        for symbol, group in groups.items():
            results[symbol] = _symbol_state(group)

    # Single write of the combined table once all symbols are done
    return pd.concat([results[s] for s in sorted(results)], ignore_index=True)


def empty_daily_state() -> pd.DataFrame:
    frame = pd.DataFrame({col: pd.Series(dtype=float) for col in DAILY_STATE_COLUMNS})
    frame["Date"] = pd.Series(dtype="datetime64[ns]")
    frame["Symbol"] = pd.Series(dtype=str)
    return frame[DAILY_STATE_COLUMNS]


@log_errors("high")
@log_operation("daily_state_build")
@log_timing(5.0)
def build_daily_state(
    dailys: pd.DataFrame,
    dividends: pd.DataFrame,
    transactions: pd.DataFrame,
    *,
    expense_per_trade_day: Optional[float] = None,
    max_workers: Optional[int] = None,
    decimals: Optional[int] = None,
) -> pd.DataFrame:
    """
    Build one row per (Symbol, Date) of reconciled portfolio state.

    Parameters
    ----------
    dailys : pd.DataFrame
        Price bars: ``Date, Symbol, Open, High, Low, Close, Volume, Adjusted``.
    dividends : pd.DataFrame
        Dividend events: ``Symbol, Date, Div, DivReal``.
    transactions : pd.DataFrame
        Trades: ``ID, Inv, Symbol, Date, Quant, Value, Amount, Description``.
    expense_per_trade_day : float, optional
        Flat fee booked on any (symbol, date) with at least one trade.
        Defaults to ``config.EXPENSE_PER_TRADE_DAY``.
    max_workers : int, optional
        Thread pool size for the per-symbol pass. ``1`` runs inline.
    decimals : int, optional
        Rounding precision. Defaults to ``config.ROUND_DECIMALS``.

    Returns
    -------
    pd.DataFrame
        DailyState table ordered newest date first, then by symbol.

    Raises
    ------
    SchemaMismatch
        If any input violates its column contract.
    """
    validate_columns(dailys, PRICE_BAR_COLUMNS, "dailys")
    validate_columns(dividends, DIVIDEND_COLUMNS, "dividends")
    validate_columns(transactions, TRANSACTION_COLUMNS, "transactions")

    fee = config.EXPENSE_PER_TRADE_DAY if expense_per_trade_day is None else float(expense_per_trade_day)
    workers = config.MAX_SYMBOL_WORKERS if max_workers is None else int(max_workers)
    decimals = config.ROUND_DECIMALS if decimals is None else int(decimals)

    if dailys.empty:
        # Point past the three logging wrappers at the caller
        warnings.warn("No price bars supplied; daily state is empty", EmptyResult, stacklevel=5)
        logger.info("Daily state build skipped: no price bars")
        empty = empty_daily_state()
        unmatched = unmatched_trade_keys(aggregate_transactions(transactions), empty)
        _report_unmatched(unmatched)
        empty.attrs["unmatched_trades"] = unmatched
        return empty

    df = _to_numeric(normalize_keys(dailys), _PRICE_FIELDS)
    duplicated = df.duplicated(subset=_KEYS, keep="last")
    if duplicated.any():
        logger.warning("Dropping %d duplicate price bars (kept latest per symbol/date)", int(duplicated.sum()))
        df = df.loc[~duplicated]
    df = df.sort_values(["Date", "Symbol"], kind="mergesort")

    trades = aggregate_transactions(transactions)
    unmatched = unmatched_trade_keys(trades, df)
    _report_unmatched(unmatched)
    trades["_traded"] = True
    df = df.merge(trades, on=_KEYS, how="left")
    traded = df["_traded"].eq(True)
    df = df.drop(columns="_traded")
    df[["Quant", "Value", "Amount"]] = df[["Quant", "Value", "Amount"]].fillna(0.0)

    # The broker fee model is coarse: one flat charge per symbol per day with
    # any activity, independent of the number of legs or traded size.
    df["Expenses"] = np.where(traded, fee, 0.0)

    df = df.merge(aggregate_dividends(dividends), on=_KEYS, how="left")
    df[["Div", "DivReal"]] = df[["Div", "DivReal"]].fillna(0.0)

    df = _run_per_symbol(df, workers)

    numeric = [c for c in DAILY_STATE_COLUMNS if c not in ("Date", "Symbol")]
    df[numeric] = df[numeric].astype(float).round(decimals).fillna(0.0)

    df = df.sort_values(["Date", "Symbol"], ascending=[False, True], kind="mergesort")
    logger.info(
        "Built daily state: %d rows, %d symbols, %s to %s",
        len(df), df["Symbol"].nunique(), df["Date"].min().date(), df["Date"].max().date(),
    )
    result = df[DAILY_STATE_COLUMNS].reset_index(drop=True)
    result.attrs["unmatched_trades"] = unmatched
    return result


def latest_rows(dailys: pd.DataFrame) -> pd.DataFrame:
    """Most recent DailyState row per symbol."""
    if dailys.empty:
        return dailys.copy()
    ordered = normalize_keys(dailys).sort_values(["Symbol", "Date"], kind="mergesort")
    return ordered.groupby("Symbol", sort=True).tail(1).reset_index(drop=True)
