"""
Raw table loading for the ledger.

Reads the portfolio roster, transactions, cash flows and (optionally) price
and dividend history from delimited text, checks each column contract and
normalizes dtypes. No computation beyond deriving roster start dates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, Union

import pandas as pd

from portfolio_ledger._logging import log_errors, log_operation, log_timing
from portfolio_ledger.constants import (
    CASH_FLOW_COLUMNS,
    DIVIDEND_COLUMNS,
    PORTFOLIO_COLUMNS,
    PRICE_BAR_COLUMNS,
    TRANSACTION_COLUMNS,
)
from portfolio_ledger.schema import validate_columns

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_ROSTER_BASE_COLUMNS = PORTFOLIO_COLUMNS[:-1]


@dataclass
class LedgerInputs:
    portfolio: pd.DataFrame
    transactions: pd.DataFrame
    cash: pd.DataFrame
    dailys: Optional[pd.DataFrame] = None
    dividends: Optional[pd.DataFrame] = None


def load_table(
    path: PathLike,
    columns: Sequence[str],
    table_name: str,
    date_columns: Sequence[str] = ("Date",),
) -> pd.DataFrame:
    """
    Read one CSV table and enforce its column contract.

    Date columns are parsed to ``datetime64``; ``Symbol`` (when present) is
    read as text so tickers like ``"TRUE"`` or ``"0700"`` survive intact.
    """
    dtype = {"Symbol": str} if "Symbol" in columns else None
    frame = pd.read_csv(path, dtype=dtype)
    validate_columns(frame, columns, table_name)
    for col in date_columns:
        if col in frame.columns:
            frame[col] = pd.to_datetime(frame[col]).dt.normalize()
    logger.debug("Loaded %s: %d rows from %s", table_name, len(frame), path)
    return frame


def derive_start_dates(transactions: pd.DataFrame) -> pd.DataFrame:
    """
    First trade date per symbol.

    The start date is the date of the symbol's transaction with the lowest
    ``ID``. Rows are ordered by total invested ``Amount`` descending.

    Returns ``Symbol, StartDate``.
    """
    validate_columns(transactions, TRANSACTION_COLUMNS, "transactions")
    if transactions.empty:
        return pd.DataFrame({"Symbol": pd.Series(dtype=str), "StartDate": pd.Series(dtype="datetime64[ns]")})

    trans = transactions.copy()
    trans["Symbol"] = trans["Symbol"].astype(str)
    trans["Amount"] = pd.to_numeric(trans["Amount"], errors="coerce").fillna(0.0)
    invested = trans.groupby("Symbol")["Amount"].sum().rename("Invested")
    first = trans.sort_values(["Symbol", "ID"], kind="mergesort").groupby("Symbol").head(1)

    starts = first[["Symbol", "Date"]].merge(invested, left_on="Symbol", right_index=True)
    starts = starts.sort_values("Invested", ascending=False, kind="mergesort")
    starts["StartDate"] = pd.to_datetime(starts["Date"]).dt.normalize()
    return starts[["Symbol", "StartDate"]].reset_index(drop=True)


def attach_start_dates(portfolio: pd.DataFrame, transactions: pd.DataFrame) -> pd.DataFrame:
    """
    Complete a roster with each symbol's ``StartDate``.

    Accepts the six-column roster (``Symbol`` … ``Trans``) and joins start
    dates by symbol. A roster that already carries ``StartDate`` is returned
    validated and unchanged. Rows without a symbol are dropped.
    """
    if list(portfolio.columns) == PORTFOLIO_COLUMNS:
        return portfolio.copy()
    validate_columns(portfolio, _ROSTER_BASE_COLUMNS, "portfolio")

    roster = portfolio.loc[portfolio["Symbol"].notna()].copy()
    roster["Symbol"] = roster["Symbol"].astype(str)
    roster = roster.merge(derive_start_dates(transactions), on="Symbol", how="left")

    undated = roster.loc[roster["StartDate"].isna(), "Symbol"].tolist()
    if undated:
        logger.warning("Roster symbols without transactions (no StartDate): %s", undated)
    return roster[PORTFOLIO_COLUMNS].reset_index(drop=True)


@log_errors("high")
@log_operation("ledger_inputs_load")
@log_timing(2.0)
def load_ledger_inputs(input_dir: PathLike, files: Mapping[str, Any]) -> LedgerInputs:
    """
    Load every raw table found under ``input_dir``.

    ``files`` maps ``portfolio_file``, ``transactions_file``, ``cash_file``,
    ``prices_file`` and ``dividends_file`` to file names. Price and dividend
    files are optional; when absent the caller is expected to assemble history
    through a provider.
    """
    base = Path(input_dir)

    transactions = load_table(base / files["transactions_file"], TRANSACTION_COLUMNS, "transactions")
    cash = load_table(base / files["cash_file"], CASH_FLOW_COLUMNS, "cash_in")

    roster_path = base / files["portfolio_file"]
    raw_roster = pd.read_csv(roster_path, dtype={"Symbol": str})
    portfolio = attach_start_dates(raw_roster, transactions)
    portfolio["StartDate"] = pd.to_datetime(portfolio["StartDate"]).dt.normalize()

    dailys = None
    prices_name = files.get("prices_file")
    if prices_name and (base / prices_name).exists():
        dailys = load_table(base / prices_name, PRICE_BAR_COLUMNS, "dailys")

    dividends = None
    dividends_name = files.get("dividends_file")
    if dividends_name and (base / dividends_name).exists():
        dividends = load_table(base / dividends_name, DIVIDEND_COLUMNS, "dividends")

    logger.info(
        "Loaded ledger inputs from %s: %d positions, %d transactions, %d cash flows",
        base, len(portfolio), len(transactions), len(cash),
    )
    return LedgerInputs(
        portfolio=portfolio,
        transactions=transactions,
        cash=cash,
        dailys=dailys,
        dividends=dividends,
    )
