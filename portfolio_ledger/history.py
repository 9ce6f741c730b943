"""
Price and dividend history assembly.

Turns per-symbol provider output into the two raw tables consumed by
``build_daily_state``: price bars (with a synthetic ``Adjusted`` column) and
after-tax dividend events.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from portfolio_ledger import config
from portfolio_ledger._logging import log_errors, log_operation
from portfolio_ledger.constants import (
    DEFAULT_HISTORY_LOOKBACK_DAYS,
    DIVIDEND_COLUMNS,
    PRICE_BAR_COLUMNS,
)
from portfolio_ledger.errors import EmptyResult, LengthMismatch
from portfolio_ledger.providers import PriceProvider, get_price_provider
from portfolio_ledger.schema import validate_columns

logger = logging.getLogger(__name__)

DateLike = Union[str, date, datetime, pd.Timestamp]


@dataclass
class HistoryTables:
    values: pd.DataFrame
    dividends: pd.DataFrame


def empty_table(columns: List[str]) -> pd.DataFrame:
    frame = pd.DataFrame({col: pd.Series(dtype=float) for col in columns})
    frame["Date"] = pd.Series(dtype="datetime64[ns]")
    frame["Symbol"] = pd.Series(dtype=str)
    return frame[columns]


def _resolve_start_dates(
    symbols: Sequence[str],
    start_dates: Union[None, DateLike, Sequence[DateLike]],
    today: pd.Timestamp,
) -> List[pd.Timestamp]:
    default = today - pd.Timedelta(days=DEFAULT_HISTORY_LOOKBACK_DAYS)
    if start_dates is None:
        return [default] * len(symbols)
    if isinstance(start_dates, (str, date, datetime, pd.Timestamp)):
        return [pd.Timestamp(start_dates).normalize()] * len(symbols)

    starts = list(start_dates)
    if len(starts) == 1:
        starts = starts * len(symbols)
    if len(starts) != len(symbols):
        raise LengthMismatch("symbols", len(symbols), "start_dates", len(starts))
    # Symbols with no known start fall back to the default lookback
    return [default if pd.isna(s) else pd.Timestamp(s).normalize() for s in starts]


def price_table_from_bars(symbol: str, bars: pd.DataFrame) -> pd.DataFrame:
    """
    Shape provider bars into the PriceBar contract.

    ``Adjusted`` is the mean of High and Close (ignoring a missing one), used
    as a stand-in where the source has no adjusted pricing.
    """
    if bars is None or bars.empty:
        return empty_table(PRICE_BAR_COLUMNS)

    frame = bars.copy()
    if "Date" not in frame.columns:
        frame = frame.rename_axis("Date").reset_index()
    frame["Date"] = pd.to_datetime(frame["Date"]).dt.normalize()
    frame["Symbol"] = str(symbol)
    for col in ("Open", "High", "Low", "Close", "Volume"):
        frame[col] = pd.to_numeric(frame[col], errors="coerce")
    frame["Adjusted"] = frame[["High", "Close"]].mean(axis=1, skipna=True)
    return frame[PRICE_BAR_COLUMNS].reset_index(drop=True)


def quote_row(symbol: str, quote: Dict[str, Any]) -> pd.DataFrame:
    """Single PriceBar row for an intraday quote (O=H=L=C=Adjusted=price)."""
    when = quote.get("time")
    if isinstance(when, (int, float)):
        stamp = pd.Timestamp(when, unit="s")
    else:
        stamp = pd.Timestamp(when) if when is not None else pd.Timestamp.now()
    price = float(quote["price"])
    return pd.DataFrame(
        [{
            "Date": stamp.normalize(),
            "Symbol": str(symbol),
            "Open": price,
            "High": price,
            "Low": price,
            "Close": price,
            "Volume": 0.0,
            "Adjusted": price,
        }],
        columns=PRICE_BAR_COLUMNS,
    )


def dividend_table(symbol: str, dividends: Any, tax_rate: float) -> pd.DataFrame:
    """DividendEvent rows from a date-indexed Series (or ``Date, Div`` frame)."""
    if isinstance(dividends, pd.DataFrame):
        series = pd.Series(dividends["Div"].to_numpy(), index=pd.to_datetime(dividends["Date"]))
    else:
        series = pd.Series(dividends)
    if series.empty:
        return empty_table(DIVIDEND_COLUMNS)

    div = pd.to_numeric(series, errors="coerce").astype(float)
    return pd.DataFrame(
        {
            "Symbol": str(symbol),
            "Date": pd.to_datetime(series.index).normalize(),
            "Div": div.to_numpy(),
            "DivReal": (div * (1.0 - tax_rate)).to_numpy(),
        },
        columns=DIVIDEND_COLUMNS,
    )


@log_errors("medium")
@log_operation("history_assembly")
def assemble_history(
    symbols: Sequence[str],
    start_dates: Union[None, DateLike, Sequence[DateLike]] = None,
    *,
    provider: Optional[PriceProvider] = None,
    include_quote: bool = False,
    tax_rate: Optional[float] = None,
    today: Optional[DateLike] = None,
) -> HistoryTables:
    """
    Collect price bars and after-tax dividends for each symbol.

    Parameters
    ----------
    symbols : Sequence[str]
        Symbols to fetch. Missing entries (None/NaN) are skipped.
    start_dates : date-like or sequence, optional
        One start date per symbol, or a single date applied to all.
        Defaults to one year before ``today``.
    provider : PriceProvider, optional
        Data source; defaults to the registered provider.
    include_quote : bool
        Append the provider's current quote as an extra bar per symbol.
    tax_rate : float, optional
        Dividend withholding rate; defaults to ``config.DIVIDEND_TAX_RATE``.

    Raises
    ------
    LengthMismatch
        If ``start_dates`` and ``symbols`` are both sequences of different length.
    ValueError
        If no symbols are given.
    """
    symbols = list(symbols)
    today_ts = pd.Timestamp(today if today is not None else date.today()).normalize()
    pairs = [
        (str(symbol), start)
        for symbol, start in zip(symbols, _resolve_start_dates(symbols, start_dates, today_ts))
        if symbol is not None and not pd.isna(symbol)
    ]
    if not pairs:
        raise ValueError("You need to define which symbols to bring")
    clean = [symbol for symbol, _ in pairs]
    starts = [start for _, start in pairs]

    provider = provider or get_price_provider()
    rate = config.DIVIDEND_TAX_RATE if tax_rate is None else float(tax_rate)

    value_frames: List[pd.DataFrame] = []
    dividend_frames: List[pd.DataFrame] = []
    total = len(clean)
    for i, (symbol, start) in enumerate(zip(clean, starts), start=1):
        values = price_table_from_bars(symbol, provider.fetch_daily_bars(symbol, start))
        if include_quote:
            quote = provider.fetch_quote(symbol)
            if quote and quote.get("price") is not None:
                values = pd.concat([values, quote_row(symbol, quote)], ignore_index=True)
        if not values.empty:
            value_frames.append(values)

        divs = provider.fetch_dividends(symbol, start)
        if divs is not None and len(divs) > 0:
            dividend_frames.append(dividend_table(symbol, divs, rate))

        logger.info(
            "%s since %s: done %.1f%% (%d/%d)",
            symbol, start.date(), 100.0 * i / total, i, total,
        )

    values = pd.concat(value_frames, ignore_index=True) if value_frames else empty_table(PRICE_BAR_COLUMNS)
    if dividend_frames:
        dividends = pd.concat(dividend_frames, ignore_index=True)
    else:
        # Point past the two logging wrappers at the caller
        warnings.warn("No dividends in the requested range", EmptyResult, stacklevel=4)
        dividends = empty_table(DIVIDEND_COLUMNS)

    validate_columns(values, PRICE_BAR_COLUMNS, "dailys")
    validate_columns(dividends, DIVIDEND_COLUMNS, "dividends")
    if not values.empty:
        logger.info("History until %s", values["Date"].max().date())
    return HistoryTables(values=values, dividends=dividends)
