"""Provider protocol and registry for external market data."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Protocol, runtime_checkable

import pandas as pd

from portfolio_ledger.errors import ProviderNotConfigured


@runtime_checkable
class PriceProvider(Protocol):
    def fetch_daily_bars(self, symbol: str, start_date=None) -> pd.DataFrame: ...
    def fetch_dividends(self, symbol: str, start_date=None) -> pd.Series: ...
    def fetch_quote(self, symbol: str) -> Optional[Dict[str, Any]]: ...


class FramePriceProvider:
    """
    Serve bars, dividends and quotes from pre-loaded frames.

    Parameters
    ----------
    bars : pd.DataFrame
        ``Date, Symbol, Open, High, Low, Close, Volume`` (extra columns ignored).
    dividends : pd.DataFrame, optional
        ``Symbol, Date, Div``.
    quotes : Mapping[str, dict], optional
        Symbol → ``{"time": ..., "price": ...}``.
    """

    _BAR_FIELDS = ["Date", "Open", "High", "Low", "Close", "Volume"]

    def __init__(
        self,
        bars: pd.DataFrame,
        dividends: Optional[pd.DataFrame] = None,
        quotes: Optional[Mapping[str, Dict[str, Any]]] = None,
    ) -> None:
        self._bars = bars.assign(
            Date=pd.to_datetime(bars["Date"]).dt.normalize(),
            Symbol=bars["Symbol"].astype(str),
        )
        if dividends is None:
            dividends = pd.DataFrame({"Symbol": [], "Date": [], "Div": []})
        self._dividends = dividends.assign(
            Date=pd.to_datetime(dividends["Date"]).dt.normalize(),
            Symbol=dividends["Symbol"].astype(str),
        )
        self._quotes = dict(quotes or {})

    @staticmethod
    def _since(frame: pd.DataFrame, start_date) -> pd.DataFrame:
        if start_date is None:
            return frame
        return frame.loc[frame["Date"] >= pd.Timestamp(start_date).normalize()]

    def fetch_daily_bars(self, symbol: str, start_date=None) -> pd.DataFrame:
        rows = self._since(self._bars.loc[self._bars["Symbol"] == symbol], start_date)
        return rows[self._BAR_FIELDS].sort_values("Date").reset_index(drop=True)

    def fetch_dividends(self, symbol: str, start_date=None) -> pd.Series:
        rows = self._since(self._dividends.loc[self._dividends["Symbol"] == symbol], start_date)
        rows = rows.sort_values("Date")
        return pd.Series(
            pd.to_numeric(rows["Div"], errors="coerce").to_numpy(dtype=float),
            index=pd.DatetimeIndex(rows["Date"]),
            name="Div",
        )

    def fetch_quote(self, symbol: str) -> Optional[Dict[str, Any]]:
        return self._quotes.get(symbol)


_price_provider: Optional[PriceProvider] = None


def set_price_provider(provider: Optional[PriceProvider]) -> None:
    global _price_provider
    _price_provider = provider


def get_price_provider() -> PriceProvider:
    if _price_provider is None:
        raise ProviderNotConfigured(
            "No price provider registered; call set_price_provider() or pass provider="
        )
    return _price_provider
