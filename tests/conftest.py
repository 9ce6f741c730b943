"""Shared test fixtures for portfolio_ledger."""

from pathlib import Path

import pandas as pd
import pytest

from portfolio_ledger.constants import (
    CASH_FLOW_COLUMNS,
    DIVIDEND_COLUMNS,
    PORTFOLIO_COLUMNS,
    PRICE_BAR_COLUMNS,
    TRANSACTION_COLUMNS,
)
from portfolio_ledger.providers import set_price_provider


@pytest.fixture
def make_bars():
    """Build a PriceBar table from ``(date, symbol, close)`` tuples."""

    def _make(rows):
        records = [
            {
                "Date": pd.Timestamp(d),
                "Symbol": s,
                "Open": close,
                "High": close,
                "Low": close,
                "Close": close,
                "Volume": 1000.0,
                "Adjusted": close,
            }
            for d, s, close in rows
        ]
        return pd.DataFrame(records, columns=PRICE_BAR_COLUMNS)

    return _make


@pytest.fixture
def make_trades():
    """Build a TransactionRecord table from ``(id, symbol, date, quant, price)`` tuples."""

    def _make(rows):
        records = [
            {
                "ID": trade_id,
                "Inv": "broker",
                "Symbol": s,
                "Date": pd.Timestamp(d),
                "Quant": quant,
                "Value": price,
                "Amount": quant * price,
                "Description": "buy" if quant >= 0 else "sell",
            }
            for trade_id, s, d, quant, price in rows
        ]
        return pd.DataFrame(records, columns=TRANSACTION_COLUMNS)

    return _make


@pytest.fixture
def make_dividends():
    """Build a DividendEvent table from ``(symbol, date, div)`` tuples (30% withheld)."""

    def _make(rows):
        records = [
            {"Symbol": s, "Date": pd.Timestamp(d), "Div": div, "DivReal": div * 0.7}
            for s, d, div in rows
        ]
        return pd.DataFrame(records, columns=DIVIDEND_COLUMNS)

    return _make


@pytest.fixture
def no_trades():
    return pd.DataFrame(columns=TRANSACTION_COLUMNS)


@pytest.fixture
def no_dividends():
    return pd.DataFrame(columns=DIVIDEND_COLUMNS)


@pytest.fixture
def no_cash():
    return pd.DataFrame(columns=CASH_FLOW_COLUMNS)


@pytest.fixture
def two_symbol_bars(make_bars):
    """AAA rallies 100 -> 110, BBB drops 50 -> 40."""
    return make_bars(
        [
            ("2020-01-02", "AAA", 100.0),
            ("2020-01-03", "AAA", 110.0),
            ("2020-01-02", "BBB", 50.0),
            ("2020-01-03", "BBB", 40.0),
        ]
    )


@pytest.fixture
def two_symbol_trades(make_trades):
    """10 AAA bought on the first day, 20 BBB on the second."""
    return make_trades(
        [
            (1, "AAA", "2020-01-02", 10.0, 100.0),
            (2, "BBB", "2020-01-03", 20.0, 50.0),
        ]
    )


@pytest.fixture
def cash_in():
    return pd.DataFrame(
        {"ID": [1], "Date": [pd.Timestamp("2020-01-02")], "Cash": [2500.0]},
        columns=CASH_FLOW_COLUMNS,
    )


@pytest.fixture
def roster():
    """AAA and BBB are held; CCC has no price history."""
    return pd.DataFrame(
        {
            "Symbol": ["AAA", "BBB", "CCC"],
            "Stocks": [10.0, 20.0, 5.0],
            "StockIniValue": [1000.0, 1000.0, 500.0],
            "InvPerc": [0.5, 0.4, 0.1],
            "Type": ["Tech", "Energy", "Energy"],
            "Trans": [1.0, 1.0, 1.0],
            "StartDate": pd.to_datetime(["2020-01-02", "2020-01-03", "2019-12-01"]),
        },
        columns=PORTFOLIO_COLUMNS,
    )


@pytest.fixture
def ledger_dir(tmp_path: Path, two_symbol_bars, two_symbol_trades, cash_in) -> Path:
    """Input directory with every raw table a ledger run reads."""
    data = tmp_path / "data"
    data.mkdir()
    pd.DataFrame(
        {
            "Symbol": ["AAA", "BBB"],
            "Stocks": [10, 20],
            "StockIniValue": [1000.0, 1000.0],
            "InvPerc": [0.6, 0.4],
            "Type": ["Tech", "Energy"],
            "Trans": [1, 1],
        }
    ).to_csv(data / "portfolio.csv", index=False)
    two_symbol_trades.to_csv(data / "transactions.csv", index=False, date_format="%Y-%m-%d")
    cash_in.to_csv(data / "cash.csv", index=False, date_format="%Y-%m-%d")
    two_symbol_bars.to_csv(data / "prices.csv", index=False, date_format="%Y-%m-%d")
    pd.DataFrame(
        {"Symbol": ["AAA"], "Date": ["2020-01-03"], "Div": [1.0], "DivReal": [0.7]}
    ).to_csv(data / "dividends.csv", index=False)
    return data


@pytest.fixture(autouse=True)
def reset_price_provider():
    yield
    set_price_provider(None)
