import logging

import pandas as pd
import pytest

from portfolio_ledger import config
from portfolio_ledger.constants import DAILY_STATE_COLUMNS
from portfolio_ledger.daily_state import (
    aggregate_transactions,
    build_daily_state,
    latest_rows,
)
from portfolio_ledger.errors import EmptyResult, SchemaMismatch


def _row(daily: pd.DataFrame, date: str, symbol: str) -> pd.Series:
    match = daily[(daily["Date"] == pd.Timestamp(date)) & (daily["Symbol"] == symbol)]
    assert len(match) == 1
    return match.iloc[0]


def test_single_purchase_then_rally(make_bars, make_trades, no_dividends):
    bars = make_bars([("2020-01-02", "AAA", 100.0), ("2020-01-03", "AAA", 110.0)])
    trades = make_trades([(1, "AAA", "2020-01-02", 10.0, 100.0)])

    daily = build_daily_state(bars, no_dividends, trades)

    assert list(daily.columns) == DAILY_STATE_COLUMNS
    assert daily["Date"].tolist() == [pd.Timestamp("2020-01-03"), pd.Timestamp("2020-01-02")]

    latest = daily.iloc[0]
    assert latest["Stocks"] == 10
    assert latest["DailyValue"] == pytest.approx(1100.0)
    assert latest["RelChangeP"] == pytest.approx(9.09)
    assert latest["RelChangeUSD"] == pytest.approx(100.0)
    assert latest["Expenses"] == 0

    first = daily.iloc[1]
    assert first["Quant"] == 10
    assert first["Amount"] == pytest.approx(1000.0)
    assert first["Expenses"] == pytest.approx(7.0)
    assert first["RelChangeP"] == 0
    assert first["RelChangeUSD"] == 0
    assert daily.attrs["unmatched_trades"] == []


def test_same_day_trades_are_summed(make_bars, make_trades, no_dividends):
    bars = make_bars([("2020-01-02", "AAA", 100.0)])
    trades = make_trades(
        [
            (1, "AAA", "2020-01-02", 5.0, 100.0),
            (2, "AAA", "2020-01-02", 5.0, 102.0),
        ]
    )

    daily = build_daily_state(bars, no_dividends, trades)

    assert len(daily) == 1
    row = daily.iloc[0]
    assert row["Quant"] == 10
    assert row["Amount"] == pytest.approx(1010.0)
    assert row["Value"] == pytest.approx(101.0)
    # One flat fee per trading day, not per leg
    assert row["Expenses"] == pytest.approx(7.0)


def test_aggregate_transactions_value_falls_back_to_mean(make_trades):
    trades = make_trades(
        [
            (1, "AAA", "2020-01-02", 5.0, 100.0),
            (2, "AAA", "2020-01-02", -5.0, 110.0),
            (3, "AAA", "2020-01-03", 0.0, 90.0),
            (4, "AAA", "2020-01-03", 0.0, 100.0),
        ]
    )

    agg = aggregate_transactions(trades)

    assert len(agg) == 2
    day1, day2 = agg.iloc[0], agg.iloc[1]
    assert day1["Quant"] == 0
    assert day1["Value"] == pytest.approx(105.0)
    assert day1["Amount"] == pytest.approx(-50.0)
    assert day2["Value"] == pytest.approx(95.0)


def test_single_bar_without_trades(make_bars, no_trades, no_dividends):
    daily = build_daily_state(make_bars([("2020-01-02", "AAA", 42.0)]), no_dividends, no_trades)

    row = daily.iloc[0]
    assert row["RelChangeP"] == 0
    assert row["Stocks"] == 0
    assert row["Expenses"] == 0


def test_no_activity_yields_zero_state(two_symbol_bars, no_trades, no_dividends):
    daily = build_daily_state(two_symbol_bars, no_dividends, no_trades)

    assert (daily["Stocks"] == 0).all()
    assert (daily["DailyDiv"] == 0).all()
    assert (daily["RelChangeUSD"] == 0).all()
    assert not daily.isna().any().any()


def test_dividend_uses_post_trade_share_count(make_bars, make_trades, make_dividends):
    bars = make_bars([("2020-01-02", "AAA", 100.0), ("2020-01-03", "AAA", 100.0)])
    trades = make_trades(
        [
            (1, "AAA", "2020-01-02", 10.0, 100.0),
            (2, "AAA", "2020-01-03", 5.0, 100.0),
        ]
    )
    dividends = make_dividends([("AAA", "2020-01-03", 1.0)])

    daily = build_daily_state(bars, dividends, trades)

    row = _row(daily, "2020-01-03", "AAA")
    assert row["Stocks"] == 15
    assert row["DivReal"] == pytest.approx(0.7)
    assert row["DailyDiv"] == pytest.approx(10.5)
    assert _row(daily, "2020-01-02", "AAA")["DailyDiv"] == 0


def test_duplicate_dividend_rows_are_summed(make_bars, make_trades, make_dividends):
    bars = make_bars([("2020-01-02", "AAA", 100.0)])
    trades = make_trades([(1, "AAA", "2020-01-02", 10.0, 100.0)])
    dividends = make_dividends([("AAA", "2020-01-02", 1.0), ("AAA", "2020-01-02", 0.5)])

    daily = build_daily_state(bars, dividends, trades)

    assert len(daily) == 1
    assert daily.iloc[0]["Div"] == pytest.approx(1.5)
    assert daily.iloc[0]["DailyDiv"] == pytest.approx(10.5)


def test_final_stocks_equal_total_quantity(make_bars, make_trades, no_dividends):
    bars = make_bars(
        [(f"2020-01-0{d}", s, 10.0 + d) for d in range(1, 6) for s in ("AAA", "BBB")]
    )
    trades = make_trades(
        [
            (1, "AAA", "2020-01-01", 10.0, 11.0),
            (2, "AAA", "2020-01-03", -4.0, 13.0),
            (3, "BBB", "2020-01-02", 7.0, 12.0),
            (4, "BBB", "2020-01-05", 3.0, 15.0),
        ]
    )

    daily = build_daily_state(bars, no_dividends, trades)

    final = latest_rows(daily).set_index("Symbol")["Stocks"]
    totals = trades.groupby("Symbol")["Quant"].sum()
    assert final["AAA"] == totals["AAA"] == 6
    assert final["BBB"] == totals["BBB"] == 10


def test_result_is_independent_of_input_order(two_symbol_bars, two_symbol_trades, make_dividends):
    dividends = make_dividends([("AAA", "2020-01-03", 0.5)])
    expected = build_daily_state(two_symbol_bars, dividends, two_symbol_trades)

    shuffled = build_daily_state(
        two_symbol_bars.sample(frac=1.0, random_state=7),
        dividends,
        two_symbol_trades.sample(frac=1.0, random_state=3),
    )

    pd.testing.assert_frame_equal(shuffled, expected)


def test_thread_pool_matches_serial_run(two_symbol_bars, two_symbol_trades, no_dividends):
    serial = build_daily_state(two_symbol_bars, no_dividends, two_symbol_trades, max_workers=1)
    parallel = build_daily_state(two_symbol_bars, no_dividends, two_symbol_trades, max_workers=4)

    pd.testing.assert_frame_equal(parallel, serial)


def test_sorted_newest_first_then_symbol(two_symbol_bars, two_symbol_trades, no_dividends):
    daily = build_daily_state(two_symbol_bars, no_dividends, two_symbol_trades)

    assert list(zip(daily["Date"].dt.strftime("%Y-%m-%d"), daily["Symbol"])) == [
        ("2020-01-03", "AAA"),
        ("2020-01-03", "BBB"),
        ("2020-01-02", "AAA"),
        ("2020-01-02", "BBB"),
    ]
    bbb = _row(daily, "2020-01-03", "BBB")
    assert bbb["RelChangeP"] == pytest.approx(-25.0)
    assert bbb["RelChangeUSD"] == pytest.approx(20 * (40 - 50) - 7)


def test_fee_override(make_bars, make_trades, no_dividends):
    bars = make_bars([("2020-01-02", "AAA", 100.0)])
    trades = make_trades([(1, "AAA", "2020-01-02", 1.0, 100.0)])

    daily = build_daily_state(bars, no_dividends, trades, expense_per_trade_day=2.5)
    assert daily.iloc[0]["Expenses"] == pytest.approx(2.5)

    previous = config.EXPENSE_PER_TRADE_DAY
    config.configure(EXPENSE_PER_TRADE_DAY=3.0)
    try:
        daily = build_daily_state(bars, no_dividends, trades)
    finally:
        config.configure(EXPENSE_PER_TRADE_DAY=previous)
    assert daily.iloc[0]["Expenses"] == pytest.approx(3.0)


def test_duplicate_price_bars_keep_last(make_bars, no_trades, no_dividends):
    bars = make_bars([("2020-01-02", "AAA", 100.0), ("2020-01-02", "AAA", 101.0)])

    daily = build_daily_state(bars, no_dividends, no_trades)

    assert len(daily) == 1
    assert daily.iloc[0]["Close"] == pytest.approx(101.0)


def test_empty_price_input_warns(make_bars, no_trades, no_dividends):
    empty = make_bars([])

    with pytest.warns(EmptyResult) as record:
        daily = build_daily_state(empty, no_dividends, no_trades)
    # Attributed to the calling line, not the logging wrappers
    assert [w.filename for w in record if w.category is EmptyResult] == [__file__]

    assert daily.empty
    assert list(daily.columns) == DAILY_STATE_COLUMNS


def test_schema_violation_propagates(two_symbol_bars, two_symbol_trades, no_dividends):
    with pytest.raises(SchemaMismatch, match="transactions"):
        build_daily_state(two_symbol_bars, no_dividends, two_symbol_trades.drop(columns="Inv"))


def test_trade_without_price_bar_is_reported(make_bars, make_trades, no_dividends, caplog):
    bars = make_bars([("2020-01-02", "AAA", 100.0), ("2020-01-03", "AAA", 110.0)])
    trades = make_trades(
        [
            (1, "AAA", "2020-01-01", 10.0, 95.0),
            (2, "AAA", "2020-01-03", 5.0, 110.0),
        ]
    )

    with caplog.at_level(logging.WARNING, logger="portfolio_ledger"):
        daily = build_daily_state(bars, no_dividends, trades)

    assert daily.attrs["unmatched_trades"] == [("AAA", "2020-01-01")]
    assert "trades_without_price_bar" in caplog.text
    # The left join keeps the price calendar; the off-calendar quantity is not in Stocks
    assert daily["Stocks"].tolist() == [5.0, 0.0]


def test_trades_without_any_price_bars_are_reported(make_bars, make_trades, no_dividends):
    trades = make_trades([(1, "AAA", "2020-01-02", 10.0, 100.0)])

    with pytest.warns(EmptyResult):
        daily = build_daily_state(make_bars([]), no_dividends, trades)

    assert daily.attrs["unmatched_trades"] == [("AAA", "2020-01-02")]
