#!/usr/bin/env python
# coding: utf-8

import pandas as pd


# ─── File: helpers_display.py ──────────────────────────────────────────

def _fmt_usd(x: float) -> str:
    return f"${x:,.2f}"


def _fmt_pct(x: float) -> str:
    return f"{x:.2f}%"


# ────────────────────────────────────────────────────────────────────
def print_performance_table(perf_df: pd.DataFrame, rows: int = 10, title: str = "Daily Performance") -> None:
    """
    Pretty-print the newest rows of the PerformanceSummary table.

    Parameters
    ----------
    perf_df : pd.DataFrame
        Output of ``build_performance_summary`` (newest first).
    rows : int, default 10
        Number of dates to show.
    title : str, default "Daily Performance"
        Heading used in the console output.

    Notes
    -----
    • USD columns are rendered with two decimals and thousands separators.
    • Percentage columns (`TotalPer`, `RelPer`) get a trailing ``%``.
    • Prints directly to stdout; returns None.
    """
    print(f"\n📈  {title}\n")
    if perf_df.empty:
        print("(no rows)")
        return
    usd_cols = ["CumPortfolio", "RelUSD", "DailyStocks", "DailyTrans", "DailyDiv", "CumDiv", "CumCash"]
    view = perf_df.head(rows).copy()
    view["Date"] = pd.to_datetime(view["Date"]).dt.strftime("%Y-%m-%d")
    formatters = {col: _fmt_usd for col in usd_cols}
    formatters.update({"TotalPer": _fmt_pct, "RelPer": _fmt_pct})
    print(
        view[["Date", "CumPortfolio", "TotalPer", "RelUSD", "RelPer", "DailyStocks", "CumCash"]].to_string(
            index=False,
            formatters=formatters,
        )
    )


# ────────────────────────────────────────────────────────────────────
def print_position_table(positions_df: pd.DataFrame, title: str = "Positions") -> None:
    """Position snapshot with value, unrealized return, weight and dividend yield."""
    print(f"\n📊  {title}\n")
    if positions_df.empty:
        print("(no rows)")
        return
    print(
        positions_df[["Symbol", "Type", "Stocks", "DailyValue", "DifUSD", "DifPer", "RealPerc", "DivPerc"]].to_string(
            index=False,
            formatters={
                "DailyValue": _fmt_usd,
                "DifUSD": _fmt_usd,
                "DifPer": _fmt_pct,
                "RealPerc": _fmt_pct,
                "DivPerc": _fmt_pct,
            },
        )
    )


# ────────────────────────────────────────────────────────────────────
def print_category_table(categories_df: pd.DataFrame) -> None:
    """Allocation per category (``Type``)."""
    print("\n🧩  Allocation by Category\n")
    if categories_df is None or categories_df.empty:
        print("(no rows)")
        return
    print(
        categories_df.to_string(
            index=False,
            formatters={"DailyValue": _fmt_usd, "Perc": _fmt_pct, "DifPer": _fmt_pct},
        )
    )
