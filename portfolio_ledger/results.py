"""Result container for a full ledger run."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from portfolio_ledger._vendor import make_json_safe


@dataclass
class LedgerReport:
    """
    Output tables of one ledger run plus run metadata.

    Attributes
    ----------
    daily : pd.DataFrame
        DailyState table (newest first).
    performance : pd.DataFrame
        PerformanceSummary table (newest first).
    positions : pd.DataFrame
        PositionSummary table (roster order).
    categories : pd.DataFrame, optional
        Value, weight and return per position category.
    symbol_history : pd.DataFrame, optional
        Cumulative daily % change per symbol, for trend charts.
    metadata : dict
        ``as_of``, ``headline`` figures, ``missing_symbols`` and run details.
    """

    daily: pd.DataFrame
    performance: pd.DataFrame
    positions: pd.DataFrame
    categories: Optional[pd.DataFrame] = None
    symbol_history: Optional[pd.DataFrame] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def headline(self) -> Dict[str, Any]:
        return self.metadata.get("headline", {})

    def to_api_response(self) -> Dict[str, Any]:
        return make_json_safe(
            {
                "performance": self.performance,
                "positions": self.positions,
                "categories": self.categories if self.categories is not None else [],
                "metadata": self.metadata,
            }
        )

    def to_cli_report(self) -> str:
        h = self.headline
        if not h:
            return "Portfolio ledger: no data"
        lines = [
            f"Portfolio: ${h['portfolio_value']:,.2f} | {h['as_of']}",
            f"Stocks: ${h['stocks_value']:,.2f} & Cash: ${h['cash_balance']:,.2f}",
            f"Stocks Investment: ${h['invested']:,.2f} (out of ${h['deposited']:,.2f})",
            f"Return: {h['total_return_pct']:.2f}% (${h['total_return_usd']:,.2f}), "
            f"today {h['daily_return_pct']:.2f}%",
            f"Dividends: ${h['dividends']:,.2f}, Expenses: ${h['expenses']:,.2f}",
        ]
        missing = self.metadata.get("missing_symbols") or []
        if missing:
            lines.append(f"Without price history: {', '.join(missing)}")
        return "\n".join(lines)

    def export(
        self,
        output_dir: Union[str, Path],
        performance_name: str = "mydaily.csv",
        positions_name: str = "myportfolio.csv",
        daily_name: Optional[str] = None,
    ) -> List[Path]:
        """Write the result tables as CSV files; returns the written paths."""
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)

        targets = [(self.performance, performance_name), (self.positions, positions_name)]
        if daily_name:
            targets.append((self.daily, daily_name))

        written = []
        for frame, name in targets:
            path = out / name
            frame.to_csv(path, index=False, date_format="%Y-%m-%d")
            written.append(path)
        return written
