"""Public API for portfolio_ledger."""

from portfolio_ledger.daily_state import build_daily_state
from portfolio_ledger.errors import (
    EmptyResult,
    LedgerError,
    LengthMismatch,
    ProviderNotConfigured,
    SchemaMismatch,
)
from portfolio_ledger.history import HistoryTables, assemble_history
from portfolio_ledger.performance import build_performance_summary
from portfolio_ledger.positions import summarize_positions
from portfolio_ledger.providers import (
    FramePriceProvider,
    PriceProvider,
    get_price_provider,
    set_price_provider,
)
from portfolio_ledger.report import ReportConfig, load_report_config, run_ledger_report
from portfolio_ledger.results import LedgerReport
from portfolio_ledger.schema import validate_columns, validate_table

__all__ = [
    "build_daily_state",
    "build_performance_summary",
    "summarize_positions",
    "assemble_history",
    "HistoryTables",
    "validate_columns",
    "validate_table",
    "run_ledger_report",
    "load_report_config",
    "ReportConfig",
    "LedgerReport",
    "PriceProvider",
    "FramePriceProvider",
    "set_price_provider",
    "get_price_provider",
    "LedgerError",
    "SchemaMismatch",
    "LengthMismatch",
    "ProviderNotConfigured",
    "EmptyResult",
]
