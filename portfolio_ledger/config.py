"""Standalone-safe configuration surface for portfolio_ledger."""

from __future__ import annotations

import os
from typing import Any

from portfolio_ledger.constants import (
    DEFAULT_DIVIDEND_TAX_RATE,
    DEFAULT_EXPENSE_PER_TRADE_DAY,
    DEFAULT_ROUND_DECIMALS,
)

try:  # pragma: no cover - project-level overrides (loads .env before getenv)
    import settings as _settings  # type: ignore
except ImportError:
    _settings = None


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


_DEFAULTS: dict[str, Any] = {
    "EXPENSE_PER_TRADE_DAY": _env_float("LEDGER_EXPENSE_PER_TRADE_DAY", DEFAULT_EXPENSE_PER_TRADE_DAY),
    "DIVIDEND_TAX_RATE": _env_float("LEDGER_DIVIDEND_TAX_RATE", DEFAULT_DIVIDEND_TAX_RATE),
    "ROUND_DECIMALS": _env_int("LEDGER_ROUND_DECIMALS", DEFAULT_ROUND_DECIMALS),
    "MAX_SYMBOL_WORKERS": _env_int("LEDGER_MAX_SYMBOL_WORKERS", 1),
    "REPORT_DEFAULTS": {
        "input_dir": os.getenv("LEDGER_INPUT_DIR", "."),
        "output_dir": os.getenv("LEDGER_OUTPUT_DIR", "."),
        "cash_fix": _env_float("LEDGER_CASH_FIX", 0.0),
        "portfolio_file": "portfolio.csv",
        "transactions_file": "transactions.csv",
        "cash_file": "cash.csv",
        "prices_file": "prices.csv",
        "dividends_file": "dividends.csv",
        "performance_export": "mydaily.csv",
        "positions_export": "myportfolio.csv",
        "daily_export": None,
    },
}


if _settings is not None:
    for key in list(_DEFAULTS.keys()):
        if not hasattr(_settings, key):
            continue
        value = getattr(_settings, key)
        # Dict settings override individual entries
        if isinstance(_DEFAULTS[key], dict) and isinstance(value, dict):
            _DEFAULTS[key] = {**_DEFAULTS[key], **value}
        else:
            _DEFAULTS[key] = value


EXPENSE_PER_TRADE_DAY = float(_DEFAULTS["EXPENSE_PER_TRADE_DAY"])
DIVIDEND_TAX_RATE = float(_DEFAULTS["DIVIDEND_TAX_RATE"])
ROUND_DECIMALS = int(_DEFAULTS["ROUND_DECIMALS"])
MAX_SYMBOL_WORKERS = int(_DEFAULTS["MAX_SYMBOL_WORKERS"])
REPORT_DEFAULTS = dict(_DEFAULTS["REPORT_DEFAULTS"])


def configure(**overrides: Any) -> None:
    """Programmatically override package configuration values."""
    globals_dict = globals()
    for key, value in overrides.items():
        if key not in _DEFAULTS:
            raise KeyError(f"Unknown config key: {key}")
        globals_dict[key] = value


def get_setting(key: str) -> Any:
    """Read the current value of a config key (honours ``configure``)."""
    if key not in _DEFAULTS:
        raise KeyError(f"Unknown config key: {key}")
    return globals()[key]
