#Project-level overrides for portfolio_ledger runs are in settings.py
from pathlib import Path

from dotenv import load_dotenv

# Ensure local ".env" is loaded before portfolio_ledger.config reads LEDGER_* variables
load_dotenv(Path(__file__).resolve().parent / ".env", override=False)

# Package defaults live in portfolio_ledger/config.py. Define a config key here
# (e.g. EXPENSE_PER_TRADE_DAY, or a partial REPORT_DEFAULTS dict) only when
# this project's value differs.
