"""
Core Constants Module

Centralized table contracts and fixed numeric policies for the ledger.
Every component boundary is a DataFrame whose columns must match one of the
layouts below exactly (names and order).
"""

# Table Column Contracts
# ======================
# Raw inputs supplied by the data collaborators.

PRICE_BAR_COLUMNS = [
    "Date", "Symbol", "Open", "High", "Low", "Close", "Volume", "Adjusted",
]

DIVIDEND_COLUMNS = ["Symbol", "Date", "Div", "DivReal"]

TRANSACTION_COLUMNS = [
    "ID", "Inv", "Symbol", "Date", "Quant", "Value", "Amount", "Description",
]

CASH_FLOW_COLUMNS = ["ID", "Date", "Cash"]

PORTFOLIO_COLUMNS = [
    "Symbol", "Stocks", "StockIniValue", "InvPerc", "Type", "Trans", "StartDate",
]

# Derived tables
# ==============

DAILY_STATE_COLUMNS = PRICE_BAR_COLUMNS + [
    "Quant", "Value", "Amount", "Expenses", "Stocks",
    "Div", "DivReal", "DailyDiv", "DailyValue", "RelChangeP", "RelChangeUSD",
]

PERFORMANCE_COLUMNS = [
    "Date", "CumPortfolio", "TotalPer", "RelUSD", "RelPer", "DailyStocks",
    "DailyTrans", "DailyDiv", "CumDiv", "CumExpen", "DailyCash", "CumCash",
]

POSITION_SUMMARY_COLUMNS = [
    "Symbol", "Stocks", "StockIniValue", "StockValue", "InvPerc", "RealPerc",
    "Type", "Trans", "StartDate", "DailyValue", "DifUSD", "DifPer",
    "DivIncome", "DivPerc",
]

# Table names used in error messages and logs
TABLE_SCHEMAS = {
    "dailys": PRICE_BAR_COLUMNS,
    "dividends": DIVIDEND_COLUMNS,
    "transactions": TRANSACTION_COLUMNS,
    "cash_in": CASH_FLOW_COLUMNS,
    "portfolio": PORTFOLIO_COLUMNS,
    "daily_state": DAILY_STATE_COLUMNS,
}

# Fee and Tax Policy
# ==================
# Flat brokerage fee charged once per (symbol, trading day) with any trade,
# regardless of how many legs were executed that day.
DEFAULT_EXPENSE_PER_TRADE_DAY = 7.0

# Withholding haircut applied to every dividend: DivReal = Div * (1 - rate)
DEFAULT_DIVIDEND_TAX_RATE = 0.30

# Numeric outputs are rounded to cents
DEFAULT_ROUND_DECIMALS = 2

# Default lookback for history assembly when no start date is given
DEFAULT_HISTORY_LOOKBACK_DAYS = 365
