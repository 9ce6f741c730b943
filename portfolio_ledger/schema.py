"""Column-contract checks run before any ledger computation.

Contract notes:
- A check never renames, reorders or coerces; it only accepts or rejects.
- Tables are compared by explicit column names, so a frame with the right
  columns in the wrong order is rejected rather than silently misread.
"""

from __future__ import annotations

from typing import Sequence

import pandas as pd

from portfolio_ledger.constants import TABLE_SCHEMAS
from portfolio_ledger.errors import SchemaMismatch


def validate_columns(frame: pd.DataFrame, expected: Sequence[str], table_name: str) -> None:
    """Raise ``SchemaMismatch`` unless ``frame`` has exactly ``expected`` columns.

    Parameters
    ----------
    frame : pd.DataFrame
        Table to check. Only its column labels are inspected.
    expected : Sequence[str]
        Required column names, in order.
    table_name : str
        Name used in the error message (e.g. ``"dailys"``).
    """
    if not isinstance(frame, pd.DataFrame):
        raise TypeError(f"'{table_name}' must be a pandas DataFrame, got {type(frame).__name__}")

    actual = [str(c) for c in frame.columns]
    if actual != list(expected):
        raise SchemaMismatch(table_name, expected, actual)


def validate_table(frame: pd.DataFrame, table_name: str) -> None:
    """Validate ``frame`` against the registered contract for ``table_name``."""
    try:
        expected = TABLE_SCHEMAS[table_name]
    except KeyError:
        raise KeyError(f"No column contract registered for table '{table_name}'") from None
    validate_columns(frame, expected, table_name)
