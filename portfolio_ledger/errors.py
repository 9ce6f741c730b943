"""Exception and warning taxonomy for ledger computations."""

from __future__ import annotations

from typing import Iterable, Sequence


class LedgerError(Exception):
    """Base class for fatal ledger errors."""


class SchemaMismatch(LedgerError, ValueError):
    """A table's columns do not match the required contract."""

    def __init__(
        self,
        table_name: str,
        expected: Sequence[str],
        actual: Iterable[str],
    ) -> None:
        self.table_name = table_name
        self.expected = list(expected)
        self.actual = [str(c) for c in actual]
        self.missing = [c for c in self.expected if c not in self.actual]
        self.unexpected = [c for c in self.actual if c not in self.expected]

        message = (
            f"The structure of the '{table_name}' table should be: "
            + ", ".join(f"'{c}'" for c in self.expected)
        )
        details = []
        if self.missing:
            details.append(f"missing {self.missing}")
        if self.unexpected:
            details.append(f"unexpected {self.unexpected}")
        if not details:
            details.append("columns are out of order")
        super().__init__(f"{message} ({'; '.join(details)})")


class LengthMismatch(LedgerError, ValueError):
    """Two inputs that must be parallel have different lengths."""

    def __init__(self, left_name: str, left_len: int, right_name: str, right_len: int) -> None:
        self.left_name = left_name
        self.right_name = right_name
        self.left_len = left_len
        self.right_len = right_len
        super().__init__(
            f"The parameters '{left_name}' ({left_len}) and '{right_name}' "
            f"({right_len}) should be the same length."
        )


class EmptyResult(UserWarning):
    """A computation produced a valid table with zero rows."""


class ProviderNotConfigured(LedgerError, RuntimeError):
    """No market-data provider has been registered."""
