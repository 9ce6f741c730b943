import pandas as pd
import pytest

from portfolio_ledger.constants import DIVIDEND_COLUMNS, PRICE_BAR_COLUMNS
from portfolio_ledger.errors import LedgerError, SchemaMismatch
from portfolio_ledger.schema import validate_columns, validate_table


def test_matching_columns_pass(make_bars):
    validate_columns(make_bars([("2020-01-02", "AAA", 1.0)]), PRICE_BAR_COLUMNS, "dailys")
    validate_table(pd.DataFrame(columns=DIVIDEND_COLUMNS), "dividends")


def test_missing_column_names_expected_list(make_bars):
    bars = make_bars([("2020-01-02", "AAA", 1.0)]).drop(columns="Adjusted")

    with pytest.raises(SchemaMismatch) as excinfo:
        validate_columns(bars, PRICE_BAR_COLUMNS, "dailys")

    err = excinfo.value
    assert isinstance(err, LedgerError)
    assert isinstance(err, ValueError)
    assert err.table_name == "dailys"
    assert err.missing == ["Adjusted"]
    assert err.unexpected == []
    message = str(err)
    assert "'dailys'" in message
    assert ", ".join(f"'{c}'" for c in PRICE_BAR_COLUMNS) in message


def test_extra_column_is_rejected():
    frame = pd.DataFrame(columns=DIVIDEND_COLUMNS + ["Currency"])
    with pytest.raises(SchemaMismatch) as excinfo:
        validate_columns(frame, DIVIDEND_COLUMNS, "dividends")
    assert excinfo.value.unexpected == ["Currency"]


def test_reordered_columns_are_rejected():
    frame = pd.DataFrame(columns=["Date", "Symbol", "Div", "DivReal"])
    with pytest.raises(SchemaMismatch, match="out of order"):
        validate_columns(frame, DIVIDEND_COLUMNS, "dividends")


def test_non_frame_input_is_a_type_error():
    with pytest.raises(TypeError):
        validate_columns([{"Symbol": "AAA"}], DIVIDEND_COLUMNS, "dividends")


def test_unknown_table_name():
    with pytest.raises(KeyError):
        validate_table(pd.DataFrame(), "quotes")
