"""Small vendored helpers for serialization and total (zero-safe) arithmetic."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

import numpy as np
import pandas as pd


def make_json_safe(obj: Any) -> Any:
    """Recursively convert values into JSON-serializable forms."""
    if isinstance(obj, dict):
        out = {}
        for key, value in obj.items():
            if isinstance(key, (pd.Timestamp, datetime, date)):
                safe_key = key.strftime("%Y-%m-%d")
            elif isinstance(key, (int, float, str, bool, type(None))):
                safe_key = key
            else:
                safe_key = str(key)
            out[safe_key] = make_json_safe(value)
        return out

    if isinstance(obj, (list, tuple)):
        return [make_json_safe(item) for item in obj]

    if isinstance(obj, pd.DataFrame):
        return [make_json_safe(row) for row in obj.to_dict("records")]

    if isinstance(obj, pd.Series):
        return {str(k): make_json_safe(v) for k, v in obj.to_dict().items()}

    if isinstance(obj, np.ndarray):
        return [make_json_safe(item) for item in obj.tolist()]

    if isinstance(obj, np.integer):
        return int(obj)

    if isinstance(obj, np.floating):
        return None if np.isnan(obj) else float(obj)

    if isinstance(obj, np.bool_):
        return bool(obj)

    # NaT is also a datetime instance
    if obj is pd.NaT:
        return None

    if isinstance(obj, (pd.Timestamp, datetime, date)):
        return obj.strftime("%Y-%m-%d")

    if isinstance(obj, float) and np.isnan(obj):
        return None

    if isinstance(obj, (int, float, str, bool, type(None))):
        return obj

    return str(obj)


def safe_divide(numerator: Any, denominator: Any) -> Any:
    """Elementwise ``numerator / denominator`` with zero where undefined.

    A zero denominator, or a non-finite quotient, yields ``0.0`` instead of
    ``inf``/``NaN``. Series inputs keep the numerator's index; scalars return
    a float.
    """
    num = np.asarray(numerator, dtype=float)
    den = np.asarray(denominator, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        quotient = np.where(den != 0, num / den, 0.0)
    quotient = np.nan_to_num(quotient, nan=0.0, posinf=0.0, neginf=0.0)

    if isinstance(numerator, pd.Series):
        return pd.Series(quotient, index=numerator.index, dtype=float)
    if np.ndim(quotient) == 0:
        return float(quotient)
    return quotient


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        if value is None:
            return default
        result = float(value)
    except (TypeError, ValueError):
        return default
    return default if np.isnan(result) else result
