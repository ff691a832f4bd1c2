from __future__ import annotations

from typing import Any
import math

import numpy as np
import pandas as pd


def to_native_value(obj: Any) -> Any:
    """Convert a single pandas/numpy cell into a plain Python value.
    - NaN / NaT / None -> None
    - numpy scalars -> Python scalars
    - pandas Timestamp -> datetime
    Anything else is returned unchanged.
    """
    if obj is None:
        return None
    if isinstance(obj, float):
        return obj if math.isfinite(obj) else None
    if isinstance(obj, pd.Timestamp):
        return None if pd.isna(obj) else obj.to_pydatetime()
    if isinstance(obj, np.datetime64):
        return None if np.isnat(obj) else pd.Timestamp(obj).to_pydatetime()
    if isinstance(obj, np.generic):
        return to_native_value(obj.item())
    if obj is pd.NaT or obj is pd.NA:
        return None
    return obj


def to_native_json(obj: Any) -> Any:
    """Recursively convert figure/summary payloads into JSON-safe native types.
    Timestamps become ISO strings, arrays and Series become lists, non-finite floats become None.
    """
    if isinstance(obj, (pd.Timestamp, np.datetime64)):
        value = to_native_value(obj)
        return value.isoformat() if value is not None else None
    if isinstance(obj, np.ndarray):
        return to_native_json(obj.tolist())
    if isinstance(obj, pd.Series):
        return to_native_json(obj.tolist())
    if isinstance(obj, pd.Index):
        return [str(v) for v in obj]
    if isinstance(obj, (list, tuple, set)):
        return [to_native_json(v) for v in obj]
    if isinstance(obj, dict):
        return {str(to_native_json(k)): to_native_json(v) for k, v in obj.items()}
    return to_native_value(obj)
