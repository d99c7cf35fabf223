"""Utility helpers for JSON safety."""

import numpy as np
import pandas as pd
from typing import Union, Dict, Any, Iterable


JSONSafe = Union[int, float, list, Dict[str, Any], str, None]

def safe_json_convert(obj: Any) -> JSONSafe:
    """Convert arbitrary Python/NumPy/pandas objects to JSON-safe values.

    Rules:
    - numpy scalars/arrays → native ints/floats/lists
    - NaN/inf/None → None
    - DataFrames → list of records, Series → dict
    - mappings/iterables → recursively converted
    - anything else → str(obj)
    """
    if obj is None:
        return None
    if isinstance(obj, (bool, np.bool_)):
        return bool(obj)
    if isinstance(obj, (int, np.integer)):
        return int(obj)
    if isinstance(obj, (float, np.floating)):
        return None if not np.isfinite(obj) else float(obj)
    if isinstance(obj, str):
        return obj

    if isinstance(obj, pd.DataFrame):
        return [safe_json_convert(row) for row in obj.to_dict(orient='records')]
    if isinstance(obj, pd.Series):
        return {str(k): safe_json_convert(v) for k, v in obj.items()}
    if isinstance(obj, np.ndarray):
        return [safe_json_convert(x) for x in obj.tolist()]

    # Dict/mapping → convert keys to str, values recursively
    if isinstance(obj, dict):
        return {str(k): safe_json_convert(v) for k, v in obj.items()}

    # Generic iterables (not strings/bytes) → list of converted items
    if isinstance(obj, Iterable) and not isinstance(obj, bytes):
        return [safe_json_convert(x) for x in obj]

    return str(obj)


def format_metric(value: Any, digits: int = 3) -> str:
    """Render a metric for display; None means undefined."""
    if value is None:
        return 'undefined'
    return f"{value:.{digits}f}"
