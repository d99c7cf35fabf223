"""Loading and validation of the automobile dataset.

The reference table is read once, checked against ``SCHEMA`` and returned as a
fresh DataFrame. Later stages derive new frames from it and never write back.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from .config import (
    BUNDLED_DATA_PATH, LABEL_COLUMN, MISSING_SENTINELS, NEGATIVE_LABEL,
    OPTIONAL_COLUMNS, POSITIVE_LABEL, SCHEMA, YEAR_RANGE,
)
from .errors import InvalidInput

logger = logging.getLogger(__name__)

# Only horsepower is allowed to carry missing values in the raw file.
NULLABLE_COLUMNS = {'horsepower'}


def load_auto(path: Optional[Union[str, Path]] = None) -> pd.DataFrame:
    """Read the automobile CSV (bundled copy by default) and validate it."""
    csv_path = Path(path) if path else BUNDLED_DATA_PATH
    if not csv_path.exists():
        raise InvalidInput(f"Dataset file not found: {csv_path}")

    raw = pd.read_csv(csv_path, na_values=MISSING_SENTINELS, skipinitialspace=True)
    df = validate_schema(raw)
    logger.info("Loaded %d records from %s (%d with missing horsepower)",
                len(df), csv_path, int(df['horsepower'].isna().sum()))
    return df


def validate_schema(df: pd.DataFrame) -> pd.DataFrame:
    """Check required columns and coerce each one to its declared kind.

    Returns a new frame holding the schema columns (plus ``origin`` when
    present) in schema order.
    """
    if df is None or len(df) == 0:
        raise InvalidInput("Dataset is empty")

    missing = [col for col in SCHEMA if col not in df.columns]
    if missing:
        raise InvalidInput(f"Dataset is missing required columns: {', '.join(missing)}")

    columns = dict(SCHEMA)
    columns.update({col: kind for col, kind in OPTIONAL_COLUMNS.items() if col in df.columns})

    clean = pd.DataFrame(index=df.index)
    for col, kind in columns.items():
        clean[col] = _coerce_column(df[col], col, kind)

    low, high = YEAR_RANGE
    out_of_range = clean.loc[~clean['year'].between(low, high), 'year']
    if not out_of_range.empty:
        raise InvalidInput(
            f"Column 'year' must hold two-digit model years {low}-{high}; "
            f"found {sorted(out_of_range.unique().tolist())}"
        )

    return clean.reset_index(drop=True)


def _coerce_column(series: pd.Series, col: str, kind: str) -> pd.Series:
    if kind == 'str':
        if series.isna().any():
            raise InvalidInput(f"Column '{col}' has {int(series.isna().sum())} missing values")
        return series.astype(str).str.strip()

    values = pd.to_numeric(series, errors='coerce')
    unparsed = values.isna() & series.notna()
    if unparsed.any():
        if col not in NULLABLE_COLUMNS:
            bad = series[unparsed].astype(str).unique().tolist()[:5]
            raise InvalidInput(f"Column '{col}' has non-numeric values: {bad}")
        logger.warning("Treating %d unparseable '%s' values as missing", int(unparsed.sum()), col)

    if values.isna().any() and col not in NULLABLE_COLUMNS:
        raise InvalidInput(f"Column '{col}' has {int(values.isna().sum())} missing values")

    if kind == 'int':
        if col not in NULLABLE_COLUMNS and not np.all(np.mod(values, 1) == 0):
            raise InvalidInput(f"Column '{col}' must hold whole numbers")
        return values.astype('int64')
    return values.astype('float64')


def drop_missing(df: pd.DataFrame, columns: Optional[Iterable[str]] = None) -> pd.DataFrame:
    """Return a copy without rows that are missing any of ``columns``."""
    subset = list(columns) if columns is not None else [c for c in df.columns if c in SCHEMA]
    unknown = [col for col in subset if col not in df.columns]
    if unknown:
        raise InvalidInput(f"Unknown columns: {', '.join(unknown)}")

    kept = df.dropna(subset=subset).reset_index(drop=True)
    dropped = len(df) - len(kept)
    if dropped:
        logger.warning("Dropped %d rows with missing values in %s", dropped, subset)
    return kept


def add_efficiency_label(df: pd.DataFrame, threshold: float) -> pd.DataFrame:
    """Add the two-level ``efficient`` label: yes when mpg >= threshold."""
    if 'mpg' not in df.columns:
        raise InvalidInput("Column 'mpg' is required to derive the efficiency label")
    labelled = df.copy()
    labelled[LABEL_COLUMN] = np.where(labelled['mpg'] >= threshold, POSITIVE_LABEL, NEGATIVE_LABEL)
    return labelled


def split_dataset(df: pd.DataFrame, test_size: float = 0.3, random_state: int = 42,
                  stratify: Optional[str] = None) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Deterministic train/test split, optionally stratified on a column."""
    if len(df) < 2:
        raise InvalidInput("Need at least 2 rows to split into train and test sets")
    if stratify is not None and stratify not in df.columns:
        raise InvalidInput(f"Stratify column '{stratify}' not found in dataset")
    if stratify is not None and df[stratify].value_counts().min() < 2:
        raise InvalidInput(f"Every '{stratify}' class needs at least 2 rows for a stratified split")

    train, test = train_test_split(
        df,
        test_size=test_size,
        random_state=random_state,
        stratify=df[stratify] if stratify else None,
    )
    return train.reset_index(drop=True), test.reset_index(drop=True)
