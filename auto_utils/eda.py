"""Exploratory summaries using pandas built-ins.

Produces the per-year trend table behind the time-series chart and compact
summary tables for the report's data overview.
"""

from typing import Sequence

import pandas as pd

from .config import SCHEMA
from .errors import InvalidInput
from .features import add_manufacturer, top_manufacturers


def yearly_means(df: pd.DataFrame, columns: Sequence[str] = ('mpg', 'horsepower')) -> pd.DataFrame:
    """Mean of ``columns`` per model year, years ascending."""
    missing = [col for col in ['year', *columns] if col not in df.columns]
    if missing:
        raise InvalidInput(f"Cannot compute yearly means without columns: {', '.join(missing)}")
    if df.empty:
        raise InvalidInput("Cannot compute yearly means of an empty dataset")
    return df.groupby('year')[list(columns)].mean().sort_index()


def summary_table(df: pd.DataFrame) -> pd.DataFrame:
    """describe() of the numeric schema columns, rounded for display."""
    numeric = [col for col, kind in SCHEMA.items() if kind != 'str' and col in df.columns]
    return df[numeric].describe().round(2)


def missing_counts(df: pd.DataFrame) -> pd.Series:
    return df.isnull().sum()


def manufacturer_counts(df: pd.DataFrame, k: int) -> pd.DataFrame:
    """Record counts of the ``k`` most frequent manufacturers."""
    derived = add_manufacturer(df)
    counts = derived['manufacturer'].value_counts()
    selected = top_manufacturers(derived, k)
    return pd.DataFrame({'manufacturer': selected, 'records': [int(counts[m]) for m in selected]})
