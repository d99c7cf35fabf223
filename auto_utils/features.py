"""Derived features: manufacturer labels, one-hot indicators and feature matrices.

Every function here returns a new DataFrame; the input frame is left as is.
"""

import logging
import re
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from .config import LABEL_COLUMN
from .errors import InvalidInput

logger = logging.getLogger(__name__)

ALL_COLUMNS = '.'
INTERACTION_SEP = ':'

# Columns never picked up by the "all remaining columns" term.
EXCLUDED_FROM_ALL = {'name', 'manufacturer', LABEL_COLUMN}


def manufacturer(name: str) -> str:
    """First whitespace-delimited token of a vehicle name, case preserved."""
    tokens = str(name).split()
    if not tokens:
        raise InvalidInput(f"Cannot derive a manufacturer from name {name!r}")
    return tokens[0]


def add_manufacturer(df: pd.DataFrame) -> pd.DataFrame:
    if 'name' not in df.columns:
        raise InvalidInput("Column 'name' is required to derive manufacturers")
    derived = df.copy()
    derived['manufacturer'] = derived['name'].map(manufacturer)
    return derived


def top_manufacturers(df: pd.DataFrame, k: int) -> List[str]:
    """The ``k`` most frequent manufacturers.

    Ties in frequency are broken by manufacturer name in ascending order so the
    selection never depends on row order.
    """
    makes = df['manufacturer'] if 'manufacturer' in df.columns else add_manufacturer(df)['manufacturer']
    counts = makes.value_counts()
    if k < 1 or k > len(counts):
        raise InvalidInput(f"k must be between 1 and {len(counts)} distinct manufacturers, got {k}")

    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [make for make, _ in ranked[:k]]


def indicator_column(make: str) -> str:
    return 'is_' + re.sub(r'\W', '_', make)


def indicator_columns(makes: Sequence[str]) -> List[str]:
    """Indicator names for ``makes``, in order.

    Makes that sanitise to the same name (``a-b`` and ``a_b``) get a numeric
    suffix from the second one on, so there is always one column per make.
    """
    columns: List[str] = []
    for make in makes:
        base = candidate = indicator_column(make)
        suffix = 2
        while candidate in columns:
            candidate = f"{base}_{suffix}"
            suffix += 1
        columns.append(candidate)
    return columns


def manufacturer_indicators(df: pd.DataFrame, k: Optional[int] = None, target: Optional[str] = None,
                            isolate: bool = False, makes: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Add one binary column per top-``k`` manufacturer.

    The result is ``df`` plus the indicator columns named by
    ``indicator_columns``; the manufacturer token used to build them is not
    kept. ``makes`` fixes the manufacturer list (for example one computed on
    the full dataset, applied to a train or test split) instead of ranking
    ``df`` itself. With ``isolate=True`` the result holds only ``target``
    (when given) and the indicator columns, ready to be used as a feature
    matrix on its own.
    """
    derived = add_manufacturer(df)
    if makes is None:
        if k is None:
            raise InvalidInput("Either k or makes must be given")
        selected = top_manufacturers(derived, k)
        logger.info("Top %d manufacturers: %s", k, ', '.join(selected))
    else:
        selected = list(makes)
        if not selected or len(set(selected)) != len(selected):
            raise InvalidInput(f"makes must be a non-empty list of distinct manufacturers, got {selected}")

    columns = indicator_columns(selected)
    clashes = [col for col in columns if col in df.columns]
    if clashes:
        raise InvalidInput(f"Indicator columns {clashes} already exist in the dataset")
    indicators = pd.DataFrame(
        {col: (derived['manufacturer'] == make).astype('int64') for col, make in zip(columns, selected)},
        index=derived.index,
    )

    if isolate:
        if target is None:
            return indicators
        if target not in df.columns:
            raise InvalidInput(f"Target column '{target}' not found in dataset")
        return pd.concat([df[[target]], indicators], axis=1)
    return pd.concat([df, indicators], axis=1)


def parse_formula(formula: str) -> Tuple[str, List[str]]:
    """Split ``"mpg ~ horsepower + weight + horsepower:weight"`` into target and terms."""
    if formula.count('~') != 1:
        raise InvalidInput(f"Formula must have exactly one '~': {formula!r}")
    lhs, rhs = formula.split('~')
    target = lhs.strip()
    terms = [term.replace(' ', '') for term in rhs.split('+') if term.strip()]
    if not target or not terms:
        raise InvalidInput(f"Formula needs a target and at least one predictor: {formula!r}")
    return target, terms


def expand_predictors(df: pd.DataFrame, predictors: Sequence[str],
                      target: Optional[str] = None) -> List[str]:
    """Resolve ``"."`` into concrete columns and check every referenced column exists."""
    expanded: List[str] = []
    for term in predictors:
        if term == ALL_COLUMNS:
            remaining = [
                col for col in df.columns
                if col != target and col not in EXCLUDED_FROM_ALL
                and pd.api.types.is_numeric_dtype(df[col])
            ]
            expanded.extend(col for col in remaining if col not in expanded)
            continue

        for col in term.split(INTERACTION_SEP):
            if col not in df.columns:
                raise InvalidInput(f"Predictor column '{col}' not found in dataset")
            if col == target:
                raise InvalidInput(f"Target '{target}' cannot also be a predictor")
        if term not in expanded:
            expanded.append(term)

    if not expanded:
        raise InvalidInput("No predictor columns selected")
    return expanded


def build_feature_matrix(df: pd.DataFrame, predictors: Sequence[str],
                         target: Optional[str] = None, keep_index: bool = False) -> pd.DataFrame:
    """Project ``df`` onto predictor terms (plus the target as the last column).

    Interaction terms ``"a:b"`` become the product of the two columns. Rows
    missing any used value are dropped; ``keep_index=True`` keeps the source
    row labels so callers can align other per-row data.
    """
    if target is not None and target not in df.columns:
        raise InvalidInput(f"Target column '{target}' not found in dataset")

    terms = expand_predictors(df, predictors, target)
    used = sorted({col for term in terms for col in term.split(INTERACTION_SEP)})
    if target is not None:
        used.append(target)
    source = df.dropna(subset=used)
    if len(source) < len(df):
        logger.info("Feature matrix dropped %d rows with missing values", len(df) - len(source))

    matrix = pd.DataFrame(index=source.index)
    for term in terms:
        parts = term.split(INTERACTION_SEP)
        for col in parts:
            if not pd.api.types.is_numeric_dtype(source[col]):
                raise InvalidInput(f"Predictor column '{col}' must be numeric")
        column = source[parts[0]].astype('float64')
        for col in parts[1:]:
            column = column * source[col]
        matrix[term] = column
    if target is not None:
        matrix[target] = source[target]
    return matrix if keep_index else matrix.reset_index(drop=True)
