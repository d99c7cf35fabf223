# tests/conftest.py
from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from auto_utils import ReportConfig, build_report


@pytest.fixture
def small_auto() -> pd.DataFrame:
    """Five validated records; mpg and horsepower match the reference scenario."""
    return pd.DataFrame({
        'mpg': [18.0, 15.0, 20.0, 25.0, 30.0],
        'cylinders': [8, 8, 6, 4, 4],
        'displacement': [307.0, 350.0, 250.0, 120.0, 97.0],
        'horsepower': [130.0, 165.0, 150.0, 100.0, 90.0],
        'weight': [3504.0, 3693.0, 3300.0, 2400.0, 2100.0],
        'acceleration': [12.0, 11.5, 15.0, 16.0, 18.0],
        'year': [70, 70, 72, 75, 80],
        'name': [
            'chevrolet chevelle malibu',
            'buick skylark 320',
            'ford torino',
            'ford pinto',
            'toyota corolla',
        ],
    })


@pytest.fixture
def separable() -> pd.DataFrame:
    """Two classes split cleanly by x: 'no' below 20, 'yes' from 20 up."""
    x = np.arange(40, dtype='float64')
    rng = np.random.default_rng(7)
    return pd.DataFrame({
        'x': x,
        'noise': rng.normal(size=40),
        'label': np.where(x >= 20, 'yes', 'no'),
    })


@pytest.fixture(scope="session")
def bundled_report():
    return build_report(ReportConfig())
