"""Configuration, column schema, and typed result structures for the report."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, TypedDict

from .errors import InvalidInput


BUNDLED_DATA_PATH = Path(__file__).parent / 'data' / 'auto.csv'

# Column name -> semantic kind, validated once at load time.
SCHEMA: Dict[str, str] = {
    'mpg': 'float',
    'cylinders': 'int',
    'displacement': 'float',
    'horsepower': 'float',
    'weight': 'float',
    'acceleration': 'float',
    'year': 'int',
    'name': 'str',
}

OPTIONAL_COLUMNS: Dict[str, str] = {
    'origin': 'int',
}

MISSING_SENTINELS = ['?', '', 'NA']
YEAR_RANGE = (70, 82)

LABEL_COLUMN = 'efficient'
POSITIVE_LABEL = 'yes'
NEGATIVE_LABEL = 'no'

CLASSIFIER_PREDICTORS = ['horsepower', 'weight', 'displacement', 'acceleration', 'year']


@dataclass
class ReportConfig:
    """Configuration object for dataset loading, model fitting and reporting."""
    data_path: Optional[Path] = None
    test_size: float = 0.3
    random_state: int = 42
    cv_folds: int = 5
    top_k_manufacturers: int = 5
    efficiency_threshold: float = 27.5
    knn_neighbors: Sequence[int] = field(default_factory=lambda: range(1, 26))
    logistic_c_grid: Sequence[float] = (0.01, 0.1, 1.0, 10.0, 100.0)
    classifier_predictors: List[str] = field(default_factory=lambda: list(CLASSIFIER_PREDICTORS))
    reference_years: Tuple[Tuple[int, str], ...] = (
        (73, '1973 oil embargo'),
        (78, '1978 CAFE standards'),
    )

    def validate(self) -> 'ReportConfig':
        """Raise InvalidInput when a setting cannot produce a report."""
        errors = []
        if not 0 < self.test_size < 1:
            errors.append(f"test_size must be between 0 and 1, got {self.test_size}")
        if self.cv_folds < 2:
            errors.append(f"cv_folds must be at least 2, got {self.cv_folds}")
        if self.top_k_manufacturers < 1:
            errors.append(f"top_k_manufacturers must be at least 1, got {self.top_k_manufacturers}")
        if not list(self.knn_neighbors):
            errors.append("knn_neighbors search range is empty")
        elif min(self.knn_neighbors) < 1:
            errors.append("knn_neighbors values must be positive")
        if not list(self.logistic_c_grid):
            errors.append("logistic_c_grid is empty")
        elif min(self.logistic_c_grid) <= 0:
            errors.append("logistic_c_grid values must be positive")
        if not self.classifier_predictors:
            errors.append("classifier_predictors is empty")
        if errors:
            raise InvalidInput('; '.join(errors))
        return self

    @property
    def resolved_data_path(self) -> Path:
        return Path(self.data_path) if self.data_path else BUNDLED_DATA_PATH


class RegressionResult(TypedDict):
    """Metrics for a fitted regression evaluated on held-out rows."""
    formula: str
    n_train: int
    n_test: int
    RMSE: float
    coefficients: Dict[str, float]


class ClassificationResult(TypedDict, total=False):
    """Metrics for a fitted classifier evaluated on held-out rows."""
    model: str
    params: Dict[str, float]
    cv_scores: Dict[str, float]
    n_test: int
    confusion: Dict[str, int]
    Kappa: Optional[float]
    Kappa_error: str
    AUC: Optional[float]
    AUC_error: str
