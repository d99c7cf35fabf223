"""
Statistics utilities for the Auto MPG report.
Loading, feature derivation, model fitting and evaluation as pure functions over pandas frames.
"""

from .config import ReportConfig, SCHEMA, RegressionResult, ClassificationResult
from .errors import InvalidInput, DegenerateMetric
from .dataset import load_auto, validate_schema, drop_missing, add_efficiency_label, split_dataset
from .features import (
    manufacturer, add_manufacturer, top_manufacturers, indicator_columns, manufacturer_indicators,
    build_feature_matrix, parse_formula
)
from .models import FittedModel, fit_linear, fit_knn, fit_weighted_logistic, fit_model, inverse_frequency_weights
from .metrics import (
    rmse, confusion_matrix, cohen_kappa, roc_curve, auc, roc_auc,
    evaluate_regression, evaluate_classifier, evaluate_probabilistic
)
from .report import Report, build_report, write_report

__all__ = [
    'ReportConfig',
    'SCHEMA',
    'RegressionResult',
    'ClassificationResult',
    'InvalidInput',
    'DegenerateMetric',
    'load_auto',
    'validate_schema',
    'drop_missing',
    'add_efficiency_label',
    'split_dataset',
    'manufacturer',
    'add_manufacturer',
    'top_manufacturers',
    'indicator_columns',
    'manufacturer_indicators',
    'build_feature_matrix',
    'parse_formula',
    'FittedModel',
    'fit_linear',
    'fit_knn',
    'fit_weighted_logistic',
    'fit_model',
    'inverse_frequency_weights',
    'rmse',
    'confusion_matrix',
    'cohen_kappa',
    'roc_curve',
    'auc',
    'roc_auc',
    'evaluate_regression',
    'evaluate_classifier',
    'evaluate_probabilistic',
    'Report',
    'build_report',
    'write_report',
]
