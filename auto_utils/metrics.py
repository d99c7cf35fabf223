"""Evaluation metrics: RMSE, 2x2 confusion matrix, Cohen's Kappa, ROC and AUC.

All functions take plain sequences (lists, numpy arrays or pandas Series) and
raise ``InvalidInput`` for malformed input or ``DegenerateMetric`` when the
metric is undefined for the given labels.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .config import ClassificationResult, RegressionResult
from .errors import DegenerateMetric, InvalidInput
from .features import build_feature_matrix


def _as_array(values: Sequence[Any], name: str) -> np.ndarray:
    array = np.asarray(values)
    if array.ndim != 1:
        raise InvalidInput(f"{name} must be one-dimensional, got shape {array.shape}")
    return array


def _check_pair(true: Sequence[Any], other: Sequence[Any], other_name: str) -> Tuple[np.ndarray, np.ndarray]:
    y_true = _as_array(true, 'true values')
    y_other = _as_array(other, other_name)
    if len(y_true) == 0 or len(y_other) == 0:
        raise InvalidInput("Metric inputs must not be empty")
    if len(y_true) != len(y_other):
        raise InvalidInput(f"Length mismatch: {len(y_true)} true values vs {len(y_other)} {other_name}")
    return y_true, y_other


def rmse(true: Sequence[float], predicted: Sequence[float]) -> float:
    """Root-mean-squared error, sqrt(mean((true - predicted)^2))."""
    y_true, y_pred = _check_pair(true, predicted, 'predicted values')
    try:
        residuals = y_true.astype('float64') - y_pred.astype('float64')
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"RMSE needs numeric values: {exc}") from exc
    return float(np.sqrt(np.mean(residuals ** 2)))


def binary_labels(*arrays: np.ndarray, labels: Optional[Sequence[Any]] = None) -> Tuple[Any, Any]:
    """Resolve ``(positive, negative)``.

    Explicit ``labels`` are taken as ``(positive, negative)``. Otherwise the
    two distinct observed values are sorted and the greater one is positive,
    so "yes" beats "no" and 1 beats 0.
    """
    if labels is not None:
        if len(labels) != 2 or labels[0] == labels[1]:
            raise InvalidInput(f"labels must hold two distinct values, got {labels!r}")
        positive, negative = labels
        for array in arrays:
            unknown = set(array.tolist()) - {positive, negative}
            if unknown:
                raise InvalidInput(f"Values {sorted(map(str, unknown))} are not in labels {list(labels)}")
        return positive, negative

    observed = sorted(set().union(*(set(array.tolist()) for array in arrays)))
    if len(observed) > 2:
        raise InvalidInput(f"Expected a two-level label, found {len(observed)} levels: {observed}")
    if len(observed) < 2:
        raise InvalidInput(f"Only one label observed ({observed}); pass labels explicitly")
    return observed[1], observed[0]


@dataclass(frozen=True)
class ConfusionMatrix:
    """2x2 contingency table of true vs predicted labels."""
    tp: int
    fn: int
    fp: int
    tn: int
    positive: Any
    negative: Any

    @property
    def total(self) -> int:
        return self.tp + self.fn + self.fp + self.tn

    @property
    def observed_agreement(self) -> float:
        return (self.tp + self.tn) / self.total

    @property
    def expected_agreement(self) -> float:
        n = self.total
        true_pos, pred_pos = (self.tp + self.fn) / n, (self.tp + self.fp) / n
        return true_pos * pred_pos + (1 - true_pos) * (1 - pred_pos)

    def to_frame(self) -> pd.DataFrame:
        """Rows are true labels, columns are predicted labels."""
        index = pd.Index([f"true {self.positive}", f"true {self.negative}"])
        return pd.DataFrame(
            [[self.tp, self.fn], [self.fp, self.tn]],
            index=index,
            columns=[f"predicted {self.positive}", f"predicted {self.negative}"],
        )

    def to_dict(self) -> Dict[str, int]:
        return {'TP': self.tp, 'FN': self.fn, 'FP': self.fp, 'TN': self.tn}


def confusion_matrix(true: Sequence[Any], predicted: Sequence[Any],
                     labels: Optional[Sequence[Any]] = None) -> ConfusionMatrix:
    y_true, y_pred = _check_pair(true, predicted, 'predicted labels')
    positive, negative = binary_labels(y_true, y_pred, labels=labels)

    true_pos, pred_pos = y_true == positive, y_pred == positive
    return ConfusionMatrix(
        tp=int(np.sum(true_pos & pred_pos)),
        fn=int(np.sum(true_pos & ~pred_pos)),
        fp=int(np.sum(~true_pos & pred_pos)),
        tn=int(np.sum(~true_pos & ~pred_pos)),
        positive=positive,
        negative=negative,
    )


def kappa_from_matrix(matrix: ConfusionMatrix) -> float:
    p_o, p_e = matrix.observed_agreement, matrix.expected_agreement
    if np.isclose(p_e, 1.0):
        raise DegenerateMetric('Kappa', 'expected agreement is 1 (no variance in either margin)')
    return float((p_o - p_e) / (1 - p_e))


def cohen_kappa(true: Sequence[Any], predicted: Sequence[Any],
                labels: Optional[Sequence[Any]] = None) -> float:
    """Cohen's Kappa, (p_o - p_e) / (1 - p_e)."""
    y_true, y_pred = _check_pair(true, predicted, 'predicted labels')
    if labels is None and len(set(y_true.tolist()) | set(y_pred.tolist())) == 1:
        raise DegenerateMetric('Kappa', 'only one label present in truth and predictions')
    return kappa_from_matrix(confusion_matrix(y_true, y_pred, labels=labels))


@dataclass(frozen=True)
class RocCurve:
    """ROC points ordered by decreasing threshold, from (0, 0) to (1, 1)."""
    fpr: np.ndarray
    tpr: np.ndarray
    thresholds: np.ndarray
    positive: Any

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({'threshold': self.thresholds, 'fpr': self.fpr, 'tpr': self.tpr})


def roc_curve(true: Sequence[Any], scores: Sequence[float], positive: Any = None) -> RocCurve:
    """Sweep every distinct score as a threshold, highest first.

    Rows sharing a score move the curve together in a single step.
    """
    y_true, y_score = _check_pair(true, scores, 'scores')
    try:
        y_score = y_score.astype('float64')
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"Scores must be numeric: {exc}") from exc
    if np.isnan(y_score).any():
        raise InvalidInput("Scores must not contain NaN")

    if positive is None:
        observed = sorted(set(y_true.tolist()))
        if len(observed) > 2:
            raise InvalidInput(f"Expected a two-level label, found {len(observed)} levels: {observed}")
        positive = observed[-1]
    is_positive = y_true == positive
    n_pos = int(is_positive.sum())
    n_neg = len(y_true) - n_pos
    if n_pos == 0 or n_neg == 0:
        raise DegenerateMetric('AUC', 'ROC needs both positive and negative examples')

    order = np.argsort(-y_score, kind='mergesort')
    sorted_scores = y_score[order]
    sorted_positive = is_positive[order]

    # Last index of each run of equal scores.
    run_ends = np.r_[np.nonzero(np.diff(sorted_scores))[0], len(sorted_scores) - 1]
    tps = np.cumsum(sorted_positive)[run_ends]
    fps = (run_ends + 1) - tps

    fpr = np.r_[0.0, fps / n_neg]
    tpr = np.r_[0.0, tps / n_pos]
    thresholds = np.r_[np.inf, sorted_scores[run_ends]]
    return RocCurve(fpr=fpr, tpr=tpr, thresholds=thresholds, positive=positive)


def auc(curve: RocCurve) -> float:
    """Area under the curve by the trapezoidal rule."""
    widths = np.diff(curve.fpr)
    heights = (curve.tpr[1:] + curve.tpr[:-1]) / 2
    return float(np.sum(widths * heights))


def roc_auc(true: Sequence[Any], scores: Sequence[float], positive: Any = None) -> float:
    return auc(roc_curve(true, scores, positive=positive))


def _holdout(model, df: pd.DataFrame) -> Tuple[pd.DataFrame, pd.Series]:
    matrix = build_feature_matrix(df, model.predictors, model.target)
    if matrix.empty:
        raise InvalidInput("Held-out data has no complete rows")
    return matrix[list(model.predictors)], matrix[model.target]


def evaluate_regression(model, df: pd.DataFrame) -> RegressionResult:
    """RMSE of a fitted regression on held-out rows."""
    X, y = _holdout(model, df)
    return {
        'formula': model.formula,
        'n_train': model.n_train,
        'n_test': len(X),
        'RMSE': rmse(y.to_numpy(), model.estimator.predict(X)),
        'coefficients': model.coefficients(),
    }


def _classification_result(model, matrix: ConfusionMatrix, n_test: int) -> ClassificationResult:
    result: ClassificationResult = {
        'model': model.family,
        'params': dict(model.params),
        'cv_scores': {str(k): v for k, v in model.cv_scores.items()},
        'n_test': n_test,
        'confusion': matrix.to_dict(),
    }
    try:
        result['Kappa'] = kappa_from_matrix(matrix)
    except DegenerateMetric as exc:
        result['Kappa'] = None
        result['Kappa_error'] = exc.reason
    return result


def evaluate_classifier(model, df: pd.DataFrame) -> Tuple[ClassificationResult, ConfusionMatrix]:
    """Confusion matrix and Kappa of a fitted classifier on held-out rows."""
    X, y = _holdout(model, df)
    matrix = confusion_matrix(y.to_numpy(), model.estimator.predict(X), labels=model.classes)
    return _classification_result(model, matrix, len(X)), matrix


def evaluate_probabilistic(model, df: pd.DataFrame) -> Tuple[ClassificationResult, ConfusionMatrix, Optional[RocCurve]]:
    """Classifier metrics plus the ROC curve and AUC of the positive-class probability."""
    X, y = _holdout(model, df)
    matrix = confusion_matrix(y.to_numpy(), model.estimator.predict(X), labels=model.classes)
    result = _classification_result(model, matrix, len(X))

    curve = None
    try:
        curve = roc_curve(y.to_numpy(), model._positive_proba(X), positive=model.positive_label)
        result['AUC'] = auc(curve)
    except DegenerateMetric as exc:
        result['AUC'] = None
        result['AUC_error'] = exc.reason
    return result, matrix, curve
