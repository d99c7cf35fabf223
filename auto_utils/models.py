"""Model fitting for the report: OLS regression, k-NN and weighted logistic regression.

The estimators themselves come from scikit-learn. This module validates the
inputs, runs the shared 5-fold cross-validation used to pick hyperparameters,
and wraps the refitted estimator in an immutable ``FittedModel``.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator
from sklearn.linear_model import LinearRegression, LogisticRegression
from sklearn.model_selection import StratifiedKFold
from sklearn.neighbors import KNeighborsClassifier
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler

from .errors import DegenerateMetric, InvalidInput
from .features import build_feature_matrix
from .metrics import binary_labels, cohen_kappa, roc_auc

logger = logging.getLogger(__name__)

FAMILIES = ('linear', 'knn', 'logistic')


@dataclass(frozen=True)
class FittedModel:
    """A fitted estimator plus everything needed to apply it to new rows."""
    family: str
    target: str
    predictors: Tuple[str, ...]
    estimator: BaseEstimator
    classes: Tuple[Any, ...] = ()
    positive_label: Any = None
    params: Mapping[str, Any] = field(default_factory=dict)
    cv_scores: Mapping[Any, float] = field(default_factory=dict)
    n_train: int = 0

    def __post_init__(self):
        # Read-only views over private copies, so callers cannot edit a fitted model.
        object.__setattr__(self, 'params', MappingProxyType(dict(self.params)))
        object.__setattr__(self, 'cv_scores', MappingProxyType(dict(self.cv_scores)))

    @property
    def formula(self) -> str:
        return f"{self.target} ~ {' + '.join(self.predictors)}"

    def features(self, df: pd.DataFrame) -> pd.DataFrame:
        """Predictor matrix for ``df`` (rows with missing predictors dropped)."""
        return build_feature_matrix(df, self.predictors)[list(self.predictors)]

    def predict(self, df: pd.DataFrame) -> np.ndarray:
        return self.estimator.predict(self.features(df))

    def predict_proba(self, df: pd.DataFrame) -> np.ndarray:
        """Probability of ``positive_label`` for every complete row of ``df``."""
        if self.family == 'linear' or not hasattr(self.estimator, 'predict_proba'):
            raise InvalidInput(f"A {self.family} model does not produce class probabilities")
        return self._positive_proba(self.features(df))

    def _positive_proba(self, X: pd.DataFrame) -> np.ndarray:
        column = list(self.estimator.classes_).index(self.positive_label)
        return self.estimator.predict_proba(X)[:, column]

    def coefficients(self) -> Dict[str, float]:
        """Intercept and per-term coefficients (standardized scale for pipelines)."""
        model = self.estimator.named_steps['model'] if isinstance(self.estimator, Pipeline) else self.estimator
        if not hasattr(model, 'coef_'):
            return {}
        coefs = np.ravel(model.coef_)
        # LogisticRegression stores coefficients for classes_[1]; flip them when that is the negative class.
        if self.family == 'logistic' and model.classes_[1] != self.positive_label:
            coefs, intercept = -coefs, -float(np.ravel(model.intercept_)[0])
        else:
            intercept = float(np.ravel(model.intercept_)[0])
        result = {'(Intercept)': intercept}
        result.update({term: float(value) for term, value in zip(self.predictors, coefs)})
        return result


def _training_matrix(df: pd.DataFrame, target: str, predictors: Sequence[str]) -> Tuple[pd.DataFrame, pd.Series, List[str]]:
    if df is None or len(df) == 0:
        raise InvalidInput("Training data is empty")
    # Index the kept rows by their position in df, whatever labels df carries.
    matrix = build_feature_matrix(df.reset_index(drop=True), predictors, target, keep_index=True)
    terms = [col for col in matrix.columns if col != target]
    if len(matrix) == 0:
        raise InvalidInput("No complete rows left after dropping missing values")
    return matrix[terms], matrix[target], terms


def fit_linear(df: pd.DataFrame, target: str, predictors: Sequence[str]) -> FittedModel:
    """Ordinary least squares on raw, interaction or all-remaining predictors."""
    if target not in df.columns:
        raise InvalidInput(f"Target column '{target}' not found in dataset")
    if not pd.api.types.is_numeric_dtype(df[target]):
        raise InvalidInput(f"Regression target '{target}' must be numeric")

    X, y, terms = _training_matrix(df, target, predictors)
    if len(X) < len(terms) + 1:
        raise InvalidInput(
            f"Need at least {len(terms) + 1} complete rows to fit {len(terms)} predictors, got {len(X)}"
        )

    estimator = LinearRegression().fit(X, y)
    model = FittedModel(
        family='linear',
        target=target,
        predictors=tuple(terms),
        estimator=estimator,
        n_train=len(X),
    )
    logger.info("Fitted %s on %d rows", model.formula, len(X))
    return model


def inverse_frequency_weights(labels: Sequence[Any]) -> np.ndarray:
    """Per-row weight n / (n_classes * count(class)), so every class sums to n / n_classes."""
    y = pd.Series(np.asarray(labels))
    if y.empty:
        raise InvalidInput("Cannot weight an empty label vector")
    counts = y.value_counts()
    return (len(y) / (len(counts) * y.map(counts))).to_numpy(dtype='float64')


def _class_labels(y: pd.Series, folds: int) -> Tuple[Any, Any]:
    counts = y.value_counts()
    if len(counts) < 2:
        raise InvalidInput(f"Classification needs at least 2 classes, found {len(counts)}")
    positive, negative = binary_labels(y.to_numpy())
    if counts.min() < folds:
        raise InvalidInput(
            f"Each class needs at least {folds} rows for {folds}-fold cross-validation; "
            f"smallest class has {int(counts.min())}"
        )
    return positive, negative


def cross_validate(make_estimator: Callable[[Any], BaseEstimator], X: pd.DataFrame, y: pd.Series,
                   candidates: Sequence[Any], scorer: Callable[[BaseEstimator, pd.DataFrame, pd.Series], float],
                   folds: int = 5, random_state: int = 42,
                   sample_weight: Optional[np.ndarray] = None) -> Tuple[Any, Dict[Any, float]]:
    """Pick the candidate with the highest mean validation score over ``folds`` folds.

    Folds are stratified and shuffled with a fixed seed. A fold whose score is
    undefined counts as NaN and is left out of that candidate's mean. Equal
    means go to the earlier candidate.
    """
    splitter = StratifiedKFold(n_splits=folds, shuffle=True, random_state=random_state)
    splits = list(splitter.split(X, y))

    means: Dict[Any, float] = {}
    for candidate in candidates:
        scores = []
        for train_idx, val_idx in splits:
            estimator = make_estimator(candidate)
            fit_params = {}
            if sample_weight is not None:
                fit_params['model__sample_weight'] = sample_weight[train_idx]
            estimator.fit(X.iloc[train_idx], y.iloc[train_idx], **fit_params)
            try:
                scores.append(scorer(estimator, X.iloc[val_idx], y.iloc[val_idx]))
            except DegenerateMetric as exc:
                logger.warning("Fold score undefined for candidate %s: %s", candidate, exc)
                scores.append(np.nan)
        means[candidate] = float(np.nanmean(scores)) if not np.all(np.isnan(scores)) else np.nan

    values = np.array(list(means.values()), dtype='float64')
    if np.all(np.isnan(values)):
        raise DegenerateMetric('cross-validation score', 'every fold of every candidate was undefined')
    best = list(means)[int(np.nanargmax(values))]
    return best, means


def _knn_pipeline(k: int) -> Pipeline:
    return Pipeline([('scaler', StandardScaler()), ('model', KNeighborsClassifier(n_neighbors=k))])


def fit_knn(df: pd.DataFrame, target: str, predictors: Sequence[str], neighbors: Sequence[int] = range(1, 26),
            folds: int = 5, random_state: int = 42) -> FittedModel:
    """k-NN classifier with ``k`` chosen by cross-validated Kappa."""
    X, y, terms = _training_matrix(df, target, predictors)
    positive, negative = _class_labels(y, folds)

    # Stratified validation folds take up to ceil(count / folds) rows of each class.
    largest_val = sum(int(np.ceil(count / folds)) for count in y.value_counts())
    smallest_fold = len(X) - largest_val
    candidates = [k for k in neighbors if k <= smallest_fold]
    skipped = sorted(set(neighbors) - set(candidates))
    if skipped:
        logger.warning("Skipping k values larger than the smallest training fold (%d): %s", smallest_fold, skipped)
    if not candidates:
        raise InvalidInput(f"No candidate k fits a training fold of {smallest_fold} rows")

    def kappa_scorer(estimator, X_val, y_val):
        return cohen_kappa(y_val.to_numpy(), estimator.predict(X_val), labels=(positive, negative))

    best_k, scores = cross_validate(_knn_pipeline, X, y, candidates, kappa_scorer,
                                    folds=folds, random_state=random_state)
    estimator = _knn_pipeline(best_k).fit(X, y)
    logger.info("k-NN selected k=%d (mean CV Kappa %.3f)", best_k, scores[best_k])

    return FittedModel(
        family='knn',
        target=target,
        predictors=tuple(terms),
        estimator=estimator,
        classes=(positive, negative),
        positive_label=positive,
        params={'k': best_k},
        cv_scores=scores,
        n_train=len(X),
    )


def _logistic_pipeline(c: float) -> Pipeline:
    return Pipeline([('scaler', StandardScaler()), ('model', LogisticRegression(C=c, max_iter=1000))])


def fit_weighted_logistic(df: pd.DataFrame, target: str, predictors: Sequence[str],
                          c_grid: Sequence[float] = (0.01, 0.1, 1.0, 10.0, 100.0),
                          weights: Optional[Sequence[float]] = None,
                          folds: int = 5, random_state: int = 42) -> FittedModel:
    """Logistic regression fitted with per-row weights; ``C`` chosen by cross-validated AUC.

    ``weights`` align by position with the rows of ``df``; by default they are the inverse
    class frequencies of the target.
    """
    if weights is not None and len(weights) != len(df):
        raise InvalidInput(f"Got {len(weights)} weights for {len(df)} rows")

    X, y, terms = _training_matrix(df, target, predictors)
    positive, negative = _class_labels(y, folds)

    if weights is None:
        sample_weight = inverse_frequency_weights(y)
    else:
        sample_weight = np.asarray(weights, dtype='float64')[X.index.to_numpy()]
        if np.any(sample_weight < 0):
            raise InvalidInput("Weights must be non-negative")

    def auc_scorer(estimator, X_val, y_val):
        column = list(estimator.classes_).index(positive)
        return roc_auc(y_val.to_numpy(), estimator.predict_proba(X_val)[:, column], positive=positive)

    best_c, scores = cross_validate(_logistic_pipeline, X, y, list(c_grid), auc_scorer,
                                    folds=folds, random_state=random_state, sample_weight=sample_weight)
    estimator = _logistic_pipeline(best_c).fit(X, y, model__sample_weight=sample_weight)
    logger.info("Weighted logistic regression selected C=%s (mean CV AUC %.3f)", best_c, scores[best_c])

    return FittedModel(
        family='logistic',
        target=target,
        predictors=tuple(terms),
        estimator=estimator,
        classes=(positive, negative),
        positive_label=positive,
        params={'C': best_c},
        cv_scores=scores,
        n_train=len(X),
    )


def fit_model(family: str, df: pd.DataFrame, target: str, predictors: Sequence[str], **kwargs) -> FittedModel:
    """Dispatch to the fitting routine for ``family``."""
    fitters = {
        'linear': fit_linear,
        'knn': fit_knn,
        'logistic': fit_weighted_logistic,
    }
    if family not in fitters:
        raise InvalidInput(f"Unknown model family '{family}'. Must be one of {list(FAMILIES)}")
    return fitters[family](df, target, predictors, **kwargs)
