"""
scikit-learn compatible wrappers for engines without a direct estimator.

- StatsmodelsOLS: ordinary least squares through statsmodels, keeping the
  full results object for inference.
- PenalizedLogisticRegression: elastic-net logistic regression whose
  penalty is on the per-observation scale (loss averaged over rows), so
  penalty values mean the same thing regardless of sample size.
"""

from typing import Any

import numpy as np
import pandas as pd
import statsmodels.api as sm
from sklearn.base import BaseEstimator, ClassifierMixin, RegressorMixin
from sklearn.linear_model import LogisticRegression
from sklearn.utils.validation import check_is_fitted


def _feature_names(X: Any) -> np.ndarray | None:
    if isinstance(X, pd.DataFrame):
        return np.asarray(X.columns, dtype=object)
    return None


class StatsmodelsOLS(RegressorMixin, BaseEstimator):
    """Ordinary least squares fitted with statsmodels."""

    def __init__(self, fit_intercept: bool = True) -> None:
        self.fit_intercept = fit_intercept

    def fit(self, X: Any, y: Any) -> "StatsmodelsOLS":
        exog = np.asarray(X, dtype="float64")
        if self.fit_intercept:
            exog = sm.add_constant(exog, has_constant="add")
        self.results_ = sm.OLS(np.asarray(y, dtype="float64"), exog).fit()

        params = np.asarray(self.results_.params)
        if self.fit_intercept:
            self.intercept_ = float(params[0])
            self.coef_ = params[1:]
        else:
            self.intercept_ = 0.0
            self.coef_ = params
        self.n_features_in_ = exog.shape[1] - int(self.fit_intercept)
        names = _feature_names(X)
        if names is not None:
            self.feature_names_in_ = names
        return self

    def predict(self, X: Any) -> np.ndarray:
        check_is_fitted(self, "results_")
        return np.asarray(X, dtype="float64") @ self.coef_ + self.intercept_


class PenalizedLogisticRegression(ClassifierMixin, BaseEstimator):
    """
    Elastic-net logistic regression.

    The objective is mean log loss plus
    penalty * (mixture * |w|_1 + (1 - mixture) / 2 * |w|_2^2), so mixture=1
    is the lasso. Internally this is LogisticRegression with the saga
    solver and C = 1 / (penalty * n_samples).
    """

    def __init__(
        self,
        penalty: float = 1.0,
        mixture: float = 1.0,
        max_iter: int = 1000,
        tol: float = 1e-4,
        random_state: int | None = None,
    ) -> None:
        self.penalty = penalty
        self.mixture = mixture
        self.max_iter = max_iter
        self.tol = tol
        self.random_state = random_state

    def fit(self, X: Any, y: Any) -> "PenalizedLogisticRegression":
        if self.penalty <= 0:
            msg = f"penalty must be positive, got {self.penalty}"
            raise ValueError(msg)
        if not 0.0 <= self.mixture <= 1.0:
            msg = f"mixture must be between 0 and 1, got {self.mixture}"
            raise ValueError(msg)

        n_samples = len(y)
        self.estimator_ = LogisticRegression(
            penalty="elasticnet",
            solver="saga",
            l1_ratio=self.mixture,
            C=1.0 / (self.penalty * n_samples),
            max_iter=self.max_iter,
            tol=self.tol,
            random_state=self.random_state,
        )
        self.estimator_.fit(X, y)

        self.classes_ = self.estimator_.classes_
        self.coef_ = self.estimator_.coef_
        self.intercept_ = self.estimator_.intercept_
        self.n_features_in_ = self.estimator_.n_features_in_
        names = _feature_names(X)
        if names is not None:
            self.feature_names_in_ = names
        return self

    def predict(self, X: Any) -> np.ndarray:
        check_is_fitted(self, "estimator_")
        return self.estimator_.predict(X)

    def predict_proba(self, X: Any) -> np.ndarray:
        check_is_fitted(self, "estimator_")
        return self.estimator_.predict_proba(X)
