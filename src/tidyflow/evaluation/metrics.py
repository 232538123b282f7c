"""
Performance metrics for classification and regression.

Every metric returns a one-row table with columns metric, estimator and
estimate, so results of several metrics can be stacked. For two-class
problems the event is the first outcome level (factor order, or
alphabetical for plain strings).
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from sklearn.metrics import (
    cohen_kappa_score,
    log_loss,
    mean_absolute_error,
    mean_squared_error,
    roc_auc_score,
)
from sklearn.metrics import roc_curve as sklearn_roc_curve

from tidyflow.utils.logging import get_logger

log = get_logger(__name__)

CLASS = "class"
PROB = "prob"
NUMERIC = "numeric"

METRIC_COLUMNS = ["metric", "estimator", "estimate"]


def levels_of(truth: Any, levels: Sequence[Any] | None = None) -> list[Any]:
    """Outcome levels: given, categorical order, or sorted values."""
    if levels is not None:
        return list(levels)
    series = pd.Series(truth)
    if isinstance(series.dtype, pd.CategoricalDtype):
        return list(series.cat.categories)
    return sorted(series.dropna().unique(), key=str)


def _estimator_name(levels: Sequence[Any]) -> str:
    return "binary" if len(levels) == 2 else "macro"


def _row(metric: str, estimator: str, value: float) -> pd.DataFrame:
    return pd.DataFrame([[metric, estimator, float(value)]], columns=METRIC_COLUMNS)


def _as_array(values: Any) -> np.ndarray:
    return np.asarray(pd.Series(values).astype(object))


# value functions ----------------------------------------------------------


def _accuracy(truth: Any, estimate: Any, levels: Sequence[Any]) -> tuple[str, float]:
    t, e = _as_array(truth), _as_array(estimate)
    name = "binary" if len(levels) == 2 else "multiclass"
    return name, float(np.mean(t == e))


def _kap(truth: Any, estimate: Any, levels: Sequence[Any]) -> tuple[str, float]:
    name = "binary" if len(levels) == 2 else "multiclass"
    return name, float(
        cohen_kappa_score(_as_array(truth), _as_array(estimate), labels=list(levels))
    )


def _recall(t: np.ndarray, e: np.ndarray, positive: Any) -> float:
    actual = t == positive
    if not actual.any():
        return float("nan")
    return float(np.mean(e[actual] == positive))


def _specificity(t: np.ndarray, e: np.ndarray, positive: Any) -> float:
    negative = t != positive
    if not negative.any():
        return float("nan")
    return float(np.mean(e[negative] != positive))


def _sens(truth: Any, estimate: Any, levels: Sequence[Any]) -> tuple[str, float]:
    t, e = _as_array(truth), _as_array(estimate)
    if len(levels) == 2:
        return "binary", _recall(t, e, levels[0])
    return "macro", float(np.nanmean([_recall(t, e, level) for level in levels]))


def _spec(truth: Any, estimate: Any, levels: Sequence[Any]) -> tuple[str, float]:
    t, e = _as_array(truth), _as_array(estimate)
    if len(levels) == 2:
        return "binary", _specificity(t, e, levels[0])
    return "macro", float(np.nanmean([_specificity(t, e, level) for level in levels]))


def _prob_matrix(prob: Any, levels: Sequence[Any]) -> np.ndarray:
    matrix = np.asarray(prob, dtype="float64")
    if matrix.ndim == 1:
        # event probabilities of a two-class problem
        matrix = np.column_stack([matrix, 1.0 - matrix])
    if matrix.shape[1] != len(levels):
        msg = f"Got {matrix.shape[1]} probability columns for {len(levels)} levels"
        raise ValueError(msg)
    return matrix


def _roc_auc(truth: Any, prob: Any, levels: Sequence[Any]) -> tuple[str, float]:
    t = _as_array(truth)
    matrix = _prob_matrix(prob, levels)
    if len(levels) == 2:
        return "binary", float(roc_auc_score(t == levels[0], matrix[:, 0]))
    # Hand & Till multiclass AUC; roc_auc_score wants labels sorted
    order = sorted(range(len(levels)), key=lambda i: str(levels[i]))
    value = roc_auc_score(
        t, matrix[:, order], multi_class="ovo", labels=[levels[i] for i in order]
    )
    return "hand_till", float(value)


def _mn_log_loss(truth: Any, prob: Any, levels: Sequence[Any]) -> tuple[str, float]:
    matrix = _prob_matrix(prob, levels)
    # log_loss reads probability columns in sorted label order
    order = sorted(range(len(levels)), key=lambda i: str(levels[i]))
    return _estimator_name(levels), float(
        log_loss(
            _as_array(truth), matrix[:, order], labels=[levels[i] for i in order]
        )
    )


def _rmse(truth: Any, estimate: Any, levels: Sequence[Any]) -> tuple[str, float]:
    return "standard", float(
        np.sqrt(mean_squared_error(np.asarray(truth), np.asarray(estimate)))
    )


def _rsq(truth: Any, estimate: Any, levels: Sequence[Any]) -> tuple[str, float]:
    # squared correlation, not the coefficient of determination
    t = np.asarray(truth, dtype="float64")
    e = np.asarray(estimate, dtype="float64")
    if len(t) < 2 or np.std(t) == 0 or np.std(e) == 0:
        return "standard", float("nan")
    return "standard", float(np.corrcoef(t, e)[0, 1] ** 2)


def _mae(truth: Any, estimate: Any, levels: Sequence[Any]) -> tuple[str, float]:
    return "standard", float(mean_absolute_error(np.asarray(truth), np.asarray(estimate)))


@dataclass(frozen=True)
class MetricInfo:
    """
    Registered metric.

    Attributes:
        name: Metric name.
        kind: Prediction it needs: class, prob or numeric.
        direction: "maximize" or "minimize".
        compute: Function (truth, estimate, levels) -> (estimator, value).
    """

    name: str
    kind: str
    direction: str
    compute: Callable[[Any, Any, Sequence[Any]], tuple[str, float]]


METRICS: dict[str, MetricInfo] = {
    info.name: info
    for info in (
        MetricInfo("accuracy", CLASS, "maximize", _accuracy),
        MetricInfo("kap", CLASS, "maximize", _kap),
        MetricInfo("sens", CLASS, "maximize", _sens),
        MetricInfo("spec", CLASS, "maximize", _spec),
        MetricInfo("roc_auc", PROB, "maximize", _roc_auc),
        MetricInfo("mn_log_loss", PROB, "minimize", _mn_log_loss),
        MetricInfo("rmse", NUMERIC, "minimize", _rmse),
        MetricInfo("rsq", NUMERIC, "maximize", _rsq),
        MetricInfo("mae", NUMERIC, "minimize", _mae),
    )
}


def get_metric(name: str) -> MetricInfo:
    """
    Look up a metric by name.

    Raises:
        KeyError: If the metric is unknown.
    """
    if name not in METRICS:
        available = ", ".join(METRICS)
        msg = f"Unknown metric '{name}'. Available: {available}"
        raise KeyError(msg)
    return METRICS[name]


def _metric_table(
    name: str, truth: Any, estimate: Any, levels: Sequence[Any] | None
) -> pd.DataFrame:
    info = METRICS[name]
    levels = levels_of(truth, levels) if info.kind != NUMERIC else []
    estimator, value = info.compute(truth, estimate, levels)
    return _row(name, estimator, value)


def accuracy(truth: Any, estimate: Any, levels: Sequence[Any] | None = None) -> pd.DataFrame:
    """Share of correctly predicted classes."""
    return _metric_table("accuracy", truth, estimate, levels)


def kap(truth: Any, estimate: Any, levels: Sequence[Any] | None = None) -> pd.DataFrame:
    """Cohen's kappa."""
    return _metric_table("kap", truth, estimate, levels)


def sens(truth: Any, estimate: Any, levels: Sequence[Any] | None = None) -> pd.DataFrame:
    """Sensitivity (recall of the event level)."""
    return _metric_table("sens", truth, estimate, levels)


def spec(truth: Any, estimate: Any, levels: Sequence[Any] | None = None) -> pd.DataFrame:
    """Specificity (recall of the non-event level)."""
    return _metric_table("spec", truth, estimate, levels)


def roc_auc(truth: Any, prob: Any, levels: Sequence[Any] | None = None) -> pd.DataFrame:
    """
    Area under the ROC curve.

    Args:
        truth: Observed classes.
        prob: Event probabilities (two classes) or a matrix with one
            column per level.
        levels: Outcome levels; the first is the event.
    """
    return _metric_table("roc_auc", truth, prob, levels)


def mn_log_loss(truth: Any, prob: Any, levels: Sequence[Any] | None = None) -> pd.DataFrame:
    """Mean log loss."""
    return _metric_table("mn_log_loss", truth, prob, levels)


def rmse(truth: Any, estimate: Any) -> pd.DataFrame:
    """Root mean squared error."""
    return _metric_table("rmse", truth, estimate, None)


def rsq(truth: Any, estimate: Any) -> pd.DataFrame:
    """Squared correlation of observed and predicted values."""
    return _metric_table("rsq", truth, estimate, None)


def mae(truth: Any, estimate: Any) -> pd.DataFrame:
    """Mean absolute error."""
    return _metric_table("mae", truth, estimate, None)


class MetricSet:
    """
    Several metrics computed together on a predictions table.

    The table needs the truth column plus "pred_class" for class
    metrics, "pred_{level}" columns for probability metrics and "pred"
    for numeric metrics.
    """

    def __init__(self, names: Sequence[str]) -> None:
        if not names:
            msg = "A metric set needs at least one metric"
            raise ValueError(msg)
        self.metrics = [get_metric(name) for name in names]

    @property
    def names(self) -> list[str]:
        return [m.name for m in self.metrics]

    @property
    def kinds(self) -> set[str]:
        return {m.kind for m in self.metrics}

    def direction(self, name: str) -> str:
        return get_metric(name).direction

    def __repr__(self) -> str:
        return f"MetricSet({', '.join(self.names)})"

    def __call__(
        self,
        predictions: pd.DataFrame,
        truth: str,
        levels: Sequence[Any] | None = None,
    ) -> pd.DataFrame:
        """Compute every metric; returns one row per metric."""
        observed = predictions[truth]
        rows = []
        for metric in self.metrics:
            if metric.kind == NUMERIC:
                estimator, value = metric.compute(observed, predictions["pred"], [])
            else:
                lv = levels_of(observed, levels)
                if metric.kind == CLASS:
                    estimate = predictions["pred_class"]
                else:
                    columns = [f"pred_{level}" for level in lv]
                    missing = [c for c in columns if c not in predictions.columns]
                    if missing:
                        msg = f"Probability columns missing for {metric.name}: {missing}"
                        raise KeyError(msg)
                    estimate = predictions[columns].to_numpy()
                estimator, value = metric.compute(observed, estimate, lv)
            rows.append([metric.name, estimator, value])
        return pd.DataFrame(rows, columns=METRIC_COLUMNS)


def metric_set(*names: str) -> MetricSet:
    """Bundle metrics, e.g. metric_set("roc_auc", "accuracy")."""
    return MetricSet(list(names))


def default_metrics(mode: str) -> MetricSet:
    """Metrics used when none are requested."""
    if mode == "classification":
        return metric_set("roc_auc", "accuracy")
    return metric_set("rmse", "rsq")


def roc_curve(truth: Any, prob: Any, levels: Sequence[Any] | None = None) -> pd.DataFrame:
    """
    ROC curve of a two-class problem.

    Args:
        truth: Observed classes.
        prob: Probabilities of the event (first level).
        levels: Outcome levels; the first is the event.

    Returns:
        Table of threshold, specificity, sensitivity ordered by
        increasing threshold.
    """
    lv = levels_of(truth, levels)
    if len(lv) != 2:
        msg = f"roc_curve needs two outcome levels, got {len(lv)}"
        raise ValueError(msg)
    fpr, tpr, thresholds = sklearn_roc_curve(
        _as_array(truth) == lv[0], np.asarray(prob, dtype="float64")
    )
    curve = pd.DataFrame(
        {"threshold": thresholds, "specificity": 1.0 - fpr, "sensitivity": tpr}
    )
    return curve.iloc[::-1].reset_index(drop=True)


@dataclass(frozen=True)
class RegressionMetrics:
    """
    Standard regression metrics.

    Attributes:
        rmse: Root Mean Squared Error
        rsq: Squared correlation of observed and predicted values
        mae: Mean Absolute Error
        n_samples: Number of samples
    """

    rmse: float
    rsq: float
    mae: float
    n_samples: int

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary."""
        return {
            "rmse": self.rmse,
            "rsq": self.rsq,
            "mae": self.mae,
            "n_samples": self.n_samples,
        }

    def __str__(self) -> str:
        """String representation."""
        return f"RMSE={self.rmse:.3f}, R²={self.rsq:.4f}, MAE={self.mae:.3f}"


def compute_metrics(y_true: np.ndarray, y_pred: np.ndarray) -> RegressionMetrics:
    """
    Compute regression metrics.

    Args:
        y_true: True values.
        y_pred: Predicted values.

    Returns:
        RegressionMetrics object.
    """
    y_true = np.asarray(y_true, dtype="float64").ravel()
    y_pred = np.asarray(y_pred, dtype="float64").ravel()

    if len(y_true) == 0 or len(y_pred) == 0:
        log.warning("Empty arrays provided for metrics")
        return RegressionMetrics(rmse=0.0, rsq=0.0, mae=0.0, n_samples=0)

    metrics = RegressionMetrics(
        rmse=_rmse(y_true, y_pred, [])[1],
        rsq=_rsq(y_true, y_pred, [])[1],
        mae=_mae(y_true, y_pred, [])[1],
        n_samples=len(y_true),
    )

    log.debug("Computed metrics", **metrics.to_dict())
    return metrics
