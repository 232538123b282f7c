"""
Evaluation: performance metrics and experiment tracking.
"""

from tidyflow.evaluation.metrics import (
    METRICS,
    MetricSet,
    RegressionMetrics,
    accuracy,
    compute_metrics,
    get_metric,
    kap,
    mae,
    metric_set,
    mn_log_loss,
    rmse,
    roc_auc,
    roc_curve,
    rsq,
    sens,
    spec,
)

__all__ = [
    "METRICS",
    "MetricSet",
    "RegressionMetrics",
    "accuracy",
    "compute_metrics",
    "get_metric",
    "kap",
    "mae",
    "metric_set",
    "mn_log_loss",
    "rmse",
    "roc_auc",
    "roc_curve",
    "rsq",
    "sens",
    "spec",
]
