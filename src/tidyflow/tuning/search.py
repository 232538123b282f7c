"""
Resampled model evaluation and grid search.

fit_resamples() and tune_grid() fit one model per (candidate, split):
each candidate is fitted on the analysis rows and measured on the
assessment rows. Splits are processed in parallel with joblib. The
results keep per-split metrics so they can be summarized, ranked and
used to pick final hyperparameters.
"""

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from tidyflow.errors import TuningError
from tidyflow.evaluation.metrics import MetricSet, default_metrics
from tidyflow.modeling.models import CLASSIFICATION
from tidyflow.modeling.workflow import FittedWorkflow, Workflow
from tidyflow.resampling import InitialSplit, Resamples, Split
from tidyflow.tuning.grids import finalize_parameters, get_parameter, grid_latin_hypercube
from tidyflow.utils.logging import get_logger

log = get_logger(__name__)

SUMMARY_COLUMNS = ["metric", "estimator", "mean", "n", "std_err", "config"]


def config_ids(n: int) -> list[str]:
    """Candidate labels Model01, Model02, ..."""
    width = max(2, len(str(n)))
    return [f"Model{i + 1:0{width}d}" for i in range(n)]


def prediction_frame(fitted: FittedWorkflow, data: pd.DataFrame) -> pd.DataFrame:
    """Observed outcome plus predictions for the rows of data."""
    if fitted.mode == CLASSIFICATION:
        parts = [
            fitted.predict(data, type="class"),
            fitted.predict(data, type="prob"),
        ]
    else:
        parts = [fitted.predict(data, type="numeric")]
    frame = pd.concat(parts, axis=1)
    frame.insert(0, fitted.outcome, data[fitted.outcome].array)
    return frame


def _evaluate_split(
    workflow: Workflow,
    data: pd.DataFrame,
    split: Split,
    candidates: list[dict[str, Any]],
    configs: list[str],
    metrics: MetricSet,
    save_pred: bool,
    seed: int | None,
) -> tuple[list[pd.DataFrame], list[pd.DataFrame]]:
    analysis = split.analysis(data)
    assessment = split.assessment(data)
    metric_tables = []
    prediction_tables = []

    for params, config in zip(candidates, configs, strict=True):
        candidate = workflow.finalize(params) if params else workflow
        fitted = candidate.fit(analysis, random_state=seed)
        predictions = prediction_frame(fitted, assessment)

        table = metrics(predictions, fitted.outcome, levels=fitted.levels or None)
        table.insert(0, "id", split.id)
        for name, value in params.items():
            table[name] = value
        table["config"] = config
        metric_tables.append(table)

        if save_pred:
            predictions.insert(0, "row", split.assessment_idx)
            predictions.insert(0, "id", split.id)
            for name, value in params.items():
                predictions[name] = value
            predictions["config"] = config
            prediction_tables.append(predictions.reset_index(drop=True))

    log.debug("Evaluated split", split=split.id, candidates=len(candidates))
    return metric_tables, prediction_tables


@dataclass
class TuneResults:
    """
    Per-split results of resampling or tuning.

    Attributes:
        metrics: One row per (split, candidate, metric).
        predictions: Assessment-set predictions (when saved).
        param_names: Tuned parameter names.
        metric_set: Metrics that were computed.
        outcome: Outcome column.
        workflow: The evaluated workflow.
    """

    metrics: pd.DataFrame
    param_names: list[str]
    metric_set: MetricSet
    outcome: str
    workflow: Workflow
    predictions: pd.DataFrame | None = None
    elapsed_s: float = field(default=0.0)

    def collect_metrics(self, summarize: bool = True) -> pd.DataFrame:
        """
        Metrics per candidate (mean, n, std_err over splits) or, with
        summarize=False, per split.
        """
        if not summarize:
            return self.metrics.copy()

        keys = [*self.param_names, "metric", "estimator", "config"]
        grouped = self.metrics.groupby(keys, sort=False, dropna=False)["estimate"]
        summary = grouped.agg(
            mean="mean",
            n="count",
            sd=lambda x: x.std(ddof=1),
        ).reset_index()
        summary["std_err"] = summary["sd"] / np.sqrt(summary["n"])
        summary = summary.drop(columns="sd")
        return summary[[*self.param_names, *SUMMARY_COLUMNS]]

    def collect_predictions(
        self, parameters: Mapping[str, Any] | pd.DataFrame | None = None
    ) -> pd.DataFrame:
        """Saved predictions, optionally only for one candidate."""
        if self.predictions is None:
            msg = "Predictions were not saved; rerun with save_pred=True"
            raise TuningError(msg)
        predictions = self.predictions
        if parameters is None:
            return predictions.copy()
        if isinstance(parameters, pd.DataFrame):
            parameters = parameters.iloc[0].to_dict()
        mask = pd.Series(True, index=predictions.index)
        for name in self.param_names:
            if name in parameters:
                mask &= np.isclose(
                    predictions[name].astype(float), float(parameters[name])
                )
        if "config" in parameters and not self.param_names:
            mask &= predictions["config"] == parameters["config"]
        return predictions[mask].reset_index(drop=True)

    def _metric(self, metric: str | None) -> str:
        if metric is None:
            return self.metric_set.names[0]
        if metric not in self.metric_set.names:
            msg = f"Metric '{metric}' was not computed. Available: {self.metric_set.names}"
            raise TuningError(msg)
        return metric

    def show_best(self, metric: str | None = None, n: int = 5) -> pd.DataFrame:
        """Top candidates for a metric; ties keep candidate order."""
        metric = self._metric(metric)
        summary = self.collect_metrics()
        summary = summary[summary["metric"] == metric]
        ascending = self.metric_set.direction(metric) == "minimize"
        ranked = summary.sort_values("mean", ascending=ascending, kind="mergesort")
        return ranked.head(n).reset_index(drop=True)

    def select_best(self, metric: str | None = None) -> pd.DataFrame:
        """One-row table with the parameters of the best candidate."""
        best = self.show_best(metric, n=1)
        return best[[*self.param_names, "config"]]

    def select_by_one_std_err(self, *order: str, metric: str | None = None) -> pd.DataFrame:
        """
        Simplest candidate within one standard error of the best.

        Args:
            *order: Parameter names from simplest to most complex ordering;
                prefix with "-" to sort descending (e.g. "-penalty" prefers
                larger penalties).
            metric: Metric to use (first of the set by default).
        """
        if not order:
            msg = "Give at least one parameter to sort candidates by"
            raise TuningError(msg)
        metric = self._metric(metric)
        summary = self.collect_metrics()
        summary = summary[summary["metric"] == metric]
        maximize = self.metric_set.direction(metric) == "maximize"

        best = summary.loc[summary["mean"].idxmax() if maximize else summary["mean"].idxmin()]
        std_err = 0.0 if pd.isna(best["std_err"]) else best["std_err"]
        if maximize:
            within = summary[summary["mean"] >= best["mean"] - std_err]
        else:
            within = summary[summary["mean"] <= best["mean"] + std_err]

        columns = [name.lstrip("-") for name in order]
        unknown = [c for c in columns if c not in self.param_names]
        if unknown:
            msg = f"Unknown parameters in order: {unknown}"
            raise TuningError(msg)
        ascending = [not name.startswith("-") for name in order]
        chosen = within.sort_values(columns, ascending=ascending, kind="mergesort")
        return chosen.head(1)[[*self.param_names, "config"]].reset_index(drop=True)


def _run(
    workflow: Workflow,
    resamples: Resamples,
    candidates: list[dict[str, Any]],
    param_names: list[str],
    metrics: MetricSet | None,
    save_pred: bool,
    n_jobs: int | None,
    seed: int | None,
) -> TuneResults:
    if workflow.model is None:
        msg = "Workflow has no model"
        raise TuningError(msg)
    if len(resamples) == 0:
        msg = "No resamples to evaluate"
        raise TuningError(msg)
    metrics = metrics or default_metrics(workflow.model.mode)
    configs = config_ids(len(candidates))

    start = time.perf_counter()
    outputs = Parallel(n_jobs=n_jobs)(
        delayed(_evaluate_split)(
            workflow,
            resamples.data,
            split,
            candidates,
            configs,
            metrics,
            save_pred,
            seed,
        )
        for split in resamples
    )
    elapsed = time.perf_counter() - start

    metric_tables = [table for tables, _ in outputs for table in tables]
    prediction_tables = [table for _, tables in outputs for table in tables]
    results = TuneResults(
        metrics=pd.concat(metric_tables, ignore_index=True),
        param_names=param_names,
        metric_set=metrics,
        outcome=workflow.outcome,
        workflow=workflow,
        predictions=pd.concat(prediction_tables, ignore_index=True) if save_pred else None,
        elapsed_s=elapsed,
    )
    log.info(
        "Resampling complete",
        model=workflow.model.kind,
        splits=len(resamples),
        candidates=len(candidates),
        fits=len(resamples) * len(candidates),
        seconds=round(elapsed, 1),
    )
    return results


def fit_resamples(
    workflow: Workflow,
    resamples: Resamples,
    metrics: MetricSet | None = None,
    save_pred: bool = False,
    n_jobs: int | None = None,
    seed: int | None = None,
) -> TuneResults:
    """Measure a workflow without tuning parameters on every resample."""
    if workflow.tunable():
        msg = f"Workflow has arguments marked for tuning: {workflow.tunable()}; use tune_grid"
        raise TuningError(msg)
    return _run(workflow, resamples, [{}], [], metrics, save_pred, n_jobs, seed)


def _grid_for(
    workflow: Workflow, resamples: Resamples, size: int, seed: int | None
) -> pd.DataFrame:
    try:
        params = [get_parameter(name) for name in workflow.tunable()]
    except KeyError as e:
        raise TuningError(str(e)) from e
    if any(not p.finalized for p in params):
        recipe = workflow.recipe.prep(resamples.data) if workflow.recipe else None
        n_predictors = len(recipe.predictors_) if recipe is not None else 0
        params = finalize_parameters(params, n_predictors)
    return grid_latin_hypercube(*params, size=size, seed=seed)


def tune_grid(
    workflow: Workflow,
    resamples: Resamples,
    grid: pd.DataFrame | int = 10,
    metrics: MetricSet | None = None,
    save_pred: bool = False,
    n_jobs: int | None = None,
    seed: int | None = None,
) -> TuneResults:
    """
    Evaluate every candidate of a grid on every resample.

    Args:
        workflow: Workflow with arguments marked by tune().
        resamples: Splits to evaluate on.
        grid: Candidate table with one column per tuned argument, or a
            number of space-filling candidates to generate.
        metrics: Metrics to compute (defaults by mode).
        save_pred: Keep assessment-set predictions.
        n_jobs: Parallel workers over splits.
        seed: Seed for generated grids and model randomness.
    """
    tunable = workflow.tunable()
    if not tunable:
        msg = "Workflow has no arguments marked with tune()"
        raise TuningError(msg)

    if isinstance(grid, int):
        grid = _grid_for(workflow, resamples, grid, seed)
    if grid.empty:
        msg = "Tuning grid is empty"
        raise TuningError(msg)
    missing = [name for name in tunable if name not in grid.columns]
    extra = [name for name in grid.columns if name not in tunable]
    if missing or extra:
        msg = f"Grid does not match tuned arguments (missing {missing}, unknown {extra})"
        raise TuningError(msg)

    candidates = [
        {name: _plain(value) for name, value in row.items()}
        for row in grid[tunable].to_dict("records")
    ]
    return _run(workflow, resamples, candidates, tunable, metrics, save_pred, n_jobs, seed)


def _plain(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    return value


def finalize_workflow(
    workflow: Workflow, params: Mapping[str, Any] | pd.DataFrame
) -> Workflow:
    """Workflow with tuned arguments replaced by chosen values."""
    return workflow.finalize(params)


@dataclass
class LastFit:
    """
    Final fit on the training set, measured once on the test set.

    Attributes:
        fitted: Workflow fitted on all training rows.
        metrics: Test-set metrics.
        predictions: Test-set predictions.
    """

    fitted: FittedWorkflow
    metrics: pd.DataFrame
    predictions: pd.DataFrame

    def collect_metrics(self) -> pd.DataFrame:
        return self.metrics.copy()

    def collect_predictions(self) -> pd.DataFrame:
        return self.predictions.copy()

    def extract_workflow(self) -> FittedWorkflow:
        return self.fitted


def last_fit(
    workflow: Workflow,
    split: InitialSplit,
    metrics: MetricSet | None = None,
    seed: int | None = None,
) -> LastFit:
    """Fit on the training set and evaluate on the test set."""
    if workflow.tunable():
        msg = f"Finalize tuned arguments before last_fit: {workflow.tunable()}"
        raise TuningError(msg)
    if workflow.model is None:
        msg = "Workflow has no model"
        raise TuningError(msg)
    metrics = metrics or default_metrics(workflow.model.mode)

    fitted = workflow.fit(split.training(), random_state=seed)
    testing = split.testing()
    predictions = prediction_frame(fitted, testing)
    table = metrics(predictions, fitted.outcome, levels=fitted.levels or None)
    table["config"] = config_ids(1)[0]

    predictions.insert(0, "row", split.split.assessment_idx)
    log.info(
        "Last fit complete",
        model=workflow.model.kind,
        testing=len(testing),
        **{row.metric: round(row.estimate, 4) for row in table.itertuples()},
    )
    return LastFit(
        fitted=fitted,
        metrics=table,
        predictions=predictions.reset_index(drop=True),
    )
