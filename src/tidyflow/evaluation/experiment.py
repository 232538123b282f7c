"""
MLflow tracking of workshop results.

One workshop run becomes one MLflow run in the configured experiment:
settings and seeds as params, headline metrics as metrics, result tables
as CSV artifacts under tables/ and fitted pipelines as sklearn models.
"""

import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

import mlflow
import mlflow.sklearn
import pandas as pd

from tidyflow.config import WorkshopConfig
from tidyflow.evaluation.metrics import RegressionMetrics
from tidyflow.utils.logging import get_logger

if TYPE_CHECKING:
    from tidyflow.modeling.workflow import FittedWorkflow
    from tidyflow.workshops.base import WorkshopResult

log = get_logger(__name__)


class WorkshopExperiment:
    """
    MLflow runs of one workshop.

    Runs are grouped under config.experiment_name (the project name by
    default) and tagged with the workshop and project. Usable as a
    context manager that starts a run on entry and ends it on exit.

    Args:
        config: Workshop configuration (tracking URI, experiment name).
        name: Workshop name, used as run name and "workshop" tag.
    """

    def __init__(self, config: WorkshopConfig, name: str) -> None:
        self.config = config
        self.name = name
        self._run_id: str | None = None

    @property
    def run_id(self) -> str | None:
        return self._run_id

    def setup(self) -> None:
        """Point MLflow at the tracking URI and select the experiment."""
        mlflow.set_tracking_uri(self.config.mlflow.tracking_uri)
        mlflow.set_experiment(self.config.experiment_name)
        log.debug(
            "MLflow experiment selected",
            experiment=self.config.experiment_name,
            tracking_uri=self.config.mlflow.tracking_uri,
        )

    def start_run(self, run_name: str | None = None) -> str:
        """Start a tagged run and return its id."""
        self.setup()
        run = mlflow.start_run(
            run_name=run_name or self.name,
            tags={"workshop": self.name, "project": self.config.project},
        )
        self._run_id = run.info.run_id
        log.info("Started MLflow run", run_id=self._run_id, workshop=self.name)
        return self._run_id

    def end_run(self) -> None:
        mlflow.end_run()
        log.info("Ended MLflow run", run_id=self._run_id)

    def __enter__(self) -> "WorkshopExperiment":
        self.start_run()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.end_run()

    def log_params(self, params: dict[str, Any]) -> None:
        mlflow.log_params(params)

    def log_metrics(
        self,
        metrics: RegressionMetrics | pd.DataFrame | dict[str, float],
        prefix: str = "",
    ) -> None:
        """
        Log metrics from a dict, a RegressionMetrics or a metric table.

        Metric tables are keyed by their metric column; the value is read
        from "estimate" (single evaluation) or "mean" (resampled summary).
        """
        if isinstance(metrics, RegressionMetrics):
            metrics = metrics.to_dict()
        elif isinstance(metrics, pd.DataFrame):
            value = "estimate" if "estimate" in metrics.columns else "mean"
            metrics = {row["metric"]: float(row[value]) for _, row in metrics.iterrows()}
        mlflow.log_metrics({f"{prefix}{k}": float(v) for k, v in metrics.items()})

    def log_table(self, table: pd.DataFrame, name: str) -> None:
        """Log a result table as tables/{name}.csv."""
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / f"{name}.csv"
            table.to_csv(path, index=False)
            mlflow.log_artifact(str(path), "tables")

    def log_model(
        self,
        fitted: "FittedWorkflow",
        artifact_path: str = "model",
        registered_name: str | None = None,
    ) -> None:
        """Log the fitted (recipe, model) pipeline of a workflow."""
        mlflow.sklearn.log_model(
            fitted.pipeline,
            artifact_path=artifact_path,
            registered_model_name=registered_name,
        )


def track_result(config: WorkshopConfig, result: "WorkshopResult") -> str:
    """
    Log a workshop result as one MLflow run.

    Returns:
        Run ID.
    """
    with WorkshopExperiment(config, result.name) as experiment:
        experiment.log_params(
            {
                **result.params(),
                **{f"seed_{k}": v for k, v in config.seeds.model_dump().items()},
            }
        )
        experiment.log_metrics(result.metrics())
        for name, table in result.tables().items():
            experiment.log_table(table, name)
        for name, fitted in result.workflows().items():
            experiment.log_model(fitted, artifact_path=name)
    return experiment.run_id or ""
