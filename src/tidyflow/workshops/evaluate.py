"""
Evaluate your model with resampling: cell image segmentation.

Fits a random forest on a stratified training split and compares three
estimates of its performance: the optimistic training-set metrics,
10-fold cross-validation on the training set, and the test set.
"""

from dataclasses import dataclass
from typing import Any, ClassVar

import pandas as pd

from tidyflow.config import WorkshopConfig
from tidyflow.evaluation.metrics import metric_set
from tidyflow.modeling import FittedWorkflow, rand_forest, workflow
from tidyflow.resampling import initial_split, vfold_cv
from tidyflow.tuning import fit_resamples
from tidyflow.tuning.search import prediction_frame
from tidyflow.utils.logging import get_logger
from tidyflow.workshops.base import WorkshopResult, metric_dict

log = get_logger(__name__)

OUTCOME = "class"


@dataclass
class EvaluateResult(WorkshopResult):
    """
    Results of the cell segmentation forest.

    Attributes:
        fitted: Forest fitted on the training set.
        train_metrics: Metrics re-predicting the training set.
        resampled_metrics: Cross-validated metrics (mean, n, std_err).
        test_metrics: Metrics on the test set.
        trees: Number of trees.
        folds: Number of folds.
    """

    fitted: FittedWorkflow
    train_metrics: pd.DataFrame
    resampled_metrics: pd.DataFrame
    test_metrics: pd.DataFrame
    trees: int
    folds: int

    name: ClassVar[str] = "evaluate"

    def params(self) -> dict[str, Any]:
        return {"trees": self.trees, "folds": self.folds}

    def metrics(self) -> dict[str, float]:
        return {
            **metric_dict(self.train_metrics, prefix="train_"),
            **metric_dict(self.resampled_metrics, prefix="cv_", value="mean"),
            **metric_dict(self.test_metrics, prefix="test_"),
        }

    def tables(self) -> dict[str, pd.DataFrame]:
        return {
            "train_metrics": self.train_metrics,
            "resampled_metrics": self.resampled_metrics,
            "test_metrics": self.test_metrics,
        }

    def workflows(self) -> dict[str, FittedWorkflow]:
        return {"cells_forest": self.fitted}


def run_evaluate(config: WorkshopConfig, cells: pd.DataFrame) -> EvaluateResult:
    """
    Fit and evaluate the cell segmentation forest.

    Args:
        config: Workshop configuration.
        cells: Prepared cells table (class plus numeric image features).
    """
    log.info("Running evaluate workshop", rows=len(cells))

    cell_split = initial_split(
        cells,
        prop=config.resampling.train_prop,
        strata=OUTCOME,
        seed=config.seeds.cells_split,
    )
    cell_train = cell_split.training()
    cell_test = cell_split.testing()

    rf_mod = (
        rand_forest(trees=config.models.trees)
        .set_engine("sklearn", n_jobs=config.resampling.n_jobs)
        .set_mode("classification")
    )
    rf_wf = workflow().add_model(rf_mod).add_formula(f"{OUTCOME} ~ .")
    rf_fit = rf_wf.fit(cell_train, random_state=config.seeds.forest)

    metrics = metric_set("roc_auc", "accuracy")
    train_metrics = metrics(
        prediction_frame(rf_fit, cell_train), OUTCOME, levels=rf_fit.levels
    )
    test_metrics = metrics(prediction_frame(rf_fit, cell_test), OUTCOME, levels=rf_fit.levels)

    folds = vfold_cv(
        cell_train,
        v=config.resampling.v,
        repeats=config.resampling.repeats,
        seed=config.seeds.resamples,
    )
    rf_fit_rs = fit_resamples(
        rf_wf,
        folds,
        metrics=metrics,
        n_jobs=config.resampling.n_jobs,
        seed=config.seeds.forest,
    )
    resampled = rf_fit_rs.collect_metrics()

    log.info(
        "Forest performance",
        train=metric_dict(train_metrics),
        resampled=metric_dict(resampled, value="mean"),
        test=metric_dict(test_metrics),
    )
    return EvaluateResult(
        fitted=rf_fit,
        train_metrics=train_metrics,
        resampled_metrics=resampled,
        test_metrics=test_metrics,
        trees=config.models.trees,
        folds=len(folds),
    )
