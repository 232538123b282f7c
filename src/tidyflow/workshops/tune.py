"""
Tune model parameters: cell segmentation decision tree.

Tunes the cost-complexity and depth of a decision tree over a regular
grid with 10-fold cross-validation, keeps the most accurate candidate,
refits it on the whole training set, evaluates it once on the test set
and reports variable importance.
"""

from dataclasses import dataclass
from typing import Any, ClassVar

import pandas as pd

from tidyflow.config import WorkshopConfig
from tidyflow.evaluation.metrics import roc_curve
from tidyflow.modeling import FittedWorkflow, decision_tree, tune, workflow
from tidyflow.resampling import initial_split, vfold_cv
from tidyflow.tuning import (
    cost_complexity,
    finalize_workflow,
    grid_regular,
    last_fit,
    tree_depth,
    tune_grid,
)
from tidyflow.utils.logging import get_logger
from tidyflow.workshops.base import WorkshopResult, metric_dict

log = get_logger(__name__)

OUTCOME = "class"
SELECT_METRIC = "accuracy"


@dataclass
class TuneResult(WorkshopResult):
    """
    Results of the decision tree tuning.

    Attributes:
        grid: Candidate parameters.
        tuning_metrics: Cross-validated metrics per candidate.
        best_trees: Top candidates by accuracy.
        best_params: Chosen parameters (one row).
        final_metrics: Test-set metrics of the finalized tree.
        final_roc: Test-set ROC curve.
        importance: Variable importance of the final tree.
        fitted: Final tree fitted on the training set.
    """

    grid: pd.DataFrame
    tuning_metrics: pd.DataFrame
    best_trees: pd.DataFrame
    best_params: pd.DataFrame
    final_metrics: pd.DataFrame
    final_roc: pd.DataFrame
    importance: pd.DataFrame
    fitted: FittedWorkflow

    name: ClassVar[str] = "tune"

    def params(self) -> dict[str, Any]:
        best = self.best_params.iloc[0]
        return {
            "grid_size": len(self.grid),
            "best_cost_complexity": float(best["cost_complexity"]),
            "best_tree_depth": int(best["tree_depth"]),
        }

    def metrics(self) -> dict[str, float]:
        return metric_dict(self.final_metrics, prefix="test_")

    def tables(self) -> dict[str, pd.DataFrame]:
        return {
            "tuning_metrics": self.tuning_metrics,
            "best_trees": self.best_trees,
            "final_metrics": self.final_metrics,
            "final_roc_curve": self.final_roc,
            "importance": self.importance,
        }

    def workflows(self) -> dict[str, FittedWorkflow]:
        return {"cells_tree": self.fitted}


def run_tune(config: WorkshopConfig, cells: pd.DataFrame) -> TuneResult:
    """
    Tune, finalize and evaluate the decision tree.

    Args:
        config: Workshop configuration.
        cells: Prepared cells table.
    """
    log.info("Running tune workshop", rows=len(cells))

    cell_split = initial_split(
        cells,
        prop=config.resampling.train_prop,
        strata=OUTCOME,
        seed=config.seeds.cells_split,
    )
    cell_train = cell_split.training()

    tune_spec = (
        decision_tree(cost_complexity=tune(), tree_depth=tune())
        .set_engine("sklearn")
        .set_mode("classification")
    )
    tree_grid = grid_regular(
        cost_complexity(), tree_depth(), levels=config.tuning.tree_levels
    )
    cell_folds = vfold_cv(cell_train, v=config.resampling.v, seed=config.seeds.tuning)

    tree_wf = workflow().add_model(tune_spec).add_formula(f"{OUTCOME} ~ .")
    tree_res = tune_grid(
        tree_wf,
        cell_folds,
        grid=tree_grid,
        n_jobs=config.resampling.n_jobs,
        seed=config.seeds.tuning,
    )

    best_trees = tree_res.show_best(SELECT_METRIC)
    best_tree = tree_res.select_best(SELECT_METRIC)
    log.info("Selected tree", **best_tree.iloc[0].to_dict())

    final_wf = finalize_workflow(tree_wf, best_tree)
    final_fit = last_fit(final_wf, cell_split, seed=config.seeds.tuning)
    fitted = final_fit.extract_workflow()
    predictions = final_fit.collect_predictions()
    event = fitted.levels[0]

    return TuneResult(
        grid=tree_grid,
        tuning_metrics=tree_res.collect_metrics(),
        best_trees=best_trees,
        best_params=best_tree,
        final_metrics=final_fit.collect_metrics(),
        final_roc=roc_curve(
            predictions[OUTCOME], predictions[f"pred_{event}"], levels=fitted.levels
        ),
        importance=fitted.importance(),
        fitted=fitted,
    )
