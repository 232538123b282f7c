"""
A predictive modeling case study: hotel stays with children.

Holds out a stratified test set, splits the rest into training and
validation rows, and compares two tuned models on the validation set:
a lasso logistic regression over a sequence of penalties and a random
forest over a space-filling grid of mtry and min_n. The final forest is
refitted on all non-test rows and measured once on the test set.
"""

from dataclasses import dataclass
from typing import Any, ClassVar

import pandas as pd

from tidyflow.config import WorkshopConfig
from tidyflow.evaluation.metrics import metric_set, roc_curve
from tidyflow.modeling import FittedWorkflow, logistic_reg, rand_forest, tune, workflow
from tidyflow.recipes import (
    Recipe,
    all_date_predictors,
    all_nominal_predictors,
    all_predictors,
    recipe,
)
from tidyflow.resampling import initial_split, validation_split
from tidyflow.tuning import (
    TuneResults,
    grid_values,
    last_fit,
    log10_sequence,
    tune_grid,
)
from tidyflow.utils.logging import get_logger
from tidyflow.workshops.base import WorkshopResult, metric_dict

log = get_logger(__name__)

OUTCOME = "children"
HOTEL_HOLIDAYS = (
    "AllSouls",
    "AshWednesday",
    "ChristmasEve",
    "Easter",
    "ChristmasDay",
    "GoodFriday",
    "NewYearsDay",
    "PalmSunday",
)
SELECT_METRIC = "roc_auc"


def lr_recipe() -> Recipe:
    """Recipe for the penalized logistic regression."""
    return (
        recipe(f"{OUTCOME} ~ .")
        .step_date(all_date_predictors())
        .step_holiday(all_date_predictors(), holidays=HOTEL_HOLIDAYS)
        .step_rm(all_date_predictors())
        .step_dummy(all_nominal_predictors())
        .step_zv(all_predictors())
        .step_normalize(all_predictors())
    )


def rf_recipe() -> Recipe:
    """Recipe for the random forest (no dummies or scaling needed)."""
    return (
        recipe(f"{OUTCOME} ~ .")
        .step_date(all_date_predictors())
        .step_holiday(all_date_predictors(), holidays=HOTEL_HOLIDAYS)
        .step_rm(all_date_predictors())
    )


def pick_penalty(results: TuneResults, rank: int, pool: int) -> pd.DataFrame:
    """
    Choose a penalty among the best candidates.

    Takes the `pool` best candidates by ROC AUC, orders them by
    increasing penalty and returns the row at position `rank` (1-based),
    which trades a little performance for a sparser model.
    """
    top_models = (
        results.show_best(SELECT_METRIC, n=pool)
        .sort_values("penalty", kind="mergesort")
        .reset_index(drop=True)
    )
    position = min(rank, len(top_models)) - 1
    if position != rank - 1:
        log.warning("Fewer candidates than requested rank", rank=rank, available=len(top_models))
    return top_models.iloc[[position]][["penalty", "config"]].reset_index(drop=True)


def _validation_roc(results: TuneResults, best: pd.DataFrame, model: str) -> pd.DataFrame:
    predictions = results.collect_predictions(best)
    levels = list(predictions[OUTCOME].cat.categories)
    curve = roc_curve(predictions[OUTCOME], predictions[f"pred_{levels[0]}"], levels=levels)
    curve["model"] = model
    return curve


@dataclass
class CaseStudyResult(WorkshopResult):
    """
    Results of the hotel stays case study.

    Attributes:
        lr_metrics: Validation ROC AUC per penalty.
        lr_best: Chosen penalty.
        rf_metrics: Validation ROC AUC per forest candidate.
        rf_best: Best forest parameters.
        roc_curves: Validation ROC curves of both chosen models.
        final_metrics: Test-set metrics of the final forest.
        importance: Impurity importance of the final forest.
        fitted: Final forest fitted on all non-test rows.
    """

    lr_metrics: pd.DataFrame
    lr_best: pd.DataFrame
    rf_metrics: pd.DataFrame
    rf_best: pd.DataFrame
    roc_curves: pd.DataFrame
    final_metrics: pd.DataFrame
    importance: pd.DataFrame
    fitted: FittedWorkflow
    final_mtry: int
    final_min_n: int

    name: ClassVar[str] = "case-study"

    def _validation_auc(self, table: pd.DataFrame, best: pd.DataFrame) -> float:
        chosen = table["config"] == best.iloc[0]["config"]
        row = table[chosen & (table["metric"] == SELECT_METRIC)]
        return float(row["mean"].iloc[0])

    def params(self) -> dict[str, Any]:
        rf = self.rf_best.iloc[0]
        return {
            "lr_penalty": float(self.lr_best.iloc[0]["penalty"]),
            "rf_mtry": int(rf["mtry"]),
            "rf_min_n": int(rf["min_n"]),
            "final_mtry": self.final_mtry,
            "final_min_n": self.final_min_n,
        }

    def metrics(self) -> dict[str, float]:
        return {
            "lr_validation_roc_auc": self._validation_auc(self.lr_metrics, self.lr_best),
            "rf_validation_roc_auc": self._validation_auc(self.rf_metrics, self.rf_best),
            **metric_dict(self.final_metrics, prefix="test_"),
        }

    def tables(self) -> dict[str, pd.DataFrame]:
        return {
            "lr_metrics": self.lr_metrics,
            "rf_metrics": self.rf_metrics,
            "roc_curves": self.roc_curves,
            "final_metrics": self.final_metrics,
            "importance": self.importance,
        }

    def workflows(self) -> dict[str, FittedWorkflow]:
        return {"hotels_forest": self.fitted}


def run_case_study(config: WorkshopConfig, hotels: pd.DataFrame) -> CaseStudyResult:
    """
    Run the hotel stays case study.

    Args:
        config: Workshop configuration.
        hotels: Prepared hotels table (children outcome, arrival_date).
    """
    log.info("Running case study", rows=len(hotels))

    splits = initial_split(
        hotels,
        prop=config.resampling.train_prop,
        strata=OUTCOME,
        seed=config.seeds.hotels_split,
    )
    hotel_other = splits.training()
    val_set = validation_split(
        hotel_other,
        prop=config.resampling.validation_prop,
        strata=OUTCOME,
        seed=config.seeds.validation,
    )
    auc = metric_set(SELECT_METRIC)

    # penalized logistic regression
    tuning = config.tuning
    lr_mod = logistic_reg(penalty=tune(), mixture=1).set_engine("glmnet")
    lr_workflow = workflow().add_model(lr_mod).add_recipe(lr_recipe())
    lr_reg_grid = grid_values(
        "penalty",
        log10_sequence(tuning.penalty_min_exp, tuning.penalty_max_exp, tuning.penalty_levels),
    )
    lr_res = tune_grid(
        lr_workflow,
        val_set,
        grid=lr_reg_grid,
        metrics=auc,
        save_pred=True,
        n_jobs=config.resampling.n_jobs,
    )
    lr_best = pick_penalty(lr_res, tuning.best_penalty_rank, tuning.best_penalty_pool)
    log.info("Chosen penalty", penalty=float(lr_best.iloc[0]["penalty"]))

    # random forest
    rf_mod = (
        rand_forest(mtry=tune(), min_n=tune(), trees=config.models.trees)
        .set_engine("sklearn", n_jobs=config.resampling.n_jobs)
        .set_mode("classification")
    )
    rf_workflow = workflow().add_model(rf_mod).add_recipe(rf_recipe())
    rf_res = tune_grid(
        rf_workflow,
        val_set,
        grid=tuning.forest_grid_size,
        metrics=auc,
        save_pred=True,
        n_jobs=config.resampling.n_jobs,
        seed=config.seeds.final_forest,
    )
    rf_best = rf_res.select_best(SELECT_METRIC)
    log.info("Best forest", **rf_best.iloc[0].to_dict())

    roc_curves = pd.concat(
        [
            _validation_roc(lr_res, lr_best, "Logistic Regression"),
            _validation_roc(rf_res, rf_best, "Random Forest"),
        ],
        ignore_index=True,
    )

    # final forest on all non-test rows
    last_rf_mod = (
        rand_forest(
            mtry=config.models.final_mtry,
            min_n=config.models.final_min_n,
            trees=config.models.trees,
        )
        .set_engine("sklearn", importance="impurity", n_jobs=config.resampling.n_jobs)
        .set_mode("classification")
    )
    last_rf_workflow = rf_workflow.update_model(last_rf_mod)
    last_rf_fit = last_fit(
        last_rf_workflow,
        splits,
        metrics=metric_set("accuracy", "roc_auc"),
        seed=config.seeds.final_forest,
    )
    fitted = last_rf_fit.extract_workflow()
    final_metrics = last_rf_fit.collect_metrics()
    log.info("Final forest", **metric_dict(final_metrics))

    return CaseStudyResult(
        lr_metrics=lr_res.collect_metrics(),
        lr_best=lr_best,
        rf_metrics=rf_res.collect_metrics(),
        rf_best=rf_best,
        roc_curves=roc_curves,
        final_metrics=final_metrics,
        importance=fitted.importance(),
        fitted=fitted,
        final_mtry=config.models.final_mtry,
        final_min_n=config.models.final_min_n,
    )
