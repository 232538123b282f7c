"""
Preprocess your data with recipes: late NYC flights.

Splits the flight table, builds a recipe that keeps the flight number
and scheduled hour as identifiers, derives day-of-week, month and US
holiday features from the flight date, creates dummy variables and drops
zero-variance columns, then fits a logistic regression and measures it
on the test set.
"""

from dataclasses import dataclass
from typing import Any, ClassVar

import pandas as pd

from tidyflow.config import WorkshopConfig
from tidyflow.evaluation.metrics import metric_set, roc_curve
from tidyflow.modeling import FittedWorkflow, logistic_reg, workflow
from tidyflow.recipes import (
    US_HOLIDAYS,
    Recipe,
    all_nominal_predictors,
    all_predictors,
    recipe,
)
from tidyflow.resampling import initial_split
from tidyflow.utils.logging import get_logger
from tidyflow.workshops.base import WorkshopResult, metric_dict

log = get_logger(__name__)

OUTCOME = "arr_delay"
ID_COLUMNS = ("flight", "time_hour")


def flights_recipe() -> Recipe:
    """Recipe for the flight delay model."""
    return (
        recipe(f"{OUTCOME} ~ .")
        .update_role(*ID_COLUMNS, new_role="ID")
        .step_date("date", features=("dow", "month"))
        .step_holiday("date", holidays=US_HOLIDAYS, keep_original_cols=False)
        .step_dummy(all_nominal_predictors())
        .step_zv(all_predictors())
    )


@dataclass
class PreprocessResult(WorkshopResult):
    """
    Results of the flight delay model.

    Attributes:
        recipe_summary: Variables, types and roles after prep.
        fitted: Fitted workflow.
        coefficients: Logistic regression coefficients.
        predictions: Test rows with identifiers, outcome and predictions.
        roc: ROC curve of the test predictions.
        test_metrics: ROC AUC and accuracy on the test set.
        n_train: Training rows.
        n_test: Test rows.
    """

    recipe_summary: pd.DataFrame
    fitted: FittedWorkflow
    coefficients: pd.DataFrame
    predictions: pd.DataFrame
    roc: pd.DataFrame
    test_metrics: pd.DataFrame
    n_train: int
    n_test: int

    name: ClassVar[str] = "preprocess"

    def params(self) -> dict[str, Any]:
        return {"n_train": self.n_train, "n_test": self.n_test, "model": "logistic_reg"}

    def metrics(self) -> dict[str, float]:
        return metric_dict(self.test_metrics, prefix="test_")

    def tables(self) -> dict[str, pd.DataFrame]:
        return {
            "recipe_summary": self.recipe_summary,
            "coefficients": self.coefficients,
            "roc_curve": self.roc,
            "test_metrics": self.test_metrics,
        }

    def workflows(self) -> dict[str, FittedWorkflow]:
        return {"flights_logistic": self.fitted}


def run_preprocess(config: WorkshopConfig, flight_data: pd.DataFrame) -> PreprocessResult:
    """
    Fit and evaluate the flight delay workflow.

    Args:
        config: Workshop configuration.
        flight_data: Prepared flight table (see prepare_flight_data).
    """
    log.info("Running preprocess workshop", rows=len(flight_data))

    split = initial_split(
        flight_data,
        prop=config.resampling.train_prop,
        seed=config.seeds.flights_split,
    )
    train_data = split.training()
    test_data = split.testing()

    flights_rec = flights_recipe()
    summary = flights_rec.prep(train_data).summary()

    flights_wflow = (
        workflow().add_model(logistic_reg().set_engine("sklearn")).add_recipe(flights_rec)
    )
    fitted = flights_wflow.fit(train_data)

    augmented = fitted.augment(test_data)
    event = fitted.levels[0]
    predictions = augmented[
        [*ID_COLUMNS, OUTCOME, "pred_class", *[f"pred_{lv}" for lv in fitted.levels]]
    ].reset_index(drop=True)

    roc = roc_curve(augmented[OUTCOME], augmented[f"pred_{event}"], levels=fitted.levels)
    test_metrics = metric_set("roc_auc", "accuracy")(
        augmented, OUTCOME, levels=fitted.levels
    )
    log.info("Flight delay model evaluated", **metric_dict(test_metrics))

    return PreprocessResult(
        recipe_summary=summary,
        fitted=fitted,
        coefficients=fitted.tidy(),
        predictions=predictions,
        roc=roc,
        test_metrics=test_metrics,
        n_train=len(train_data),
        n_test=len(test_data),
    )
