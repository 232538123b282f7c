"""
Workflows bundle a recipe with a model specification.

Fitting a workflow builds a scikit-learn Pipeline (recipe, estimator),
fits it on the training data and returns a FittedWorkflow that predicts
from raw data: the recipe's trained steps are applied before every
prediction.
"""

import json
import time
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import joblib
import numpy as np
import pandas as pd
from sklearn.base import clone
from sklearn.pipeline import Pipeline

from tidyflow.errors import ModelSpecError
from tidyflow.modeling.models import CLASSIFICATION, ModelSpec
from tidyflow.recipes import Recipe
from tidyflow.utils.logging import get_logger

log = get_logger(__name__)


def outcome_levels(y: pd.Series) -> list[Any]:
    """Class levels in factor order (sorted for plain values)."""
    if isinstance(y.dtype, pd.CategoricalDtype):
        return list(y.cat.categories)
    return sorted(y.dropna().unique(), key=str)


@dataclass(frozen=True)
class Workflow:
    """
    Recipe plus model specification.

    Attributes:
        recipe: Preprocessing recipe (defines the outcome).
        model: Model specification.
    """

    recipe: Recipe | None = None
    model: ModelSpec | None = None

    def add_recipe(self, recipe: Recipe) -> "Workflow":
        if self.recipe is not None:
            msg = "Workflow already has a recipe"
            raise ModelSpecError(msg)
        return replace(self, recipe=recipe)

    def add_formula(self, formula: str) -> "Workflow":
        """Use a formula ("class ~ .") as a recipe without steps."""
        return self.add_recipe(Recipe.from_formula(formula))

    def add_model(self, model: ModelSpec) -> "Workflow":
        if self.model is not None:
            msg = "Workflow already has a model; use update_model()"
            raise ModelSpecError(msg)
        return replace(self, model=model)

    def update_model(self, model: ModelSpec) -> "Workflow":
        return replace(self, model=model)

    @property
    def outcome(self) -> str:
        """Outcome column named by the recipe."""
        if self.recipe is None or self.recipe.outcome is None:
            msg = "Workflow recipe does not name an outcome"
            raise ModelSpecError(msg)
        return self.recipe.outcome

    def tunable(self) -> list[str]:
        """Model arguments marked for tuning."""
        return self.model.tunable() if self.model is not None else []

    def finalize(self, params: dict[str, Any] | pd.DataFrame | pd.Series) -> "Workflow":
        """Fill tuned arguments from a parameter mapping or one-row table."""
        if self.model is None:
            msg = "Workflow has no model to finalize"
            raise ModelSpecError(msg)
        if isinstance(params, pd.DataFrame):
            params = params.iloc[0]
        if isinstance(params, pd.Series):
            params = params.to_dict()
        return replace(self, model=self.model.finalize(params))

    def build_pipeline(self, random_state: int | None = None) -> Pipeline:
        """Unfitted (recipe, model) pipeline."""
        if self.recipe is None or self.model is None:
            msg = "Workflow needs both a recipe and a model"
            raise ModelSpecError(msg)
        return Pipeline(
            steps=[
                ("recipe", clone(self.recipe)),
                ("model", self.model.build(random_state=random_state)),
            ]
        )

    def fit(self, data: pd.DataFrame, random_state: int | None = None) -> "FittedWorkflow":
        """
        Fit the recipe and the model on training data.

        Args:
            data: Training data including the outcome column.
            random_state: Seed for estimators that use randomness.

        Returns:
            FittedWorkflow ready for prediction.
        """
        outcome = self.outcome
        if outcome not in data.columns:
            msg = f"Outcome '{outcome}' not found in data"
            raise ModelSpecError(msg)

        start = time.perf_counter()
        pipeline = self.build_pipeline(random_state=random_state)
        X = data.drop(columns=[outcome])
        y = data[outcome]
        pipeline.fit(X, y)
        elapsed = time.perf_counter() - start

        mode = self.model.mode if self.model is not None else ""
        levels = outcome_levels(y) if mode == CLASSIFICATION else []

        log.info(
            "Fitted workflow",
            model=self.model.kind if self.model is not None else None,
            engine=self.model.engine if self.model is not None else None,
            rows=len(data),
            predictors=len(pipeline.named_steps["recipe"].predictors_),
            seconds=round(elapsed, 2),
        )
        return FittedWorkflow(
            workflow=self,
            pipeline=pipeline,
            outcome=outcome,
            mode=mode,
            levels=levels,
            training_time_s=elapsed,
        )


def workflow() -> Workflow:
    """Empty workflow, to be filled with add_recipe/add_formula and add_model."""
    return Workflow()


@dataclass
class FittedWorkflow:
    """
    A fitted recipe and model.

    Attributes:
        workflow: The specification that was fitted.
        pipeline: Fitted Pipeline (steps "recipe" and "model").
        outcome: Outcome column name.
        mode: "classification" or "regression".
        levels: Outcome levels in factor order (classification only).
        training_time_s: Fitting time in seconds.
    """

    workflow: Workflow
    pipeline: Pipeline
    outcome: str
    mode: str
    levels: list[Any] = field(default_factory=list)
    training_time_s: float = 0.0

    def extract_recipe(self) -> Recipe:
        return self.pipeline.named_steps["recipe"]

    def extract_fit(self) -> Any:
        return self.pipeline.named_steps["model"]

    def _class_probabilities(self, new_data: pd.DataFrame) -> pd.DataFrame:
        proba = self.pipeline.predict_proba(new_data)
        classes = list(self.extract_fit().classes_)
        columns = {}
        for level in self.levels:
            position = classes.index(level) if level in classes else None
            columns[f"pred_{level}"] = (
                proba[:, position] if position is not None else np.zeros(len(new_data))
            )
        return pd.DataFrame(columns, index=new_data.index)

    def predict(self, new_data: pd.DataFrame, type: str | None = None) -> pd.DataFrame:
        """
        Predict from raw data.

        Args:
            new_data: Rows to predict (outcome column optional).
            type: "class" or "prob" for classification, "numeric" for
                regression. Defaults to "class" or "numeric" by mode.

        Returns:
            DataFrame indexed like new_data with "pred_class",
            "pred_{level}" columns or "pred".
        """
        if type is None:
            type = "class" if self.mode == CLASSIFICATION else "numeric"
        X = new_data.drop(columns=[self.outcome], errors="ignore")

        if type == "numeric":
            if self.mode == CLASSIFICATION:
                msg = "Numeric predictions need a regression workflow"
                raise ModelSpecError(msg)
            return pd.DataFrame({"pred": self.pipeline.predict(X)}, index=new_data.index)

        if self.mode != CLASSIFICATION:
            msg = f"Prediction type '{type}' needs a classification workflow"
            raise ModelSpecError(msg)
        if type == "class":
            values = self.pipeline.predict(X)
            return pd.DataFrame(
                {"pred_class": pd.Categorical(values, categories=self.levels)},
                index=new_data.index,
            )
        if type == "prob":
            return self._class_probabilities(X)

        msg = f"Unknown prediction type '{type}'. Use class, prob or numeric"
        raise ValueError(msg)

    def augment(self, new_data: pd.DataFrame) -> pd.DataFrame:
        """new_data with prediction columns appended."""
        if self.mode == CLASSIFICATION:
            parts = [
                new_data,
                self.predict(new_data, type="class"),
                self.predict(new_data, type="prob"),
            ]
        else:
            parts = [new_data, self.predict(new_data, type="numeric")]
        return pd.concat(parts, axis=1)

    def tidy(self) -> pd.DataFrame:
        """
        Coefficients of linear engines: term, estimate.

        For two-class models, estimates refer to the log-odds of the
        second class in the estimator's class order.
        """
        model = self.extract_fit()
        if not hasattr(model, "coef_"):
            msg = f"{type(model).__name__} has no coefficients"
            raise ModelSpecError(msg)
        names = list(self.extract_recipe().get_feature_names_out())
        coefs = np.ravel(model.coef_)
        intercept = float(np.ravel(getattr(model, "intercept_", [0.0]))[0])
        return pd.DataFrame(
            {"term": ["(Intercept)", *names], "estimate": [intercept, *coefs]}
        )

    def importance(self) -> pd.DataFrame:
        """Impurity importance of tree engines, most important first."""
        model = self.extract_fit()
        if not hasattr(model, "feature_importances_"):
            msg = f"{type(model).__name__} has no variable importance"
            raise ModelSpecError(msg)
        names = list(self.extract_recipe().get_feature_names_out())
        table = pd.DataFrame(
            {"variable": names, "importance": model.feature_importances_}
        )
        return table.sort_values("importance", ascending=False, ignore_index=True)


def save_workflow(fitted: FittedWorkflow, output_path: Path) -> tuple[Path, Path]:
    """Save a fitted workflow and its metadata.

    Creates two files:
        - {output_path}.workflow.joblib: Pickled FittedWorkflow
        - {output_path}.workflow.json: Human-readable metadata

    Returns:
        Tuple of (workflow_path, metadata_path).
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    workflow_path = output_path.with_suffix(".workflow.joblib")
    metadata_path = output_path.with_suffix(".workflow.json")

    joblib.dump(fitted, workflow_path)
    log.info("Saved workflow", path=str(workflow_path))

    model = fitted.workflow.model
    metadata: dict[str, Any] = {
        "model": model.kind if model is not None else None,
        "engine": model.engine if model is not None else None,
        "args": {k: repr(v) for k, v in model.args.items()} if model is not None else {},
        "mode": fitted.mode,
        "outcome": fitted.outcome,
        "levels": [str(level) for level in fitted.levels],
        "predictors": list(fitted.extract_recipe().get_feature_names_out()),
        "training_time_s": fitted.training_time_s,
    }
    with open(metadata_path, "w", encoding="utf-8") as f:
        json.dump(metadata, f, indent=2)
    log.info("Saved workflow metadata", path=str(metadata_path))

    return workflow_path, metadata_path


def load_workflow(path: Path) -> FittedWorkflow:
    """Load a fitted workflow saved by save_workflow().

    Accepts the .workflow.joblib file or the base path used when saving.
    """
    path = Path(path)
    if path.suffix != ".joblib":
        path = path.with_suffix(".workflow.joblib")
    if not path.exists():
        msg = f"Workflow file not found: {path}"
        raise FileNotFoundError(msg)

    fitted = joblib.load(path)
    if not isinstance(fitted, FittedWorkflow):
        msg = f"{path} does not contain a fitted workflow"
        raise TypeError(msg)
    log.info("Loaded workflow", path=str(path), outcome=fitted.outcome)
    return fitted
