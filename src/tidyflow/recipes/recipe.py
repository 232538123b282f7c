"""
Declarative preprocessing recipes.

A Recipe names the outcome, assigns roles to columns and lists
preprocessing steps. Builders never modify a recipe; they return a new
one, so a recipe can be shared between workflows. Fitting (prep)
estimates every step on training data in order. A fitted recipe is also
a scikit-learn transformer whose transform() returns the predictor
matrix, so it can sit in front of any estimator in a Pipeline.
"""

import copy
from collections.abc import Sequence
from dataclasses import replace
from typing import Any

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, TransformerMixin, clone

from tidyflow.errors import RecipeError
from tidyflow.recipes.holidays import DEFAULT_HOLIDAYS
from tidyflow.recipes.selectors import (
    NOMINAL,
    OUTCOME,
    PREDICTOR,
    Selector,
    VarInfo,
    as_selectors,
    infer_type,
)
from tidyflow.recipes.steps import (
    Step,
    StepDate,
    StepDummy,
    StepHoliday,
    StepNormalize,
    StepRm,
    StepZv,
    sync_info,
    training_levels,
)
from tidyflow.utils.logging import get_logger

log = get_logger(__name__)

EPOCH = pd.Timestamp("1970-01-01")

Term = str | Selector


def parse_formula(formula: str) -> tuple[str | None, tuple[str, ...] | None]:
    """
    Split "outcome ~ a + b" into the outcome and predictor names.

    A right-hand side of "." means every other column.
    """
    lhs, sep, rhs = formula.partition("~")
    if not sep:
        msg = f"Formula must contain '~', got: {formula!r}"
        raise RecipeError(msg)
    outcome = lhs.strip() or None
    rhs = rhs.strip()
    if rhs in ("", "."):
        return outcome, None
    predictors = tuple(term.strip() for term in rhs.split("+") if term.strip())
    if "." in predictors:
        msg = f"'.' cannot be combined with other terms: {formula!r}"
        raise RecipeError(msg)
    return outcome, predictors


class Recipe(TransformerMixin, BaseEstimator):
    """
    Preprocessing specification and transformer.

    Args:
        outcome: Outcome column name (optional for unsupervised use).
        predictors: Predictor names, or None for every other column.
        roles: Column -> role overrides (e.g. {"flight": "ID"}).
        steps: Preprocessing steps, applied in order.
    """

    def __init__(
        self,
        outcome: str | None = None,
        predictors: Sequence[str] | None = None,
        roles: dict[str, str] | None = None,
        steps: Sequence[Step] = (),
    ) -> None:
        self.outcome = outcome
        self.predictors = predictors
        self.roles = roles
        self.steps = steps

    @classmethod
    def from_formula(cls, formula: str) -> "Recipe":
        """Create a recipe from "outcome ~ ." or "outcome ~ a + b"."""
        outcome, predictors = parse_formula(formula)
        return cls(outcome=outcome, predictors=predictors)

    # builders -----------------------------------------------------------

    def _with(self, **changes: Any) -> "Recipe":
        params = self.get_params(deep=False)
        params.update(changes)
        return type(self)(**params)

    def add_step(self, step: Step) -> "Recipe":
        """Append a step and return the new recipe."""
        if not step.id:
            step = replace(step, id=f"{step.kind}_{len(self.steps) + 1:02d}")
        return self._with(steps=(*self.steps, step))

    def update_role(self, *columns: str, new_role: str) -> "Recipe":
        """Assign a new role (such as "ID") to columns."""
        if new_role == OUTCOME:
            msg = "Use the outcome argument to set the outcome"
            raise RecipeError(msg)
        roles = dict(self.roles or {})
        roles.update({column: new_role for column in columns})
        return self._with(roles=roles)

    def step_date(
        self,
        *terms: Term,
        features: Sequence[str] = ("dow", "month", "year"),
        keep_original_cols: bool = True,
    ) -> "Recipe":
        """Add date feature columns named {column}_{feature}."""
        return self.add_step(
            StepDate(
                as_selectors(terms),
                features=tuple(features),
                keep_original_cols=keep_original_cols,
            )
        )

    def step_holiday(
        self,
        *terms: Term,
        holidays: Sequence[str] = DEFAULT_HOLIDAYS,
        keep_original_cols: bool = True,
    ) -> "Recipe":
        """Add 0/1 holiday indicator columns named {column}_{holiday}."""
        return self.add_step(
            StepHoliday(
                as_selectors(terms),
                holidays=tuple(holidays),
                keep_original_cols=keep_original_cols,
            )
        )

    def step_rm(self, *terms: Term) -> "Recipe":
        """Remove columns."""
        return self.add_step(StepRm(as_selectors(terms)))

    def step_dummy(self, *terms: Term, one_hot: bool = False) -> "Recipe":
        """Replace nominal columns by indicator columns."""
        return self.add_step(StepDummy(as_selectors(terms), one_hot=one_hot))

    def step_zv(self, *terms: Term) -> "Recipe":
        """Remove columns that are constant in the training data."""
        return self.add_step(StepZv(as_selectors(terms)))

    def step_normalize(self, *terms: Term) -> "Recipe":
        """Center and scale numeric columns."""
        return self.add_step(StepNormalize(as_selectors(terms)))

    # estimation ---------------------------------------------------------

    def _initial_info(self, data: pd.DataFrame) -> list[VarInfo]:
        roles = self.roles or {}
        unknown = [c for c in roles if c not in data.columns]
        if unknown:
            msg = f"Columns with roles not found in data: {', '.join(unknown)}"
            raise RecipeError(msg)
        if self.predictors is not None:
            missing = [c for c in self.predictors if c not in data.columns]
            if missing:
                msg = f"Predictors not found in data: {', '.join(missing)}"
                raise RecipeError(msg)

        info: list[VarInfo] = []
        for column in data.columns:
            if column == self.outcome:
                role = OUTCOME
            elif column in roles:
                role = roles[column]
            elif self.predictors is None or column in self.predictors:
                role = PREDICTOR
            else:
                continue
            info.append(VarInfo(column, infer_type(data[column]), role))

        if not any(v.role == PREDICTOR for v in info):
            msg = "Recipe has no predictors"
            raise RecipeError(msg)
        return info

    def fit(self, X: pd.DataFrame, y: Any = None) -> "Recipe":
        """
        Estimate all steps on training data (prep).

        Args:
            X: Training data. May or may not contain the outcome column.
            y: Ignored; present for scikit-learn compatibility.

        Returns:
            The fitted recipe.
        """
        if not isinstance(X, pd.DataFrame):
            msg = f"Recipes need a DataFrame, got {type(X).__name__}"
            raise RecipeError(msg)

        info = self._initial_info(X)
        template = [v.variable for v in info]
        current = X[template]

        fitted_steps: list[Step] = []
        for position, step in enumerate(self.steps, start=1):
            fitted = copy.deepcopy(step)
            if not fitted.id:
                fitted.id = f"{fitted.kind}_{position:02d}"
            fitted.fit(current, info)
            current = fitted.bake(current)
            info = sync_info(info, current)
            fitted_steps.append(fitted)
            log.debug(
                "Trained step",
                step=fitted.id,
                columns=fitted.columns_,
                n_columns=len(current.columns),
            )

        self.steps_ = fitted_steps
        self.template_ = template
        self.var_info_ = info
        self.predictors_ = [v.variable for v in info if v.role == PREDICTOR]
        self.nominal_levels_ = {
            v.variable: training_levels(current[v.variable])
            for v in info
            if v.role == PREDICTOR and v.type == NOMINAL
        }

        log.info(
            "Prepped recipe",
            rows=len(X),
            steps=len(fitted_steps),
            predictors=len(self.predictors_),
        )
        return self

    def prep(self, data: pd.DataFrame) -> "Recipe":
        """Return a fitted copy, leaving this recipe untouched."""
        return clone(self).fit(data)

    def _check_fitted(self) -> None:
        if not hasattr(self, "steps_"):
            msg = "Recipe has not been prepped; call prep() or fit() first"
            raise RecipeError(msg)

    def bake(self, new_data: pd.DataFrame) -> pd.DataFrame:
        """
        Apply the trained steps to new data.

        Returns every retained column (outcome when present, ID columns
        and predictors).
        """
        self._check_fitted()
        columns = [
            c for c in self.template_ if c != self.outcome or c in new_data.columns
        ]
        missing = [c for c in columns if c not in new_data.columns]
        if missing:
            msg = f"Columns missing from new data: {', '.join(missing)}"
            raise RecipeError(msg)

        current = new_data[columns]
        for step in self.steps_:
            current = step.bake(current)

        if (
            self.outcome is not None
            and self.outcome in new_data.columns
            and self.outcome not in current.columns
        ):
            current = current.assign(**{self.outcome: new_data[self.outcome]})
        return current

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        """
        Baked predictor matrix, ready for an estimator.

        Date predictors become days since 1970-01-01 and nominal predictors
        left without indicator columns become integer codes of their
        training levels (unseen levels are -1).
        """
        baked = self.bake(X)
        matrix = baked[self.predictors_].copy()
        for column in matrix.columns:
            series = matrix[column]
            if pd.api.types.is_datetime64_any_dtype(series):
                matrix[column] = (series - EPOCH).dt.days.astype("float64")
            elif column in self.nominal_levels_:
                levels = self.nominal_levels_[column]
                codes = pd.Categorical(series, categories=levels).codes
                matrix[column] = codes.astype("int64")
        return matrix

    def get_feature_names_out(self, input_features: Any = None) -> np.ndarray:
        """Names of the predictor columns produced by transform()."""
        self._check_fitted()
        return np.asarray(self.predictors_, dtype=object)

    # inspection ---------------------------------------------------------

    def summary(self) -> pd.DataFrame:
        """Variables of the prepped recipe with their type, role and source."""
        self._check_fitted()
        return pd.DataFrame(
            [
                {"variable": v.variable, "type": v.type, "role": v.role, "source": v.source}
                for v in self.var_info_
            ]
        )

    def tidy(self) -> pd.DataFrame:
        """One row per step."""
        steps = self.steps_ if hasattr(self, "steps_") else list(self.steps)
        return pd.DataFrame(
            [
                {
                    "number": number,
                    "operation": "step",
                    "type": step.kind,
                    "trained": step.trained,
                    "terms": step.describe(),
                    "id": step.id,
                }
                for number, step in enumerate(steps, start=1)
            ],
            columns=["number", "operation", "type", "trained", "terms", "id"],
        )


def recipe(formula: str, data: pd.DataFrame | None = None) -> Recipe:
    """
    Start a recipe from a formula.

    When data is given, the formula's columns are checked against it.
    """
    rec = Recipe.from_formula(formula)
    if data is not None:
        rec._initial_info(data)
    return rec
