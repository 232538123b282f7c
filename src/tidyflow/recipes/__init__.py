"""
Declarative preprocessing recipes.

Recipes name the outcome, give columns roles and chain steps
(date features, holiday indicators, dummy variables, zero-variance
filters, normalization) that are estimated on training data only.
"""

from tidyflow.recipes.holidays import US_HOLIDAYS, get_holiday, list_holidays
from tidyflow.recipes.recipe import Recipe, parse_formula, recipe
from tidyflow.recipes.selectors import (
    all_date_predictors,
    all_nominal_predictors,
    all_numeric_predictors,
    all_outcomes,
    all_predictors,
    has_role,
)

__all__ = [
    "US_HOLIDAYS",
    "Recipe",
    "all_date_predictors",
    "all_nominal_predictors",
    "all_numeric_predictors",
    "all_outcomes",
    "all_predictors",
    "get_holiday",
    "has_role",
    "list_holidays",
    "parse_formula",
    "recipe",
]
