"""
Error types raised by the modelling layer.

- RecipeError: a recipe was specified or used incorrectly (unknown
  columns, baking before prep, wrong column types for a step).
- ModelSpecError: a model specification cannot be turned into an
  estimator (unknown engine, arguments still marked for tuning).
- TuningError: a resampling or tuning request cannot be carried out
  (empty grid, unknown metric, nothing to tune).
"""


class TidyflowError(Exception):
    """Base class for all tidyflow errors."""


class RecipeError(TidyflowError):
    """Raised for invalid recipe specifications or usage."""


class ModelSpecError(TidyflowError):
    """Raised for invalid model specifications."""


class TuningError(TidyflowError):
    """Raised for invalid resampling or tuning requests."""
