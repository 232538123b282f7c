"""
Hyperparameter tuning: parameter ranges, grids and resampled search.
"""

from tidyflow.tuning.grids import (
    Parameter,
    cost_complexity,
    get_parameter,
    grid_latin_hypercube,
    grid_regular,
    grid_values,
    log10_sequence,
    min_n,
    mixture,
    mtry,
    penalty,
    tree_depth,
    trees,
)
from tidyflow.tuning.search import (
    LastFit,
    TuneResults,
    finalize_workflow,
    fit_resamples,
    last_fit,
    tune_grid,
)

__all__ = [
    "LastFit",
    "Parameter",
    "TuneResults",
    "cost_complexity",
    "finalize_workflow",
    "fit_resamples",
    "get_parameter",
    "grid_latin_hypercube",
    "grid_regular",
    "grid_values",
    "last_fit",
    "log10_sequence",
    "min_n",
    "mixture",
    "mtry",
    "penalty",
    "tree_depth",
    "trees",
    "tune_grid",
]
