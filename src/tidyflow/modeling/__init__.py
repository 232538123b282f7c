"""
Modeling layer: model specifications, linear inference and workflows.

Model specifications are translated into scikit-learn estimators through
an engine registry; workflows pair them with recipes.
"""

from tidyflow.modeling.linear import BayesianFit, LinearFit, fit_bayesian, fit_linear
from tidyflow.modeling.models import (
    MODEL_REGISTRY,
    ModelSpec,
    TuneToken,
    bayesian_reg,
    decision_tree,
    get_model,
    linear_reg,
    list_models,
    logistic_reg,
    rand_forest,
    tune,
)
from tidyflow.modeling.workflow import (
    FittedWorkflow,
    Workflow,
    load_workflow,
    save_workflow,
    workflow,
)

__all__ = [
    "MODEL_REGISTRY",
    "BayesianFit",
    "FittedWorkflow",
    "LinearFit",
    "ModelSpec",
    "TuneToken",
    "Workflow",
    "bayesian_reg",
    "decision_tree",
    "fit_bayesian",
    "fit_linear",
    "get_model",
    "linear_reg",
    "list_models",
    "load_workflow",
    "logistic_reg",
    "rand_forest",
    "save_workflow",
    "tune",
    "workflow",
]
