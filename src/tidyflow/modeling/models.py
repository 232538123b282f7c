"""
Model specifications and engine registry.

A ModelSpec describes a model by kind (linear_reg, rand_forest, ...),
mode and engine, with arguments named the same way for every engine.
Arguments can be marked with tune() and filled in later with finalize().
build() translates the specification into a scikit-learn estimator.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

import numpy as np
from sklearn.base import BaseEstimator
from sklearn.ensemble import RandomForestClassifier, RandomForestRegressor
from sklearn.linear_model import (
    BayesianRidge,
    ElasticNet,
    LinearRegression,
    LogisticRegression,
    Ridge,
)
from sklearn.tree import DecisionTreeClassifier, DecisionTreeRegressor

from tidyflow.errors import ModelSpecError
from tidyflow.modeling.estimators import PenalizedLogisticRegression, StatsmodelsOLS
from tidyflow.utils.logging import get_logger

log = get_logger(__name__)

REGRESSION = "regression"
CLASSIFICATION = "classification"
UNKNOWN = "unknown"


@dataclass(frozen=True)
class TuneToken:
    """Placeholder for an argument whose value is found by tuning."""

    id: str = ""

    def __repr__(self) -> str:
        return f'tune("{self.id}")' if self.id else "tune()"


def tune(id: str = "") -> TuneToken:
    """Mark a model argument for tuning."""
    return TuneToken(id)


@dataclass(frozen=True)
class ModelEngine:
    """
    How one model kind is computed by one engine.

    Attributes:
        modes: Supported modes.
        args: Main argument names accepted by set_args().
        build: Function (args, mode, engine_args) -> estimator.
        description: Short text for listings.
    """

    modes: tuple[str, ...]
    args: tuple[str, ...]
    build: Callable[[dict[str, Any], str, dict[str, Any]], BaseEstimator]
    description: str = ""


def _linear_sklearn(
    args: dict[str, Any], mode: str, engine_args: dict[str, Any]
) -> BaseEstimator:
    penalty = args.get("penalty")
    if penalty is None:
        return LinearRegression(**engine_args)
    mixture = args.get("mixture", 1.0)
    if mixture == 0:
        return Ridge(alpha=penalty, **engine_args)
    return ElasticNet(alpha=penalty, l1_ratio=mixture, **engine_args)


def _linear_statsmodels(
    args: dict[str, Any], mode: str, engine_args: dict[str, Any]
) -> BaseEstimator:
    return StatsmodelsOLS(**engine_args)


def _logistic_sklearn(
    args: dict[str, Any], mode: str, engine_args: dict[str, Any]
) -> BaseEstimator:
    penalty = args.get("penalty")
    if penalty is None:
        params = {"C": np.inf, "max_iter": 1000, **engine_args}
        return LogisticRegression(**params)
    return PenalizedLogisticRegression(
        penalty=penalty, mixture=args.get("mixture", 1.0), **engine_args
    )


def _logistic_glmnet(
    args: dict[str, Any], mode: str, engine_args: dict[str, Any]
) -> BaseEstimator:
    if args.get("penalty") is None:
        msg = "The glmnet engine needs a penalty value"
        raise ModelSpecError(msg)
    return PenalizedLogisticRegression(
        penalty=args["penalty"], mixture=args.get("mixture", 1.0), **engine_args
    )


def _decision_tree(
    args: dict[str, Any], mode: str, engine_args: dict[str, Any]
) -> BaseEstimator:
    params: dict[str, Any] = {}
    if "cost_complexity" in args:
        params["ccp_alpha"] = float(args["cost_complexity"])
    if "tree_depth" in args:
        params["max_depth"] = int(args["tree_depth"])
    if "min_n" in args:
        params["min_samples_split"] = int(args["min_n"])
    params.update(engine_args)
    if mode == CLASSIFICATION:
        return DecisionTreeClassifier(**params)
    return DecisionTreeRegressor(**params)


def _rand_forest(
    args: dict[str, Any], mode: str, engine_args: dict[str, Any]
) -> BaseEstimator:
    engine_args = dict(engine_args)
    importance = engine_args.pop("importance", "impurity")
    if importance not in ("impurity", "none"):
        msg = f"Unsupported importance '{importance}'. Use 'impurity' or 'none'"
        raise ModelSpecError(msg)

    params: dict[str, Any] = {"n_estimators": 500}
    if "trees" in args:
        params["n_estimators"] = int(args["trees"])
    if "mtry" in args:
        params["max_features"] = int(args["mtry"])
    if "min_n" in args:
        params["min_samples_split"] = int(args["min_n"])
    params.update(engine_args)
    if mode == CLASSIFICATION:
        return RandomForestClassifier(**params)
    return RandomForestRegressor(**params)


# Shape of the Gamma hyperprior that holds the weight precision at
# 1 / prior_scale**2 during evidence maximization
PRIOR_WEIGHT = 1e9


def _bayesian(
    args: dict[str, Any], mode: str, engine_args: dict[str, Any]
) -> BaseEstimator:
    params: dict[str, Any] = {}
    if "prior_scale" in args:
        prior_scale = float(args["prior_scale"])
        if prior_scale <= 0:
            msg = f"prior_scale must be positive, got {prior_scale}"
            raise ModelSpecError(msg)
        precision = 1.0 / prior_scale**2
        params.update(
            lambda_init=precision,
            lambda_1=PRIOR_WEIGHT,
            lambda_2=PRIOR_WEIGHT / precision,
        )
    params.update(engine_args)
    return BayesianRidge(**params)


# (kind, engine) -> engine definition
MODEL_REGISTRY: dict[tuple[str, str], ModelEngine] = {
    ("linear_reg", "sklearn"): ModelEngine(
        (REGRESSION,),
        ("penalty", "mixture"),
        _linear_sklearn,
        "Least squares, ridge or elastic net",
    ),
    ("linear_reg", "statsmodels"): ModelEngine(
        (REGRESSION,),
        (),
        _linear_statsmodels,
        "Ordinary least squares with full inference",
    ),
    ("logistic_reg", "sklearn"): ModelEngine(
        (CLASSIFICATION,),
        ("penalty", "mixture"),
        _logistic_sklearn,
        "Logistic regression, unpenalized unless a penalty is given",
    ),
    ("logistic_reg", "glmnet"): ModelEngine(
        (CLASSIFICATION,),
        ("penalty", "mixture"),
        _logistic_glmnet,
        "Elastic-net logistic regression (mixture=1 is the lasso)",
    ),
    ("decision_tree", "sklearn"): ModelEngine(
        (CLASSIFICATION, REGRESSION),
        ("cost_complexity", "tree_depth", "min_n"),
        _decision_tree,
        "CART decision tree",
    ),
    ("rand_forest", "sklearn"): ModelEngine(
        (CLASSIFICATION, REGRESSION),
        ("mtry", "trees", "min_n"),
        _rand_forest,
        "Random forest with impurity importance",
    ),
    ("bayesian_reg", "sklearn"): ModelEngine(
        (REGRESSION,),
        ("prior_scale",),
        _bayesian,
        "Bayesian ridge regression with Gaussian priors",
    ),
}

DEFAULT_ENGINE = "sklearn"


def get_model(kind: str, engine: str = DEFAULT_ENGINE) -> ModelEngine:
    """
    Look up an engine definition.

    Raises:
        KeyError: If the kind/engine pair is not registered.
    """
    key = (kind, engine)
    if key not in MODEL_REGISTRY:
        available = ", ".join(f"{k}/{e}" for k, e in MODEL_REGISTRY)
        msg = f"Unknown model '{kind}' with engine '{engine}'. Available: {available}"
        raise KeyError(msg)
    return MODEL_REGISTRY[key]


def list_models() -> list[tuple[str, str]]:
    """List all registered (kind, engine) pairs."""
    return list(MODEL_REGISTRY.keys())


@dataclass(frozen=True)
class ModelSpec:
    """
    Engine-independent model specification.

    Attributes:
        kind: Model kind, e.g. "rand_forest".
        mode: "regression", "classification" or "unknown".
        engine: Computational engine.
        args: Main arguments; values may be tune() placeholders.
        engine_args: Extra keyword arguments passed to the estimator.
    """

    kind: str
    mode: str = UNKNOWN
    engine: str = DEFAULT_ENGINE
    args: dict[str, Any] = field(default_factory=dict)
    engine_args: dict[str, Any] = field(default_factory=dict)

    def set_engine(self, engine: str, **engine_args: Any) -> "ModelSpec":
        """Choose the engine; extra keywords go to the estimator."""
        get_model(self.kind, engine)
        return replace(
            self, engine=engine, engine_args={**self.engine_args, **engine_args}
        )

    def set_mode(self, mode: str) -> "ModelSpec":
        """Choose regression or classification."""
        modes = get_model(self.kind, self.engine).modes
        if mode not in modes:
            msg = f"{self.kind} does not support mode '{mode}'. Available: {modes}"
            raise ModelSpecError(msg)
        return replace(self, mode=mode)

    def set_args(self, **args: Any) -> "ModelSpec":
        """Update main arguments. None removes an argument."""
        known = get_model(self.kind, self.engine).args
        unknown = [name for name in args if name not in known]
        if unknown:
            msg = f"Unknown arguments for {self.kind}: {unknown}. Available: {known}"
            raise ModelSpecError(msg)
        merged = {**self.args, **args}
        return replace(self, args={k: v for k, v in merged.items() if v is not None})

    def tunable(self) -> list[str]:
        """Names of arguments marked with tune()."""
        return [name for name, value in self.args.items() if isinstance(value, TuneToken)]

    def finalize(self, params: Mapping[str, Any]) -> "ModelSpec":
        """Replace tune() placeholders with concrete values."""
        missing = [name for name in self.tunable() if name not in params]
        if missing:
            msg = f"No values given for tuned arguments: {missing}"
            raise ModelSpecError(msg)
        args = dict(self.args)
        for name in self.tunable():
            value = params[name]
            args[name] = value.item() if isinstance(value, np.generic) else value
        return replace(self, args=args)

    def build(self, random_state: int | None = None) -> BaseEstimator:
        """
        Create the scikit-learn estimator.

        Args:
            random_state: Seed applied when the estimator accepts one and
                the engine arguments do not already set it.

        Raises:
            ModelSpecError: If arguments are still marked for tuning or the
                mode is not set.
        """
        if self.tunable():
            msg = f"Arguments still marked for tuning: {self.tunable()}; finalize first"
            raise ModelSpecError(msg)
        if self.mode == UNKNOWN:
            msg = f"Set a mode for {self.kind} with set_mode()"
            raise ModelSpecError(msg)

        engine = get_model(self.kind, self.engine)
        estimator = engine.build(dict(self.args), self.mode, dict(self.engine_args))
        if (
            random_state is not None
            and "random_state" in estimator.get_params()
            and "random_state" not in self.engine_args
        ):
            estimator.set_params(random_state=random_state)

        log.debug(
            "Built estimator",
            kind=self.kind,
            engine=self.engine,
            estimator=type(estimator).__name__,
        )
        return estimator


def linear_reg(penalty: Any = None, mixture: Any = None) -> ModelSpec:
    """Linear regression (least squares or penalized)."""
    return ModelSpec("linear_reg", REGRESSION).set_args(penalty=penalty, mixture=mixture)


def logistic_reg(penalty: Any = None, mixture: Any = None) -> ModelSpec:
    """Logistic regression for two classes."""
    return ModelSpec("logistic_reg", CLASSIFICATION).set_args(
        penalty=penalty, mixture=mixture
    )


def decision_tree(
    cost_complexity: Any = None, tree_depth: Any = None, min_n: Any = None
) -> ModelSpec:
    """Decision tree; set the mode before building."""
    return ModelSpec("decision_tree").set_args(
        cost_complexity=cost_complexity, tree_depth=tree_depth, min_n=min_n
    )


def rand_forest(mtry: Any = None, trees: Any = None, min_n: Any = None) -> ModelSpec:
    """Random forest; set the mode before building."""
    return ModelSpec("rand_forest").set_args(mtry=mtry, trees=trees, min_n=min_n)


def bayesian_reg(prior_scale: Any = None) -> ModelSpec:
    """Bayesian linear regression with Gaussian priors."""
    return ModelSpec("bayesian_reg", REGRESSION).set_args(prior_scale=prior_scale)
