"""Tests for model specifications, the engine registry and wrappers."""

import numpy as np
import pandas as pd
import pytest
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import BayesianRidge, ElasticNet, LinearRegression, LogisticRegression
from sklearn.tree import DecisionTreeClassifier

from tidyflow.errors import ModelSpecError
from tidyflow.modeling import (
    bayesian_reg,
    decision_tree,
    get_model,
    linear_reg,
    list_models,
    logistic_reg,
    rand_forest,
    tune,
)
from tidyflow.modeling.estimators import PenalizedLogisticRegression, StatsmodelsOLS


class TestModelSpec:
    """Tests for ModelSpec construction and updates."""

    def test_defaults(self) -> None:
        spec = linear_reg()
        assert spec.kind == "linear_reg"
        assert spec.mode == "regression"
        assert spec.engine == "sklearn"
        assert spec.args == {}

    def test_none_arguments_dropped(self) -> None:
        spec = rand_forest(trees=100)
        assert spec.args == {"trees": 100}

    def test_specs_are_immutable(self) -> None:
        spec = rand_forest()
        updated = spec.set_mode("classification")
        assert spec.mode == "unknown"
        assert updated.mode == "classification"

    def test_unsupported_mode(self) -> None:
        with pytest.raises(ModelSpecError, match="does not support"):
            linear_reg().set_mode("classification")

    def test_unknown_argument(self) -> None:
        with pytest.raises(ModelSpecError, match="Unknown arguments"):
            rand_forest().set_args(depth=3)

    def test_unknown_engine(self) -> None:
        with pytest.raises(KeyError, match="Available"):
            rand_forest().set_engine("ranger")

    def test_engine_args_merged(self) -> None:
        spec = rand_forest().set_engine("sklearn", max_depth=3).set_engine(
            "sklearn", importance="impurity"
        )
        assert spec.engine_args == {"max_depth": 3, "importance": "impurity"}


class TestTuning:
    """Tests for tune() placeholders."""

    def test_tunable(self) -> None:
        spec = decision_tree(cost_complexity=tune(), tree_depth=tune(), min_n=5)
        assert spec.tunable() == ["cost_complexity", "tree_depth"]
        assert repr(tune()) == "tune()"
        assert repr(tune("depth")) == 'tune("depth")'

    def test_build_requires_finalize(self) -> None:
        spec = decision_tree(tree_depth=tune()).set_mode("classification")
        with pytest.raises(ModelSpecError, match="finalize"):
            spec.build()

    def test_finalize(self) -> None:
        spec = decision_tree(cost_complexity=tune(), tree_depth=tune()).set_mode(
            "classification"
        )
        final = spec.finalize({"cost_complexity": np.float64(0.01), "tree_depth": np.int64(4)})
        assert final.tunable() == []
        assert isinstance(final.args["tree_depth"], int)

    def test_finalize_missing_value(self) -> None:
        spec = decision_tree(cost_complexity=tune(), tree_depth=tune())
        with pytest.raises(ModelSpecError, match="No values"):
            spec.finalize({"tree_depth": 3})


class TestBuild:
    """Tests for translating specifications to estimators."""

    def test_mode_required(self) -> None:
        with pytest.raises(ModelSpecError, match="mode"):
            rand_forest().build()

    def test_linear_regression(self) -> None:
        assert isinstance(linear_reg().build(), LinearRegression)
        assert isinstance(linear_reg(penalty=0.1, mixture=0.5).build(), ElasticNet)

    def test_statsmodels_engine(self) -> None:
        assert isinstance(linear_reg().set_engine("statsmodels").build(), StatsmodelsOLS)

    def test_logistic_unpenalized(self) -> None:
        estimator = logistic_reg().build()
        assert isinstance(estimator, LogisticRegression)
        assert estimator.C == np.inf

    def test_logistic_glmnet(self) -> None:
        estimator = logistic_reg(penalty=0.01, mixture=1).set_engine("glmnet").build()
        assert isinstance(estimator, PenalizedLogisticRegression)
        assert estimator.penalty == 0.01

    def test_glmnet_needs_penalty(self) -> None:
        with pytest.raises(ModelSpecError, match="penalty"):
            logistic_reg().set_engine("glmnet").build()

    def test_decision_tree_arguments(self) -> None:
        estimator = (
            decision_tree(cost_complexity=0.001, tree_depth=4, min_n=10)
            .set_mode("classification")
            .build()
        )
        assert isinstance(estimator, DecisionTreeClassifier)
        assert estimator.ccp_alpha == 0.001
        assert estimator.max_depth == 4
        assert estimator.min_samples_split == 10

    def test_random_forest_arguments(self) -> None:
        estimator = (
            rand_forest(mtry=3, trees=50, min_n=7)
            .set_mode("classification")
            .build(random_state=234)
        )
        assert isinstance(estimator, RandomForestClassifier)
        assert estimator.n_estimators == 50
        assert estimator.max_features == 3
        assert estimator.min_samples_split == 7
        assert estimator.random_state == 234

    def test_random_forest_importance(self) -> None:
        spec = rand_forest().set_engine("sklearn", importance="permutation").set_mode(
            "regression"
        )
        with pytest.raises(ModelSpecError, match="importance"):
            spec.build()

    def test_engine_random_state_wins(self) -> None:
        estimator = (
            rand_forest()
            .set_engine("sklearn", random_state=1)
            .set_mode("regression")
            .build(random_state=99)
        )
        assert estimator.random_state == 1

    def test_bayesian_prior(self) -> None:
        estimator = bayesian_reg(prior_scale=2.0).build()
        assert isinstance(estimator, BayesianRidge)
        assert estimator.lambda_init == pytest.approx(0.25)
        # Gamma hyperprior centred on the prior precision
        assert estimator.lambda_1 / estimator.lambda_2 == pytest.approx(0.25)

    def test_bayesian_prior_positive(self) -> None:
        with pytest.raises(ModelSpecError, match="prior_scale must be positive"):
            bayesian_reg(prior_scale=0.0).build()


class TestRegistry:
    """Tests for the engine registry."""

    def test_list_models(self) -> None:
        models = list_models()
        assert ("rand_forest", "sklearn") in models
        assert ("logistic_reg", "glmnet") in models

    def test_get_model_unknown(self) -> None:
        with pytest.raises(KeyError, match="Unknown model"):
            get_model("svm_rbf")


class TestEstimators:
    """Tests for the scikit-learn wrappers."""

    def test_statsmodels_ols(self) -> None:
        rng = np.random.default_rng(0)
        X = pd.DataFrame({"a": rng.normal(size=50), "b": rng.normal(size=50)})
        y = 1.0 + 2.0 * X["a"] - 0.5 * X["b"]
        model = StatsmodelsOLS().fit(X, y)
        assert model.intercept_ == pytest.approx(1.0)
        assert model.coef_ == pytest.approx([2.0, -0.5])
        assert model.predict(X) == pytest.approx(y.to_numpy())
        assert list(model.feature_names_in_) == ["a", "b"]

    def test_penalized_logistic(self) -> None:
        rng = np.random.default_rng(0)
        X = rng.normal(size=(200, 3))
        y = np.where(X[:, 0] + rng.normal(0, 0.3, size=200) > 0, "yes", "no")
        model = PenalizedLogisticRegression(penalty=0.001, mixture=1.0).fit(X, y)
        assert list(model.classes_) == ["no", "yes"]
        assert model.predict_proba(X).shape == (200, 2)
        assert (model.predict(X) == y).mean() > 0.8

    def test_strong_penalty_zeroes_coefficients(self) -> None:
        """A large lasso penalty removes every coefficient."""
        rng = np.random.default_rng(0)
        X = rng.normal(size=(100, 3))
        y = np.where(X[:, 0] > 0, 1, 0)
        model = PenalizedLogisticRegression(penalty=10.0, mixture=1.0).fit(X, y)
        assert np.allclose(model.coef_, 0.0)

    def test_invalid_penalty(self) -> None:
        with pytest.raises(ValueError, match="penalty"):
            PenalizedLogisticRegression(penalty=0.0).fit(np.zeros((4, 1)), [0, 1, 0, 1])
