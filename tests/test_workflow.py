"""Tests for workflows: fitting, prediction and persistence."""

import json
from pathlib import Path

import pandas as pd
import pytest

from tidyflow.errors import ModelSpecError
from tidyflow.modeling import (
    decision_tree,
    linear_reg,
    load_workflow,
    logistic_reg,
    rand_forest,
    save_workflow,
    tune,
    workflow,
)
from tidyflow.recipes import Recipe, all_nominal_predictors


class TestWorkflow:
    """Tests for building workflows."""

    def test_add_twice(self) -> None:
        wf = workflow().add_formula("class ~ .")
        with pytest.raises(ModelSpecError, match="already has a recipe"):
            wf.add_formula("class ~ feature_1")
        with pytest.raises(ModelSpecError, match="already has a model"):
            wf.add_model(linear_reg()).add_model(linear_reg())

    def test_update(self) -> None:
        wf = workflow().add_formula("class ~ .").add_model(linear_reg())
        updated = wf.update_model(rand_forest().set_mode("regression"))
        assert wf.model.kind == "linear_reg"
        assert updated.model.kind == "rand_forest"

    def test_outcome(self) -> None:
        assert workflow().add_formula("class ~ .").outcome == "class"
        with pytest.raises(ModelSpecError, match="outcome"):
            _ = workflow().outcome

    def test_finalize_from_table(self) -> None:
        wf = workflow().add_formula("class ~ .").add_model(
            decision_tree(cost_complexity=tune(), tree_depth=tune()).set_mode("classification")
        )
        best = pd.DataFrame({"cost_complexity": [0.001], "tree_depth": [4], "config": ["Model03"]})
        final = wf.finalize(best)
        assert final.tunable() == []
        assert final.model.args["tree_depth"] == 4

    def test_fit_without_outcome(self, cells: pd.DataFrame) -> None:
        wf = workflow().add_formula("class ~ .").add_model(logistic_reg())
        with pytest.raises(ModelSpecError, match="not found"):
            wf.fit(cells.drop(columns="class"))


class TestFittedWorkflow:
    """Tests for predictions from fitted workflows."""

    def test_classification_predictions(self, cells: pd.DataFrame) -> None:
        fitted = workflow().add_formula("class ~ .").add_model(logistic_reg()).fit(cells)
        assert fitted.levels == ["PS", "WS"]

        classes = fitted.predict(cells)
        probs = fitted.predict(cells, type="prob")
        assert list(classes.columns) == ["pred_class"]
        assert list(classes["pred_class"].cat.categories) == ["PS", "WS"]
        assert list(probs.columns) == ["pred_PS", "pred_WS"]
        assert (probs.sum(axis=1) - 1.0).abs().max() < 1e-9
        assert classes.index.equals(cells.index)

    def test_numeric_on_classifier(self, cells: pd.DataFrame) -> None:
        fitted = workflow().add_formula("class ~ .").add_model(logistic_reg()).fit(cells)
        with pytest.raises(ModelSpecError, match="regression"):
            fitted.predict(cells, type="numeric")
        with pytest.raises(ValueError, match="Unknown prediction type"):
            fitted.predict(cells, type="raw")

    def test_regression_predictions(self, urchins: pd.DataFrame) -> None:
        fitted = (
            workflow()
            .add_recipe(
                Recipe.from_formula("width ~ .").step_dummy(all_nominal_predictors())
            )
            .add_model(linear_reg())
            .fit(urchins)
        )
        preds = fitted.predict(urchins)
        assert list(preds.columns) == ["pred"]
        with pytest.raises(ModelSpecError, match="classification"):
            fitted.predict(urchins, type="class")

    def test_tidy(self, urchins: pd.DataFrame) -> None:
        fitted = (
            workflow()
            .add_recipe(
                Recipe.from_formula("width ~ .").step_dummy(all_nominal_predictors())
            )
            .add_model(linear_reg())
            .fit(urchins)
        )
        table = fitted.tidy()
        assert list(table["term"]) == [
            "(Intercept)",
            "initial_volume",
            "food_regime_Low",
            "food_regime_High",
        ]

    def test_augment(self, cells: pd.DataFrame) -> None:
        fitted = workflow().add_formula("class ~ .").add_model(logistic_reg()).fit(cells)
        augmented = fitted.augment(cells)
        assert {"pred_class", "pred_PS", "pred_WS"} <= set(augmented.columns)
        assert len(augmented) == len(cells)

    def test_importance(self, cells: pd.DataFrame) -> None:
        fitted = (
            workflow()
            .add_formula("class ~ .")
            .add_model(rand_forest(trees=20).set_mode("classification"))
            .fit(cells, random_state=1)
        )
        importance = fitted.importance()
        assert list(importance.columns) == ["variable", "importance"]
        assert importance["importance"].is_monotonic_decreasing
        assert importance["variable"].iloc[0] in ("feature_1", "feature_2")

    def test_importance_needs_trees(self, cells: pd.DataFrame) -> None:
        fitted = workflow().add_formula("class ~ .").add_model(logistic_reg()).fit(cells)
        with pytest.raises(ModelSpecError, match="importance"):
            fitted.importance()

    def test_seeded_fits_repeat(self, cells: pd.DataFrame) -> None:
        wf = workflow().add_formula("class ~ .").add_model(
            rand_forest(trees=10).set_mode("classification")
        )
        first = wf.fit(cells, random_state=7).predict(cells, type="prob")
        second = wf.fit(cells, random_state=7).predict(cells, type="prob")
        pd.testing.assert_frame_equal(first, second)


class TestPersistence:
    """Tests for saving and loading fitted workflows."""

    def test_round_trip(self, cells: pd.DataFrame, tmp_path: Path) -> None:
        fitted = workflow().add_formula("class ~ .").add_model(logistic_reg()).fit(cells)
        workflow_path, metadata_path = save_workflow(fitted, tmp_path / "models" / "cells")

        assert workflow_path.name == "cells.workflow.joblib"
        metadata = json.loads(metadata_path.read_text(encoding="utf-8"))
        assert metadata["model"] == "logistic_reg"
        assert metadata["levels"] == ["PS", "WS"]

        loaded = load_workflow(tmp_path / "models" / "cells")
        pd.testing.assert_frame_equal(
            loaded.predict(cells, type="prob"), fitted.predict(cells, type="prob")
        )

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_workflow(tmp_path / "nothing")
