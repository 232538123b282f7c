"""Tests for resampled evaluation and grid search."""

import pandas as pd
import pytest

from tidyflow.errors import TuningError
from tidyflow.evaluation import metric_set
from tidyflow.modeling import Workflow, decision_tree, logistic_reg, rand_forest, tune, workflow
from tidyflow.resampling import initial_split, validation_split, vfold_cv
from tidyflow.tuning import (
    finalize_workflow,
    fit_resamples,
    grid_values,
    last_fit,
    tune_grid,
)
from tidyflow.tuning.search import config_ids


@pytest.fixture
def tree_workflow() -> Workflow:
    """Decision tree workflow with two tuned arguments."""
    spec = decision_tree(cost_complexity=tune(), tree_depth=tune()).set_mode("classification")
    return workflow().add_formula("class ~ .").add_model(spec)


@pytest.fixture
def tree_grid() -> pd.DataFrame:
    return pd.DataFrame(
        {"cost_complexity": [1e-4, 1e-4, 0.1], "tree_depth": [1, 4, 4]}
    )


def test_config_ids() -> None:
    assert config_ids(3) == ["Model01", "Model02", "Model03"]
    assert config_ids(120)[-1] == "Model120"


class TestFitResamples:
    """Tests for fit_resamples."""

    def test_summary(self, cells: pd.DataFrame) -> None:
        wf = workflow().add_formula("class ~ .").add_model(logistic_reg())
        folds = vfold_cv(cells, v=3, seed=1)
        results = fit_resamples(wf, folds)

        summary = results.collect_metrics()
        assert list(summary.columns) == ["metric", "estimator", "mean", "n", "std_err", "config"]
        assert set(summary["metric"]) == {"roc_auc", "accuracy"}
        assert (summary["n"] == 3).all()
        assert (summary["std_err"] >= 0).all()

    def test_per_split(self, cells: pd.DataFrame) -> None:
        wf = workflow().add_formula("class ~ .").add_model(logistic_reg())
        results = fit_resamples(
            wf, vfold_cv(cells, v=3, seed=1), metrics=metric_set("accuracy")
        )
        per_split = results.collect_metrics(summarize=False)
        assert len(per_split) == 3
        assert list(per_split["id"]) == ["Fold01", "Fold02", "Fold03"]
        summary = results.collect_metrics()
        assert summary["mean"].iloc[0] == pytest.approx(per_split["estimate"].mean())

    def test_saved_predictions(self, cells: pd.DataFrame) -> None:
        """Every row gets exactly one out-of-sample prediction."""
        wf = workflow().add_formula("class ~ .").add_model(logistic_reg())
        results = fit_resamples(wf, vfold_cv(cells, v=3, seed=1), save_pred=True)
        predictions = results.collect_predictions()
        assert sorted(predictions["row"]) == list(range(len(cells)))
        assert {"class", "pred_class", "pred_PS", "pred_WS"} <= set(predictions.columns)

    def test_predictions_not_saved(self, cells: pd.DataFrame) -> None:
        wf = workflow().add_formula("class ~ .").add_model(logistic_reg())
        results = fit_resamples(wf, vfold_cv(cells, v=3, seed=1))
        with pytest.raises(TuningError, match="save_pred"):
            results.collect_predictions()

    def test_rejects_tunable(self, cells: pd.DataFrame, tree_workflow) -> None:
        with pytest.raises(TuningError, match="tune_grid"):
            fit_resamples(tree_workflow, vfold_cv(cells, v=3, seed=1))

    def test_parallel_matches_serial(self, cells: pd.DataFrame) -> None:
        wf = workflow().add_formula("class ~ .").add_model(
            rand_forest(trees=10).set_mode("classification")
        )
        folds = vfold_cv(cells, v=3, seed=1)
        serial = fit_resamples(wf, folds, seed=3).collect_metrics()
        parallel = fit_resamples(wf, folds, seed=3, n_jobs=2).collect_metrics()
        pd.testing.assert_frame_equal(serial, parallel)


class TestTuneGrid:
    """Tests for tune_grid and candidate selection."""

    def test_metrics_per_candidate(
        self, cells: pd.DataFrame, tree_workflow, tree_grid: pd.DataFrame
    ) -> None:
        results = tune_grid(
            tree_workflow, vfold_cv(cells, v=3, seed=1), grid=tree_grid, seed=1
        )
        summary = results.collect_metrics()
        assert len(summary) == 6
        assert list(summary.columns[:2]) == ["cost_complexity", "tree_depth"]
        assert list(summary["config"].unique()) == ["Model01", "Model02", "Model03"]

    def test_integer_parameters_keep_type(
        self, cells: pd.DataFrame, tree_workflow, tree_grid: pd.DataFrame
    ) -> None:
        """A grid mixing float and integer columns keeps the integers."""
        results = tune_grid(
            tree_workflow, vfold_cv(cells, v=3, seed=1), grid=tree_grid, seed=1
        )
        assert pd.api.types.is_integer_dtype(results.collect_metrics()["tree_depth"])
        best = results.select_best("accuracy")
        assert pd.api.types.is_integer_dtype(best["tree_depth"])
        assert pd.api.types.is_float_dtype(best["cost_complexity"])

    def test_show_and_select_best(
        self, cells: pd.DataFrame, tree_workflow, tree_grid: pd.DataFrame
    ) -> None:
        results = tune_grid(
            tree_workflow, vfold_cv(cells, v=3, seed=1), grid=tree_grid, seed=1
        )
        top = results.show_best("accuracy", n=2)
        assert len(top) == 2
        assert top["mean"].iloc[0] >= top["mean"].iloc[1]

        best = results.select_best("accuracy")
        assert list(best.columns) == ["cost_complexity", "tree_depth", "config"]
        assert best["config"].iloc[0] == top["config"].iloc[0]

    def test_select_by_one_std_err(
        self, cells: pd.DataFrame, tree_workflow, tree_grid: pd.DataFrame
    ) -> None:
        """The simplest candidate within one standard error is chosen."""
        results = tune_grid(
            tree_workflow, vfold_cv(cells, v=3, seed=1), grid=tree_grid, seed=1
        )
        chosen = results.select_by_one_std_err("tree_depth", "-cost_complexity", metric="accuracy")
        best = results.select_best("accuracy")
        assert chosen["tree_depth"].iloc[0] <= best["tree_depth"].iloc[0]

    def test_unknown_metric(
        self, cells: pd.DataFrame, tree_workflow, tree_grid: pd.DataFrame
    ) -> None:
        results = tune_grid(
            tree_workflow,
            vfold_cv(cells, v=3, seed=1),
            grid=tree_grid,
            metrics=metric_set("accuracy"),
        )
        with pytest.raises(TuningError, match="not computed"):
            results.select_best("roc_auc")

    def test_grid_must_match(self, cells: pd.DataFrame, tree_workflow) -> None:
        with pytest.raises(TuningError, match="Grid does not match"):
            tune_grid(
                tree_workflow,
                vfold_cv(cells, v=3, seed=1),
                grid=pd.DataFrame({"tree_depth": [2, 3]}),
            )

    def test_nothing_to_tune(self, cells: pd.DataFrame) -> None:
        wf = workflow().add_formula("class ~ .").add_model(logistic_reg())
        with pytest.raises(TuningError, match="no arguments"):
            tune_grid(wf, vfold_cv(cells, v=3, seed=1), grid=pd.DataFrame({"penalty": [0.1]}))

    def test_generated_grid_finalizes_mtry(self, cells: pd.DataFrame) -> None:
        """Generated grids bound mtry by the number of predictors."""
        spec = rand_forest(mtry=tune(), min_n=tune(), trees=5).set_mode("classification")
        wf = workflow().add_formula("class ~ .").add_model(spec)
        val = validation_split(cells, prop=0.8, seed=2)
        results = tune_grid(wf, val, grid=4, seed=3)
        summary = results.collect_metrics()
        assert summary["mtry"].between(1, 6).all()
        assert len(results.collect_metrics(summarize=False)["id"].unique()) == 1

    def test_candidate_predictions(self, hotels: pd.DataFrame) -> None:
        spec = logistic_reg(penalty=tune(), mixture=1).set_engine("glmnet")
        wf = workflow().add_formula("children ~ lead_time + average_daily_rate").add_model(spec)
        val = validation_split(hotels, prop=0.8, strata="children", seed=2)
        grid = grid_values("penalty", [1e-4, 1e-2])
        results = tune_grid(wf, val, grid=grid, metrics=metric_set("roc_auc"), save_pred=True)

        chosen = results.collect_predictions({"penalty": 1e-2})
        assert len(chosen) == 80
        assert (chosen["penalty"] == 1e-2).all()


class TestLastFit:
    """Tests for finalizing and last_fit."""

    def test_last_fit(self, cells: pd.DataFrame, tree_workflow) -> None:
        split = initial_split(cells, strata="class", seed=123)
        final = finalize_workflow(tree_workflow, {"cost_complexity": 1e-4, "tree_depth": 3})
        result = last_fit(final, split, seed=1)

        metrics = result.collect_metrics()
        assert list(metrics["metric"]) == ["roc_auc", "accuracy"]
        predictions = result.collect_predictions()
        assert len(predictions) == len(split.testing())
        assert result.extract_workflow().extract_fit().max_depth == 3

    def test_requires_finalized(self, cells: pd.DataFrame, tree_workflow) -> None:
        split = initial_split(cells, seed=123)
        with pytest.raises(TuningError, match="Finalize"):
            last_fit(tree_workflow, split)
