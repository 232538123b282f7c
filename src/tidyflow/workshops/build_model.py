"""
Build a model: sea urchin growth.

Fits width ~ initial_volume * food_regime by least squares, reports the
coefficients, predicts mean width with 95% intervals for new urchins of
initial volume 20 ml under every feeding regime, and repeats the fit
with a Bayesian linear model.
"""

from dataclasses import dataclass
from typing import Any, ClassVar

import pandas as pd

from tidyflow.config import WorkshopConfig
from tidyflow.evaluation.metrics import RegressionMetrics, compute_metrics
from tidyflow.modeling.linear import CONF_INT, BayesianFit, LinearFit, fit_bayesian, fit_linear
from tidyflow.schemas.urchins import FOOD_REGIMES
from tidyflow.utils.logging import get_logger
from tidyflow.workshops.base import WorkshopResult

log = get_logger(__name__)

FORMULA = "width ~ initial_volume * food_regime"
NEW_VOLUME = 20.0


def new_points(initial_volume: float = NEW_VOLUME) -> pd.DataFrame:
    """One urchin per feeding regime, all with the same initial volume."""
    return pd.DataFrame(
        {
            "initial_volume": [initial_volume] * len(FOOD_REGIMES),
            "food_regime": pd.Categorical(FOOD_REGIMES, categories=FOOD_REGIMES),
        }
    )


def _with_intervals(fit: LinearFit | BayesianFit, points: pd.DataFrame) -> pd.DataFrame:
    return pd.concat(
        [points, fit.predict(points), fit.predict(points, interval=CONF_INT)], axis=1
    )


@dataclass
class BuildModelResult(WorkshopResult):
    """
    Results of the urchin models.

    Attributes:
        lm_fit: Least squares fit.
        lm_coefs: Least squares coefficient table.
        lm_predictions: New points with mean and confidence bounds.
        bayes_fit: Bayesian fit.
        bayes_coefs: Posterior coefficient table.
        bayes_predictions: New points with posterior mean and credible bounds.
        fit_metrics: In-sample fit of the least squares model.
        prior_scale: Prior scale used for the Bayesian fit.
    """

    lm_fit: LinearFit
    lm_coefs: pd.DataFrame
    lm_predictions: pd.DataFrame
    bayes_fit: BayesianFit
    bayes_coefs: pd.DataFrame
    bayes_predictions: pd.DataFrame
    fit_metrics: RegressionMetrics
    prior_scale: float

    name: ClassVar[str] = "build-model"

    def params(self) -> dict[str, Any]:
        return {"formula": FORMULA, "prior_scale": self.prior_scale}

    def metrics(self) -> dict[str, float]:
        glance = self.lm_fit.glance().iloc[0]
        return {
            "r_squared": float(glance["r_squared"]),
            "sigma": float(glance["sigma"]),
            "rmse": self.fit_metrics.rmse,
            "bayes_sigma": float(self.bayes_fit.glance().iloc[0]["sigma"]),
        }

    def tables(self) -> dict[str, pd.DataFrame]:
        return {
            "lm_coefs": self.lm_coefs,
            "lm_predictions": self.lm_predictions,
            "bayes_coefs": self.bayes_coefs,
            "bayes_predictions": self.bayes_predictions,
        }


def run_build_model(config: WorkshopConfig, urchins: pd.DataFrame) -> BuildModelResult:
    """
    Fit and compare the urchin growth models.

    Args:
        config: Workshop configuration.
        urchins: Prepared urchin table (food_regime, initial_volume, width).
    """
    log.info("Running build-model workshop", rows=len(urchins))

    lm_fit = fit_linear(FORMULA, urchins)
    points = new_points()
    lm_predictions = _with_intervals(lm_fit, points)

    prior_scale = config.models.prior_scale
    bayes_fit = fit_bayesian(FORMULA, urchins, prior_scale=prior_scale)
    bayes_predictions = _with_intervals(bayes_fit, points)

    fit_metrics = compute_metrics(urchins["width"], lm_fit.predict(urchins)["pred"])
    log.info("Least squares fit", metrics=str(fit_metrics))

    return BuildModelResult(
        lm_fit=lm_fit,
        lm_coefs=lm_fit.tidy(),
        lm_predictions=lm_predictions,
        bayes_fit=bayes_fit,
        bayes_coefs=bayes_fit.tidy(),
        bayes_predictions=bayes_predictions,
        fit_metrics=fit_metrics,
        prior_scale=prior_scale,
    )
