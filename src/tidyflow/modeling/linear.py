"""
Linear models with inference, specified by formulas.

fit_linear() fits ordinary least squares with statsmodels and patsy
formulas such as "width ~ initial_volume * food_regime". fit_bayesian()
refits the same design matrix with a Bayesian linear model and reports
posterior summaries. Both return tidy coefficient tables and predictions
with intervals for the mean response.
"""

from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
import patsy
import statsmodels.formula.api as smf
from scipy import stats

from tidyflow.modeling.models import bayesian_reg
from tidyflow.utils.logging import get_logger

log = get_logger(__name__)

CONF_INT = "conf_int"


def _check_interval(interval: str | None, level: float) -> None:
    if interval not in (None, CONF_INT):
        msg = f"Unknown interval '{interval}'. Use None or '{CONF_INT}'"
        raise ValueError(msg)
    if not 0.0 < level < 1.0:
        msg = f"level must be between 0 and 1, got {level}"
        raise ValueError(msg)


@dataclass
class LinearFit:
    """
    Least squares fit.

    Attributes:
        formula: Model formula.
        results: statsmodels regression results.
    """

    formula: str
    results: Any

    def tidy(self, conf_int: bool = False, level: float = 0.95) -> pd.DataFrame:
        """Coefficient table: term, estimate, std_error, statistic, p_value."""
        res = self.results
        table = pd.DataFrame(
            {
                "term": res.params.index,
                "estimate": res.params.to_numpy(),
                "std_error": res.bse.to_numpy(),
                "statistic": res.tvalues.to_numpy(),
                "p_value": res.pvalues.to_numpy(),
            }
        )
        if conf_int:
            bounds = res.conf_int(alpha=1.0 - level)
            table["conf_low"] = bounds.iloc[:, 0].to_numpy()
            table["conf_high"] = bounds.iloc[:, 1].to_numpy()
        return table

    def glance(self) -> pd.DataFrame:
        """One-row model summary."""
        res = self.results
        return pd.DataFrame(
            [
                {
                    "r_squared": res.rsquared,
                    "adj_r_squared": res.rsquared_adj,
                    "sigma": float(np.sqrt(res.scale)),
                    "statistic": res.fvalue,
                    "p_value": res.f_pvalue,
                    "df": res.df_model,
                    "log_lik": res.llf,
                    "aic": res.aic,
                    "bic": res.bic,
                    "nobs": int(res.nobs),
                    "df_residual": res.df_resid,
                }
            ]
        )

    def predict(
        self,
        new_data: pd.DataFrame,
        interval: str | None = None,
        level: float = 0.95,
    ) -> pd.DataFrame:
        """
        Predict the mean response.

        Args:
            new_data: Rows to predict, with the formula's predictors.
            interval: None for point predictions ("pred"), or "conf_int"
                for confidence bounds ("pred_lower", "pred_upper").
            level: Confidence level.
        """
        _check_interval(interval, level)
        frame = self.results.get_prediction(new_data).summary_frame(alpha=1.0 - level)
        if interval is None:
            return pd.DataFrame({"pred": frame["mean"].to_numpy()}, index=new_data.index)
        return pd.DataFrame(
            {
                "pred_lower": frame["mean_ci_lower"].to_numpy(),
                "pred_upper": frame["mean_ci_upper"].to_numpy(),
            },
            index=new_data.index,
        )


def fit_linear(formula: str, data: pd.DataFrame) -> LinearFit:
    """Fit ordinary least squares from a formula."""
    results = smf.ols(formula, data=data).fit()
    log.info(
        "Fitted linear model",
        formula=formula,
        nobs=int(results.nobs),
        r_squared=round(float(results.rsquared), 4),
    )
    return LinearFit(formula=formula, results=results)


@dataclass
class BayesianFit:
    """
    Bayesian linear fit on a formula's design matrix.

    Attributes:
        formula: Model formula.
        design_info: patsy design of the predictors, reused for new data.
        estimator: Fitted BayesianRidge (no separate intercept; the
            design matrix carries it).
        nobs: Number of training rows.
    """

    formula: str
    design_info: Any
    estimator: Any
    nobs: int = 0

    @property
    def terms(self) -> list[str]:
        return list(self.design_info.column_names)

    def tidy(self) -> pd.DataFrame:
        """Posterior means and standard deviations of the coefficients."""
        return pd.DataFrame(
            {
                "term": self.terms,
                "estimate": self.estimator.coef_,
                "std_error": np.sqrt(np.diag(self.estimator.sigma_)),
            }
        )

    def glance(self) -> pd.DataFrame:
        """One-row summary of the estimated precisions."""
        est = self.estimator
        return pd.DataFrame(
            [
                {
                    "sigma": float(1.0 / np.sqrt(est.alpha_)),
                    "noise_precision": float(est.alpha_),
                    "weight_precision": float(est.lambda_),
                    "n_iter": int(est.n_iter_),
                    "nobs": int(self.nobs),
                }
            ]
        )

    def design(self, new_data: pd.DataFrame) -> pd.DataFrame:
        """Design matrix of new data."""
        (matrix,) = patsy.build_design_matrices(
            [self.design_info], new_data, return_type="dataframe"
        )
        return matrix

    def predict(
        self,
        new_data: pd.DataFrame,
        interval: str | None = None,
        level: float = 0.95,
    ) -> pd.DataFrame:
        """
        Posterior mean predictions, optionally with credible intervals
        for the mean response.
        """
        _check_interval(interval, level)
        X = self.design(new_data).to_numpy()
        mean = X @ self.estimator.coef_
        if interval is None:
            return pd.DataFrame({"pred": mean}, index=new_data.index)

        sd = np.sqrt(np.einsum("ij,jk,ik->i", X, self.estimator.sigma_, X))
        z = stats.norm.ppf(0.5 + level / 2.0)
        return pd.DataFrame(
            {"pred_lower": mean - z * sd, "pred_upper": mean + z * sd},
            index=new_data.index,
        )


def fit_bayesian(
    formula: str, data: pd.DataFrame, prior_scale: float = 2.5
) -> BayesianFit:
    """
    Fit a Bayesian linear model from a formula.

    Args:
        formula: patsy formula.
        data: Training data.
        prior_scale: Prior standard deviation of the coefficients. The
            weight precision stays at 1 / prior_scale**2; only the noise
            precision is estimated from the data.
    """
    y, X = patsy.dmatrices(formula, data, return_type="dataframe")
    estimator = (
        bayesian_reg(prior_scale=prior_scale)
        .set_engine("sklearn", fit_intercept=False, compute_score=True)
        .build()
    )
    estimator.fit(X, y.iloc[:, 0])

    fit = BayesianFit(
        formula=formula,
        design_info=X.design_info,
        estimator=estimator,
        nobs=len(X),
    )
    log.info(
        "Fitted Bayesian model",
        formula=formula,
        nobs=len(X),
        prior_scale=prior_scale,
        n_iter=int(estimator.n_iter_),
    )
    return fit
