"""
tidyflow: recipes, workflows, resampling and tuning on top of scikit-learn.

This package expresses a tidy modelling vocabulary (recipes, model
specifications, workflows, resamples, tuning grids and metric collectors)
with scikit-learn and statsmodels, and ships five workshop walkthroughs
that sequence those pieces end to end.
"""

from importlib.metadata import version

__version__ = version("tidyflow")

__all__ = ["__version__"]
