"""
Workshop runners.

Each runner takes the configuration and prepared data, sequences the
modelling calls of one walkthrough and returns a result object.
"""

from tidyflow.workshops.base import WorkshopResult, export_tables
from tidyflow.workshops.build_model import BuildModelResult, run_build_model
from tidyflow.workshops.case_study import CaseStudyResult, run_case_study
from tidyflow.workshops.evaluate import EvaluateResult, run_evaluate
from tidyflow.workshops.preprocess import PreprocessResult, run_preprocess
from tidyflow.workshops.tune import TuneResult, run_tune

__all__ = [
    "BuildModelResult",
    "CaseStudyResult",
    "EvaluateResult",
    "PreprocessResult",
    "TuneResult",
    "WorkshopResult",
    "export_tables",
    "run_build_model",
    "run_case_study",
    "run_evaluate",
    "run_preprocess",
    "run_tune",
]
