"""
Data splitting and resampling (train/test, v-fold, validation set).
"""

from tidyflow.resampling.splits import (
    InitialSplit,
    Resamples,
    Split,
    initial_split,
    validation_split,
    vfold_cv,
)

__all__ = [
    "InitialSplit",
    "Resamples",
    "Split",
    "initial_split",
    "validation_split",
    "vfold_cv",
]
