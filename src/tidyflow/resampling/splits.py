"""
Data splitting and resampling.

Splits hold row positions, not copies of the data. Stratified splits
keep the outcome's class proportions in every partition; numeric strata
are binned into quartiles first.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from sklearn.model_selection import (
    KFold,
    RepeatedKFold,
    RepeatedStratifiedKFold,
    StratifiedKFold,
    train_test_split,
)

from tidyflow.utils.logging import get_logger

log = get_logger(__name__)

NUMERIC_STRATA_BINS = 4


@dataclass(frozen=True, eq=False)
class Split:
    """
    One analysis/assessment partition of a dataset.

    Attributes:
        analysis_idx: Row positions used for fitting.
        assessment_idx: Row positions used for measuring performance.
        id: Split label, e.g. "Fold03" or "validation".
    """

    analysis_idx: np.ndarray
    assessment_idx: np.ndarray
    id: str

    def analysis(self, data: pd.DataFrame) -> pd.DataFrame:
        return data.iloc[self.analysis_idx]

    def assessment(self, data: pd.DataFrame) -> pd.DataFrame:
        return data.iloc[self.assessment_idx]


@dataclass(frozen=True, eq=False)
class InitialSplit:
    """Training/testing split of a dataset."""

    data: pd.DataFrame
    split: Split

    def training(self) -> pd.DataFrame:
        return self.split.analysis(self.data)

    def testing(self) -> pd.DataFrame:
        return self.split.assessment(self.data)


@dataclass(eq=False)
class Resamples:
    """
    A set of splits over one dataset.

    Attributes:
        data: The resampled data.
        splits: Splits in order.
        kind: "vfold" or "validation".
    """

    data: pd.DataFrame
    splits: list[Split] = field(default_factory=list)
    kind: str = "vfold"

    def __len__(self) -> int:
        return len(self.splits)

    def __iter__(self) -> Iterator[Split]:
        return iter(self.splits)

    def __getitem__(self, position: int) -> Split:
        return self.splits[position]

    @property
    def ids(self) -> list[str]:
        return [split.id for split in self.splits]


def _strata_labels(data: pd.DataFrame, strata: str | None) -> np.ndarray | None:
    if strata is None:
        return None
    if strata not in data.columns:
        msg = f"Strata column '{strata}' not found in data"
        raise ValueError(msg)
    values = data[strata]
    if pd.api.types.is_numeric_dtype(values) and values.nunique() > NUMERIC_STRATA_BINS:
        values = pd.qcut(values, q=NUMERIC_STRATA_BINS, duplicates="drop")
    return values.astype(str).to_numpy()


def initial_split(
    data: pd.DataFrame,
    prop: float = 0.75,
    strata: str | None = None,
    seed: int | None = None,
) -> InitialSplit:
    """
    Split data into training and testing sets.

    Args:
        data: Data to split.
        prop: Proportion of rows for training.
        strata: Optional column to stratify on.
        seed: Random seed.
    """
    if not 0.0 < prop < 1.0:
        msg = f"prop must be between 0 and 1, got {prop}"
        raise ValueError(msg)

    positions = np.arange(len(data))
    train_idx, test_idx = train_test_split(
        positions,
        train_size=prop,
        stratify=_strata_labels(data, strata),
        random_state=seed,
    )
    split = Split(np.sort(train_idx), np.sort(test_idx), "train/test")
    log.info(
        "Split data",
        training=len(train_idx),
        testing=len(test_idx),
        strata=strata,
        seed=seed,
    )
    return InitialSplit(data=data, split=split)


def vfold_cv(
    data: pd.DataFrame,
    v: int = 10,
    repeats: int = 1,
    strata: str | None = None,
    seed: int | None = None,
) -> Resamples:
    """
    V-fold cross-validation.

    Every row is in exactly one assessment set per repeat.
    """
    if v < 2:
        msg = f"v must be at least 2, got {v}"
        raise ValueError(msg)
    if repeats < 1:
        msg = f"repeats must be at least 1, got {repeats}"
        raise ValueError(msg)

    labels = _strata_labels(data, strata)
    if repeats == 1:
        splitter = (
            StratifiedKFold(n_splits=v, shuffle=True, random_state=seed)
            if labels is not None
            else KFold(n_splits=v, shuffle=True, random_state=seed)
        )
    else:
        splitter = (
            RepeatedStratifiedKFold(n_splits=v, n_repeats=repeats, random_state=seed)
            if labels is not None
            else RepeatedKFold(n_splits=v, n_repeats=repeats, random_state=seed)
        )

    positions = np.arange(len(data))
    splits = []
    for number, (analysis_idx, assessment_idx) in enumerate(
        splitter.split(positions, labels)
    ):
        repeat, fold = divmod(number, v)
        split_id = f"Fold{fold + 1:02d}"
        if repeats > 1:
            split_id = f"Repeat{repeat + 1}_{split_id}"
        splits.append(Split(analysis_idx, assessment_idx, split_id))

    log.info("Created v-fold resamples", v=v, repeats=repeats, strata=strata, seed=seed)
    return Resamples(data=data, splits=splits, kind="vfold")


def validation_split(
    data: pd.DataFrame,
    prop: float = 0.75,
    strata: str | None = None,
    seed: int | None = None,
) -> Resamples:
    """A single analysis/assessment split, used like one resample."""
    split = initial_split(data, prop=prop, strata=strata, seed=seed).split
    validation = Split(split.analysis_idx, split.assessment_idx, "validation")
    return Resamples(data=data, splits=[validation], kind="validation")
