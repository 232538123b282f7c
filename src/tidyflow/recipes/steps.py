"""
Preprocessing steps.

A step is declared with column selectors and options. When a recipe is
prepped, each step is copied, estimated on the training data in order
(fit), and then applied to any data (bake). Estimated quantities live
in attributes ending with an underscore.
"""

import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, replace

import numpy as np
import pandas as pd

from tidyflow.errors import RecipeError
from tidyflow.recipes.holidays import DEFAULT_HOLIDAYS, get_holiday, holiday_dates
from tidyflow.recipes.selectors import (
    DATE,
    NOMINAL,
    NUMERIC,
    PREDICTOR,
    ColumnSelector,
    Selector,
    VarInfo,
    infer_type,
    resolve,
)
from tidyflow.utils.logging import get_logger

log = get_logger(__name__)

DOW_LEVELS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
MONTH_LEVELS = [
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
]
DATE_FEATURES = ("dow", "month", "year", "doy", "week", "quarter", "decimal")


def sync_info(info: Sequence[VarInfo], baked: pd.DataFrame) -> list[VarInfo]:
    """
    Rebuild variable information after a step.

    Columns that disappeared are dropped, new columns become derived
    predictors, and types of kept columns are refreshed.
    """
    known = {v.variable: v for v in info}
    synced: list[VarInfo] = []
    for column in baked.columns:
        kind = infer_type(baked[column])
        if column in known:
            synced.append(replace(known[column], type=kind))
        else:
            synced.append(VarInfo(column, kind, PREDICTOR, "derived"))
    return synced


def clean_level(level: object) -> str:
    """Make a factor level usable inside a column name."""
    text = re.sub(r"\W+", "_", str(level)).strip("_")
    return text or "blank"


@dataclass
class Step(ABC):
    """Base class for all steps."""

    terms: tuple[Selector, ...]
    id: str = ""

    kind = "step"
    # steps that have nothing to do without input columns
    requires_selection = True

    def resolve(self, info: Sequence[VarInfo]) -> list[str]:
        """Columns selected by this step's terms."""
        return resolve(self.terms, info)

    def fit(self, data: pd.DataFrame, info: Sequence[VarInfo]) -> None:
        """Estimate the step on training data."""
        known = {v.variable for v in info}
        unknown = [
            name
            for selector in self.terms
            if isinstance(selector, ColumnSelector)
            for name in selector.names
            if name not in known
        ]
        if unknown:
            msg = f"{self.kind} step refers to unknown columns: {', '.join(unknown)}"
            raise RecipeError(msg)
        columns = self.resolve(info)
        if not columns and self.requires_selection:
            msg = f"{self.kind} step selected no columns from: {self.describe()}"
            raise RecipeError(msg)
        self.columns_ = columns

    @abstractmethod
    def bake(self, data: pd.DataFrame) -> pd.DataFrame:
        """Apply the estimated step to new data."""

    @property
    def trained(self) -> bool:
        """Whether fit has been called."""
        return hasattr(self, "columns_")

    def describe(self) -> str:
        """Terms as text."""
        return ", ".join(selector.describe() for selector in self.terms)

    def _require_types(
        self, columns: list[str], info: Sequence[VarInfo], allowed: tuple[str, ...]
    ) -> None:
        types = {v.variable: v.type for v in info}
        wrong = [c for c in columns if types.get(c) not in allowed]
        if wrong:
            msg = (
                f"{self.kind} needs columns of type {'/'.join(allowed)}, "
                f"got: {', '.join(f'{c} ({types.get(c)})' for c in wrong)}"
            )
            raise RecipeError(msg)


@dataclass
class StepDate(Step):
    """Date features (day of week, month, year, ...) from date columns."""

    features: tuple[str, ...] = ("dow", "month", "year")
    keep_original_cols: bool = True

    kind = "date"

    def __post_init__(self) -> None:
        unknown = [f for f in self.features if f not in DATE_FEATURES]
        if unknown:
            available = ", ".join(DATE_FEATURES)
            msg = f"Unknown date features {unknown}. Available: {available}"
            raise RecipeError(msg)

    def fit(self, data: pd.DataFrame, info: Sequence[VarInfo]) -> None:
        super().fit(data, info)
        self._require_types(self.columns_, info, (DATE,))

    def bake(self, data: pd.DataFrame) -> pd.DataFrame:
        df = data.copy()
        for column in self.columns_:
            dates = pd.to_datetime(df[column])
            for feature in self.features:
                df[f"{column}_{feature}"] = _date_feature(dates, feature)
            if not self.keep_original_cols:
                df = df.drop(columns=column)
        return df


def _date_feature(dates: pd.Series, feature: str) -> pd.Series:
    if feature == "dow":
        # pandas counts Monday as 0, levels start on Sunday
        labels = dates.dt.dayofweek.map(
            lambda d: DOW_LEVELS[(int(d) + 1) % 7], na_action="ignore"
        )
        return pd.Series(
            pd.Categorical(labels, categories=DOW_LEVELS, ordered=True),
            index=dates.index,
        )
    if feature == "month":
        labels = dates.dt.month.map(
            lambda m: MONTH_LEVELS[int(m) - 1], na_action="ignore"
        )
        return pd.Series(
            pd.Categorical(labels, categories=MONTH_LEVELS, ordered=True),
            index=dates.index,
        )
    if feature == "year":
        return dates.dt.year
    if feature == "doy":
        return dates.dt.dayofyear
    if feature == "week":
        return (dates.dt.dayofyear - 1) // 7 + 1
    if feature == "quarter":
        return dates.dt.quarter
    # decimal year
    days_in_year = np.where(dates.dt.is_leap_year, 366.0, 365.0)
    return dates.dt.year + (dates.dt.dayofyear - 1) / days_in_year


@dataclass
class StepHoliday(Step):
    """Binary holiday indicators from date columns."""

    holidays: tuple[str, ...] = DEFAULT_HOLIDAYS
    keep_original_cols: bool = True

    kind = "holiday"

    def __post_init__(self) -> None:
        for name in self.holidays:
            get_holiday(name)

    def fit(self, data: pd.DataFrame, info: Sequence[VarInfo]) -> None:
        super().fit(data, info)
        self._require_types(self.columns_, info, (DATE,))

    def bake(self, data: pd.DataFrame) -> pd.DataFrame:
        df = data.copy()
        for column in self.columns_:
            days = pd.to_datetime(df[column]).dt.normalize()
            valid = days.dropna()
            if valid.empty:
                start = end = pd.Timestamp("1970-01-01")
            else:
                start = pd.Timestamp(year=valid.min().year, month=1, day=1)
                end = pd.Timestamp(year=valid.max().year, month=12, day=31)
            for name in self.holidays:
                observed = holiday_dates(name, start, end)
                df[f"{column}_{name}"] = days.isin(observed).astype("int64")
            if not self.keep_original_cols:
                df = df.drop(columns=column)
        return df


@dataclass
class StepRm(Step):
    """Removes columns."""

    kind = "rm"
    requires_selection = False

    def bake(self, data: pd.DataFrame) -> pd.DataFrame:
        return data.drop(columns=[c for c in self.columns_ if c in data.columns])


@dataclass
class StepDummy(Step):
    """
    Indicator columns for nominal columns.

    The first level (in training order) is the reference and gets no
    column unless one_hot is set. Levels not seen in training produce
    rows of zeros.
    """

    one_hot: bool = False

    kind = "dummy"

    def fit(self, data: pd.DataFrame, info: Sequence[VarInfo]) -> None:
        super().fit(data, info)
        self._require_types(self.columns_, info, (NOMINAL,))
        self.levels_ = {column: training_levels(data[column]) for column in self.columns_}

    def bake(self, data: pd.DataFrame) -> pd.DataFrame:
        df = data.copy()
        new_columns: dict[str, pd.Series] = {}
        for column in self.columns_:
            values = df[column]
            levels = self.levels_[column]
            missing = values.isna()
            unseen = ~missing & ~values.isin(levels)
            if unseen.any():
                log.warning(
                    "Levels not seen during training",
                    column=column,
                    rows=int(unseen.sum()),
                    levels=sorted({str(v) for v in values[unseen].unique()}),
                )
            kept = levels if self.one_hot else levels[1:]
            for level in kept:
                indicator = (values == level).astype("float64").mask(missing)
                new_columns[f"{column}_{clean_level(level)}"] = indicator
            df = df.drop(columns=column)
        if new_columns:
            df = pd.concat([df, pd.DataFrame(new_columns, index=df.index)], axis=1)
        return df


def training_levels(values: pd.Series) -> list[object]:
    if isinstance(values.dtype, pd.CategoricalDtype):
        return list(values.cat.categories)
    return sorted(values.dropna().unique(), key=str)


@dataclass
class StepZv(Step):
    """Removes columns with a single distinct value in the training data."""

    kind = "zv"
    requires_selection = False

    def fit(self, data: pd.DataFrame, info: Sequence[VarInfo]) -> None:
        super().fit(data, info)
        selected = self.columns_
        self.columns_ = [c for c in selected if data[c].nunique(dropna=True) <= 1]
        log.debug("Zero variance columns", removed=self.columns_, checked=len(selected))

    def bake(self, data: pd.DataFrame) -> pd.DataFrame:
        return data.drop(columns=[c for c in self.columns_ if c in data.columns])


@dataclass
class StepNormalize(Step):
    """Centers and scales numeric columns with training mean and sd."""

    kind = "normalize"

    def fit(self, data: pd.DataFrame, info: Sequence[VarInfo]) -> None:
        super().fit(data, info)
        self._require_types(self.columns_, info, (NUMERIC,))
        self.means_ = {c: float(data[c].mean()) for c in self.columns_}
        self.sds_ = {}
        for column in self.columns_:
            sd = float(data[column].std(ddof=1))
            if not np.isfinite(sd) or sd == 0.0:
                log.warning("Column has no spread, centering only", column=column)
                sd = 1.0
            self.sds_[column] = sd

    def bake(self, data: pd.DataFrame) -> pd.DataFrame:
        df = data.copy()
        for column in self.columns_:
            centered = df[column].astype("float64") - self.means_[column]
            df[column] = centered / self.sds_[column]
        return df
