"""
Column selectors for recipe steps.

A selector resolves to a list of column names given the current variable
information (name, type, role) of a recipe.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import pandas as pd

NOMINAL = "nominal"
NUMERIC = "numeric"
DATE = "date"

PREDICTOR = "predictor"
OUTCOME = "outcome"


@dataclass(frozen=True)
class VarInfo:
    """
    Variable information tracked by a recipe.

    Attributes:
        variable: Column name.
        type: One of nominal, numeric, date.
        role: predictor, outcome, or any custom role such as ID.
        source: original for input columns, derived for step outputs.
    """

    variable: str
    type: str
    role: str
    source: str = "original"


def infer_type(series: pd.Series) -> str:
    """Classify a column as nominal, numeric or date."""
    if pd.api.types.is_datetime64_any_dtype(series):
        return DATE
    if pd.api.types.is_bool_dtype(series):
        return NOMINAL
    if isinstance(series.dtype, pd.CategoricalDtype):
        return NOMINAL
    if pd.api.types.is_numeric_dtype(series):
        return NUMERIC
    return NOMINAL


class Selector(ABC):
    """Base class for column selectors."""

    @abstractmethod
    def select(self, info: Sequence[VarInfo]) -> list[str]:
        """Return the selected column names in recipe order."""

    def __repr__(self) -> str:
        return self.describe()

    @abstractmethod
    def describe(self) -> str:
        """Short human-readable form used in logs and tidy tables."""


@dataclass(frozen=True, repr=False)
class ColumnSelector(Selector):
    """Selects named columns."""

    names: tuple[str, ...]

    def select(self, info: Sequence[VarInfo]) -> list[str]:
        known = {v.variable for v in info}
        return [name for name in self.names if name in known]

    def describe(self) -> str:
        return ", ".join(self.names)


@dataclass(frozen=True, repr=False)
class RoleSelector(Selector):
    """Selects columns by role, optionally restricted to some types."""

    role: str
    types: tuple[str, ...] = ()

    def select(self, info: Sequence[VarInfo]) -> list[str]:
        return [
            v.variable
            for v in info
            if v.role == self.role and (not self.types or v.type in self.types)
        ]

    def describe(self) -> str:
        if self.types:
            return f"{self.role}s of type {'/'.join(self.types)}"
        return f"{self.role}s"


def all_predictors() -> Selector:
    """Every predictor column."""
    return RoleSelector(PREDICTOR)


def all_nominal_predictors() -> Selector:
    """Predictor columns holding categories, strings or booleans."""
    return RoleSelector(PREDICTOR, (NOMINAL,))


def all_numeric_predictors() -> Selector:
    """Numeric predictor columns."""
    return RoleSelector(PREDICTOR, (NUMERIC,))


def all_date_predictors() -> Selector:
    """Datetime predictor columns."""
    return RoleSelector(PREDICTOR, (DATE,))


def all_outcomes() -> Selector:
    """The outcome column."""
    return RoleSelector(OUTCOME)


def has_role(role: str) -> Selector:
    """Columns with a given role."""
    return RoleSelector(role)


def as_selectors(terms: Iterable[str | Selector]) -> tuple[Selector, ...]:
    """Normalize step arguments (column names or selectors) to selectors."""
    selectors: list[Selector] = []
    names: list[str] = []
    for term in terms:
        if isinstance(term, Selector):
            if names:
                selectors.append(ColumnSelector(tuple(names)))
                names = []
            selectors.append(term)
        elif isinstance(term, str):
            names.append(term)
        else:
            msg = f"Expected a column name or selector, got {type(term).__name__}"
            raise TypeError(msg)
    if names:
        selectors.append(ColumnSelector(tuple(names)))
    return tuple(selectors)


def resolve(selectors: Sequence[Selector], info: Sequence[VarInfo]) -> list[str]:
    """Union of all selections, without duplicates, in recipe order."""
    chosen: set[str] = set()
    for selector in selectors:
        chosen.update(selector.select(info))
    return [v.variable for v in info if v.variable in chosen]
