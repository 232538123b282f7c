"""
Tuning parameters and candidate grids.

A Parameter knows its range and scale. Regular grids take evenly spaced
values on that scale and cross them; latin hypercube grids spread a
fixed number of candidates over the joint range.
"""

import itertools
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from typing import Any

import numpy as np
import pandas as pd

from tidyflow.errors import TuningError
from tidyflow.utils.logging import get_logger

log = get_logger(__name__)

LOG10 = "log10"


@dataclass(frozen=True)
class Parameter:
    """
    A tuning parameter.

    Attributes:
        name: Model argument name.
        low: Lower bound, on the transformed scale.
        high: Upper bound, on the transformed scale; None until finalized.
        transform: None for identity or "log10".
        integer: Whether values are whole numbers.
    """

    name: str
    low: float
    high: float | None
    transform: str | None = None
    integer: bool = False

    @property
    def finalized(self) -> bool:
        return self.high is not None

    def _check(self) -> float:
        if self.high is None:
            msg = f"Parameter '{self.name}' has an unknown upper bound; finalize it"
            raise TuningError(msg)
        return self.high

    def _back_transform(self, values: np.ndarray) -> list[Any]:
        if self.transform == LOG10:
            values = np.power(10.0, values)
        if self.integer:
            return [int(v) for v in np.unique(np.round(values))]
        return [float(v) for v in values]

    def regular(self, levels: int) -> list[Any]:
        """Evenly spaced values on the transformed scale."""
        high = self._check()
        if levels < 1:
            msg = f"levels must be at least 1, got {levels}"
            raise TuningError(msg)
        if levels == 1:
            return self._back_transform(np.array([(self.low + high) / 2.0]))
        return self._back_transform(np.linspace(self.low, high, levels))

    def from_unit(self, u: np.ndarray) -> list[Any]:
        """Map values in [0, 1) onto the range (one value per input)."""
        high = self._check()
        if self.integer:
            # widen by one so both bounds are reachable
            return [int(v) for v in np.floor(self.low + u * (high - self.low + 1))]
        scaled = self.low + u * (high - self.low)
        if self.transform == LOG10:
            scaled = np.power(10.0, scaled)
        return [float(v) for v in scaled]

    def with_range(self, low: float, high: float) -> "Parameter":
        return replace(self, low=low, high=high)


def cost_complexity() -> Parameter:
    """Cost-complexity pruning, 10^-10 to 10^-1."""
    return Parameter("cost_complexity", -10.0, -1.0, LOG10)


def tree_depth() -> Parameter:
    return Parameter("tree_depth", 1, 15, integer=True)


def min_n() -> Parameter:
    """Minimum rows in a node for it to be split."""
    return Parameter("min_n", 2, 40, integer=True)


def penalty() -> Parameter:
    """Regularization amount, 10^-10 to 1."""
    return Parameter("penalty", -10.0, 0.0, LOG10)


def mixture() -> Parameter:
    """Proportion of lasso penalty."""
    return Parameter("mixture", 0.0, 1.0)


def mtry(high: int | None = None) -> Parameter:
    """Predictors sampled at each split; the upper bound is the predictor count."""
    return Parameter("mtry", 1, high, integer=True)


def trees() -> Parameter:
    return Parameter("trees", 1, 2000, integer=True)


PARAMETERS: dict[str, Callable[[], Parameter]] = {
    "cost_complexity": cost_complexity,
    "tree_depth": tree_depth,
    "min_n": min_n,
    "penalty": penalty,
    "mixture": mixture,
    "mtry": mtry,
    "trees": trees,
}


def get_parameter(name: str) -> Parameter:
    """
    Default parameter object for a model argument.

    Raises:
        KeyError: If no default exists for the argument.
    """
    if name not in PARAMETERS:
        available = ", ".join(PARAMETERS)
        msg = f"No tuning parameter for '{name}'. Available: {available}"
        raise KeyError(msg)
    return PARAMETERS[name]()


def finalize_parameters(
    params: Sequence[Parameter], n_predictors: int
) -> list[Parameter]:
    """Set data-dependent upper bounds (mtry) from the predictor count."""
    finalized = []
    for param in params:
        if param.name == "mtry" and not param.finalized:
            param = replace(param, high=n_predictors)
            log.debug("Finalized parameter", name=param.name, high=n_predictors)
        finalized.append(param)
    return finalized


def _crossed(columns: dict[str, list[Any]]) -> pd.DataFrame:
    names = list(columns)
    # first parameter varies fastest
    rows = [
        dict(zip(reversed(names), combo, strict=True))
        for combo in itertools.product(*(columns[n] for n in reversed(names)))
    ]
    return pd.DataFrame(rows, columns=names)


def grid_regular(*params: Parameter, levels: int | Sequence[int] = 3) -> pd.DataFrame:
    """
    Regular grid: evenly spaced values of every parameter, crossed.

    Args:
        *params: Parameters to vary.
        levels: Values per parameter (one number or one per parameter).
    """
    if not params:
        msg = "grid_regular needs at least one parameter"
        raise TuningError(msg)
    if isinstance(levels, int):
        levels = [levels] * len(params)
    if len(levels) != len(params):
        msg = f"Got {len(levels)} levels for {len(params)} parameters"
        raise TuningError(msg)

    grid = _crossed(
        {p.name: p.regular(n) for p, n in zip(params, levels, strict=True)}
    )
    log.debug("Built regular grid", parameters=[p.name for p in params], size=len(grid))
    return grid


def grid_latin_hypercube(
    *params: Parameter, size: int = 10, seed: int | None = None
) -> pd.DataFrame:
    """
    Space-filling grid: one candidate per stratum of every parameter.

    Duplicate candidates (possible for integer parameters) are dropped.
    """
    if not params:
        msg = "grid_latin_hypercube needs at least one parameter"
        raise TuningError(msg)
    if size < 1:
        msg = f"size must be at least 1, got {size}"
        raise TuningError(msg)

    rng = np.random.default_rng(seed)
    columns = {}
    for param in params:
        u = (rng.permutation(size) + rng.random(size)) / size
        columns[param.name] = param.from_unit(u)
    grid = pd.DataFrame(columns).drop_duplicates(ignore_index=True)
    log.debug(
        "Built latin hypercube grid",
        parameters=[p.name for p in params],
        size=len(grid),
        seed=seed,
    )
    return grid


def grid_values(name: str, values: Sequence[Any]) -> pd.DataFrame:
    """Explicit one-parameter grid, e.g. a sequence of penalties."""
    if len(values) == 0:
        msg = f"No values given for '{name}'"
        raise TuningError(msg)
    return pd.DataFrame({name: list(values)})


def log10_sequence(low_exp: float, high_exp: float, length: int) -> np.ndarray:
    """10 raised to evenly spaced exponents."""
    return np.power(10.0, np.linspace(low_exp, high_exp, length))
