"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
import pytest

from tidyflow.config import WorkshopConfig, config_from_dict
from tidyflow.normalization.datasets import (
    prepare_cells,
    prepare_flight_data,
    prepare_hotels,
    prepare_urchins,
)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def urchins_raw() -> pd.DataFrame:
    """Raw urchin measurements with the study's column names."""
    rng = np.random.default_rng(1)
    regimes = np.repeat(["Initial", "Low", "High"], 24)
    volume = rng.uniform(3.0, 45.0, size=len(regimes))
    slope = {"Initial": 0.0015, "Low": 0.0009, "High": 0.0004}
    base = {"Initial": 0.085, "Low": 0.080, "High": 0.115}
    width = [
        base[r] + slope[r] * v + rng.normal(0, 0.01) for r, v in zip(regimes, volume, strict=True)
    ]
    return pd.DataFrame(
        {"TREATMENT": regimes, "IV": volume, "SUTW": np.clip(width, 0.0, None)}
    )


@pytest.fixture
def urchins(urchins_raw: pd.DataFrame) -> pd.DataFrame:
    """Prepared urchin table."""
    return prepare_urchins(urchins_raw)


@pytest.fixture
def flights_raw() -> pd.DataFrame:
    """Raw flight records spread over one year."""
    rng = np.random.default_rng(2)
    n = 400
    hours = pd.Timestamp("2013-01-01 05:00") + pd.to_timedelta(
        rng.integers(0, 364 * 24, size=n), unit="h"
    )
    dep_time = np.asarray(hours.hour) * 100 + rng.integers(0, 59, size=n)
    delay = rng.normal(5, 30, size=n) + (dep_time > 1800) * 25
    return pd.DataFrame(
        {
            "dep_time": dep_time.astype(float),
            "arr_delay": delay,
            "carrier": rng.choice(["AA", "B6", "UA"], size=n),
            "flight": rng.integers(1, 3000, size=n),
            "origin": rng.choice(["EWR", "JFK", "LGA"], size=n),
            "dest": rng.choice(["ATL", "BOS", "MIA", "ORD"], size=n),
            "air_time": rng.uniform(40, 300, size=n),
            "distance": rng.uniform(200, 2000, size=n),
            "time_hour": hours,
        }
    )


@pytest.fixture
def weather_raw(flights_raw: pd.DataFrame) -> pd.DataFrame:
    """Weather observations for every flight hour but the first ten."""
    observed = flights_raw[["origin", "time_hour"]].iloc[10:].drop_duplicates()
    return observed.assign(temp=20.0).reset_index(drop=True)


@pytest.fixture
def flight_data(flights_raw: pd.DataFrame, weather_raw: pd.DataFrame) -> pd.DataFrame:
    """Prepared flight delay table."""
    return prepare_flight_data(flights_raw, weather_raw)


@pytest.fixture
def cells_raw() -> pd.DataFrame:
    """Raw cell segmentation features with a learnable class."""
    rng = np.random.default_rng(3)
    n = 240
    features = {f"feature_{i}": rng.normal(size=n) for i in range(1, 7)}
    score = features["feature_1"] + 0.8 * features["feature_2"] + rng.normal(0, 0.5, size=n)
    return pd.DataFrame(
        {
            "case": rng.choice(["Train", "Test"], size=n),
            "class": np.where(score > 0.3, "PS", "WS"),
            **features,
        }
    )


@pytest.fixture
def cells(cells_raw: pd.DataFrame) -> pd.DataFrame:
    """Prepared cells table."""
    return prepare_cells(cells_raw)


@pytest.fixture
def hotels_raw() -> pd.DataFrame:
    """Raw hotel stays where children are likelier in resort hotels."""
    rng = np.random.default_rng(4)
    n = 400
    hotel = rng.choice(["City_Hotel", "Resort_Hotel"], size=n)
    rate = rng.uniform(50, 250, size=n)
    p_children = np.where(hotel == "Resort_Hotel", 0.4, 0.1) + (rate > 180) * 0.2
    return pd.DataFrame(
        {
            "hotel": hotel,
            "lead_time": rng.integers(0, 300, size=n),
            "meal": rng.choice(["BB", "HB", "SC"], size=n),
            "average_daily_rate": rate,
            "children": np.where(rng.random(n) < p_children, "children", "none"),
            "arrival_date": pd.Timestamp("2016-01-01")
            + pd.to_timedelta(rng.integers(0, 600, size=n), unit="D"),
        }
    )


@pytest.fixture
def hotels(hotels_raw: pd.DataFrame) -> pd.DataFrame:
    """Prepared hotels table."""
    return prepare_hotels(hotels_raw)


@pytest.fixture
def base_config() -> dict[str, Any]:
    """A minimal configuration dictionary for testing."""
    return {
        "project": "test-project",
        "data": {"root": "./data"},
    }


@pytest.fixture
def small_config(tmp_path: Path) -> WorkshopConfig:
    """Configuration with small forests, few folds and small grids."""
    return config_from_dict(
        {
            "project": "test-project",
            "data": {"root": str(tmp_path / "data")},
            "resampling": {"v": 3},
            "tuning": {
                "tree_levels": 2,
                "penalty_levels": 5,
                "forest_grid_size": 3,
                "best_penalty_rank": 2,
                "best_penalty_pool": 3,
            },
            "models": {"trees": 10, "final_mtry": 2, "final_min_n": 5},
            "mlflow": {"tracking_uri": (tmp_path / "mlruns").as_uri()},
            "output": {"root": str(tmp_path / "output")},
        }
    )


@pytest.fixture
def data_dir(
    tmp_path: Path,
    urchins_raw: pd.DataFrame,
    flights_raw: pd.DataFrame,
    weather_raw: pd.DataFrame,
    cells_raw: pd.DataFrame,
    hotels_raw: pd.DataFrame,
) -> Path:
    """Directory with every raw dataset written as CSV."""
    directory = tmp_path / "data"
    directory.mkdir(exist_ok=True)
    urchins_raw.to_csv(directory / "urchins.csv", index=False)
    flights_raw.to_csv(directory / "flights.csv", index=False)
    weather_raw.to_csv(directory / "weather.csv", index=False)
    cells_raw.to_csv(directory / "cells.csv", index=False)
    hotels_raw.to_csv(directory / "hotels.csv", index=False)
    return directory
