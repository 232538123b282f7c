"""
Dataset shaping.

Turns validated raw tables into the analysis tables used by the
workshops: canonical column names, categorical outcomes with a fixed
level order, and derived columns.
"""

import numpy as np
import pandas as pd

from tidyflow.schemas.cells import CELL_CLASSES
from tidyflow.schemas.hotels import CHILDREN_LEVELS
from tidyflow.schemas.urchins import FOOD_REGIMES
from tidyflow.utils.logging import get_logger

log = get_logger(__name__)

URCHIN_COLUMNS: dict[str, str] = {
    "TREATMENT": "food_regime",
    "IV": "initial_volume",
    "SUTW": "width",
}

# Flights arriving this many minutes late or more count as late
LATE_THRESHOLD_MIN = 30

DELAY_LEVELS = ["late", "on_time"]

FLIGHT_COLUMNS = [
    "dep_time",
    "flight",
    "origin",
    "dest",
    "air_time",
    "distance",
    "carrier",
    "date",
    "arr_delay",
    "time_hour",
]


def strings_to_categories(
    df: pd.DataFrame, exclude: tuple[str, ...] = ()
) -> pd.DataFrame:
    """Convert every string column to a categorical with sorted levels."""
    df = df.copy()
    for column in df.columns:
        if column in exclude:
            continue
        if df[column].dtype == object or pd.api.types.is_string_dtype(df[column]):
            levels = sorted(df[column].dropna().unique())
            df[column] = pd.Categorical(df[column], categories=levels)
    return df


def prepare_urchins(raw: pd.DataFrame) -> pd.DataFrame:
    """
    Rename the urchin columns and order the feeding regimes.

    Args:
        raw: Validated raw urchin table.

    Returns:
        Table with food_regime, initial_volume and width.
    """
    df = raw.rename(columns=URCHIN_COLUMNS)[list(URCHIN_COLUMNS.values())].copy()
    df["food_regime"] = pd.Categorical(df["food_regime"], categories=FOOD_REGIMES)
    log.info("Prepared urchins", rows=len(df))
    return df


def prepare_flight_data(flights: pd.DataFrame, weather: pd.DataFrame) -> pd.DataFrame:
    """
    Build the flight delay analysis table.

    Delays of LATE_THRESHOLD_MIN minutes or more become "late", everything
    else "on_time". Flights are kept only when weather was recorded at the
    origin for the scheduled hour. Rows with any missing value are dropped.

    Args:
        flights: Validated flight records.
        weather: Validated weather observations.

    Returns:
        Analysis table with the columns in FLIGHT_COLUMNS.
    """
    df = flights.copy()
    delayed = df["arr_delay"] >= LATE_THRESHOLD_MIN
    df["arr_delay"] = np.where(
        df["arr_delay"].isna(), None, np.where(delayed, "late", "on_time")
    )
    df["date"] = pd.to_datetime(df["time_hour"]).dt.normalize()

    observed = weather[["origin", "time_hour"]].drop_duplicates()
    df = df.merge(observed, on=["origin", "time_hour"], how="inner")

    n_joined = len(df)
    df = df[FLIGHT_COLUMNS].dropna().reset_index(drop=True)
    df = strings_to_categories(df, exclude=("arr_delay",))
    df["arr_delay"] = pd.Categorical(df["arr_delay"], categories=DELAY_LEVELS)

    log.info(
        "Prepared flight data",
        flights=len(flights),
        with_weather=n_joined,
        complete=len(df),
        late_share=round(float((df["arr_delay"] == "late").mean()), 4) if len(df) else 0.0,
    )
    return df


def prepare_cells(raw: pd.DataFrame) -> pd.DataFrame:
    """Drop the original authors' split column and order the classes."""
    df = raw.drop(columns=["case"], errors="ignore").copy()
    df["class"] = pd.Categorical(df["class"], categories=CELL_CLASSES)
    log.info("Prepared cells", rows=len(df), columns=len(df.columns))
    return df


def prepare_hotels(raw: pd.DataFrame) -> pd.DataFrame:
    """Parse the arrival date and turn string columns into categoricals."""
    df = raw.copy()
    df["arrival_date"] = pd.to_datetime(df["arrival_date"])
    df = strings_to_categories(df, exclude=("children",))
    df["children"] = pd.Categorical(df["children"], categories=CHILDREN_LEVELS)
    log.info(
        "Prepared hotels",
        rows=len(df),
        children_share=round(float((df["children"] == "children").mean()), 4)
        if len(df)
        else 0.0,
    )
    return df
