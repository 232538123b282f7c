"""Tests for dataset shaping."""

import pandas as pd

from tidyflow.normalization.datasets import (
    DELAY_LEVELS,
    FLIGHT_COLUMNS,
    prepare_cells,
    prepare_flight_data,
    prepare_hotels,
    prepare_urchins,
    strings_to_categories,
)


class TestPrepareUrchins:
    """Tests for prepare_urchins."""

    def test_columns_renamed(self, urchins_raw: pd.DataFrame) -> None:
        df = prepare_urchins(urchins_raw)
        assert list(df.columns) == ["food_regime", "initial_volume", "width"]

    def test_regime_order(self, urchins_raw: pd.DataFrame) -> None:
        """Feeding regimes keep the study's order, not alphabetical."""
        df = prepare_urchins(urchins_raw)
        assert list(df["food_regime"].cat.categories) == ["Initial", "Low", "High"]


class TestPrepareFlightData:
    """Tests for prepare_flight_data."""

    def test_columns(self, flight_data: pd.DataFrame) -> None:
        assert list(flight_data.columns) == FLIGHT_COLUMNS

    def test_delay_levels(self, flights_raw: pd.DataFrame, flight_data: pd.DataFrame) -> None:
        """Delays of 30 minutes or more are late."""
        assert list(flight_data["arr_delay"].cat.categories) == DELAY_LEVELS
        late = (flights_raw["arr_delay"] >= 30).sum()
        assert 0 < (flight_data["arr_delay"] == "late").sum() <= late

    def test_threshold_boundary(self) -> None:
        flights = pd.DataFrame(
            {
                "dep_time": [600.0, 700.0, 800.0],
                "arr_delay": [29.0, 30.0, -5.0],
                "carrier": ["AA", "AA", "UA"],
                "flight": [1, 2, 3],
                "origin": ["JFK", "JFK", "EWR"],
                "dest": ["BOS", "BOS", "ORD"],
                "air_time": [50.0, 50.0, 120.0],
                "distance": [187.0, 187.0, 719.0],
                "time_hour": pd.to_datetime(
                    ["2013-02-01 06:00", "2013-02-01 07:00", "2013-02-01 08:00"]
                ),
            }
        )
        weather = flights[["origin", "time_hour"]]
        df = prepare_flight_data(flights, weather)
        assert list(df["arr_delay"].astype(str)) == ["on_time", "late", "on_time"]

    def test_requires_weather(self, flights_raw: pd.DataFrame, weather_raw: pd.DataFrame) -> None:
        """Flights without a weather observation are dropped."""
        df = prepare_flight_data(flights_raw, weather_raw.iloc[:0])
        assert df.empty

    def test_date_derived(self, flight_data: pd.DataFrame) -> None:
        """The date is the scheduled hour truncated to midnight."""
        expected = flight_data["time_hour"].dt.normalize()
        assert (flight_data["date"] == expected).all()

    def test_strings_categorical(self, flight_data: pd.DataFrame) -> None:
        for column in ("origin", "dest", "carrier"):
            assert isinstance(flight_data[column].dtype, pd.CategoricalDtype)


class TestPrepareCells:
    """Tests for prepare_cells."""

    def test_case_dropped(self, cells_raw: pd.DataFrame) -> None:
        df = prepare_cells(cells_raw)
        assert "case" not in df.columns
        assert list(df["class"].cat.categories) == ["PS", "WS"]


class TestPrepareHotels:
    """Tests for prepare_hotels."""

    def test_outcome_levels(self, hotels_raw: pd.DataFrame) -> None:
        """The event level "children" comes first."""
        df = prepare_hotels(hotels_raw)
        assert list(df["children"].cat.categories) == ["children", "none"]

    def test_nominal_columns(self, hotels_raw: pd.DataFrame) -> None:
        df = prepare_hotels(hotels_raw)
        assert isinstance(df["hotel"].dtype, pd.CategoricalDtype)
        assert pd.api.types.is_datetime64_any_dtype(df["arrival_date"])


def test_strings_to_categories_sorted_levels() -> None:
    df = pd.DataFrame({"a": ["b", "a", None], "n": [1, 2, 3]})
    result = strings_to_categories(df)
    assert list(result["a"].cat.categories) == ["a", "b"]
    assert result["n"].dtype == df["n"].dtype
