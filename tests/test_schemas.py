"""Tests for Pandera schema definitions."""

import pandas as pd
import pandera.pandas as pa
import pytest

from tidyflow.schemas import (
    CellsSchema,
    FlightsSchema,
    HotelsSchema,
    UrchinsSchema,
    WeatherSchema,
)
from tidyflow.schemas.registry import SchemaRegistry


class TestUrchinsSchema:
    """Tests for UrchinsSchema."""

    def test_valid_data(self, urchins_raw: pd.DataFrame) -> None:
        """Test that valid data passes validation."""
        result = UrchinsSchema.validate(urchins_raw)
        assert len(result) == 72

    def test_unknown_regime(self) -> None:
        """Feeding regimes outside the study fail validation."""
        df = pd.DataFrame({"TREATMENT": ["Medium"], "IV": [10.0], "SUTW": [0.1]})
        with pytest.raises(pa.errors.SchemaError):
            UrchinsSchema.validate(df)

    def test_non_positive_volume(self) -> None:
        df = pd.DataFrame({"TREATMENT": ["Low"], "IV": [0.0], "SUTW": [0.1]})
        with pytest.raises(pa.errors.SchemaError):
            UrchinsSchema.validate(df)


class TestFlightsSchema:
    """Tests for FlightsSchema and WeatherSchema."""

    def test_valid_data(self, flights_raw: pd.DataFrame) -> None:
        result = FlightsSchema.validate(flights_raw)
        assert len(result) == len(flights_raw)

    def test_missing_delay_allowed(self, flights_raw: pd.DataFrame) -> None:
        """Cancelled flights have no arrival delay."""
        df = flights_raw.head(3).copy()
        df.loc[df.index[0], "arr_delay"] = None
        result = FlightsSchema.validate(df)
        assert result["arr_delay"].isna().sum() == 1

    def test_invalid_origin(self, flights_raw: pd.DataFrame) -> None:
        df = flights_raw.head(2).copy()
        df["origin"] = "SFO"
        with pytest.raises(pa.errors.SchemaError):
            FlightsSchema.validate(df)

    def test_weather_time_coerced(self) -> None:
        """Observation hours given as text are coerced to datetimes."""
        df = pd.DataFrame({"origin": ["JFK"], "time_hour": ["2013-01-01 05:00:00"]})
        result = WeatherSchema.validate(df)
        assert pd.api.types.is_datetime64_any_dtype(result["time_hour"])


class TestCellsSchema:
    """Tests for CellsSchema."""

    def test_valid_data(self, cells_raw: pd.DataFrame) -> None:
        result = CellsSchema.validate(cells_raw)
        assert len(result) == len(cells_raw)

    def test_invalid_class(self, cells_raw: pd.DataFrame) -> None:
        df = cells_raw.head(2).copy()
        df["class"] = "XX"
        with pytest.raises(pa.errors.SchemaError):
            CellsSchema.validate(df)


class TestHotelsSchema:
    """Tests for HotelsSchema."""

    def test_valid_data(self, hotels_raw: pd.DataFrame) -> None:
        result = HotelsSchema.validate(hotels_raw)
        assert len(result) == len(hotels_raw)

    def test_negative_lead_time(self, hotels_raw: pd.DataFrame) -> None:
        df = hotels_raw.head(2).copy()
        df["lead_time"] = -1
        with pytest.raises(pa.errors.SchemaError):
            HotelsSchema.validate(df)


class TestSchemaRegistry:
    """Tests for SchemaRegistry."""

    def test_list_schemas(self) -> None:
        schemas = SchemaRegistry.list_schemas()
        assert set(schemas) == {"urchins", "flights", "weather", "cells", "hotels"}

    def test_get_schema(self) -> None:
        assert SchemaRegistry.get("hotels") is HotelsSchema

    def test_unknown_schema(self) -> None:
        with pytest.raises(KeyError, match="Unknown schema"):
            SchemaRegistry.get("penguins")

    def test_list_by_workshop(self) -> None:
        """The preprocessing workshop uses flights and weather."""
        assert SchemaRegistry.list_by_workshop("preprocess") == ["flights", "weather"]

    def test_validate(self, urchins_raw: pd.DataFrame) -> None:
        result = SchemaRegistry.validate(urchins_raw, "urchins")
        assert list(result.columns) == ["TREATMENT", "IV", "SUTW"]

    def test_date_columns(self) -> None:
        assert SchemaRegistry.get_info("hotels").date_columns == ("arrival_date",)
        assert SchemaRegistry.get_info("cells").date_columns == ()
