"""
Pandera schemas for the NYC flight and weather data.

Only the columns used by the preprocessing workshop are declared;
the remaining columns of the source tables pass through unchecked.
"""

import pandera.pandas as pa
from pandera.typing import Series

NYC_AIRPORTS = ["EWR", "JFK", "LGA"]


class FlightsSchema(pa.DataFrameModel):
    """Schema for raw flight records (one row per departure)."""

    dep_time: Series[float] = pa.Field(
        ge=0,
        le=2400,
        nullable=True,
        description="Actual departure time (HHMM), missing for cancelled flights",
    )
    arr_delay: Series[float] = pa.Field(
        nullable=True,
        description="Arrival delay in minutes",
    )
    carrier: Series[str] = pa.Field(description="Two letter carrier code")
    flight: Series[int] = pa.Field(ge=0, description="Flight number")
    origin: Series[str] = pa.Field(
        isin=NYC_AIRPORTS,
        description="Origin airport",
    )
    dest: Series[str] = pa.Field(description="Destination airport")
    air_time: Series[float] = pa.Field(
        ge=0,
        nullable=True,
        description="Minutes spent in the air",
    )
    distance: Series[float] = pa.Field(ge=0, description="Distance in miles")
    time_hour: Series[pa.DateTime] = pa.Field(
        description="Scheduled departure hour",
    )

    class Config:
        """Schema configuration."""

        name = "FlightsSchema"
        strict = False
        coerce = True


class WeatherSchema(pa.DataFrameModel):
    """Schema for hourly weather observations at the origin airports."""

    origin: Series[str] = pa.Field(
        isin=NYC_AIRPORTS,
        description="Weather station (airport)",
    )
    time_hour: Series[pa.DateTime] = pa.Field(
        description="Observation hour",
    )

    class Config:
        """Schema configuration."""

        name = "WeatherSchema"
        strict = False
        coerce = True
