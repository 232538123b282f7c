"""
Pandera schema for the hotel bookings data.

The outcome is whether a stay included children; the remaining columns
describe the booking and the arrival date.
"""

import pandera.pandas as pa
from pandera.typing import Series

CHILDREN_LEVELS = ["children", "none"]


class HotelsSchema(pa.DataFrameModel):
    """Schema for raw hotel stays."""

    hotel: Series[str] = pa.Field(description="City or resort hotel")
    lead_time: Series[int] = pa.Field(
        ge=0,
        description="Days between booking and arrival",
    )
    children: Series[str] = pa.Field(
        isin=CHILDREN_LEVELS,
        description="Whether the stay included children",
    )
    average_daily_rate: Series[float] = pa.Field(description="Average rate per night")
    arrival_date: Series[pa.DateTime] = pa.Field(description="Arrival date")

    class Config:
        """Schema configuration."""

        name = "HotelsSchema"
        strict = False
        coerce = True
