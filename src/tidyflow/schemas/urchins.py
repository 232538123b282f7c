"""
Pandera schema for the sea urchin growth data.

The raw file uses the column names of the original study:
TREATMENT (feeding regime), IV (initial volume), SUTW (suture width).
"""

import pandera.pandas as pa
from pandera.typing import Series

FOOD_REGIMES = ["Initial", "Low", "High"]


class UrchinsSchema(pa.DataFrameModel):
    """Schema for raw urchin measurements."""

    TREATMENT: Series[str] = pa.Field(
        isin=FOOD_REGIMES,
        description="Feeding regime",
    )
    IV: Series[float] = pa.Field(
        gt=0.0,
        description="Initial volume in milliliters",
    )
    SUTW: Series[float] = pa.Field(
        ge=0.0,
        description="Suture width in millimeters at the end of the experiment",
    )

    class Config:
        """Schema configuration."""

        name = "UrchinsSchema"
        strict = False
        coerce = True
