"""
Pandera schema for the cell image segmentation data.

Each row describes one segmented cell by 56 image features; `class`
says whether the segmentation was poor (PS) or well (WS).
"""

import pandera.pandas as pa
from pandera.typing import Series

CELL_CLASSES = ["PS", "WS"]


class CellsSchema(pa.DataFrameModel):
    """Schema for raw cell segmentation features."""

    case: Series[str] | None = pa.Field(
        isin=["Train", "Test"],
        nullable=True,
        description="Split used by the original authors",
    )
    class_: Series[str] = pa.Field(
        alias="class",
        isin=CELL_CLASSES,
        description="Segmentation quality",
    )

    class Config:
        """Schema configuration."""

        name = "CellsSchema"
        strict = False
        coerce = True
