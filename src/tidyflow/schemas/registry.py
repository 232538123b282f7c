"""
Dataset schema registry.

Each workshop dataset is registered once with its pandera schema, the
workshop that reads it and the columns the CSV loader parses as dates.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

import pandera.pandas as pa

from tidyflow.schemas.cells import CellsSchema
from tidyflow.schemas.flights import FlightsSchema, WeatherSchema
from tidyflow.schemas.hotels import HotelsSchema
from tidyflow.schemas.urchins import UrchinsSchema

if TYPE_CHECKING:
    import pandas as pd


@dataclass(frozen=True)
class SchemaInfo:
    """A registered dataset."""

    name: str
    schema: type[pa.DataFrameModel]
    workshop: str
    description: str
    date_columns: tuple[str, ...] = ()


_DATASETS = (
    SchemaInfo(
        "urchins",
        UrchinsSchema,
        workshop="build-model",
        description="Sea urchin suture width by feeding regime",
    ),
    SchemaInfo(
        "flights",
        FlightsSchema,
        workshop="preprocess",
        description="Departures from NYC airports",
        date_columns=("time_hour",),
    ),
    SchemaInfo(
        "weather",
        WeatherSchema,
        workshop="preprocess",
        description="Hourly weather at NYC airports",
        date_columns=("time_hour",),
    ),
    SchemaInfo(
        "cells",
        CellsSchema,
        workshop="evaluate",
        description="Cell image segmentation quality",
    ),
    SchemaInfo(
        "hotels",
        HotelsSchema,
        workshop="case-study",
        description="Hotel stays with or without children",
        date_columns=("arrival_date",),
    ),
)


class SchemaRegistry:
    """Lookup and validation of dataset schemas by name."""

    _schemas: ClassVar[dict[str, SchemaInfo]] = {info.name: info for info in _DATASETS}

    @classmethod
    def get_info(cls, name: str) -> SchemaInfo:
        """
        Registration of a dataset.

        Raises:
            KeyError: If no dataset of that name is registered.
        """
        if name not in cls._schemas:
            available = ", ".join(cls._schemas)
            msg = f"Unknown schema '{name}'. Available: {available}"
            raise KeyError(msg)
        return cls._schemas[name]

    @classmethod
    def get(cls, name: str) -> type[pa.DataFrameModel]:
        """Pandera schema of a dataset."""
        return cls.get_info(name).schema

    @classmethod
    def list_schemas(cls) -> list[str]:
        return list(cls._schemas)

    @classmethod
    def list_by_workshop(cls, workshop: str) -> list[str]:
        """Datasets read by one workshop."""
        return [name for name, info in cls._schemas.items() if info.workshop == workshop]

    @classmethod
    def validate(cls, df: "pd.DataFrame", name: str) -> "pd.DataFrame":
        """
        Validate a DataFrame against a registered schema.

        Raises:
            pandera.errors.SchemaError: If validation fails.
        """
        return cls.get(name).validate(df)
