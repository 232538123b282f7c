"""CSV loaders for the workshop datasets."""

import pandas as pd

from tidyflow.config.settings import WorkshopConfig
from tidyflow.ingestion.base import CsvDataLoader
from tidyflow.schemas.cells import CellsSchema
from tidyflow.schemas.flights import FlightsSchema, WeatherSchema
from tidyflow.schemas.hotels import HotelsSchema
from tidyflow.schemas.urchins import UrchinsSchema


class UrchinsLoader(CsvDataLoader[UrchinsSchema]):
    """Raw urchin measurements (TREATMENT, IV, SUTW)."""

    dataset = "urchins"


class FlightsLoader(CsvDataLoader[FlightsSchema]):
    """NYC flight records; time_hour is parsed."""

    dataset = "flights"


class WeatherLoader(CsvDataLoader[WeatherSchema]):
    dataset = "weather"


class CellsLoader(CsvDataLoader[CellsSchema]):
    """Cell segmentation image features."""

    dataset = "cells"


class HotelsLoader(CsvDataLoader[HotelsSchema]):
    """Hotel stays; arrival_date is parsed."""

    dataset = "hotels"


LOADERS: dict[str, type[CsvDataLoader]] = {
    loader.dataset: loader
    for loader in (UrchinsLoader, FlightsLoader, WeatherLoader, CellsLoader, HotelsLoader)
}


def load_dataset(
    name: str, config: WorkshopConfig, *, validate: bool = True
) -> pd.DataFrame:
    """Load and validate a dataset by name."""
    if name not in LOADERS:
        available = ", ".join(LOADERS)
        msg = f"Unknown dataset '{name}'. Available: {available}"
        raise KeyError(msg)
    return LOADERS[name](config).load(validate=validate)
