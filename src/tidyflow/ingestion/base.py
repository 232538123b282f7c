"""
Base classes for dataset loaders.

Loaders read a raw table and validate it against its pandera schema, so
malformed files fail at the boundary instead of inside a workshop.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Generic, TypeVar

import pandas as pd
import pandera.pandas as pa

from tidyflow.config.settings import WorkshopConfig
from tidyflow.schemas.registry import SchemaRegistry
from tidyflow.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T", bound=pa.DataFrameModel)


class DataLoader(ABC, Generic[T]):
    """
    Abstract base class for data loaders.

    Args:
        config: Workshop configuration.
        schema: Pandera schema the loaded table must satisfy.
    """

    def __init__(self, config: WorkshopConfig, schema: type[T]) -> None:
        self.config = config
        self.schema = schema

    @abstractmethod
    def _load_raw(self) -> pd.DataFrame:
        """Read the table from its source."""
        ...

    def load(self, *, validate: bool = True) -> pd.DataFrame:
        """
        Load and optionally validate data.

        Raises:
            FileNotFoundError: If the data file does not exist.
            pandera.errors.SchemaError: If validation fails.
        """
        df = self._load_raw()
        log.info(
            "Loaded raw data",
            loader=type(self).__name__,
            rows=len(df),
            columns=len(df.columns),
        )
        if validate:
            df = self.schema.validate(df)
            log.debug("Schema validation passed", schema=self.schema.__name__)
        return df


class CsvDataLoader(DataLoader[T]):
    """
    Loader for one registered CSV dataset.

    Subclasses set `dataset`; schema and date columns come from the
    SchemaRegistry entry of that name.
    """

    dataset: str = ""

    def __init__(self, config: WorkshopConfig) -> None:
        info = SchemaRegistry.get_info(self.dataset)
        super().__init__(config, info.schema)
        self.date_columns = info.date_columns

    def path(self) -> Path:
        """Resolved path of the dataset file."""
        return self.config.data.resolve(self.dataset)

    def _load_raw(self) -> pd.DataFrame:
        path = self.path()
        if not path.exists():
            msg = f"Dataset '{self.dataset}' not found: {path}"
            raise FileNotFoundError(msg)

        df = pd.read_csv(path)
        for column in self.date_columns:
            if column in df.columns:
                df[column] = pd.to_datetime(df[column])
        return df
