"""
Schema definitions using Pandera for data validation.

Every dataset is validated against its schema when it is loaded.
"""

from tidyflow.schemas.cells import CELL_CLASSES, CellsSchema
from tidyflow.schemas.flights import NYC_AIRPORTS, FlightsSchema, WeatherSchema
from tidyflow.schemas.hotels import CHILDREN_LEVELS, HotelsSchema
from tidyflow.schemas.registry import SchemaInfo, SchemaRegistry
from tidyflow.schemas.urchins import FOOD_REGIMES, UrchinsSchema

__all__ = [
    "CELL_CLASSES",
    "CHILDREN_LEVELS",
    "FOOD_REGIMES",
    "NYC_AIRPORTS",
    "CellsSchema",
    "FlightsSchema",
    "HotelsSchema",
    "SchemaInfo",
    "SchemaRegistry",
    "UrchinsSchema",
    "WeatherSchema",
]
