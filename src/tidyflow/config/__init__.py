"""
Configuration management with typed Pydantic models.

Provides seeded, environment-aware configuration loading.
"""

from tidyflow.config.loader import config_from_dict, default_config, load_config
from tidyflow.config.settings import (
    DataPathsConfig,
    MLflowConfig,
    ModelConfig,
    OutputConfig,
    ResamplingConfig,
    SeedConfig,
    TuningConfig,
    WorkshopConfig,
)

__all__ = [
    "DataPathsConfig",
    "MLflowConfig",
    "ModelConfig",
    "OutputConfig",
    "ResamplingConfig",
    "SeedConfig",
    "TuningConfig",
    "WorkshopConfig",
    "config_from_dict",
    "default_config",
    "load_config",
]
