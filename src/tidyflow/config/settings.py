"""
Typed configuration models using Pydantic.

All configuration is defined here with explicit typing and validation.
Seeds, split proportions and grid sizes are never hardcoded in the
workshop runners.
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DATASET_NAMES = ("urchins", "flights", "weather", "cells", "hotels")


class DataPathsConfig(BaseModel):
    """Dataset file paths.

    All paths are relative to data_root. Use resolve() to get full paths.
    Only the datasets needed by a workshop have to be configured.
    """

    model_config = ConfigDict(frozen=True)

    data_root: Path = Field(
        default=Path("./data"), description="Root directory for all data files"
    )
    urchins: Path | None = Field(
        default=Path("urchins.csv"), description="Sea urchin growth measurements"
    )
    flights: Path | None = Field(
        default=Path("flights.csv"), description="NYC flight records"
    )
    weather: Path | None = Field(
        default=Path("weather.csv"), description="Hourly weather at NYC airports"
    )
    cells: Path | None = Field(
        default=Path("cells.csv"), description="Cell image segmentation features"
    )
    hotels: Path | None = Field(
        default=Path("hotels.csv"), description="Hotel stays with children flag"
    )

    def resolve(self, name: str) -> Path:
        """Resolve a dataset path against data_root."""
        if name not in DATASET_NAMES:
            msg = f"Unknown dataset '{name}'. Available: {', '.join(DATASET_NAMES)}"
            raise ValueError(msg)
        rel_path = getattr(self, name)
        if rel_path is None:
            msg = f"Path for dataset '{name}' is not configured"
            raise ValueError(msg)
        return self.data_root / rel_path


class SeedConfig(BaseModel):
    """Random seeds, one per randomized step of the workshops."""

    model_config = ConfigDict(frozen=True)

    flights_split: int = Field(default=222, description="Flights train/test split")
    cells_split: int = Field(default=123, description="Cells train/test split")
    forest: int = Field(default=234, description="Random forest fitting")
    resamples: int = Field(default=345, description="V-fold resamples")
    tuning: int = Field(default=234, description="Tuning resamples and grids")
    hotels_split: int = Field(default=123, description="Hotels train/test split")
    validation: int = Field(default=234, description="Hotels validation split")
    final_forest: int = Field(default=345, description="Final forest fit")


class ResamplingConfig(BaseModel):
    """Resampling configuration."""

    model_config = ConfigDict(frozen=True)

    train_prop: float = Field(default=0.75, gt=0.0, lt=1.0)
    validation_prop: float = Field(default=0.80, gt=0.0, lt=1.0)
    v: int = Field(default=10, ge=2, le=50, description="Number of v-fold folds")
    repeats: int = Field(default=1, ge=1)
    n_jobs: int | None = Field(
        default=None,
        description="Parallel workers for resampling and forest fitting (None = serial)",
    )


class TuningConfig(BaseModel):
    """Hyperparameter grid configuration."""

    model_config = ConfigDict(frozen=True)

    tree_levels: int = Field(default=5, ge=1, description="Levels per tree parameter")
    penalty_min_exp: float = Field(default=-4.0)
    penalty_max_exp: float = Field(default=-1.0)
    penalty_levels: int = Field(default=30, ge=1)
    forest_grid_size: int = Field(default=25, ge=1)
    best_penalty_rank: int = Field(
        default=12,
        ge=1,
        description="Row picked from the best penalties ordered by penalty",
    )
    best_penalty_pool: int = Field(default=15, ge=1)

    @field_validator("penalty_max_exp")
    @classmethod
    def validate_penalty_range(cls, v: float, info: Any) -> float:
        """Ensure the penalty range is not empty."""
        if "penalty_min_exp" in info.data and v < info.data["penalty_min_exp"]:
            msg = "penalty_max_exp must be >= penalty_min_exp"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def validate_penalty_rank(self) -> "TuningConfig":
        """Ensure the picked rank exists in the candidate pool."""
        if self.best_penalty_rank > self.best_penalty_pool:
            msg = (
                f"best_penalty_rank ({self.best_penalty_rank}) must not exceed "
                f"best_penalty_pool ({self.best_penalty_pool})"
            )
            raise ValueError(msg)
        return self


class ModelConfig(BaseModel):
    """Model settings shared by the workshops."""

    model_config = ConfigDict(frozen=True)

    trees: int = Field(default=1000, ge=1, description="Trees per random forest")
    final_mtry: int = Field(default=8, ge=1)
    final_min_n: int = Field(default=7, ge=2)
    prior_scale: float = Field(
        default=2.5, gt=0.0, description="Scale of the Bayesian coefficient prior"
    )


class MLflowConfig(BaseModel):
    """MLflow experiment tracking configuration."""

    model_config = ConfigDict(frozen=True)

    tracking_uri: str = Field(default="file:./mlruns")
    experiment_name: str | None = Field(
        default=None, description="MLflow experiment name (defaults to project name)"
    )


class OutputConfig(BaseModel):
    """Output paths configuration.

    Structure: ./output/{project}/workflows, ./output/{project}/tables
    """

    model_config = ConfigDict(frozen=True)

    output_root: Path = Field(
        default=Path("./output"), description="Root directory for all outputs"
    )


class WorkshopConfig(BaseModel):
    """Complete configuration.

    The project name drives:
    - MLflow experiment name (if not explicitly set)
    - Output directory structure: ./output/{project}/
    """

    model_config = ConfigDict(frozen=True)

    project: str = Field(description="Project identifier (e.g., 'get-started')")

    data: DataPathsConfig = Field(default_factory=DataPathsConfig)
    seeds: SeedConfig = Field(default_factory=SeedConfig)
    resampling: ResamplingConfig = Field(default_factory=ResamplingConfig)
    tuning: TuningConfig = Field(default_factory=TuningConfig)
    models: ModelConfig = Field(default_factory=ModelConfig)
    mlflow: MLflowConfig = Field(default_factory=MLflowConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @property
    def experiment_name(self) -> str:
        """MLflow experiment name (derived from project if not set)."""
        return self.mlflow.experiment_name or self.project

    @property
    def workflows_dir(self) -> Path:
        """Path to saved workflows."""
        return self.output.output_root / self.project / "workflows"

    @property
    def tables_dir(self) -> Path:
        """Path to exported result tables."""
        return self.output.output_root / self.project / "tables"
