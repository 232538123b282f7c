"""Tests for configuration system."""

import os
from pathlib import Path
from typing import Any

import pytest

from tidyflow.config import (
    DataPathsConfig,
    ResamplingConfig,
    SeedConfig,
    TuningConfig,
    config_from_dict,
    default_config,
    load_config,
)


class TestDataPathsConfig:
    """Tests for DataPathsConfig."""

    def test_resolve_against_root(self) -> None:
        """Dataset paths are relative to data_root."""
        config = DataPathsConfig(data_root=Path("/data"))
        assert config.resolve("hotels") == Path("/data/hotels.csv")

    def test_unknown_dataset(self) -> None:
        """Unknown dataset names are rejected."""
        with pytest.raises(ValueError, match="Unknown dataset"):
            DataPathsConfig().resolve("penguins")

    def test_unconfigured_dataset(self) -> None:
        """A dataset set to None cannot be resolved."""
        config = DataPathsConfig(cells=None)
        with pytest.raises(ValueError, match="not configured"):
            config.resolve("cells")


class TestSeedConfig:
    """Tests for SeedConfig defaults."""

    def test_workshop_seeds(self) -> None:
        """Default seeds match the walkthroughs."""
        seeds = SeedConfig()
        assert seeds.flights_split == 222
        assert seeds.cells_split == 123
        assert seeds.resamples == 345
        assert seeds.hotels_split == 123

    def test_frozen(self) -> None:
        """Configuration objects are immutable."""
        seeds = SeedConfig()
        with pytest.raises(ValueError):
            seeds.forest = 1  # type: ignore[misc]


class TestResamplingConfig:
    """Tests for ResamplingConfig."""

    def test_defaults(self) -> None:
        config = ResamplingConfig()
        assert config.train_prop == 0.75
        assert config.v == 10

    def test_invalid_prop(self) -> None:
        """Proportions must be strictly between 0 and 1."""
        with pytest.raises(ValueError):
            ResamplingConfig(train_prop=1.0)

    def test_invalid_folds(self) -> None:
        with pytest.raises(ValueError):
            ResamplingConfig(v=1)


class TestTuningConfig:
    """Tests for TuningConfig validators."""

    def test_penalty_range(self) -> None:
        """Empty penalty range raises error."""
        with pytest.raises(ValueError, match="penalty_max_exp"):
            TuningConfig(penalty_min_exp=-1.0, penalty_max_exp=-4.0)

    def test_rank_within_pool(self) -> None:
        """The picked rank must exist in the pool."""
        with pytest.raises(ValueError, match="must not exceed"):
            TuningConfig(best_penalty_rank=20, best_penalty_pool=15)


class TestConfigFromDict:
    """Tests for building configuration from mappings."""

    def test_minimal(self, base_config: dict[str, Any]) -> None:
        """Only the project name is required."""
        config = config_from_dict(base_config)
        assert config.project == "test-project"
        assert config.experiment_name == "test-project"
        assert config.models.trees == 1000

    def test_missing_project(self) -> None:
        with pytest.raises(ValueError, match="project"):
            config_from_dict({})

    def test_dataset_override(self) -> None:
        """Datasets not mentioned keep their default file names."""
        config = config_from_dict(
            {"project": "p", "data": {"root": "/srv", "hotels": "hotels_2017.csv"}}
        )
        assert config.data.resolve("hotels") == Path("/srv/hotels_2017.csv")
        assert config.data.resolve("cells") == Path("/srv/cells.csv")

    def test_output_dirs(self) -> None:
        config = config_from_dict({"project": "demo", "output": {"root": "/out"}})
        assert config.workflows_dir == Path("/out/demo/workflows")
        assert config.tables_dir == Path("/out/demo/tables")

    def test_default_config(self) -> None:
        config = default_config()
        assert config.project == "get-started"
        assert config.seeds.validation == 234


class TestLoadConfig:
    """Tests for YAML loading."""

    def test_load_with_base(self, tmp_path: Path) -> None:
        """base.yaml next to the config is merged underneath it."""
        (tmp_path / "base.yaml").write_text(
            "resampling:\n  v: 5\nmodels:\n  trees: 200\n", encoding="utf-8"
        )
        config_file = tmp_path / "workshop.yaml"
        config_file.write_text(
            "project: merged\nmodels:\n  final_mtry: 4\n", encoding="utf-8"
        )

        config = load_config(config_file)

        assert config.project == "merged"
        assert config.resampling.v == 5
        assert config.models.trees == 200
        assert config.models.final_mtry == 4

    def test_env_var_interpolation(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """${VAR:default} values are taken from the environment."""
        monkeypatch.setenv("TIDYFLOW_DATA", "/mnt/data")
        monkeypatch.delenv("TIDYFLOW_URI", raising=False)
        config_file = tmp_path / "env.yaml"
        config_file.write_text(
            "project: env\n"
            "data:\n  root: ${TIDYFLOW_DATA}\n"
            "mlflow:\n  tracking_uri: ${TIDYFLOW_URI:file:./runs}\n",
            encoding="utf-8",
        )

        config = load_config(config_file)

        assert config.data.data_root == Path("/mnt/data")
        assert config.mlflow.tracking_uri == "file:./runs"
        assert os.environ["TIDYFLOW_DATA"] == "/mnt/data"
