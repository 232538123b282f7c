"""
Configuration loading utilities.

Supports environment variable interpolation and config inheritance.
A minimal config only needs a project name; every other section has
defaults matching the workshop walkthroughs.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from tidyflow.config.settings import (
    DATASET_NAMES,
    DataPathsConfig,
    MLflowConfig,
    ModelConfig,
    OutputConfig,
    ResamplingConfig,
    SeedConfig,
    TuningConfig,
    WorkshopConfig,
)


def _interpolate_env_vars(value: str) -> str:
    """
    Interpolate environment variables in string values.

    Supports ${VAR} and ${VAR:default} syntax.
    """
    pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)
        return os.environ.get(var_name, default if default is not None else "")

    return re.sub(pattern, replacer, value)


def _process_config_values(obj: Any) -> Any:
    """Recursively process config values for env var interpolation."""
    if isinstance(obj, str):
        return _interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _process_config_values(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_process_config_values(item) for item in obj]
    return obj


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and process environment variables."""
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return _process_config_values(data) if data else {}


def _build_data_paths(data_data: dict[str, Any]) -> DataPathsConfig:
    """Build dataset paths, keeping defaults for datasets not mentioned."""
    kwargs: dict[str, Any] = {"data_root": Path(data_data.get("root", "./data"))}
    for name in DATASET_NAMES:
        if name in data_data:
            value = data_data[name]
            kwargs[name] = Path(value) if value else None
    return DataPathsConfig(**kwargs)


def config_from_dict(merged: dict[str, Any]) -> WorkshopConfig:
    """
    Build a validated configuration from a plain dictionary.

    Args:
        merged: Configuration mapping (already merged and interpolated).

    Returns:
        Fully validated WorkshopConfig instance.
    """
    project = merged.get("project")
    if not project:
        msg = "Config must specify 'project' name"
        raise ValueError(msg)

    output_data = merged.get("output", {})

    return WorkshopConfig(
        project=project,
        data=_build_data_paths(merged.get("data", {})),
        seeds=SeedConfig(**merged.get("seeds", {})),
        resampling=ResamplingConfig(**merged.get("resampling", {})),
        tuning=TuningConfig(**merged.get("tuning", {})),
        models=ModelConfig(**merged.get("models", {})),
        mlflow=MLflowConfig(**merged.get("mlflow", {})),
        output=OutputConfig(output_root=Path(output_data.get("root", "./output"))),
    )


def load_config(
    config_path: Path,
    base_path: Path | None = None,
) -> WorkshopConfig:
    """
    Load workshop configuration from YAML file(s).

    Args:
        config_path: Path to the main configuration file.
        base_path: Optional path to base configuration for inheritance.
            Defaults to base.yaml next to config_path when it exists.

    Returns:
        Fully validated WorkshopConfig instance.
    """
    if base_path is not None:
        base_data = load_yaml(base_path)
    else:
        potential_base = config_path.parent / "base.yaml"
        base_data = (
            load_yaml(potential_base)
            if potential_base.exists() and potential_base != config_path
            else {}
        )

    main_data = load_yaml(config_path)
    merged = _deep_merge(base_data, main_data)

    return config_from_dict(merged)


def default_config(project: str = "get-started") -> WorkshopConfig:
    """Configuration with every default, for interactive use and tests."""
    return WorkshopConfig(project=project)
