"""
Common shape of workshop results.

Every runner returns a WorkshopResult subclass exposing its parameters,
headline metrics, result tables and fitted workflows, so the CLI and
experiment tracking can treat all workshops the same way.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar

import pandas as pd

from tidyflow.modeling.workflow import FittedWorkflow
from tidyflow.utils.logging import get_logger

log = get_logger(__name__)


def metric_dict(table: pd.DataFrame, prefix: str = "", value: str = "estimate") -> dict[str, float]:
    """Flatten a metric table into {prefix + metric: value}."""
    return {f"{prefix}{row['metric']}": float(row[value]) for _, row in table.iterrows()}


@dataclass
class WorkshopResult:
    """Base class for workshop results."""

    name: ClassVar[str] = "workshop"

    def params(self) -> dict[str, Any]:
        """Settings worth recording with the result."""
        return {}

    def metrics(self) -> dict[str, float]:
        """Headline metrics."""
        return {}

    def tables(self) -> dict[str, pd.DataFrame]:
        """Result tables by name."""
        return {}

    def workflows(self) -> dict[str, FittedWorkflow]:
        """Fitted workflows by name."""
        return {}


def export_tables(result: WorkshopResult, directory: Path) -> list[Path]:
    """Write every result table as CSV into directory/{workshop}/."""
    target = Path(directory) / result.name
    target.mkdir(parents=True, exist_ok=True)
    written = []
    for name, table in result.tables().items():
        path = target / f"{name}.csv"
        table.to_csv(path, index=False)
        written.append(path)
    log.info("Exported tables", workshop=result.name, directory=str(target), n=len(written))
    return written
