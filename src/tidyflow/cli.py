"""Command-line interface for the tidyflow workshops."""

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import pandas as pd
import typer
from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from tidyflow.config.settings import WorkshopConfig
    from tidyflow.workshops.base import WorkshopResult

app = typer.Typer(
    name="tidyflow",
    help="Modelling workshops: recipes, workflows, resampling and tuning.",
    no_args_is_help=True,
)

console = Console()

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration YAML file. Uses built-in defaults if not given.",
        exists=True,
        dir_okay=False,
    ),
]
MlflowOption = Annotated[
    bool,
    typer.Option("--mlflow", help="Log parameters, metrics, tables and models to MLflow."),
]
OutputOption = Annotated[
    Path | None,
    typer.Option(
        "--output",
        "-o",
        help="Directory for result tables and fitted workflows. "
        "Default: the configured tables and workflows directories.",
    ),
]


@app.callback()
def main(
    ctx: typer.Context,
    log_level: Annotated[
        str,
        typer.Option("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)."),
    ] = "WARNING",
    json_logs: Annotated[
        bool,
        typer.Option("--json-logs", help="Emit logs as JSON lines."),
    ] = False,
) -> None:
    """Run the modelling workshops."""
    from tidyflow.utils.logging import configure_logging, log_context

    try:
        configure_logging(level=log_level, json_output=json_logs)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e
    if ctx.invoked_subcommand is not None:
        ctx.with_resource(log_context(command=ctx.invoked_subcommand))


def _load_config(config: Path | None) -> "WorkshopConfig":
    from tidyflow.config.loader import default_config, load_config

    if config is None:
        console.print("[dim]Using default configuration[/dim]")
        return default_config()
    console.print(f"[blue]Loading configuration from {config}[/blue]")
    return load_config(config)


def _print_frame(df: pd.DataFrame, title: str, max_rows: int = 20) -> None:
    table = Table(title=title)
    for column in df.columns:
        table.add_column(str(column), style="cyan" if df[column].dtype == object else "green")
    for _, row in df.head(max_rows).iterrows():
        cells = []
        for value in row:
            if isinstance(value, float):
                cells.append(f"{value:.4g}")
            else:
                cells.append(str(value))
        table.add_row(*cells)
    console.print(table)
    if len(df) > max_rows:
        console.print(f"[dim]... {len(df) - max_rows} more rows[/dim]")


def _finish(
    config: "WorkshopConfig",
    result: "WorkshopResult",
    mlflow_enabled: bool,
    output: Path | None,
) -> None:
    """Save a workshop result and track it in MLflow if requested."""
    from tidyflow.modeling.workflow import save_workflow
    from tidyflow.workshops.base import export_tables

    metrics = result.metrics()
    if metrics:
        summary = Table(title=f"{result.name} metrics")
        summary.add_column("Metric", style="cyan")
        summary.add_column("Value", style="green")
        for name, value in metrics.items():
            summary.add_row(name, f"{value:.4f}")
        console.print(summary)

    tables_root = output or config.tables_dir
    workflows_root = output or config.workflows_dir
    written = export_tables(result, tables_root)
    for name, fitted in result.workflows().items():
        path, _ = save_workflow(fitted, workflows_root / result.name / name)
        written.append(path)
    console.print(f"\n[green]Saved {len(written)} files to: {tables_root / result.name}[/green]")
    if workflows_root != tables_root and result.workflows():
        console.print(f"[green]Saved workflows to: {workflows_root / result.name}[/green]")

    if mlflow_enabled:
        from tidyflow.evaluation.experiment import track_result

        run_id = track_result(config, result)
        console.print(f"[green]Logged MLflow run: {run_id}[/green]")


def _fail(e: Exception) -> None:
    from tidyflow.errors import TidyflowError

    if isinstance(e, FileNotFoundError | TidyflowError | KeyError | ValueError):
        console.print(f"[red]Error: {e}[/red]")
    else:
        console.print(f"[red]Workshop failed: {e}[/red]")
    raise typer.Exit(code=1) from e


@app.command("build-model")
def build_model(
    config: ConfigOption = None,
    mlflow_enabled: MlflowOption = False,
    output: OutputOption = None,
) -> None:
    """Fit the sea urchin models (least squares and Bayesian)."""
    from tidyflow.ingestion.datasets import load_dataset
    from tidyflow.normalization.datasets import prepare_urchins
    from tidyflow.workshops.build_model import run_build_model

    try:
        cfg = _load_config(config)
        urchins = prepare_urchins(load_dataset("urchins", cfg))
        result = run_build_model(cfg, urchins)

        _print_frame(result.lm_coefs, "Least squares coefficients")
        _print_frame(result.lm_predictions, "Mean width at initial volume 20 ml")
        _print_frame(result.bayes_coefs, "Bayesian coefficients")
        _print_frame(result.bayes_predictions, "Bayesian mean width")
        _finish(cfg, result, mlflow_enabled, output)
    except Exception as e:
        _fail(e)


@app.command()
def preprocess(
    config: ConfigOption = None,
    mlflow_enabled: MlflowOption = False,
    output: OutputOption = None,
) -> None:
    """Predict late flights with a recipe and logistic regression."""
    from tidyflow.ingestion.datasets import load_dataset
    from tidyflow.normalization.datasets import prepare_flight_data
    from tidyflow.workshops.preprocess import run_preprocess

    try:
        cfg = _load_config(config)
        flight_data = prepare_flight_data(
            load_dataset("flights", cfg), load_dataset("weather", cfg)
        )
        result = run_preprocess(cfg, flight_data)

        console.print(f"[blue]Training rows: {result.n_train}, test rows: {result.n_test}[/blue]")
        _print_frame(result.predictions, "Test set predictions", max_rows=10)
        _finish(cfg, result, mlflow_enabled, output)
    except Exception as e:
        _fail(e)


@app.command()
def evaluate(
    config: ConfigOption = None,
    mlflow_enabled: MlflowOption = False,
    output: OutputOption = None,
) -> None:
    """Compare training, resampled and test performance of a random forest."""
    from tidyflow.ingestion.datasets import load_dataset
    from tidyflow.normalization.datasets import prepare_cells
    from tidyflow.workshops.evaluate import run_evaluate

    try:
        cfg = _load_config(config)
        cells = prepare_cells(load_dataset("cells", cfg))
        result = run_evaluate(cfg, cells)

        _print_frame(result.train_metrics, "Training set (optimistic)")
        _print_frame(result.resampled_metrics, f"{result.folds}-fold cross-validation")
        _print_frame(result.test_metrics, "Test set")
        _finish(cfg, result, mlflow_enabled, output)
    except Exception as e:
        _fail(e)


@app.command()
def tune(
    config: ConfigOption = None,
    mlflow_enabled: MlflowOption = False,
    output: OutputOption = None,
) -> None:
    """Tune a decision tree's cost-complexity and depth."""
    from tidyflow.ingestion.datasets import load_dataset
    from tidyflow.normalization.datasets import prepare_cells
    from tidyflow.workshops.tune import run_tune

    try:
        cfg = _load_config(config)
        cells = prepare_cells(load_dataset("cells", cfg))
        result = run_tune(cfg, cells)

        _print_frame(result.best_trees, "Best trees by accuracy")
        _print_frame(result.final_metrics, "Final tree on the test set")
        _print_frame(result.importance, "Variable importance", max_rows=10)
        _finish(cfg, result, mlflow_enabled, output)
    except Exception as e:
        _fail(e)


@app.command("case-study")
def case_study(
    config: ConfigOption = None,
    mlflow_enabled: MlflowOption = False,
    output: OutputOption = None,
) -> None:
    """Predict hotel stays with children: lasso vs. random forest."""
    from tidyflow.ingestion.datasets import load_dataset
    from tidyflow.normalization.datasets import prepare_hotels
    from tidyflow.workshops.case_study import run_case_study

    try:
        cfg = _load_config(config)
        hotels = prepare_hotels(load_dataset("hotels", cfg))
        result = run_case_study(cfg, hotels)

        _print_frame(result.lr_best, "Chosen penalty")
        _print_frame(result.rf_best, "Best forest")
        _print_frame(result.final_metrics, "Final forest on the test set")
        _print_frame(result.importance, "Variable importance", max_rows=10)
        _finish(cfg, result, mlflow_enabled, output)
    except Exception as e:
        _fail(e)


@app.command("recipe-summary")
def recipe_summary(
    dataset: Annotated[
        str,
        typer.Option("--dataset", "-d", help="Recipe to show: 'flights' or 'hotels'."),
    ] = "flights",
    config: ConfigOption = None,
) -> None:
    """Prep a workshop recipe on its training data and list variables and steps."""
    from tidyflow.ingestion.datasets import load_dataset
    from tidyflow.normalization.datasets import prepare_flight_data, prepare_hotels
    from tidyflow.resampling import initial_split
    from tidyflow.workshops.case_study import lr_recipe
    from tidyflow.workshops.preprocess import flights_recipe

    if dataset not in ("flights", "hotels"):
        console.print(f"[red]Error: Unknown dataset '{dataset}'. Use 'flights' or 'hotels'.[/red]")
        raise typer.Exit(code=1)

    try:
        cfg = _load_config(config)
        if dataset == "flights":
            data = prepare_flight_data(
                load_dataset("flights", cfg), load_dataset("weather", cfg)
            )
            rec = flights_recipe()
            seed = cfg.seeds.flights_split
        else:
            data = prepare_hotels(load_dataset("hotels", cfg))
            rec = lr_recipe()
            seed = cfg.seeds.hotels_split

        training = initial_split(data, prop=cfg.resampling.train_prop, seed=seed).training()
        prepped = rec.prep(training)
        _print_frame(prepped.tidy(), f"{dataset} recipe steps")
        _print_frame(prepped.summary(), f"{dataset} recipe variables", max_rows=50)
    except Exception as e:
        _fail(e)


if __name__ == "__main__":
    app()
