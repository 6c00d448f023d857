"""Main CLI entry point for benchtrack.

This module defines the Typer application and all CLI commands.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import TYPE_CHECKING, Annotated, Any

import typer
from pydantic import ValidationError as PydanticValidationError

from benchtrack import __version__
from benchtrack.core.config import Settings
from benchtrack.core.exceptions import BenchtrackError, ConfigurationError, StorageError, ValidationError
from benchtrack.history import HistoryStore, JSONFileStore
from benchtrack.pipeline import ingest as ingest_run
from benchtrack.regression import DetectionPolicy, PolicySet
from benchtrack.reporters import ConsoleReporter, JSONReporter

if TYPE_CHECKING:
    from benchtrack.pipeline import IngestResult

# Create the main Typer app
app = typer.Typer(
    name="benchtrack",
    help="benchtrack: Benchmark history ingestion and regression detection.",
    add_completion=False,
    no_args_is_help=True,
)

# Global state for options
state: dict[str, bool] = {
    "json": False,
    "no_color": False,
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"benchtrack v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[  # noqa: ARG001
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
    no_color: Annotated[
        bool,
        typer.Option(
            "--no-color",
            help="Disable colored output.",
        ),
    ] = False,
) -> None:
    """benchtrack: Benchmark history ingestion and regression detection.

    Merge CI benchmark runs into per-benchmark histories and flag regressions.
    """
    state["json"] = json_output
    state["no_color"] = no_color
    try:
        settings = Settings()
    except PydanticValidationError as e:
        raise _fail(f"Invalid configuration: {e}", code=2) from e
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        raise _fail(f"Unknown log level '{settings.log_level}' (use DEBUG, INFO, WARNING or ERROR)", code=2)
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@app.command()
def version() -> None:
    """Show the current version."""
    typer.echo(f"benchtrack v{__version__}")


def _fail(message: str, code: int = 1) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(code)


def _storage(data: str | None, settings: Settings) -> JSONFileStore:
    return JSONFileStore(data or settings.data_file, repo_url=settings.repo_url)


def _open_store(data: str | None, settings: Settings) -> HistoryStore:
    try:
        return asyncio.run(HistoryStore.open(_storage(data, settings)))
    except StorageError as e:
        raise _fail(str(e)) from e


async def _ingest(storage: JSONFileStore, raw: Any, policy: DetectionPolicy | PolicySet) -> IngestResult:
    store = await HistoryStore.open(storage)
    return await ingest_run(raw, store, policy)


def _build_policy(
    settings: Settings,
    policy_file: str | None,
    direction: str | None,
    threshold: float | None,
    window: int | None,
) -> DetectionPolicy | PolicySet:
    fields: dict[str, Any] = {
        "direction": direction or settings.default_direction,
        "threshold": settings.default_threshold if threshold is None else threshold,
        "rolling_window": settings.default_rolling_window if window is None else window,
    }
    default = DetectionPolicy.from_dict(fields, where="command line policy")

    path = policy_file or settings.policy_file
    if path is None:
        return default
    try:
        return PolicySet.from_yaml(path, default=default)
    except FileNotFoundError as e:
        raise ConfigurationError(str(e)) from e


def _load_payload(payload: str) -> Any:
    try:
        if payload == "-":
            return json.loads(sys.stdin.read())
        with open(payload, encoding="utf-8") as f:
            return json.load(f)
    except OSError as e:
        raise _fail(f"Cannot read payload {payload}: {e}") from e
    except json.JSONDecodeError as e:
        raise _fail(f"Payload {payload} is not valid JSON: {e}") from e


@app.command()
def ingest(
    payload: Annotated[
        str,
        typer.Argument(help="Path to the run payload JSON file ('-' reads stdin)."),
    ],
    data: Annotated[
        str | None,
        typer.Option(
            "--data",
            "-d",
            help="History file (default: BENCHTRACK_DATA_FILE).",
        ),
    ] = None,
    policy_file: Annotated[
        str | None,
        typer.Option(
            "--policy",
            "-p",
            help="YAML file with per-tool and per-benchmark detection policies.",
        ),
    ] = None,
    direction: Annotated[
        str | None,
        typer.Option(
            "--direction",
            help="Default direction: higherIsWorse or lowerIsWorse.",
        ),
    ] = None,
    threshold: Annotated[
        float | None,
        typer.Option(
            "--threshold",
            "-t",
            help="Default alert threshold as a deviation (0.2 = 20% worse).",
        ),
    ] = None,
    window: Annotated[
        int | None,
        typer.Option(
            "--window",
            "-w",
            help="Number of preceding runs averaged into the baseline.",
        ),
    ] = None,
    output: Annotated[
        str | None,
        typer.Option(
            "--output",
            "-o",
            help="Also write the JSON report to this file.",
        ),
    ] = None,
    fail_on_regression: Annotated[
        bool,
        typer.Option(
            "--fail-on-regression",
            help="Exit with code 1 when a regression is detected.",
        ),
    ] = False,
) -> None:
    """Ingest a benchmark run and check it for regressions.

    Example:
        benchtrack ingest run.json --data dev/bench/data.js --threshold 0.2 --fail-on-regression
    """
    settings = Settings()
    try:
        policy = _build_policy(settings, policy_file, direction, threshold, window)
    except ConfigurationError as e:
        raise _fail(str(e), code=2) from e

    raw = _load_payload(payload)

    try:
        result = asyncio.run(_ingest(_storage(data, settings), raw, policy))
    except ValidationError as e:
        raise _fail(f"Invalid run payload: {e}") from e
    except ConfigurationError as e:
        raise _fail(str(e), code=2) from e
    except BenchtrackError as e:
        raise _fail(str(e)) from e

    if output:
        JSONReporter().report_to_file(result, output)

    if state["json"]:
        typer.echo(JSONReporter().report_ingest(result))
    else:
        ConsoleReporter(use_colors=not state["no_color"]).report_ingest(result)

    if fail_on_regression and result.has_regressions:
        raise typer.Exit(1)


@app.command()
def history(
    tool: Annotated[str, typer.Argument(help="Benchmark tool, e.g. cargo.")],
    name: Annotated[str, typer.Argument(help="Benchmark name.")],
    data: Annotated[
        str | None,
        typer.Option(
            "--data",
            "-d",
            help="History file (default: BENCHTRACK_DATA_FILE).",
        ),
    ] = None,
    limit: Annotated[
        int,
        typer.Option(
            "--limit",
            "-n",
            min=1,
            help="Show only the most recent N records.",
        ),
    ] = 20,
) -> None:
    """Show the recorded history of one benchmark."""
    store = _open_store(data, Settings())
    records = store.history(tool, name)[-limit:]

    if state["json"]:
        typer.echo(
            json.dumps(
                [
                    {"commit": r.commit_id, "date": r.run_timestamp, **r.entry.to_dict()}
                    for r in records
                ],
                indent=2,
            )
        )
        return

    typer.echo(f"{tool}/{name}")
    ConsoleReporter(use_colors=not state["no_color"]).report_history(records)


@app.command()
def series(
    data: Annotated[
        str | None,
        typer.Option(
            "--data",
            "-d",
            help="History file (default: BENCHTRACK_DATA_FILE).",
        ),
    ] = None,
) -> None:
    """List every benchmark series in the history."""
    store = _open_store(data, Settings())
    keys = sorted(store.series_keys())

    if state["json"]:
        listing = [{"tool": k.tool, "name": k.name, "records": len(store.history(k.tool, k.name))} for k in keys]
        typer.echo(json.dumps(listing, indent=2))
        return

    for key in keys:
        typer.echo(f"{key}  ({len(store.history(key.tool, key.name))} records)")


if __name__ == "__main__":
    app()
