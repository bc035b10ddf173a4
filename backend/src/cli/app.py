"""Typer application entrypoint."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from annotations.io import load_document
from ingest.config import ExtensionMode, IngestionConfig, ViewerSettings, get_settings, load_settings
from ingest.core import IngestionResult
from ingest.progress import ProgressTracker
from ingest.scanner import discover_dicom_files
from ingest.store import DicomFileStore
from logging_config import configure_logging
from session.errors import ViewerError
from session.service import ViewerSession


configure_logging()


app = typer.Typer(help="DICOM series ingestion and annotation bookkeeping")
annotations_app = typer.Typer(help="Validate and apply annotation documents")

app.add_typer(annotations_app, name="annotations")

console = Console()


def _settings(config: Optional[Path], concurrency: Optional[int], extension_mode: Optional[ExtensionMode]) -> ViewerSettings:
    settings = load_settings(config) if config else get_settings()
    configure_logging(settings.log_level, force=True)
    updates: dict = {}
    if concurrency is not None:
        updates["max_concurrent_fetches"] = concurrency
    if extension_mode is not None:
        updates["extension_mode"] = extension_mode
    if not updates:
        return settings
    ingestion = IngestionConfig.model_validate({**settings.ingestion.model_dump(), **updates})
    return settings.model_copy(update={"ingestion": ingestion})


def _load_session(root: Path, settings: ViewerSettings, limit: Optional[int]) -> tuple[ViewerSession, IngestionResult]:
    identities = discover_dicom_files(root, settings.ingestion.extension_mode)
    if not identities:
        typer.echo(f"No DICOM files found under {root}")
        raise typer.Exit(code=1)
    session = ViewerSession(DicomFileStore(), settings=settings)

    latest: dict[str, int] = {"settled": 0, "target": 0}
    tracker = ProgressTracker(
        lambda percent: typer.echo(
            f"Progress: {percent}% ({latest['settled']}/{latest['target']})",
            err=True,
        )
    )

    def progress_cb(settled: int, target: int) -> None:
        latest["settled"] = settled
        latest["target"] = target
        tracker.update(settled, target)

    result = asyncio.run(session.load(identities, limit=limit, progress=progress_cb))
    tracker.finalize()
    return session, result


def _print_failures(result: IngestionResult) -> None:
    if not result.failures:
        return
    console.print(f"[yellow]{len(result.failures)} frame(s) failed to load:[/yellow]")
    for failure in result.failures:
        console.print(f"  {failure.identity}: {failure.message}")


@app.command("series")
def series_command(
    root: Path = typer.Argument(..., exists=True, help="File or folder of DICOM files"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Load at most N frames (<= 0 loads all)"),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", "-c", min=1, help="Concurrent fetches"),
    extension_mode: Optional[ExtensionMode] = typer.Option(None, "--extension-mode", help="File name filter"),
    config: Optional[Path] = typer.Option(None, "--config", exists=True, help="JSON/YAML settings file"),
) -> None:
    """Load frames and print the Study/Series hierarchy."""

    settings = _settings(config, concurrency, extension_mode)
    session, result = _load_session(root, settings, limit)

    table = Table(title=f"{session.aggregator.series_count} series, {result.loaded_count} images")
    table.add_column("#", justify="right")
    table.add_column("Study")
    table.add_column("Series No.", justify="right")
    table.add_column("Series UID")
    table.add_column("Description")
    table.add_column("Images", justify="right")
    table.add_column("Instances")
    for index, series in enumerate(session.aggregator.series):
        numbers = [str(frame.instance_number) if frame.instance_number is not None else "-" for frame in series.images]
        table.add_row(
            str(index),
            series.study_description or series.study_id,
            "-" if series.series_number is None else str(series.series_number),
            series.series_id,
            series.series_description or "",
            str(series.image_count),
            ", ".join(numbers[:8]) + (" ..." if len(numbers) > 8 else ""),
        )
    console.print(table)

    progress = session.progress()
    if progress.unrequested_count:
        console.print(f"{progress.unrequested_count} more image(s) available beyond the limit")
    _print_failures(result)


@annotations_app.command("validate")
def annotations_validate(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Annotation JSON document"),
) -> None:
    """Parse an annotation document and summarize its records."""

    try:
        document = load_document(file)
    except ViewerError as exc:
        typer.echo(f"Invalid annotation document: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    counts: dict[str, int] = {}
    malformed = 0
    for record in document.records:
        if not record.is_keyed():
            malformed += 1
            continue
        for kind, payload in record.annotations.items():
            if payload is not None:
                counts[kind] = counts.get(kind, 0) + 1
    unique = len(document.identity_map())
    typer.echo(f"{len(document)} record(s), {unique} unique SOP instance UID(s)")
    for kind in sorted(counts):
        typer.echo(f"  {kind}: {counts[kind]} image(s)")
    if malformed:
        typer.echo(f"{malformed} record(s) with malformed annotations will be skipped on import")


@annotations_app.command("apply")
def annotations_apply(
    root: Path = typer.Argument(..., exists=True, help="File or folder of DICOM files"),
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Annotation JSON document"),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", "-c", min=1, help="Concurrent fetches"),
    config: Optional[Path] = typer.Option(None, "--config", exists=True, help="JSON/YAML settings file"),
) -> None:
    """Load frames headlessly and re-attach a saved annotation document."""

    settings = _settings(config, concurrency, None)
    session, result = _load_session(root, settings, None)
    _print_failures(result)

    try:
        outcome = session.load_annotations(file)
    except ViewerError as exc:
        typer.echo(f"Import failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(
        f"Applied {outcome.records_applied} of {outcome.records_received} record(s); "
        f"{outcome.images_updated} image(s) updated"
    )
    if outcome.unmatched_uids:
        typer.echo(f"{len(outcome.unmatched_uids)} record(s) matched no loaded image")
    for warning in outcome.warnings:
        typer.echo(f"warning: {warning}")
    if outcome.partial:
        raise typer.Exit(code=2)


if __name__ == "__main__":  # pragma: no cover
    app()
