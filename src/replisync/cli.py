from __future__ import annotations

import time
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .config import DEFAULT_CHANGE, DEFAULT_IDENTITY, DEFAULT_PERIOD_SECONDS, ConfigError, SyncConfig
from .engine import SyncEngine
from .logsetup import setup_logger
from .models import MutationKind, PassReport
from .scheduler import PeriodicScheduler
from .strategies import CHANGE_CHOICES, IDENTITY_CHOICES

app = typer.Typer(
    help="Keep a replica folder an exact one-way mirror of a source folder",
    no_args_is_help=True,
)
console = Console()

SourceArg = typer.Argument(..., help="Folder to mirror (never modified)", envvar="REPLISYNC_SOURCE")
ReplicaArg = typer.Argument(..., help="Folder kept identical to the source", envvar="REPLISYNC_REPLICA")
LogPathOpt = typer.Option(
    None,
    "--log-path",
    help="Log file (.txt/.log) or folder for log.txt; console only when omitted",
    envvar="REPLISYNC_LOG_PATH",
)
IdentityOpt = typer.Option(
    DEFAULT_IDENTITY,
    "--identity",
    help=f"How entries are matched between trees: {' | '.join(IDENTITY_CHOICES)}",
    envvar="REPLISYNC_IDENTITY",
)
ChangeOpt = typer.Option(
    DEFAULT_CHANGE,
    "--change",
    help=f"How modified files are detected: {' | '.join(CHANGE_CHOICES)}",
    envvar="REPLISYNC_CHANGE",
)


def _build_engine(config: SyncConfig) -> SyncEngine:
    try:
        config.validate()
        config.check_roots()
    except (ConfigError, FileNotFoundError) as exc:
        console.print(f"[red]Invalid configuration:[/red] {exc}")
        raise typer.Exit(1)
    logger = setup_logger(config.log_path)
    return SyncEngine(config, logger=logger)


def _print_report(report: PassReport) -> None:
    table = Table(title="Synchronization pass")
    table.add_column("Mutation")
    table.add_column("Count", justify="right")
    for kind in MutationKind:
        if kind == MutationKind.DIRECTORY_DELETE_STARTED:
            continue
        count = report.count(kind)
        if count:
            table.add_row(kind.value.replace("_", " "), str(count))
    console.print(table)
    console.print(f"Mutations: {report.mutation_count}")
    console.print(f"Failures: {len(report.failures)}")
    for failure in report.failures:
        console.print(f"[red]Failed:[/red] {failure.path}: {failure.error}")
    if report.crashed:
        console.print(f"[red]Pass aborted:[/red] {report.crash_error}")
    console.print(f"Time: {report.seconds:.2f}s")


@app.command()
def run(
    source: Path = SourceArg,
    replica: Path = ReplicaArg,
    period: int = typer.Option(
        DEFAULT_PERIOD_SECONDS,
        "--period",
        help="Seconds between synchronization passes",
        envvar="REPLISYNC_PERIOD",
    ),
    log_path: Path | None = LogPathOpt,
    identity: str = IdentityOpt,
    change: str = ChangeOpt,
) -> None:
    """Synchronize now, then again every --period seconds until Ctrl+C."""
    config = SyncConfig(
        source_root=source,
        replica_root=replica,
        log_path=log_path,
        period_seconds=period,
        identity=identity,
        change=change,
    )
    engine = _build_engine(config)
    engine.logger.info("Synchronization starts. %s", engine.describe())

    scheduler = PeriodicScheduler(engine.run_once, period, logger=engine.logger)
    scheduler.start()
    console.print("Press Ctrl+C to stop synchronization.")
    try:
        while scheduler.is_alive:
            time.sleep(0.5)
    except KeyboardInterrupt:
        console.print("Stopping, waiting for the current pass to finish...")
    finally:
        scheduler.stop()
        engine.logger.info("Synchronization ended.")


@app.command()
def once(
    source: Path = SourceArg,
    replica: Path = ReplicaArg,
    log_path: Path | None = LogPathOpt,
    identity: str = IdentityOpt,
    change: str = ChangeOpt,
) -> None:
    """Run a single synchronization pass and print what changed."""
    config = SyncConfig(
        source_root=source,
        replica_root=replica,
        log_path=log_path,
        identity=identity,
        change=change,
    )
    engine = _build_engine(config)
    engine.logger.info("Synchronization starts. %s", engine.describe())
    report = engine.run_once()
    assert report is not None
    _print_report(report)
    if not report.ok:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
