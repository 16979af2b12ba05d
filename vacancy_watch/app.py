"""Typer CLI entrypoint for vacancy-watch."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .config import CheckpointMode, ConfigRepository, ScheduleConfig, ScheduleType, WatchConfig
from .engine import FETCH_POOL, Aggregator, FeedFetcher, MovingCheckpointStrategy, ThreadPoolManager
from .engine.detector import build_strategy, utcnow
from .errors import ConfigError
from .infra import SQLiteManager
from .logging_conf import available_source_logs, configure_logging, log_dir, tail_log
from .orchestrator import CycleResult, Orchestrator, Outcome
from .scheduler import APSchedulerAdapter
from .sinks import build_sinks

EXIT_FAILURE = 1
EXIT_NOTHING_NEW = 3

app = typer.Typer(
    help="Job feed watcher: collect feeds, detect new vacancies, dispatch digests.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
run_app = typer.Typer(name="run", help="Run one cycle now.", no_args_is_help=True, rich_markup_mode=None)
feeds_app = typer.Typer(name="feeds", help="Inspect configured feeds.", no_args_is_help=True, rich_markup_mode=None)
checkpoint_app = typer.Typer(
    name="checkpoint", help="Inspect or move the checkpoint.", no_args_is_help=True, rich_markup_mode=None
)
log_app = typer.Typer(name="log", help="Log viewing commands.", no_args_is_help=True, rich_markup_mode=None)

console = Console()


@dataclass
class AppState:
    config: WatchConfig
    repository: ConfigRepository
    orchestrator: Orchestrator
    scheduler: APSchedulerAdapter
    storage: SQLiteManager | None
    thread_pool: ThreadPoolManager


def build_state(verbose: bool, config_path: Path | None = None) -> AppState:
    repository = ConfigRepository(config_path=config_path)
    config = repository.load()
    configure_logging(verbose=verbose)

    thread_pool = ThreadPoolManager(config.thread_pool_workers)
    fetcher = FeedFetcher(timeout=config.fetch_timeout, user_agent=config.user_agent)
    aggregator = Aggregator(config.feeds, fetcher, thread_pool.get(FETCH_POOL))

    storage = SQLiteManager(repository.locator.database_path())
    store = storage if config.persist_checkpoint else None
    strategy = build_strategy(
        config.checkpoint_mode,
        config.lookback,
        store=store,
        skew_tolerance=config.checkpoint_skew,
    )
    scheduler = APSchedulerAdapter()

    orchestrator = Orchestrator(
        aggregator=aggregator,
        strategy=strategy,
        sinks=build_sinks(config, repository.outputs_dir(config)),
        storage=storage,
        scheduler=scheduler,
    )
    return AppState(
        config=config,
        repository=repository,
        orchestrator=orchestrator,
        scheduler=scheduler,
        storage=storage,
        thread_pool=thread_pool,
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        raise typer.Exit(code=EXIT_FAILURE)
    return state


def _format_schedule(schedule: ScheduleConfig) -> str:
    data = schedule.value
    label = schedule.type.value
    if data in (None, "", [], {}):
        return label
    if schedule.type is ScheduleType.CRON:
        return f"cron ({data})"
    if schedule.type is ScheduleType.INTERVAL:
        return f"interval ({data})"
    return f"{label} ({data})"


def _format_checkpoint(value: datetime | None) -> str:
    return value.isoformat() if value else "-"


def _print_result(result: CycleResult, empty_message: str) -> None:
    if result.outcome is not Outcome.DELIVERED:
        console.print(empty_message, style="yellow")
        raise typer.Exit(code=EXIT_NOTHING_NEW)
    console.print(result.digest, markup=False, highlight=False)
    if result.sink_failures:
        for sink, error in result.sink_failures.items():
            console.print(f"sink {sink} failed: {error}", style="red", markup=False)


app.add_typer(run_app, name="run")
app.add_typer(feeds_app, name="feeds")
app.add_typer(checkpoint_app, name="checkpoint")
app.add_typer(log_app, name="log")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging.", is_flag=True),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to a YAML/JSON configuration file.", dir_okay=False
    ),
) -> None:
    try:
        ctx.obj = build_state(verbose, config)
    except ConfigError as exc:
        console.print(f"Configuration error: {exc}", style="red", markup=False)
        raise typer.Exit(code=EXIT_FAILURE) from exc
    ctx.call_on_close(ctx.obj.orchestrator.close)
    ctx.call_on_close(ctx.obj.thread_pool.shutdown)


@run_app.command("new", help="Report items published since the checkpoint and dispatch them.")
def run_new(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    try:
        result = state.orchestrator.run_new()
    except Exception as exc:  # noqa: BLE001
        console.print(f"Cycle failed: {exc!r}", style="red", markup=False)
        raise typer.Exit(code=EXIT_FAILURE) from exc
    _print_result(result, "No new vacancies found.")


@run_app.command("all", help="Report every item currently in the feeds.")
def run_all(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    try:
        result = state.orchestrator.run_all()
    except Exception as exc:  # noqa: BLE001
        console.print(f"Cycle failed: {exc!r}", style="red", markup=False)
        raise typer.Exit(code=EXIT_FAILURE) from exc
    _print_result(result, "No vacancies found.")


@app.command("serve", help="Serve /new and /all over HTTP.")
def serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (defaults to config)."),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port (defaults to config)."),
    with_scheduler: bool = typer.Option(
        False, "--with-scheduler", help="Also run the periodic cycle in the background.", is_flag=True
    ),
) -> None:
    import uvicorn

    from .web import create_app

    state = _get_state(ctx)
    if with_scheduler:
        state.orchestrator.register_schedule(state.config.schedule)
    api = create_app(state.orchestrator, close_on_shutdown=False)
    uvicorn.run(
        api,
        host=host or state.config.server.host,
        port=port or state.config.server.port,
        log_config=None,
    )


@app.command("watch", help="Run the detection cycle on the configured schedule until interrupted.")
def watch(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    state.orchestrator.register_schedule(state.config.schedule)
    console.print(
        f"Watching {len(state.config.feeds)} feeds · {_format_schedule(state.config.schedule)}",
        style="cyan",
    )
    for job in state.scheduler.list_jobs():
        next_run = job["next_run_time"]
        console.print(f"next run: {next_run.isoformat() if next_run else '-'}", style="dim")
    stop = threading.Event()
    try:
        stop.wait()
    except KeyboardInterrupt:
        console.print("Stopping scheduler…", style="dim")


@feeds_app.command("list", help="Show configured feeds, mode and schedule.")
def feeds_list(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    config = state.config
    table = Table(title=f"Feeds · {len(config.feeds)}", box=box.SIMPLE_HEAD)
    table.add_column("#", style="dim", no_wrap=True)
    table.add_column("URL", style="cyan", overflow="fold")
    for index, url in enumerate(config.feeds, start=1):
        table.add_row(str(index), url)
    console.print(table)

    summary = Table(box=box.SIMPLE_HEAD, show_header=False)
    summary.add_column("key", style="magenta")
    summary.add_column("value", style="green")
    summary.add_row("checkpoint mode", config.checkpoint_mode.value)
    summary.add_row("lookback", str(config.lookback))
    summary.add_row("checkpoint skew", str(config.checkpoint_skew))
    summary.add_row("schedule", _format_schedule(config.schedule))
    summary.add_row("sinks", ", ".join(sink.name for sink in state.orchestrator.sinks) or "none")
    console.print(summary)


@checkpoint_app.command("show", help="Print the current checkpoint.")
def checkpoint_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    strategy = state.orchestrator.strategy
    console.print(f"mode: {strategy.mode.value}")
    if strategy.mode is CheckpointMode.FIXED_WINDOW:
        threshold = utcnow() - state.config.lookback
        console.print(f"threshold: {threshold.isoformat()} (now - {state.config.lookback})")
        return
    console.print(f"checkpoint: {_format_checkpoint(strategy.checkpoint)}")


@checkpoint_app.command("reset", help="Move the checkpoint back to now - lookback, or to --at.")
def checkpoint_reset(
    ctx: typer.Context,
    at: Optional[str] = typer.Option(None, "--at", help="ISO8601 timestamp to set.", metavar="TIMESTAMP"),
) -> None:
    state = _get_state(ctx)
    strategy = state.orchestrator.strategy
    if not isinstance(strategy, MovingCheckpointStrategy):
        console.print("Fixed-window mode keeps no checkpoint.", style="yellow")
        raise typer.Exit(code=EXIT_FAILURE)
    if at:
        text = at.strip()
        normalized = text[:-1] + "+00:00" if text.endswith("Z") else text
        try:
            target = datetime.fromisoformat(normalized)
        except ValueError as exc:
            raise typer.BadParameter("--at must be an ISO8601 timestamp") from exc
        if target.tzinfo is None:
            target = target.replace(tzinfo=timezone.utc)
    else:
        target = utcnow() - state.config.lookback
    value = strategy.reset(target)
    console.print(f"checkpoint: {value.isoformat()}", style="green")


@app.command("history", help="Show recent detection cycles.")
def history(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", help="Number of cycles to show."),
) -> None:
    state = _get_state(ctx)
    if state.storage is None:
        console.print("History storage is disabled.", style="dim")
        return
    rows = state.storage.recent_cycles(limit)
    if not rows:
        console.print("No cycles recorded yet.", style="dim")
        return
    table = Table(title="Recent cycles", box=box.SIMPLE_HEAD)
    table.add_column("Started", style="cyan", no_wrap=True)
    table.add_column("Mode", style="magenta")
    table.add_column("Fetched", justify="right")
    table.add_column("New", justify="right", style="green")
    table.add_column("Outcome")
    table.add_column("Sink failures", style="red", overflow="fold")
    for row in rows:
        table.add_row(
            row["started_at"],
            row["mode"],
            str(row["fetched"]),
            str(row["fresh"]),
            row["outcome"],
            ", ".join(row["sink_failures"]) or "-",
        )
    console.print(table)


@log_app.command("list", help="List per-feed log files.")
def log_list() -> None:
    logs = list(available_source_logs())
    if not logs:
        console.print("No feed logs yet.", style="dim")
        return
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("File", style="green")
    for path in logs:
        table.add_row(path.name)
    console.print(table)


@log_app.command("show", help="Show the tail of the global log or of one feed log.")
def log_show(
    feed: Optional[str] = typer.Option(None, "--feed", help="Feed log name (as shown by `log list`)."),
    tail: int = typer.Option(100, "--tail", help="Number of lines."),
) -> None:
    base_dir = log_dir()
    if feed:
        name = feed if feed.endswith(".log") else f"{feed}.log"
        path = base_dir / "sources" / name
    else:
        path = base_dir / "watch.log"
    lines = tail_log(path, tail)
    if not lines:
        console.print("Log is empty.", style="dim")
        return
    console.print("".join(lines), markup=False, highlight=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
