"""Typer CLI entrypoint for classifieds-watcher."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Iterable, Sequence
from uuid import UUID

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, Subscription
from .engine import AlreadyProcessedUrlsStore, QueryExecutor, ThreadPoolManager, build_site_parser
from .infra import JsonDataStorage
from .logging_conf import configure_logging, log_files, tail_log
from .orchestrator import CrawlOrchestrator
from .scheduler import APSchedulerAdapter

app = typer.Typer(
    help="Watch classified-ads searches and report new matching listings.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="Inspect log files.",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    store: AlreadyProcessedUrlsStore
    executor: QueryExecutor
    thread_pool: ThreadPoolManager
    orchestrator: CrawlOrchestrator
    scheduler: APSchedulerAdapter

    def close(self) -> None:
        self.scheduler.shutdown()
        self.thread_pool.shutdown(wait=True)
        self.executor.close()


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    repository = ConfigRepository()
    global_config = repository.load_global_config()
    store = AlreadyProcessedUrlsStore(JsonDataStorage(), data_dir=repository.data_dir())
    executor = QueryExecutor(global_config.fetcher)
    parser = build_site_parser(global_config.site, executor)
    thread_pool = ThreadPoolManager(global_config.thread_pool_workers)
    orchestrator = CrawlOrchestrator(
        repository=repository,
        store=store,
        parser=parser,
        thread_pool=thread_pool,
    )
    return AppState(
        repository=repository,
        store=store,
        executor=executor,
        thread_pool=thread_pool,
        orchestrator=orchestrator,
        scheduler=APSchedulerAdapter(),
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=ctx.meta.get("verbose", False))
        ctx.obj = state
        ctx.call_on_close(state.close)
    return state


def _format_keywords(keywords: Sequence[str] | None) -> str:
    if keywords is None:
        return "(null)"
    return ", ".join(keywords) or "-"


def _render_subscriptions_table(subscriptions: Sequence[Subscription]) -> Table:
    table = Table(title="Subscriptions", box=box.SIMPLE_HEAVY)
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Include")
    table.add_column("Exclude")
    table.add_column("Enabled")
    for item in subscriptions:
        table.add_row(
            str(item.id),
            item.title or "-",
            _format_keywords(item.include_keywords),
            _format_keywords(item.exclude_keywords),
            "yes" if item.enabled else "no",
        )
    return table


def _render_summary_table(summaries: dict[str, dict[str, int]]) -> Table:
    columns = ("results", "known", "matched", "rejected", "failed", "errors")
    table = Table(title="Crawl cycle", box=box.SIMPLE_HEAVY)
    table.add_column("Subscription", style="cyan")
    for column in columns:
        table.add_column(column.capitalize(), justify="right")
    for name, summary in summaries.items():
        table.add_row(name, *(str(summary.get(column, 0)) for column in columns))
    return table


def _render_history_table(title: str, entries: Iterable) -> Table:
    table = Table(title=f"Processed links: {title}", box=box.SIMPLE_HEAVY)
    table.add_column("Last found", style="dim")
    table.add_column("Link", style="cyan")
    for entry in sorted(entries, key=lambda item: item.last_found, reverse=True):
        table.add_row(entry.last_found.strftime("%Y-%m-%d %H:%M"), entry.uri)
    return table


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging.", is_flag=True),
) -> None:
    ctx.meta["verbose"] = verbose


@app.command("subscriptions", help="List configured subscriptions.")
def subscriptions_list(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    subscriptions = state.repository.list_subscriptions()
    if not subscriptions:
        console.print(
            f"No subscriptions configured. Add them to {state.repository.locator.subscriptions_path()}.",
            style="yellow",
        )
        raise typer.Exit(code=0)
    console.print(_render_subscriptions_table(subscriptions))


@app.command("history", help="Show links already processed for a subscription.")
def history(
    ctx: typer.Context,
    subscription_id: str = typer.Argument(..., help="Subscription id (UUID)."),
) -> None:
    state = _get_state(ctx)
    try:
        key = UUID(subscription_id)
    except ValueError:
        console.print(f"`{subscription_id}` is not a valid subscription id.", style="red")
        raise typer.Exit(code=1)
    try:
        subscription = state.repository.load_subscription(key)
    except KeyError:
        console.print(f"No subscription with id {key} is configured.", style="red")
        raise typer.Exit(code=1)
    state.store.restore()
    entries = list(state.store.get_processed_links(key))
    if not entries:
        console.print("No processed links recorded.", style="dim")
        raise typer.Exit(code=0)
    console.print(_render_history_table(subscription.label, entries))


@app.command("run-once", help="Run a single crawl cycle and print a summary.")
def run_once(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    state.store.restore()
    summaries = state.orchestrator.run_cycle()
    if not summaries:
        console.print("No enabled subscriptions.", style="yellow")
        raise typer.Exit(code=0)
    console.print(_render_summary_table(summaries))
    if any(summary.get("errors") for summary in summaries.values()):
        raise typer.Exit(code=1)


@app.command("run", help="Crawl continuously on the configured interval.")
def run(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    interval = state.repository.load_global_config().crawl_interval_seconds
    state.store.restore()
    state.scheduler.schedule_cycle(state.orchestrator.run_cycle, interval, run_now=True)
    state.scheduler.start()
    console.print(f"Watching every {interval}s, press Ctrl+C to stop.", style="green")
    for job in state.scheduler.list_jobs():
        console.print(f"{job['id']}: {job['trigger']}, next run {job['next_run_time']}", style="dim")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("Stopping…", style="dim")
    finally:
        state.close()
        state.store.save()


@log_app.command("show", help="Print the tail of a log file.")
def log_show(
    lines: int = typer.Option(50, "--lines", "-n", help="Number of lines to show."),
    errors: bool = typer.Option(False, "--errors", help="Show the error log.", is_flag=True),
) -> None:
    watcher_log, error_log = log_files()
    path = error_log if errors else watcher_log
    content = tail_log(path, lines)
    if not content:
        console.print(f"{path} is empty.", style="dim")
        raise typer.Exit(code=0)
    for line in content:
        console.print(line.rstrip("\n"), markup=False, highlight=False)


app.add_typer(log_app)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
