import json
import logging
from typing import List, Optional

import redis
import typer
from typer.core import TyperCommand
from rich import print
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import load_config, resolve
from .errors import ConfigError, DecodeError
from .executor import render_command, run_command
from .extract import (
    compute_stats, list_failed, list_pending, list_queues, list_running, list_workers
)
from .filters import apply_filters
from .models import COMMANDS, FailedJob, RunningJob, Stats
from .storage import Store
from .utils import resolve_prefix, to_duration_string, to_seconds, worker_identity
from .worker import unregister_worker

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="queuepeek - inspect resque/sidekiq queues directly in Redis.",
    add_completion=False,
)

WORKER_COMMANDS = ("workers", "failed", "running")
EXEC_FLAGS = ("--exec", "-x")


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


# -----------------------------
# Reading
# -----------------------------
def fetch(command: str, store: Store, prefix: str):
    if command == "queues":
        return list_queues(store, prefix)
    if command == "workers":
        return list_workers(store, prefix)
    if command == "failed":
        return list_failed(store, prefix)
    if command == "running":
        return list_running(store, prefix)
    if command == "pending":
        return list_pending(store, prefix)
    return compute_stats(store, prefix)


def identity_of(record) -> tuple:
    """(host, pid) for any worker-bearing record."""
    if isinstance(record, (FailedJob, RunningJob)):
        return record.host, record.pid
    return worker_identity(record.name)


# -----------------------------
# Output
# -----------------------------
def ago(seconds: Optional[int]) -> str:
    if seconds is None:
        return ""
    return to_duration_string(seconds)


def tabulate(command: str, records) -> Table:
    t = Table(title=command.capitalize())
    if command == "stats":
        t.add_column("stat")
        t.add_column("value")
        for k, v in records.model_dump().items():
            t.add_row(k, str(v))
        return t

    if command == "queues":
        t.add_column("queue")
        for r in records:
            t.add_row(r.name)
    elif command == "workers":
        t.add_column("worker")
        for r in records:
            t.add_row(r.name)
    elif command == "pending":
        t.add_column("queue")
        t.add_column("count")
        for r in records:
            t.add_row(r.name, str(r.count))
    elif command == "failed":
        for c in ["worker", "queue", "class", "failed", "retried", "exception"]:
            t.add_column(c)
        for r in records:
            t.add_row(
                r.worker,
                r.queue or "",
                r.job_class or "",
                ago(r.failed_elapsed),
                ago(r.retried_elapsed),
                (r.exception or "")[:80],
            )
    elif command == "running":
        for c in ["worker", "queue", "class", "running"]:
            t.add_column(c)
        for r in records:
            t.add_row(r.worker, r.queue or "", r.job_class or "", ago(r.run_elapsed))
    return t


def to_json(records) -> str:
    if isinstance(records, Stats):
        return json.dumps(records.model_dump(), indent=2)
    return json.dumps([r.model_dump(by_alias=True) for r in records], indent=2)


# -----------------------------
# Side effects
# -----------------------------
def exec_each(records, template: str) -> int:
    """Run the template once per record, in order. Returns the number of failures."""
    failures = 0
    for r in records:
        host, pid = identity_of(r)
        cmd = render_command(template, host, pid)
        rc, err = run_command(cmd)
        if rc != 0:
            failures += 1
            logger.error("%s exited with %d%s", cmd, rc, f": {err}" if err else "")
    return failures


def unregister_each(records, store: Store, prefix: str) -> List[str]:
    removed = []
    for r in records:
        host, pid = identity_of(r)
        removed.extend(unregister_worker(store, prefix, f"{host}:{pid}"))
    return removed


# -----------------------------
# Command
# -----------------------------
class ExecCommand(TyperCommand):
    """Everything after --exec/-x is the shell template, kept verbatim and never parsed as options."""

    def parse_args(self, ctx, args):
        args = list(args)
        for i, arg in enumerate(args):
            if arg in EXEC_FLAGS:
                ctx.meta["exec_template"] = args[i + 1:]
                args = args[: i + 1]
                break
        return super().parse_args(ctx, args)


@app.command(cls=ExecCommand)
def main(
    ctx: typer.Context,
    command: str = typer.Argument(..., help=f"One of {', '.join(COMMANDS)} (any unique prefix)"),
    job_class: Optional[str] = typer.Option(None, "--class", "-c", help="Regex on job class"),
    queue: Optional[str] = typer.Option(None, "--queue", "-q", help="Regex on queue name"),
    age: Optional[str] = typer.Option(None, "--age", "-a", help="Only jobs at least this old, e.g. 90m, 2d"),
    retry_age: Optional[str] = typer.Option(None, "--retry-age", "-r", help="Only failed jobs retried at least this long ago"),
    env: Optional[str] = typer.Option(None, "--env", "-e", help="Environment from ~/.queuepeek.yml (unique prefix)"),
    prefix: Optional[str] = typer.Option(None, "--prefix", "-p", help="Key prefix, e.g. 'resque:'"),
    redis_endpoint: Optional[str] = typer.Option(None, "--redis", "-R", help="host:port, overrides --env"),
    flavor: Optional[str] = typer.Option(None, "--flavor", help="resque or sidekiq (picks the default prefix)"),
    as_json: bool = typer.Option(False, "--json", "-j", help="Print JSON instead of a table"),
    unregister: bool = typer.Option(False, "--unregister", "-u", help="Unregister the worker of every matched record (unsafe if still alive)"),
    exec_: bool = typer.Option(
        False, "--exec", "-x",
        help="Run the rest of the line as a shell command per matched record; {host} and {pid} are substituted",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr"),
):
    """Inspect queues, workers, failed/running jobs, pending counts or stats."""
    setup_logging(verbose)
    try:
        cmd = resolve_prefix(command, COMMANDS, "command")
        template_str = " ".join(ctx.meta.get("exec_template", []))
        if exec_ and not template_str:
            raise ConfigError("--exec needs a shell command after it")
        if (exec_ or unregister) and cmd not in WORKER_COMMANDS:
            raise ConfigError(f"--exec/--unregister only work with {', '.join(WORKER_COMMANDS)}")
        filtering = any(v is not None for v in (job_class, queue, age, retry_age))
        if cmd == "stats" and filtering:
            raise ConfigError("Filters do not apply to stats")
        age_s = to_seconds(age) if age is not None else None
        retry_s = to_seconds(retry_age) if retry_age is not None else None
        settings = resolve(load_config(), env=env, redis=redis_endpoint, prefix=prefix, flavor=flavor)
        store = Store.connect(settings.endpoint)
    except ConfigError as e:
        raise typer.BadParameter(str(e))

    logger.debug("%s on %s (prefix %r)", cmd, settings.endpoint, settings.prefix)
    try:
        records = fetch(cmd, store, settings.prefix)
        if cmd != "stats":
            records = apply_filters(
                records, age=age_s, retry_age=retry_s, class_pattern=job_class, queue_pattern=queue
            )
        if exec_:
            failures = exec_each(records, template_str)
            print(f"Ran {len(records)} command(s), [red]{failures} failed[/red]" if failures
                  else f"[green]Ran {len(records)} command(s)[/green]")
        if unregister:
            for name in unregister_each(records, store, settings.prefix):
                print(f"[yellow]Unregistered[/yellow] {name}")
    except ConfigError as e:
        raise typer.BadParameter(str(e))
    except DecodeError as e:
        logger.error("Cannot decode stored value: %s", e)
        raise typer.Exit(1)
    except redis.exceptions.ConnectionError as e:
        logger.error("Cannot reach redis at %s: %s", settings.endpoint, e)
        raise typer.Exit(1)

    if exec_ or unregister:
        return
    if as_json:
        typer.echo(to_json(records))
    else:
        Console().print(tabulate(cmd, records))
