"""
CLI entry point for trace-wrangler.

Provides commands for:
- load: Normalize a trace file into a SQLite database
- normalize: Normalize a trace file into split NDJSON files
- init: Create an empty database schema
- stats: Summarize gas and time per point or context

Settings can also come from TRACE_WRANGLER_* environment variables; click
validates them like the matching options.
"""

from pathlib import Path
import json
import sys

import click
from rich.console import Console
from rich.markup import escape
from sqlalchemy.exc import SQLAlchemyError

from trace_wrangler import __version__
from trace_wrangler.config import JOURNAL_MODES, WranglerConfig
from trace_wrangler.errors import WranglerError
from trace_wrangler.logging_setup import configure_logging

console = Console()

journal_mode_option = click.option(
    "--journal-mode", type=click.Choice(JOURNAL_MODES, case_sensitive=False),
    default=None, envvar="TRACE_WRANGLER_JOURNAL_MODE",
    help="SQLite journal mode (default WAL)")

progress_every_option = click.option(
    "--progress-every", type=click.IntRange(min=1), default=None,
    envvar="TRACE_WRANGLER_PROGRESS_EVERY",
    help="Log progress every N messages")

json_option = click.option(
    "--json", "as_json", is_flag=True,
    help="Print the run report as JSON")


def _fail(message: str) -> None:
    console.print(f"[red]Error: {escape(message)}[/red]")
    sys.exit(1)


def _open_sink(kind: str, target: Path, config: WranglerConfig, append: bool = False):
    from trace_wrangler.sinks import open_sink

    try:
        return open_sink(kind, target, config, append=append)
    except WranglerError as e:
        _fail(str(e))


def _run(input_path: Path, sink, config: WranglerConfig, as_json: bool):
    from trace_wrangler.pipeline import Normalizer, format_run_report

    try:
        stream = open(input_path, "rb")
    except OSError as e:
        sink.close()
        _fail(f"cannot read {input_path}: {e}")

    with stream, sink:
        try:
            report = Normalizer(sink, config=config).run(stream)
        except WranglerError as e:
            _fail(str(e))

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        console.print(format_run_report(report))


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              default=None, envvar="TRACE_WRANGLER_LOG_LEVEL",
              help="Logging verbosity")
@click.option("--foreign-keys", type=click.BOOL, default=None,
              envvar="TRACE_WRANGLER_FOREIGN_KEYS",
              help="Enforce SQLite foreign keys (default true)")
@click.pass_context
def main(ctx, log_level, foreign_keys):
    """trace-wrangler: Normalize VM execution traces into dictionaries and facts."""
    config = WranglerConfig().with_overrides(log_level=log_level, foreign_keys=foreign_keys)
    configure_logging(config.log_level)
    ctx.obj = config


@main.command()
@click.argument("input_path", type=click.Path(path_type=Path))
@click.argument("db", type=click.Path(path_type=Path))
@journal_mode_option
@progress_every_option
@json_option
@click.pass_obj
def load(config, input_path, db, journal_mode, progress_every, as_json):
    """Normalize INPUT_PATH into the SQLite database DB."""
    config = config.with_overrides(journal_mode=journal_mode, progress_every=progress_every)
    _run(input_path, _open_sink("relational", db, config), config, as_json)


@main.command()
@click.argument("input_path", type=click.Path(path_type=Path))
@click.option("--append", is_flag=True,
              help="Extend existing output files instead of truncating them")
@progress_every_option
@json_option
@click.pass_obj
def normalize(config, input_path, append, progress_every, as_json):
    """Normalize INPUT_PATH into .contexts/.points/.spans files beside it."""
    config = config.with_overrides(progress_every=progress_every)

    if not input_path.exists():
        _fail(f"input file {input_path} does not exist")

    sink = _open_sink("split-file", input_path, config, append=append)
    _run(input_path, sink, config, as_json)

    if not as_json:
        for path in sink.paths.all():
            console.print(f"[green]Wrote {path}[/green]")


@main.command()
@click.argument("db", type=click.Path(path_type=Path))
@journal_mode_option
@click.pass_obj
def init(config, db, journal_mode):
    """Create the contexts/points/traces schema in DB."""
    config = config.with_overrides(journal_mode=journal_mode)
    try:
        with _open_sink("relational", db, config) as sink:
            sink.ensure_schema()
    except WranglerError as e:
        _fail(str(e))
    console.print(f"[green]Database initialized at {db}[/green]")


@main.command()
@click.argument("db", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--by", type=click.Choice(["point", "context"]), default="point",
              help="Group spans by instrumentation point or code context")
@click.option("--limit", type=int, default=20,
              help="Rows to show")
@click.pass_obj
def stats(config, db, by, limit):
    """Summarize gas, fuel and time in a loaded database."""
    from trace_wrangler.db import get_engine, get_session
    from trace_wrangler.measure import TraceStats, format_stats_table

    engine = get_engine(db, config)
    db_session = get_session(engine)
    try:
        df = TraceStats(db_session).aggregate(by)
    except SQLAlchemyError as e:
        _fail(f"cannot read {db}: {e}")
    finally:
        db_session.close()
        engine.dispose()

    if df.empty:
        console.print("[yellow]No traces loaded[/yellow]")
        return

    console.print(format_stats_table(df, by=by, limit=limit))


if __name__ == "__main__":
    main()
