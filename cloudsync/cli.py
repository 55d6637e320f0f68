"""Command line interface.

    cloudsync run --local ~/Documents --remote s3://bucket/documents
    cloudsync scan --local ~/Documents --remote s3://bucket/documents
    cloudsync debug blob s3://bucket/documents
    cloudsync debug file /home/me/Documents
    cloudsync identity
"""

import logging
import sys
from typing import Annotated, NoReturn, Optional

import cyclopts
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from cloudsync.config import FailurePolicy, Settings
from cloudsync.exceptions import ClientIdentityError, ListingError
from cloudsync.identity import get_client_id
from cloudsync.local_files import list_files
from cloudsync.logging_config import configure_logging
from cloudsync.storage.s3 import create_backend
from cloudsync.sync.engine import SyncEngine

logger = logging.getLogger(__name__)

app = cyclopts.App(name="cloudsync", help="Two-way sync between a directory and S3")
debug_app = cyclopts.App(name="debug", help="Inspect remote and local listings")
app.command(debug_app)


def _get_console() -> Console:
    """Get a Rich console for output."""
    return Console()


def _load_settings(**overrides) -> Settings:
    """Build settings, letting explicit CLI values win over the environment."""
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


def _fail(console: Console, message: str) -> NoReturn:
    console.print(f"[red]{message}[/red]")
    sys.exit(1)


def _build_engine(console: Console, settings: Settings) -> SyncEngine:
    if not settings.remote_url:
        _fail(
            console, "Error: remote URL is empty (use --remote or CLOUDSYNC_REMOTE_URL)"
        )

    try:
        client_id = get_client_id()
    except ClientIdentityError as e:
        _fail(console, f"Error: {e}")

    try:
        backend = create_backend(settings.remote_url, client_id, settings)
    except ValueError as e:
        _fail(console, f"Error: {e}")

    logger.info(
        f"Syncing {settings.local_path} <-> {settings.remote_url} as client {client_id}"
    )
    return SyncEngine(
        local_path=settings.local_path,
        backend=backend,
        client_id=client_id,
        interval=settings.interval_seconds,
        policy=settings.failure_policy,
    )


@app.command
def run(
    *,
    local: Annotated[Optional[str], cyclopts.Parameter(help="Local directory")] = None,
    remote: Annotated[
        Optional[str], cyclopts.Parameter(help="Remote root, e.g. s3://bucket/prefix")
    ] = None,
    interval: Annotated[
        Optional[float], cyclopts.Parameter(help="Seconds between sync cycles")
    ] = None,
    failure_policy: Annotated[
        Optional[FailurePolicy],
        cyclopts.Parameter(help="abort: stop a batch at the first failed action"),
    ] = None,
    log_level: Annotated[Optional[str], cyclopts.Parameter(help="Log level")] = None,
):
    """Run the sync loop until the process is terminated."""
    console = _get_console()
    try:
        settings = _load_settings(
            local_path=local,
            remote_url=remote,
            interval_seconds=interval,
            failure_policy=failure_policy,
            log_level=log_level,
        )
    except ValidationError as e:
        _fail(console, f"Invalid configuration: {e}")

    configure_logging(settings.log_level)
    engine = _build_engine(console, settings)
    try:
        engine.run_forever()
    except KeyboardInterrupt:
        console.print("[yellow]Stopped[/yellow]")


@app.command
def scan(
    *,
    local: Annotated[Optional[str], cyclopts.Parameter(help="Local directory")] = None,
    remote: Annotated[
        Optional[str], cyclopts.Parameter(help="Remote root, e.g. s3://bucket/prefix")
    ] = None,
):
    """Show the actions a first cycle would take, without executing them."""
    console = _get_console()
    try:
        settings = _load_settings(local_path=local, remote_url=remote)
    except ValidationError as e:
        _fail(console, f"Invalid configuration: {e}")

    configure_logging(settings.log_level)
    engine = _build_engine(console, settings)
    try:
        snapshot = engine.scan()
    except ListingError as e:
        _fail(console, f"Error: {e}")

    _diff, actions = engine.plan(snapshot)
    if not actions:
        console.print("[green]✓ Everything is in sync[/green]")
        return

    table = Table(title=f"Planned actions ({len(actions)})")
    table.add_column("Action", style="cyan")
    table.add_column("Path")
    table.add_column("Reason", style="dim")
    for action in actions:
        table.add_row(action.kind, action.path, action.reason)
    console.print(table)


@app.command
def identity():
    """Print this machine's client id."""
    console = _get_console()
    try:
        console.print(get_client_id())
    except ClientIdentityError as e:
        _fail(console, f"Error: {e}")


@debug_app.command(name="blob")
def debug_blob(url: Annotated[str, cyclopts.Parameter(help="s3://bucket/prefix")]):
    """List every remote object with its md5, timestamp and writer."""
    console = _get_console()
    try:
        backend = create_backend(url, client_id="debug", settings=Settings())
        entries = backend.list_all()
    except Exception as e:
        _fail(console, f"Error: {e}")

    table = Table(title=url)
    table.add_column("Path", style="cyan")
    table.add_column("Modified")
    table.add_column("MD5", style="dim")
    table.add_column("Writer")
    for path in sorted(entries):
        entry = entries[path]
        table.add_row(
            path, entry.last_modified.isoformat(), entry.md5, entry.writer_id or "-"
        )
    console.print(table)


@debug_app.command(name="file")
def debug_file(path: Annotated[str, cyclopts.Parameter(help="Absolute directory")]):
    """List every local file with its md5."""
    console = _get_console()
    try:
        entries = list_files(path)
    except (OSError, ValueError) as e:
        _fail(console, f"Error: {e}")

    table = Table(title=path)
    table.add_column("Path", style="cyan")
    table.add_column("Modified")
    table.add_column("MD5", style="dim")
    for entry in entries:
        table.add_row(entry.path, entry.last_modified.isoformat(), entry.md5)
    console.print(table)


def main():
    load_dotenv()
    app()
