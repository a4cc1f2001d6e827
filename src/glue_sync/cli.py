"""
Command-line interface for glue-sync.
"""

import asyncio
import json
import logging
import logging.handlers
import sys
import time
from functools import wraps
from pathlib import Path
from typing import List

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import AthenaConfig, LoggingConfig, NotificationConfig, SyncConfig
from .exceptions import ConfigurationError, GlueSyncError, ValidationError
from .models import CatalogEvent, parse_event


console = Console()


def handle_errors(func):
    """Decorator to handle errors gracefully in CLI commands."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except GlueSyncError as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            sys.exit(1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted by user[/yellow]")
            sys.exit(0)
    return wrapper


@click.group()
@click.version_option(__version__)
@click.option(
    "--debug", is_flag=True, help="Enable debug mode"
)
@click.pass_context
def main(ctx, debug):
    """glue-sync: replicate Hive metastore DDL to the AWS Glue catalog."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="glue-sync-config.yaml",
    help="Output configuration file path",
)
@handle_errors
def init(output: str):
    """Initialize a new glue-sync configuration file."""
    if Path(output).exists():
        if not click.confirm(f"Configuration file {output} already exists. Overwrite?"):
            return

    _create_default_config().to_yaml(output)
    console.print(f"[green]✓[/green] Configuration file created: {output}")
    console.print("\n[yellow]Next steps:[/yellow]")
    console.print("1. Set the Athena endpoint, staging dir and database whitelist")
    console.print("2. Run: glue-sync validate-config -c your-config.yaml")
    console.print("3. Run: glue-sync test-connection -c your-config.yaml")


@main.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Configuration file path",
)
@handle_errors
def validate_config(config: str):
    """Validate configuration file."""
    console.print(f"Validating configuration: {config}")

    try:
        sync_config = SyncConfig.from_yaml(config)
    except ConfigurationError as e:
        console.print(f"[red]✗[/red] Configuration error: {escape(str(e))}")
        sys.exit(1)

    console.print("[green]✓[/green] Configuration is valid")
    for warning in sync_config.config_warnings():
        console.print(f"[yellow]![/yellow] {warning}")

    _display_config_summary(sync_config)


@main.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Configuration file path",
)
@click.option(
    "--events",
    "-e",
    type=click.Path(exists=True),
    required=True,
    help="JSON lines file of catalog events",
)
@handle_errors
def translate(config: str, events: str):
    """Show the statements a file of catalog events would replicate."""
    sync_config = SyncConfig.from_yaml(config)

    from .translator import EventTranslator

    translator = EventTranslator(sync_config)

    result_table = Table(title="Replication Statements")
    result_table.add_column("#", style="cyan")
    result_table.add_column("Event", style="magenta")
    result_table.add_column("Table", style="yellow")
    result_table.add_column("Statement", style="green")

    total = 0
    for index, event in enumerate(_load_events(events), start=1):
        jobs = translator.translate(event)
        if not jobs:
            result_table.add_row(str(index), event.event_type.value, event.table.fqtn, "[dim]filtered[/dim]")
        for job in jobs:
            result_table.add_row(str(index), event.event_type.value, event.table.fqtn, escape(job.statement))
        total += len(jobs)

    console.print(result_table)
    console.print(f"\n{total} statement(s) would be replicated")


@main.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Configuration file path",
)
@click.option(
    "--events",
    "-e",
    type=click.Path(exists=True),
    required=True,
    help="JSON lines file of catalog events",
)
@click.option(
    "--timeout",
    type=float,
    default=300.0,
    show_default=True,
    help="Seconds to wait for the queue to drain",
)
@click.pass_context
@handle_errors
def replay(ctx, config: str, events: str, timeout: float):
    """Replicate a file of catalog events to the remote catalog."""
    sync_config = SyncConfig.from_yaml(config)
    _setup_logging(sync_config.logging, ctx.obj.get("debug", False))

    catalog_events = _load_events(events)
    console.print(f"[blue]Replaying {len(catalog_events)} event(s)...[/blue]")

    from .service import ReplicationService

    service = ReplicationService(sync_config)
    service.start(install_shutdown_hook=False)
    try:
        queued = sum(service.listener.dispatch(event) for event in catalog_events)
        console.print(f"Queued {queued} statement(s)")

        started = time.monotonic()
        drained = service.wait_until_idle(timeout=timeout)
        elapsed = time.monotonic() - started
    finally:
        service.stop()

    _display_stats(service.processor.stats)
    if not drained:
        console.print(f"[red]✗[/red] Queue not drained after {timeout:.0f}s; {len(service.queue)} job(s) left")
        sys.exit(1)
    console.print(f"[green]✓[/green] Queue drained in {elapsed:.1f}s")
    if service.processor.stats["failed"]:
        sys.exit(1)


@main.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Configuration file path",
)
@handle_errors
def test_connection(config: str):
    """Test the remote endpoint connection."""
    console.print("[blue]Testing connection...[/blue]")

    sync_config = SyncConfig.from_yaml(config)

    async def run_connection_test():
        from .remote.connection import ConnectionManager

        manager = ConnectionManager(sync_config.athena)
        try:
            start_time = time.time()
            await manager.connect()
            await manager.execute("SELECT 1")
            return (time.time() - start_time) * 1000
        finally:
            manager.shutdown()

    console.print(f"Endpoint: {sync_config.athena.endpoint_url}")
    console.print(f"Region: {sync_config.athena.resolved_region}")
    try:
        response_time = asyncio.run(run_connection_test())
    except GlueSyncError:
        raise
    except Exception as e:
        console.print(f"  ❌ [red]Query failed: {escape(str(e))}[/red]")
        sys.exit(1)

    console.print(f"  ✅ [green]Connected successfully[/green] ({response_time:.1f}ms)")


def _load_events(path: str) -> List[CatalogEvent]:
    """Read one JSON event per line, skipping blank lines."""
    events = []
    with open(path, "r", encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError as e:
                raise ValidationError(f"Invalid JSON on line {line_number}: {e}")
            try:
                events.append(parse_event(data))
            except ValidationError as e:
                raise ValidationError(f"Line {line_number}: {e}")
    return events


def _setup_logging(config: LoggingConfig, debug: bool = False) -> None:
    """Configure the root logger from the logging section."""
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        handlers.append(
            logging.handlers.RotatingFileHandler(
                config.file, maxBytes=config.max_size, backupCount=config.backup_count
            )
        )

    logging.basicConfig(
        level=logging.DEBUG if debug else getattr(logging, config.level),
        format=config.format,
        handlers=handlers,
        force=True,
    )


def _create_default_config() -> SyncConfig:
    """Create a default configuration with examples."""
    return SyncConfig(
        athena=AthenaConfig(
            s3_staging_dir="s3://${ATHENA_STAGING_BUCKET}/glue-sync/",
        ),
        db_whitelist="default",
        notifications=NotificationConfig(webhook_url="${SLACK_WEBHOOK_URL}"),
    )


def _display_config_summary(config: SyncConfig):
    """Display a summary of the configuration."""
    console.print("\n[blue]Configuration Summary[/blue]")

    endpoint_table = Table(title="Remote Endpoint")
    endpoint_table.add_column("Setting", style="cyan")
    endpoint_table.add_column("Value", style="green")
    endpoint_table.add_row("URL", config.athena.url)
    endpoint_table.add_row("Region", config.athena.resolved_region)
    endpoint_table.add_row("Staging dir", str(config.athena.s3_staging_dir))
    endpoint_table.add_row(
        "Credentials",
        "static key" if config.athena.uses_static_credentials else "ambient identity",
    )
    console.print(endpoint_table)

    behaviour_table = Table(title="Replication")
    behaviour_table.add_column("Setting", style="cyan")
    behaviour_table.add_column("Value", style="green")
    behaviour_table.add_row("Whitelisted databases", ", ".join(sorted(config.db_whitelist)) or "-")
    behaviour_table.add_row("Drop table if exists", str(config.drop_table_if_exists))
    behaviour_table.add_row("Create missing DB", str(config.create_missing_db))
    behaviour_table.add_row("Suppress drop events", str(config.suppress_all_drop_events))
    behaviour_table.add_row("Idle poll", f"{config.no_event_sleep_duration}ms")
    behaviour_table.add_row("Reconnect backoff", f"{config.reconnect_failed_sleep_duration}ms")
    behaviour_table.add_row("Notifications", "slack" if config.notifications.enabled else "log only")
    behaviour_table.add_row("Audit", config.audit.backend)
    console.print(behaviour_table)


def _display_stats(stats):
    stats_table = Table(title="Replication Results")
    stats_table.add_column("Outcome", style="cyan")
    stats_table.add_column("Jobs", style="yellow")
    for name, count in stats.items():
        stats_table.add_row(name, str(count))
    console.print(stats_table)


if __name__ == "__main__":
    main()
