"""CLI commands for graphcopy."""

from __future__ import annotations

import logging
import sys
from contextlib import closing
from pathlib import Path

import click

from graphcopy.config import Config
from graphcopy.connection import connect
from graphcopy.exceptions import GraphCopyError
from graphcopy.orchestrator import CopyOrchestrator
from graphcopy.permissions import PermissionsSync
from graphcopy.statements import StatementBuilder


def load_config(path: str | None) -> Config:
    """Load config from an explicit path, a graphcopy.toml found upwards, or defaults."""
    if path is not None:
        return Config.from_toml(Path(path))
    try:
        return Config.find_and_load()
    except FileNotFoundError:
        return Config()


def configure_logging(config: Config, verbose: bool) -> None:
    level = logging.DEBUG if verbose else config.logging.level.upper()
    logging.basicConfig(level=level, format=config.logging.format)


def fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(package_name="graphcopy")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to graphcopy.toml",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """graphcopy - copy PostgreSQL schemas in foreign key order."""
    config = load_config(config_path)
    configure_logging(config, verbose)
    ctx.obj = config


@cli.command("copy")
@click.option("--source", help="URI of the source database (postgresql)")
@click.option("--destination", help="URI of the destination database (postgresql)")
@click.option("--source-schema", help="Schema to copy into the destination database")
@click.option("--destination-schema", help="Schema to use in the destination database")
@click.option("--batch-size", type=click.IntRange(min=1), help="Rows per INSERT statement")
@click.option(
    "--exclude",
    multiple=True,
    help="Table to order but not copy (repeatable, replaces configured list)",
)
@click.pass_obj
def copy_command(
    config: Config,
    source: str | None,
    destination: str | None,
    source_schema: str | None,
    destination_schema: str | None,
    batch_size: int | None,
    exclude: tuple[str, ...],
) -> None:
    """Copy every table of a schema, replacing destination rows."""
    db = config.database
    source = source or db.source_url
    destination = destination or db.destination_url
    source_schema = source_schema or db.source_schema
    destination_schema = destination_schema or db.destination_schema

    if not destination:
        fail("--destination is required")
    if not source:
        fail("--source is required")
    if not destination_schema:
        fail("--destination-schema is required")

    overrides: dict = {}
    if batch_size is not None:
        overrides["batch_size"] = batch_size
    if exclude:
        overrides["excluded_tables"] = list(exclude)
    orchestrator = CopyOrchestrator(config.engine.model_copy(update=overrides))

    try:
        with closing(connect(destination, db.connect_timeout, db.retry_interval)) as dest_conn:
            with closing(connect(source, db.connect_timeout, db.retry_interval)) as source_conn:
                report = orchestrator.run(source_conn, dest_conn, source_schema, destination_schema)
    except GraphCopyError as e:
        fail(str(e))

    for result in report.tables:
        if result.skipped:
            click.echo(f"{result.table}: skipped")
        else:
            click.echo(f"{result.table}: {result.rows_copied} rows")
    click.echo(f"Committed {report.total_rows} rows into {destination_schema}")


@cli.command("plan")
@click.option("--source", help="URI of the source database (postgresql)")
@click.option("--source-schema", help="Schema to plan")
@click.pass_obj
def plan_command(config: Config, source: str | None, source_schema: str | None) -> None:
    """Print the table copy order without copying anything."""
    db = config.database
    source = source or db.source_url
    source_schema = source_schema or db.source_schema
    if not source:
        fail("--source is required")

    orchestrator = CopyOrchestrator(config.engine)
    try:
        with closing(connect(source, db.connect_timeout, db.retry_interval)) as source_conn:
            plan = orchestrator.plan(source_conn, source_schema)
    except GraphCopyError as e:
        fail(str(e))

    click.echo("TABLE ORDER")
    for planned in plan.tables:
        suffix = " (excluded)" if planned.excluded else ""
        if planned.depends_on:
            click.echo(
                f"{planned.table} depends on {', '.join(planned.depends_on)} "
                f"({len(planned.depends_on)}){suffix}"
            )
        else:
            click.echo(f"{planned.table} has no dependencies{suffix}")
        for col in planned.columns:
            click.echo(f"    {col}")


@cli.command("perms")
@click.option("--permissions", "permissions_url", help="URI of the permissions database")
@click.option("--destination", help="URI of the destination database (postgresql)")
@click.option("--destination-schema", help="Schema holding the destination subjects table")
@click.pass_obj
def perms_command(
    config: Config,
    permissions_url: str | None,
    destination: str | None,
    destination_schema: str | None,
) -> None:
    """Upsert permission subjects into the destination schema."""
    db = config.database
    permissions_url = permissions_url or db.permissions_url
    destination = destination or db.destination_url
    destination_schema = destination_schema or db.destination_schema

    if not permissions_url:
        fail("--permissions is required")
    if not destination:
        fail("--destination is required")
    if not destination_schema:
        fail("--destination-schema is required")

    builder = StatementBuilder.from_name(
        config.engine.placeholder_format, config.engine.max_bind_parameters
    )
    sync = PermissionsSync(config.permissions, builder, batch_size=config.engine.batch_size)
    try:
        with closing(connect(destination, db.connect_timeout, db.retry_interval)) as dest_conn:
            with closing(
                connect(permissions_url, db.connect_timeout, db.retry_interval)
            ) as perms_conn:
                result = sync.run(perms_conn, dest_conn, destination_schema)
    except GraphCopyError as e:
        fail(str(e))

    click.echo(f"{result.table}: {result.rows_copied} rows synced")


if __name__ == "__main__":
    cli()
