"""
Command-line interface for seedsync.
"""

import asyncio
import json
import sys
import logging
from typing import Optional

import click
from rich.console import Console
from rich.table import Table
from rich.markup import escape
from rich.prompt import Confirm
from sqlalchemy.engine import make_url

from seedsync.core import resolve_all_entries
from seedsync.db import Executor
from seedsync.exceptions import SeedsyncError
from seedsync.loader import SeedRunResult, load_files, run_seeds
from seedsync.tracking import SeedTracker, setup_database
from seedsync.utils import Config, EnvironmentManager
from seedsync.commands import init_command

logger = logging.getLogger(__name__)
console = Console()


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Path to configuration file",
)
@click.option(
    "--env",
    "-e",
    type=str,
    help="Environment to use",
)
@click.option(
    "--database-url",
    type=str,
    help="Database URL (SQLAlchemy async URL, e.g. sqlite+aiosqlite:///app.db)",
)
@click.option(
    "--debug",
    is_flag=True,
    help="Enable debug logging",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[str],
    env: Optional[str],
    database_url: Optional[str],
    debug: bool,
) -> None:
    """seedsync - Declarative database seeding for SQLAlchemy."""

    # Load configuration
    cfg = Config(config_file=config)

    # Set up logging
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)

    # Override with CLI options
    if database_url:
        cfg.set("database_url", database_url)

    # Set up environment manager
    env_manager = EnvironmentManager(default_environment=cfg.default_environment)
    for environment_config in cfg.environments:
        env_manager.register_environment(environment_config)
    if env:
        env_manager.current_environment = env

    # Store in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg
    ctx.obj["env_manager"] = env_manager


@cli.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Initialize seedsync in your project."""

    config = ctx.obj["config"]

    init_command.initialize_project(config)

    console.print("[bold green]✓ seedsync initialized successfully![/bold green]")
    console.print("\nNext steps:")
    console.print("1. Declare your rows in [cyan]seeds/*.yml[/cyan]")
    console.print("2. Check them: [cyan]seedsync validate[/cyan]")
    console.print("3. Apply them: [cyan]seedsync run[/cyan]")


@cli.command()
@click.argument("seeds_path", required=False, type=click.Path())
@click.option(
    "--dry-run",
    is_flag=True,
    help="Log the SQL that would run without executing it",
)
@click.option(
    "--no-tracking",
    is_flag=True,
    help="Do not read or write the tracking table",
)
@click.option(
    "--upserts-only",
    is_flag=True,
    help="Only insert and update, never delete",
)
@click.option(
    "--deletes-only",
    is_flag=True,
    help="Only delete entries that are no longer declared",
)
@click.option(
    "--concurrency",
    type=click.IntRange(min=1),
    help="Maximum number of entries upserted at once",
)
@click.option(
    "--yes",
    "-y",
    is_flag=True,
    help="Do not ask for confirmation in protected environments",
)
@click.pass_context
def run(
    ctx: click.Context,
    seeds_path: Optional[str],
    dry_run: bool,
    no_tracking: bool,
    upserts_only: bool,
    deletes_only: bool,
    concurrency: Optional[int],
    yes: bool,
) -> None:
    """Synchronize the database with the seed files."""

    config = ctx.obj["config"]
    env_manager = ctx.obj["env_manager"]
    environment = env_manager.current_environment

    if upserts_only and deletes_only:
        raise click.UsageError("--upserts-only and --deletes-only cannot be used together")

    options = config.seed_options(
        # unset flags fall back to the configuration
        dry_run=dry_run or None,
        no_tracking=no_tracking or None,
        concurrency=concurrency,
    )

    database_url = _get_database_url(config)

    if env_manager.is_production():
        console.print("[bold yellow]⚠ Running in a production environment[/bold yellow]")

    # Check for production confirmation
    if (
        env_manager.requires_confirmation()
        and config.get("require_confirmation_prod", True)
        and not options.dry_run
        and not yes
    ):
        if not Confirm.ask(
            f"[bold red]You are about to seed the {environment.upper()} database. Continue?[/bold red]"
        ):
            console.print("[yellow]Aborted.[/yellow]")
            return

    try:
        result = asyncio.run(
            run_seeds(
                seeds_path or config.seeds_path,
                database_url=database_url,
                options=options,
                environment=environment,
                upserts_only=upserts_only,
                deletes_only=deletes_only,
            )
        )
    except Exception as e:
        logger.debug("Seed run failed", exc_info=True)
        console.print(f"[bold red]Error: {e}[/bold red]")
        sys.exit(1)

    _display_run_result(result, environment)
    console.print("[bold green]✓ Seeds synchronized successfully![/bold green]")


@cli.command()
@click.argument("seeds_path", required=False, type=click.Path())
@click.pass_context
def validate(ctx: click.Context, seeds_path: Optional[str]) -> None:
    """Load and resolve the seed files without touching a database."""

    config = ctx.obj["config"]
    env_manager = ctx.obj["env_manager"]
    path = seeds_path or config.seeds_path

    try:
        seed_files = load_files(path, environment=env_manager.current_environment)
        synchronizer = resolve_all_entries(seed_files)
    except SeedsyncError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        sys.exit(1)

    entries = synchronizer.entries()
    applicable = sum(1 for entry in entries.values() if entry.should_upsert)

    console.print(
        f"[bold green]✓ {len(seed_files)} seed file(s), {len(entries)} entries "
        f"({applicable} in {env_manager.current_environment}) are valid[/bold green]"
    )


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the entries recorded in the tracking table."""

    config = ctx.obj["config"]
    database_url = _get_database_url(config)

    async def load_records():
        executor = Executor.from_url(database_url, echo=config.get("echo_sql", False))
        try:
            await setup_database(executor)
            return await SeedTracker(executor).get_records()
        finally:
            await executor.dispose()

    try:
        records = asyncio.run(load_records())
    except Exception as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        sys.exit(1)

    if not records:
        console.print("[yellow]No seed entries tracked yet.[/yellow]")
        return

    table = Table(title="Tracked Seed Entries")
    table.add_column("$id", style="cyan")
    table.add_column("Table", style="magenta")
    table.add_column("Synchronize", style="green")
    table.add_column("Keys", style="white")
    table.add_column("Created", style="white")

    for record in records:
        table_name = (
            f"{record.schema_name}.{record.table_name}" if record.schema_name else record.table_name
        )
        keys = ", ".join(
            f"{name}={value}" for name, value in zip(record.created_id_names, record.created_ids)
        )
        table.add_row(
            record.seed_id,
            table_name,
            "✓" if record.synchronize else "✗",
            keys,
            str(record.created_at),
        )

    console.print(table)


@cli.command()
@click.pass_context
def environments(ctx: click.Context) -> None:
    """List known environments and how cautious seedsync is in each."""

    env_manager = ctx.obj["env_manager"]
    current = env_manager.current_environment

    table = Table(title="Environments")
    table.add_column("Name", style="cyan")
    table.add_column("Production", style="red")
    table.add_column("Confirmation", style="yellow")

    for name in env_manager.list_environments():
        table.add_row(
            f"{name} (current)" if name == current else name,
            "✓" if env_manager.is_production(name) else "",
            "✓" if env_manager.requires_confirmation(name) else "",
        )

    console.print(table)


@cli.command(name="config")
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Show the effective configuration."""

    settings = ctx.obj["config"].to_dict()

    if settings["database_url"]:
        settings["database_url"] = make_url(settings["database_url"]).render_as_string(
            hide_password=True
        )

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    for key, value in settings.items():
        table.add_row(key, escape(json.dumps(value, default=str)))

    console.print(table)


def _get_database_url(config: Config) -> str:
    """Get the database URL from configuration."""

    database_url = config.database_url
    if not database_url:
        raise click.ClickException(
            "No database URL configured. "
            "Set DATABASE_URL environment variable or use --database-url option."
        )

    return database_url


def _display_run_result(result: SeedRunResult, environment: str) -> None:
    """Display run results in a table."""

    prefix = "[DRY RUN] " if result.dry_run else ""

    table = Table(title=f"{prefix}Seed Results ({environment})")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="white")

    table.add_row("Declared", str(result.declared))
    table.add_row("Upserted", f"[green]{result.upserted}[/green]")
    table.add_row("Deleted", f"[red]{result.deleted}[/red]")
    table.add_row("Duration", f"{result.duration:.2f}s")

    console.print(table)

    if result.deleted_ids:
        console.print("\n[bold]Deleted:[/bold]")
        for seed_id in result.deleted_ids:
            console.print(f"  • {seed_id}")


def main():
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
