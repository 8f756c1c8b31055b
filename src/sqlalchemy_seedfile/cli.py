"""
Command-line interface for sqlalchemy-seedfile.
"""

import importlib
import logging
import sys
from typing import Optional

import click
from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from sqlalchemy_seedfile.commands import make_command
from sqlalchemy_seedfile.core import ModelRegistry, Seeder, SeedRunResult
from sqlalchemy_seedfile.exceptions import SeederError
from sqlalchemy_seedfile.utils import Config, EnvironmentManager

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
    envvar="DATABASE_URL",
    help="Database URL",
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
    """SQLAlchemy Seedfile - apply versioned seed files once."""

    if debug:
        logging.basicConfig(level=logging.DEBUG)

    cfg = Config(config_file=config)

    if database_url:
        cfg.set("database_url", database_url)

    env_manager = EnvironmentManager(env or cfg.default_environment)

    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg
    ctx.obj["env_manager"] = env_manager


@cli.command()
@click.option(
    "--path",
    "-p",
    type=click.Path(),
    help="Seed directory (defaults to the configured seeds path)",
)
@click.option(
    "--models",
    "-m",
    type=str,
    envvar="SEEDER_MODELS",
    help="Declarative base exposing the models data seeds may create (module:Base)",
)
@click.option(
    "--allow-missing",
    is_flag=True,
    help="Tolerate applied seed files missing from the directory",
)
@click.option(
    "--transactions/--no-transactions",
    default=None,
    help="Wrap each seed file in a transaction (default: when the database supports transactional DDL)",
)
@click.option("--table", type=str, help="Ledger table name")
@click.option("--column", type=str, help="Ledger column name")
@click.option(
    "--yes",
    "-y",
    is_flag=True,
    help="Do not ask for confirmation in protected environments",
)
@click.pass_context
def apply(
    ctx: click.Context,
    path: Optional[str],
    models: Optional[str],
    allow_missing: bool,
    transactions: Optional[bool],
    table: Optional[str],
    column: Optional[str],
    yes: bool,
) -> None:
    """Apply pending seed files."""

    config = ctx.obj["config"]
    env_manager = ctx.obj["env_manager"]
    environment = env_manager.current_environment

    if env_manager.requires_confirmation() and not yes:
        if not Confirm.ask(
            f"[bold red]You are about to apply seeds in {environment.upper()}. Continue?[/bold red]"
        ):
            console.print("[yellow]Aborted.[/yellow]")
            return

    options = config.seeder_options()
    overrides = {
        "table": table,
        "column": column,
        "use_transactions": transactions,
        "allow_missing_seed_files": True if allow_missing else None,
    }
    options.update({key: value for key, value in overrides.items() if value is not None})

    session = _get_session(config)
    try:
        result = Seeder.apply(
            session,
            path or config.seeds_path,
            environment=environment,
            models=_load_models(models),
            **options,
        )
        _display_run_result(result)
        console.print("[bold green]✓ Seeds applied successfully![/bold green]")
    except SeederError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        sys.exit(1)
    finally:
        session.close()


@cli.command()
@click.option(
    "--path",
    "-p",
    type=click.Path(),
    help="Seed directory (defaults to the configured seeds path)",
)
@click.pass_context
def status(ctx: click.Context, path: Optional[str]) -> None:
    """Show applied and pending seed files."""

    config = ctx.obj["config"]
    env_manager = ctx.obj["env_manager"]
    options = config.seeder_options()

    session = _get_session(config)
    try:
        seed_status = Seeder.status(session, path or config.seeds_path, **options)
    except SeederError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        sys.exit(1)
    finally:
        session.close()

    table = Table(title=f"Seed Status ({env_manager.current_environment})")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Applied", f"[green]{len(seed_status.applied)}[/green]")
    table.add_row("Pending", f"[yellow]{len(seed_status.pending)}[/yellow]")
    if seed_status.missing:
        table.add_row("Missing", f"[red]{len(seed_status.missing)}[/red]")
    console.print(table)

    if seed_status.pending:
        console.print("\n[bold yellow]Pending Seeds:[/bold yellow]")
        for name in seed_status.pending:
            console.print(f"  • {name}")
    if seed_status.missing:
        console.print("\n[bold red]Applied but missing from disk:[/bold red]")
        for name in seed_status.missing:
            console.print(f"  • {name}")


@cli.command()
@click.argument("name")
@click.option(
    "--format",
    "-f",
    "file_format",
    type=click.Choice(make_command.FORMATS),
    default="py",
    help="Seed file format",
)
@click.option(
    "--env",
    "-e",
    multiple=True,
    help="Environments this seed applies to (default: all)",
)
@click.option(
    "--path",
    "-p",
    type=click.Path(),
    help="Seed directory (defaults to the configured seeds path)",
)
@click.pass_context
def make(
    ctx: click.Context,
    name: str,
    file_format: str,
    env: tuple,
    path: Optional[str],
) -> None:
    """Create a new seed file."""

    config = ctx.obj["config"]

    try:
        file_path = make_command.create_seed(
            name=name,
            seeds_path=path or config.seeds_path,
            file_format=file_format,
            environments=list(env),
        )
    except FileExistsError as e:
        raise click.ClickException(str(e))

    console.print(f"[bold green]✓ Created seed: {file_path}[/bold green]")


def _get_session(config: Config) -> Session:
    """Get database session from configuration."""

    database_url = config.database_url
    if not database_url:
        raise click.ClickException(
            "No database URL configured. "
            "Set DATABASE_URL environment variable or use --database-url option."
        )

    engine = create_engine(database_url, echo=config.get("echo_sql", False))
    return sessionmaker(bind=engine)()


def _load_models(spec: Optional[str]) -> ModelRegistry:
    """Build the model registry from a ``module:Base`` reference."""

    if not spec:
        return ModelRegistry()

    module_name, _, attribute = spec.partition(":")
    if not attribute:
        raise click.BadParameter("expected 'module:Base'", param_hint="--models")

    try:
        base = getattr(importlib.import_module(module_name), attribute)
    except (ImportError, AttributeError) as e:
        raise click.BadParameter(f"cannot load {spec}: {e}", param_hint="--models")

    return ModelRegistry.from_base(base)


def _display_run_result(result: SeedRunResult) -> None:
    """Display run results in a table."""

    table = Table(title=f"Seed Results ({result.environment})")
    table.add_column("Seed", style="cyan")
    table.add_column("Status", style="white")

    for name in result.applied:
        table.add_row(name, "[green]applied[/green]")
    for name in result.skipped:
        table.add_row(name, "[yellow]skipped[/yellow]")

    console.print(table)
    console.print(f"Duration: {result.duration:.2f}s")


def main():
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
