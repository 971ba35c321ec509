"""
CLI entrypoint for bookshelf-migrate.

Provides a dual-mode command-line interface with:
- Human-friendly output: progress lines as each migration runs, Rich panels
- Agent-friendly output: a single JSON document for automation
- Quiet mode: Tab-separated minimal output for shell scripts

Commands:
    up: Apply up migrations in ascending order
    down: Apply down migrations in descending order
    reset: Apply every down migration, then every up migration
    list: Show the ordered migrations for a direction
    validate: Validate configuration without touching the database

Exit codes:
    0: Success - every attempted migration applied
    1: Configuration error (invalid YAML, bad option values)
    2: Database error (cannot open SQLite database)
    3: Migration failed (run halted on the first failure)
    4: No migrations (directory missing or no files for the direction)

Examples:
    # Apply everything
    bookshelf-migrate up --config migrate.yaml

    # Roll back the two most recent migrations
    bookshelf-migrate down --limit 2

    # See what would be applied without touching the database
    bookshelf-migrate up --dry-run

    # Agent-friendly JSON output
    bookshelf-migrate up --format json
"""

import io
import logging
import sys
from pathlib import Path
from typing import TextIO

import typer
from pydantic import ValidationError
from rich.traceback import install as install_rich_traceback

from bookshelf_migrate.config.loader import load_config
from bookshelf_migrate.config.schema import MigrateConfig
from bookshelf_migrate.exceptions import (
    ConfigFileNotFoundError,
    ConfigValidationError,
    EmptyMigrationSetError,
    MigrationDirectoryNotFoundError,
    StoreConnectionError,
)
from bookshelf_migrate.migrations.catalog import Direction, discover_migrations
from bookshelf_migrate.migrations.runner import ALL, MigrationBatch, migrate, reset
from bookshelf_migrate.storage.memory_store import InMemoryStore
from bookshelf_migrate.storage.sqlite_store import open_store
from bookshelf_migrate.storage.store import MigrationStore
from bookshelf_migrate.utils.console import (
    error,
    info,
    output_mode,
    print_batch_summary,
    print_catalog_table,
    spinner,
    success,
    warning,
)
from bookshelf_migrate.utils.logging import setup_logging

# Install Rich tracebacks for better error messages
install_rich_traceback(show_locals=False)

logger = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0  # All attempted migrations applied
EXIT_CONFIG_ERROR = 1  # Config validation failed
EXIT_DB_ERROR = 2  # Database could not be opened
EXIT_MIGRATION_FAILED = 3  # Run halted on a failing migration
EXIT_NO_MIGRATIONS = 4  # Directory missing or empty for the direction

# Create Typer app
app = typer.Typer(
    name="bookshelf-migrate",
    help="Apply versioned SQL migrations to a bookshelf database",
    add_completion=False,
)

ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to YAML configuration file (defaults + BOOKSHELF_* env vars if omitted)",
    file_okay=True,
    dir_okay=False,
)
DirOption = typer.Option(
    None,
    "--dir",
    "-d",
    help="Migration directory (overrides config)",
)
DbOption = typer.Option(
    None,
    "--db",
    help="SQLite database path (overrides config)",
)
FormatOption = typer.Option(
    "text",
    "--format",
    "-f",
    help="Output format: 'text' (human-friendly) or 'json' (machine-readable)",
)
QuietOption = typer.Option(
    False,
    "--quiet",
    "-q",
    help="Minimal output (tab-separated values)",
)
VerboseOption = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Enable debug logging",
)
DryRunOption = typer.Option(
    False,
    "--dry-run",
    help="Apply to an in-memory store instead of the database",
)


def _set_output_mode(format: str, quiet: bool) -> None:
    if format not in ("text", "json"):
        output_mode.format = "text"
        output_mode.quiet = False
        error(f"Invalid format: {format}. Must be 'text' or 'json'")
        raise typer.Exit(EXIT_CONFIG_ERROR)
    output_mode.format = format
    output_mode.quiet = quiet


def _fail(message: str, exit_code: int) -> None:
    error(message)
    output_mode.flush_json()
    raise typer.Exit(exit_code)


def _resolve_config(
    config: Path | None,
    migrations_dir: str | None,
    db: str | None,
) -> MigrateConfig:
    """Load configuration and apply command-line overrides."""
    try:
        runtime_config = load_config(config)
        data = runtime_config.model_dump()
        if migrations_dir:
            data["migrations_dir"] = migrations_dir
        if db:
            data["database"]["path"] = db
        return MigrateConfig.model_validate(data)
    except ConfigFileNotFoundError as e:
        _fail(str(e), EXIT_CONFIG_ERROR)
    except ConfigValidationError as e:
        _fail(f"Configuration validation failed: {e}", EXIT_CONFIG_ERROR)
    except ValidationError as e:
        # Raised by command-line overrides
        _fail(f"Invalid option value: {e}", EXIT_CONFIG_ERROR)


def _open(runtime_config: MigrateConfig, dry_run: bool) -> MigrationStore:
    if dry_run:
        info("Dry run: migrations are recorded in memory only")
        return InMemoryStore()
    try:
        store = open_store(runtime_config)
    except StoreConnectionError as e:
        _fail(f"Failed to open database: {e}", EXIT_DB_ERROR)
    info(f"Database: {runtime_config.database.path}")
    return store


def _close(store: MigrationStore) -> None:
    close = getattr(store, "close", None)
    if close is not None:
        close()


def _progress_sink() -> TextIO:
    # Humans watch progress live; agents and scripts get it buffered
    if output_mode.is_human() and not output_mode.quiet:
        return sys.stdout
    return io.StringIO()


def _captured_progress(sink: TextIO) -> list[str]:
    if isinstance(sink, io.StringIO):
        return sink.getvalue().splitlines()
    return []


def _run_direction(
    direction: Direction,
    config: Path | None,
    migrations_dir: str | None,
    db: str | None,
    limit: int,
    dry_run: bool,
    format: str,
    quiet: bool,
    verbose: bool,
) -> None:
    _set_output_mode(format, quiet)
    setup_logging(verbose=verbose, quiet_logs=output_mode.is_human())

    runtime_config = _resolve_config(config, migrations_dir, db)
    store = _open(runtime_config, dry_run)
    sink = _progress_sink()

    try:
        batch = migrate(
            sink,
            store,
            runtime_config.migrations_dir,
            limit,
            direction,
            suffix=runtime_config.suffixes.for_direction(direction),
        )
    except (MigrationDirectoryNotFoundError, EmptyMigrationSetError) as e:
        _fail(str(e), EXIT_NO_MIGRATIONS)
    finally:
        _close(store)

    if output_mode.is_agent():
        output_mode.add_json("progress", _captured_progress(sink))
    print_batch_summary(batch, dry_run=dry_run)
    output_mode.flush_json()

    raise typer.Exit(EXIT_SUCCESS if batch.completed else EXIT_MIGRATION_FAILED)


@app.command()
def up(
    config: Path = ConfigOption,
    migrations_dir: str = DirOption,
    db: str = DbOption,
    limit: int = typer.Option(
        ALL,
        "--limit",
        "-n",
        min=ALL,
        help="Apply at most N migrations (-1 applies all)",
    ),
    dry_run: bool = DryRunOption,
    format: str = FormatOption,
    quiet: bool = QuietOption,
    verbose: bool = VerboseOption,
):
    """
    Apply up migrations in ascending name order.

    Stops at the first migration that fails. Migrations before it stay
    applied; nothing after it is attempted.

    Examples:
      bookshelf-migrate up
      bookshelf-migrate up --limit 1 --db ./bookshelf.db
    """
    _run_direction(
        Direction.UP, config, migrations_dir, db, limit, dry_run, format, quiet, verbose
    )


@app.command()
def down(
    config: Path = ConfigOption,
    migrations_dir: str = DirOption,
    db: str = DbOption,
    limit: int = typer.Option(
        ALL,
        "--limit",
        "-n",
        min=ALL,
        help="Apply at most N migrations (-1 applies all)",
    ),
    dry_run: bool = DryRunOption,
    format: str = FormatOption,
    quiet: bool = QuietOption,
    verbose: bool = VerboseOption,
):
    """
    Apply down migrations in descending name order.

    Examples:
      # Roll back the most recent migration
      bookshelf-migrate down --limit 1
    """
    _run_direction(
        Direction.DOWN, config, migrations_dir, db, limit, dry_run, format, quiet, verbose
    )


@app.command(name="reset")
def reset_command(
    config: Path = ConfigOption,
    migrations_dir: str = DirOption,
    db: str = DbOption,
    dry_run: bool = DryRunOption,
    format: str = FormatOption,
    quiet: bool = QuietOption,
    verbose: bool = VerboseOption,
):
    """
    Apply every down migration, then every up migration.

    The up pass only runs if the down pass completed. Requires migrations
    that are safe to re-run (CREATE ... IF NOT EXISTS, DROP ... IF EXISTS).
    """
    _set_output_mode(format, quiet)
    setup_logging(verbose=verbose, quiet_logs=output_mode.is_human())

    runtime_config = _resolve_config(config, migrations_dir, db)
    store = _open(runtime_config, dry_run)
    sink = _progress_sink()

    try:
        down_batch, up_batch = reset(
            sink,
            store,
            runtime_config.migrations_dir,
            up_suffix=runtime_config.suffixes.up,
            down_suffix=runtime_config.suffixes.down,
        )
    except (MigrationDirectoryNotFoundError, EmptyMigrationSetError) as e:
        _fail(str(e), EXIT_NO_MIGRATIONS)
    finally:
        _close(store)

    batches: list[MigrationBatch] = [down_batch] + ([up_batch] if up_batch else [])

    if output_mode.is_agent():
        output_mode.add_json("progress", _captured_progress(sink))
        output_mode.add_json("down", down_batch.to_dict())
        output_mode.add_json("up", up_batch.to_dict() if up_batch else None)
        output_mode.add_json("dry_run", dry_run)
        output_mode.add_json(
            "status",
            "completed" if up_batch is not None and up_batch.completed else "halted",
        )
        output_mode.flush_json()
    else:
        for batch in batches:
            print_batch_summary(batch, dry_run=dry_run)
        if up_batch is None:
            warning("Down migrations halted; up migrations were not attempted")

    if up_batch is None or not up_batch.completed:
        raise typer.Exit(EXIT_MIGRATION_FAILED)
    raise typer.Exit(EXIT_SUCCESS)


@app.command(name="list")
def list_command(
    config: Path = ConfigOption,
    migrations_dir: str = DirOption,
    direction: Direction = typer.Option(
        Direction.UP,
        "--direction",
        help="Which migrations to list",
    ),
    format: str = FormatOption,
    quiet: bool = QuietOption,
):
    """
    Show the migrations for a direction, in the order they would run.

    Examples:
      bookshelf-migrate list --direction down
    """
    _set_output_mode(format, quiet)
    runtime_config = _resolve_config(config, migrations_dir, None)

    try:
        migrations = discover_migrations(
            runtime_config.migrations_dir,
            direction,
            suffix=runtime_config.suffixes.for_direction(direction),
        )
    except (MigrationDirectoryNotFoundError, EmptyMigrationSetError) as e:
        _fail(str(e), EXIT_NO_MIGRATIONS)

    print_catalog_table(
        direction.value,
        runtime_config.migrations_dir,
        [m.name for m in migrations],
    )
    output_mode.flush_json()
    raise typer.Exit(EXIT_SUCCESS)


@app.command()
def validate(
    config: Path = ConfigOption,
    format: str = FormatOption,
):
    """
    Validate configuration without touching the database.

    Checks:
    - YAML syntax is valid
    - All field values pass validation rules
    - BOOKSHELF_* environment overrides are valid

    Exit codes:
      0: Configuration is valid
      1: Configuration is invalid
    """
    _set_output_mode(format, False)

    with spinner("Validating configuration..."):
        runtime_config = _resolve_config(config, None, None)

    success("Configuration is valid")
    info(f"Migrations directory: {runtime_config.migrations_dir}")
    info(f"Suffixes: up={runtime_config.suffixes.up!r} down={runtime_config.suffixes.down!r}")
    info(f"Database: {runtime_config.database.path}")
    info(f"Teardown deadline: {runtime_config.teardown.deadline_seconds:g}s")

    if not Path(runtime_config.migrations_dir).is_dir():
        warning(f"Migration directory does not exist: {runtime_config.migrations_dir}")

    if output_mode.is_agent():
        output_mode.add_json("valid", True)
        output_mode.add_json("config", runtime_config.model_dump())
        output_mode.flush_json()

    raise typer.Exit(EXIT_SUCCESS)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
    ),
):
    """
    bookshelf-migrate - apply a directory of versioned SQL migrations.

    Migration files live in one flat directory. A sortable prefix sets their
    order and a suffix sets their direction, e.g. 0001_books.up.sql and
    0001_books.down.sql.

    Exit codes:
      0: Success
      1: Configuration error
      2: Database error
      3: Migration failed
      4: No migrations found
    """
    if version:
        from rich.console import Console

        console = Console()
        console.print(f"[bold cyan]bookshelf-migrate[/bold cyan] version {_read_version()}")
        raise typer.Exit(EXIT_SUCCESS)

    if ctx.invoked_subcommand is None:
        from rich.console import Console

        console = Console()
        console.print("[yellow]Use --help to see available commands[/yellow]")


def _read_version() -> str:
    """Read version from package metadata (pyproject.toml)."""
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("bookshelf-migrate")
    except PackageNotFoundError:
        return "0.1.0"


if __name__ == "__main__":
    app()
