"""
Migration runner: applies a directory of migrations against a store.

The runner discovers the migrations for one direction, then applies them one
at a time, in catalog order, through MigrationStore.apply_migration. Progress
is written to a text sink as each migration is attempted:

    applying 1/3: 01.create_books.up.sql ...SUCCESS
    applying 2/3: 02.books_unique.up.sql ...FAILURE: UNIQUE constraint failed

The first failure halts the run. Nothing after it is attempted, and the
returned MigrationBatch holds exactly the migrations applied before it along
with the error that stopped the run.

Run outcomes:
- Directory missing or no candidates: exception raised, nothing written
- Halted on failure: partial output, partial batch, batch.error set
- Completed: full output, full batch, batch.error is None

Example:
    >>> import sys
    >>> from bookshelf_migrate.migrations.runner import migrate_up
    >>> batch = migrate_up(sys.stdout, store, "migrations")
    applying 1/2: 01.create_books.up.sql ...SUCCESS
    applying 2/2: 02.books_unique.up.sql ...SUCCESS
    >>> batch.applied
    ['01.create_books.up.sql', '02.books_unique.up.sql']
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from bookshelf_migrate.exceptions import MigrationFileReadError
from bookshelf_migrate.migrations.catalog import Direction, discover_migrations
from bookshelf_migrate.storage.store import MigrationStore
from bookshelf_migrate.utils.logging import log_with_context

logger = logging.getLogger(__name__)

# Apply every discovered migration
ALL = -1


@dataclass
class MigrationBatch:
    """
    Result of one migration run.

    Attributes:
        direction: Direction the run was made in
        total: Number of candidate migrations discovered (not limited)
        applied: Names applied successfully, in application order
        error: Exception that halted the run, or None if it completed.
            Store errors are kept exactly as the store raised them.
    """

    direction: Direction
    total: int
    applied: list[str] = field(default_factory=list)
    error: BaseException | None = None

    @property
    def completed(self) -> bool:
        """True if every attempted migration succeeded."""
        return self.error is None

    @property
    def status(self) -> str:
        """Either "completed" or "halted"."""
        return "completed" if self.completed else "halted"

    def to_dict(self) -> dict:
        """JSON-serializable summary of the run."""
        return {
            "direction": self.direction.value,
            "applied": list(self.applied),
            "total": self.total,
            "status": self.status,
            "error": str(self.error) if self.error is not None else None,
        }

    def raise_for_error(self) -> None:
        """Re-raise the error that halted the run, if any."""
        if self.error is not None:
            raise self.error


def _write(out: TextIO, text: str) -> None:
    out.write(text)
    # Each attempt's output must be visible before the next one starts
    flush = getattr(out, "flush", None)
    if flush is not None:
        flush()


def migrate(
    out: TextIO,
    store: MigrationStore,
    directory: str | Path,
    limit: int = ALL,
    direction: Direction = Direction.UP,
    suffix: str | None = None,
) -> MigrationBatch:
    """
    Apply up to ``limit`` migrations from ``directory`` to ``store``.

    Args:
        out: Text sink for progress lines (e.g. sys.stdout, io.StringIO)
        store: Backend implementing MigrationStore
        directory: Directory holding the migration files
        limit: Maximum number of migrations to attempt; -1 applies all,
            0 applies none
        direction: Direction.UP (ascending order) or Direction.DOWN (descending)
        suffix: Filename suffix selecting this direction's files. Defaults to
            the catalog's suffix convention ("up.sql" / "down.sql").

    Returns:
        MigrationBatch with the applied names and, if the run halted, the error

    Raises:
        MigrationDirectoryNotFoundError: If ``directory`` does not exist
        EmptyMigrationSetError: If there are no migrations for ``direction``
        ValueError: If ``limit`` is less than -1

    Note:
        Progress lines report ``i/total`` where total is the number of
        discovered candidates, even when ``limit`` stops the run early.
    """
    if limit < ALL:
        raise ValueError(f"limit must be -1 (all) or non-negative, got: {limit}")

    direction = Direction(direction)
    candidates = discover_migrations(directory, direction, suffix=suffix)
    total = len(candidates)
    window = candidates if limit == ALL else candidates[:limit]

    batch = MigrationBatch(direction=direction, total=total)
    logger.info(
        f"Applying {len(window)} of {total} {direction.value} migrations from {directory}"
    )

    for position, migration in enumerate(window, start=1):
        context = {
            "migration": migration.name,
            "position": position,
            "total": total,
            "direction": direction.value,
        }

        try:
            content = migration.read()
        except (OSError, UnicodeDecodeError) as e:
            log_with_context(
                logger,
                logging.ERROR,
                f"failed to read migration file {migration.name}: {e}",
                context=context,
            )
            read_error = MigrationFileReadError(
                f"failed to read migration file {migration.name}: {e}",
                name=migration.name,
            )
            read_error.__cause__ = e
            batch.error = read_error
            return batch

        _write(out, f"applying {position}/{total}: {migration.name} ")
        try:
            store.apply_migration(migration.name, content)
        except Exception as e:
            _write(out, f"...FAILURE: {e}\n")
            log_with_context(
                logger,
                logging.ERROR,
                f"Migration {migration.name} failed: {e}",
                context=context,
            )
            batch.error = e
            return batch

        _write(out, "...SUCCESS\n")
        batch.applied.append(migration.name)
        log_with_context(
            logger, logging.DEBUG, f"Applied {migration.name}", context=context
        )

    logger.info(f"Applied {len(batch.applied)} {direction.value} migrations")
    return batch


def migrate_up(
    out: TextIO,
    store: MigrationStore,
    directory: str | Path,
    limit: int = ALL,
    suffix: str | None = None,
) -> MigrationBatch:
    """migrate() with direction fixed to Direction.UP."""
    return migrate(out, store, directory, limit, Direction.UP, suffix=suffix)


def migrate_down(
    out: TextIO,
    store: MigrationStore,
    directory: str | Path,
    limit: int = ALL,
    suffix: str | None = None,
) -> MigrationBatch:
    """migrate() with direction fixed to Direction.DOWN."""
    return migrate(out, store, directory, limit, Direction.DOWN, suffix=suffix)


def reset(
    out: TextIO,
    store: MigrationStore,
    directory: str | Path,
    up_suffix: str | None = None,
    down_suffix: str | None = None,
) -> tuple[MigrationBatch, MigrationBatch | None]:
    """
    Roll every migration back, then apply every migration again.

    Used to bring a scratch or test database back to a clean, fully migrated
    state. Relies on the migration content being safe to re-run.

    Args:
        out: Text sink for progress lines of both runs
        store: Backend implementing MigrationStore
        directory: Directory holding the migration files
        up_suffix: Suffix selecting up migrations (default "up.sql")
        down_suffix: Suffix selecting down migrations (default "down.sql")

    Returns:
        (down_batch, up_batch). up_batch is None if the down run halted,
        in which case no up migration was attempted.

    Raises:
        MigrationDirectoryNotFoundError: If ``directory`` does not exist
        EmptyMigrationSetError: If either direction has no migrations
    """
    down_batch = migrate_down(out, store, directory, ALL, suffix=down_suffix)
    if not down_batch.completed:
        return down_batch, None

    up_batch = migrate_up(out, store, directory, ALL, suffix=up_suffix)
    return down_batch, up_batch
