"""
Migration file discovery and ordering.

Given a directory and a direction, produces the deterministic, ordered list
of migration files to apply:

- Only regular files directly inside the directory are considered
  (subdirectories are ignored, not errored on)
- Files are kept only if their name ends with the direction's suffix
- Up migrations sort ascending by name, down migrations descending

Ordering is always by explicit sort, never by filesystem listing order, so a
zero-padded numeric prefix ("0001_", "0002_", ...) sets execution order.

Example:
    >>> from bookshelf_migrate.migrations.catalog import Direction, discover_migrations
    >>> [m.name for m in discover_migrations("migrations", Direction.DOWN)]
    ['02.books_unique.down.sql', '01.create_books.down.sql']
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from bookshelf_migrate.exceptions import (
    EmptyMigrationSetError,
    MigrationDirectoryNotFoundError,
)

logger = logging.getLogger(__name__)


class Direction(str, Enum):
    """Direction a migration moves the schema: forward (UP) or back (DOWN)."""

    UP = "up"
    DOWN = "down"


# Suffix convention used when no configuration overrides it
DEFAULT_SUFFIXES: dict[Direction, str] = {
    Direction.UP: "up.sql",
    Direction.DOWN: "down.sql",
}


@dataclass(frozen=True)
class MigrationFile:
    """
    One migration file on disk.

    Attributes:
        name: Base name of the file (sort key and store identifier)
        path: Full path used to read the file's content
    """

    name: str
    path: Path

    def read(self) -> str:
        """Read the migration's content as UTF-8 text."""
        return self.path.read_text(encoding="utf-8")


def discover_migrations(
    directory: str | Path,
    direction: Direction,
    suffix: str | None = None,
) -> list[MigrationFile]:
    """
    List, filter and order the migration files in ``directory``.

    Args:
        directory: Directory holding the migration files (not searched recursively)
        direction: Direction.UP or Direction.DOWN
        suffix: Filename suffix selecting this direction's files. Defaults to
            DEFAULT_SUFFIXES[direction].

    Returns:
        Migration files ordered ascending by name for UP, descending for DOWN

    Raises:
        MigrationDirectoryNotFoundError: If ``directory`` does not exist
        EmptyMigrationSetError: If no file matches the direction's suffix
    """
    direction = Direction(direction)
    directory = Path(directory)
    if suffix is None:
        suffix = DEFAULT_SUFFIXES[direction]

    # A plain file at that path counts as a missing directory
    if not directory.is_dir():
        raise MigrationDirectoryNotFoundError(
            f"migration directory does not exist: {directory}",
            directory=str(directory),
        )

    candidates = [
        MigrationFile(name=entry.name, path=entry)
        for entry in directory.iterdir()
        if entry.is_file() and entry.name.endswith(suffix)
    ]

    if not candidates:
        raise EmptyMigrationSetError(
            f"no {direction.value} migrations ending in {suffix!r} found in {directory}",
            directory=str(directory),
            direction=direction.value,
        )

    candidates.sort(key=lambda m: m.name, reverse=direction is Direction.DOWN)

    logger.debug(
        f"Discovered {len(candidates)} {direction.value} migrations in {directory}",
        extra={
            "context": {
                "directory": str(directory),
                "direction": direction.value,
                "count": len(candidates),
            }
        },
    )
    return candidates
