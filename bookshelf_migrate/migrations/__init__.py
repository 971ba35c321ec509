"""
Migration discovery and application.

Exports:
    Direction, MigrationFile, discover_migrations: ordered catalog of files
    MigrationBatch, migrate, migrate_up, migrate_down, reset: the runner
"""

from bookshelf_migrate.migrations.catalog import (
    DEFAULT_SUFFIXES,
    Direction,
    MigrationFile,
    discover_migrations,
)
from bookshelf_migrate.migrations.runner import (
    ALL,
    MigrationBatch,
    migrate,
    migrate_down,
    migrate_up,
    reset,
)

__all__ = [
    "ALL",
    "DEFAULT_SUFFIXES",
    "Direction",
    "MigrationBatch",
    "MigrationFile",
    "discover_migrations",
    "migrate",
    "migrate_down",
    "migrate_up",
    "reset",
]
