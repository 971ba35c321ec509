"""
Storage backend contract for the migration runner.

The runner only ever needs one capability from a backend: apply the content
of a named migration. MigrationStore captures that as a Protocol so any object
with a matching apply_migration method can be migrated, without inheriting
from a base class.

Bundled implementations:
- storage.sqlite_store.SQLiteStore: executes migrations against SQLite
- storage.memory_store.InMemoryStore: records migrations in memory (dry runs, tests)

Example implementation:
    >>> class PrintingStore:
    ...     def apply_migration(self, name: str, content: str) -> None:
    ...         print(f"-- {name}\\n{content}")
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class MigrationStore(Protocol):
    """
    Backend capable of applying a single migration.

    Methods:
        apply_migration: Apply one migration's content, raising on failure

    Note:
        Implementations decide what "applying" means. The runner passes the
        migration name through unmodified so an implementation may use it for
        logging or idempotency bookkeeping, but the runner itself does not
        require idempotency. Re-running a migration safely is a property of
        the migration content (e.g. CREATE TABLE IF NOT EXISTS).
    """

    def apply_migration(self, name: str, content: str) -> None:
        """
        Apply the literal content of one migration file.

        Args:
            name: Base name of the migration file
            content: Full text of the migration file

        Raises:
            Exception: Any error signals failure. The runner reports it,
                keeps it unchanged on the returned batch, and stops.
        """
        ...
