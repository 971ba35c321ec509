"""
In-memory migration store.

Implements the MigrationStore protocol without touching a database. Every
application is recorded, which makes it useful for:

- Dry runs (`bookshelf-migrate up --dry-run`) that show what would be applied
- Tests that need to assert on call order and call counts

Content matching any of the reject patterns (case-insensitive) is refused
with MigrationApplyError, to simulate a backend rejecting a statement.

Example:
    >>> store = InMemoryStore(reject_patterns=["cake"])
    >>> store.apply_migration("01.books.up.sql", "CREATE TABLE books (id INT);")
    >>> store.calls["01.books.up.sql"]
    1
    >>> store.apply_migration("02.cake.up.sql", "cake is superior")
    Traceback (most recent call last):
    ...
    bookshelf_migrate.exceptions.MigrationApplyError: content rejected by pattern 'cake'
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from bookshelf_migrate.exceptions import MigrationApplyError

logger = logging.getLogger(__name__)


@dataclass
class RecordedMigration:
    """A migration seen by InMemoryStore, with the content of its first application."""

    name: str
    content: str
    calls: int = 0


class InMemoryStore:
    """
    MigrationStore that records applications in memory.

    Attributes:
        migrations: Recorded migrations keyed by name
        applied: Names in the order they were applied (repeats included)
    """

    def __init__(self, reject_patterns: Iterable[str] = ()):
        self.reject_patterns = [p.lower() for p in reject_patterns]
        self.migrations: dict[str, RecordedMigration] = {}
        self.applied: list[str] = []

    def apply_migration(self, name: str, content: str) -> None:
        lowered = content.lower()
        for pattern in self.reject_patterns:
            if pattern in lowered:
                raise MigrationApplyError(
                    f"content rejected by pattern {pattern!r}", name=name
                )

        recorded = self.migrations.setdefault(
            name, RecordedMigration(name=name, content=content)
        )
        recorded.calls += 1
        self.applied.append(name)
        logger.debug(f"Recorded migration {name} (call {recorded.calls})")

    @property
    def calls(self) -> dict[str, int]:
        """Number of times each migration has been applied."""
        return {name: m.calls for name, m in self.migrations.items()}
