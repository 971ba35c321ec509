"""
SQLite implementation of the MigrationStore protocol.

SQLiteStore executes each migration's content as a SQL script against a
single SQLite connection. Every successful application is also appended to
a migration_history bookkeeping table (name + UTC timestamp). The history
is informational only; the runner never consults it to skip migrations.

Transactions inside a migration are the migration author's responsibility:
wrap multi-statement changes in BEGIN/COMMIT if they must be atomic. When a
script fails mid-transaction the open transaction is rolled back.

The connection is released with close_with_backoff(), bounded by the
configured teardown deadline.

Example usage:
    >>> import sys
    >>> from bookshelf_migrate.migrations.runner import migrate_up
    >>> with SQLiteStore("./bookshelf.db") as store:
    ...     batch = migrate_up(sys.stdout, store, "./migrations")
    applying 1/2: 01.create_books.up.sql ...SUCCESS
    applying 2/2: 02.books_unique.up.sql ...SUCCESS

Security:
    - Migration content is executed as-is; only run migrations you trust
    - History inserts use parameterized statements
"""

import io
import logging
import shutil
import sqlite3
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from bookshelf_migrate.config.schema import MigrateConfig, TeardownSettings
from bookshelf_migrate.exceptions import MigrationApplyError, StoreConnectionError
from bookshelf_migrate.migrations.runner import migrate_up
from bookshelf_migrate.utils.teardown import close_with_backoff
from bookshelf_migrate.utils.time import utc_timestamp

logger = logging.getLogger(__name__)

HISTORY_TABLE = "migration_history"


class SQLiteStore:
    """
    MigrationStore backed by a SQLite database file.

    Attributes:
        path: Filesystem path of the database (":memory:" is allowed)
        teardown: Deadline/backoff settings used by close()
    """

    def __init__(
        self,
        path: str | Path,
        timeout: float = 5.0,
        teardown: TeardownSettings | None = None,
    ):
        self.path = str(path)
        self.teardown = teardown or TeardownSettings()

        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        self._conn: sqlite3.Connection | None = None
        try:
            self._conn = sqlite3.connect(self.path, timeout=timeout)
            self._conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {HISTORY_TABLE} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    applied_at TEXT NOT NULL
                )
            """)
            self._conn.commit()
        except (sqlite3.Error, OSError) as e:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
            raise StoreConnectionError(
                f"unable to open database {self.path!r}: {e}"
            ) from e

        logger.debug(f"Opened SQLite store at {self.path}")

    @property
    def connection(self) -> sqlite3.Connection:
        """The open connection. Raises StoreConnectionError once closed."""
        if self._conn is None:
            raise StoreConnectionError(f"database {self.path!r} is closed")
        return self._conn

    def apply_migration(self, name: str, content: str) -> None:
        """
        Execute a migration script and record it in migration_history.

        Raises:
            MigrationApplyError: If SQLite rejects the script. The original
                sqlite3.Error is chained as __cause__.
        """
        conn = self.connection
        try:
            conn.executescript(content)
            conn.execute(
                f"INSERT INTO {HISTORY_TABLE} (name, applied_at) VALUES (?, ?)",
                (name, utc_timestamp()),
            )
            conn.commit()
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.rollback()
            raise MigrationApplyError(str(e), name=name) from e

    def history(self) -> list[tuple[str, str]]:
        """Return (name, applied_at) for every recorded application, oldest first."""
        cursor = self.connection.execute(
            f"SELECT name, applied_at FROM {HISTORY_TABLE} ORDER BY id"
        )
        return [(row[0], row[1]) for row in cursor.fetchall()]

    def close(self) -> None:
        """
        Close the connection, retrying with backoff until the teardown deadline.

        Safe to call more than once.

        Raises:
            TeardownTimeoutError: If the connection cannot be closed in time
        """
        if self._conn is None:
            return
        close_with_backoff(
            self._conn.close,
            self.teardown.deadline_seconds,
            resource=f"database {self.path!r}",
            backoff_unit=self.teardown.backoff_unit_seconds,
        )
        self._conn = None

    def __enter__(self) -> "SQLiteStore":
        return self

    def __exit__(self, *args) -> None:
        self.close()


def open_store(config: MigrateConfig) -> SQLiteStore:
    """Open the SQLite store described by ``config.database``."""
    return SQLiteStore(
        config.database.path,
        timeout=config.database.timeout_seconds,
        teardown=config.teardown,
    )


@contextmanager
def temporary_store(
    migrations_dir: str | Path,
    migrate: bool = True,
    up_suffix: str | None = None,
    teardown: TeardownSettings | None = None,
) -> Iterator[SQLiteStore]:
    """
    Yield a throwaway SQLite store, optionally migrated fully up.

    The database lives in its own temporary directory. On exit the
    connection is closed and the directory removed, both retried with
    backoff within the teardown deadline.

    Args:
        migrations_dir: Directory of migrations to apply when ``migrate`` is True
        migrate: Apply every up migration before yielding
        up_suffix: Suffix selecting up migrations (default "up.sql")
        teardown: Deadline/backoff settings for closing and removal

    Raises:
        Any error halting the initial migration run (re-raised as-is)

    Example:
        >>> with temporary_store("./migrations") as store:
        ...     store.connection.execute("INSERT INTO books (title, author) VALUES (?, ?)", ...)
    """
    teardown = teardown or TeardownSettings()
    tmpdir = tempfile.mkdtemp(prefix="bookshelf_test_db_")
    store = None

    try:
        store = SQLiteStore(Path(tmpdir) / "test.db", teardown=teardown)
        if migrate:
            # Progress of the setup run is not interesting to callers
            batch = migrate_up(io.StringIO(), store, migrations_dir, suffix=up_suffix)
            batch.raise_for_error()
        yield store
    finally:
        if store is not None:
            store.close()
        close_with_backoff(
            lambda: shutil.rmtree(tmpdir),
            teardown.deadline_seconds,
            resource=f"temporary database directory {tmpdir!r}",
            backoff_unit=teardown.backoff_unit_seconds,
        )
