"""Shared fixtures for bookshelf-migrate tests."""

import pytest

from bookshelf_migrate.storage.memory_store import InMemoryStore

# Up/down pairs for a small bookshelf schema. Content is safe to re-run.
BOOKSHELF_MIGRATIONS = {
    "01.create_books.up.sql": (
        "CREATE TABLE IF NOT EXISTS books (\n"
        "    id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
        "    title TEXT NOT NULL,\n"
        "    author TEXT NOT NULL\n"
        ");\n"
    ),
    "01.create_books.down.sql": "DROP TABLE IF EXISTS books;\n",
    "02.books_title_index.up.sql": (
        "CREATE UNIQUE INDEX IF NOT EXISTS books_title ON books (title);\n"
    ),
    "02.books_title_index.down.sql": "DROP INDEX IF EXISTS books_title;\n",
    "03.create_readers.up.sql": (
        "CREATE TABLE IF NOT EXISTS readers (\n"
        "    id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
        "    name TEXT NOT NULL\n"
        ");\n"
    ),
    "03.create_readers.down.sql": "DROP TABLE IF EXISTS readers;\n",
}


def write_migrations(directory, migrations):
    """Write {name: content} into ``directory`` and return it."""
    directory.mkdir(parents=True, exist_ok=True)
    for name, content in migrations.items():
        (directory / name).write_text(content, encoding="utf-8")
    return directory


@pytest.fixture
def migrations_dir(tmp_path):
    """Directory holding three up/down migration pairs."""
    return write_migrations(tmp_path / "migrations", BOOKSHELF_MIGRATIONS)


@pytest.fixture
def empty_migrations_dir(tmp_path):
    """Existing directory with no migration files."""
    directory = tmp_path / "empty"
    directory.mkdir()
    return directory


@pytest.fixture
def memory_store():
    """In-memory store that accepts everything."""
    return InMemoryStore()


@pytest.fixture
def make_migrations_dir(tmp_path):
    """Factory writing {name: content} into a fresh directory under tmp_path."""
    counter = iter(range(1000))

    def _make(migrations):
        return write_migrations(tmp_path / f"custom_{next(counter)}", migrations)

    return _make
