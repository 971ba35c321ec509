"""
Tests for migrations.runner - bounded, ordered, halt-on-failure application.

Covers:
- Exact progress output for success and failure
- Ordering and direction isolation
- limit semantics (-1 all, 0 none, k prefix, k > total)
- Halt on first failure with the store error kept verbatim
- Read failures, missing/empty directories
- reset() down-then-up behavior
"""

import io

import pytest

from bookshelf_migrate.exceptions import (
    EmptyMigrationSetError,
    MigrationApplyError,
    MigrationDirectoryNotFoundError,
    MigrationFileReadError,
)
from bookshelf_migrate.migrations.catalog import Direction
from bookshelf_migrate.migrations.runner import (
    ALL,
    MigrationBatch,
    migrate,
    migrate_down,
    migrate_up,
    reset,
)
from bookshelf_migrate.storage.memory_store import InMemoryStore
from bookshelf_migrate.storage.store import MigrationStore

TWO_PAIRS = {
    "01.x.up.sql": "CREATE TABLE IF NOT EXISTS x (id INTEGER);",
    "01.x.down.sql": "DROP TABLE IF EXISTS x;",
    "02.y.up.sql": "CREATE TABLE IF NOT EXISTS y (id INTEGER);",
    "02.y.down.sql": "DROP TABLE IF EXISTS y;",
}


class ExplodingStore:
    """Store that raises a given exception for one migration name."""

    def __init__(self, fail_on: str, exc: BaseException):
        self.fail_on = fail_on
        self.exc = exc
        self.seen: list[str] = []

    def apply_migration(self, name: str, content: str) -> None:
        self.seen.append(name)
        if name == self.fail_on:
            raise self.exc


class WriteOnlySink:
    """Sink without flush(), recording each write separately."""

    def __init__(self):
        self.writes: list[str] = []

    def write(self, text: str) -> int:
        self.writes.append(text)
        return len(text)


@pytest.fixture
def two_pairs_dir(make_migrations_dir):
    return make_migrations_dir(TWO_PAIRS)


class TestProgressOutput:
    """Exact format of the progress sink."""

    def test_all_up(self, two_pairs_dir, memory_store):
        out = io.StringIO()

        batch = migrate(out, memory_store, two_pairs_dir, ALL, Direction.UP)

        assert batch.applied == ["01.x.up.sql", "02.y.up.sql"]
        assert out.getvalue() == (
            "applying 1/2: 01.x.up.sql ...SUCCESS\n"
            "applying 2/2: 02.y.up.sql ...SUCCESS\n"
        )

    def test_failure_line(self, two_pairs_dir):
        out = io.StringIO()
        store = ExplodingStore("02.y.up.sql", RuntimeError("syntax error near y"))

        migrate_up(out, store, two_pairs_dir)

        assert out.getvalue() == (
            "applying 1/2: 01.x.up.sql ...SUCCESS\n"
            "applying 2/2: 02.y.up.sql ...FAILURE: syntax error near y\n"
        )

    def test_denominator_is_full_candidate_count_under_limit(self, migrations_dir):
        out = io.StringIO()

        migrate_up(out, InMemoryStore(), migrations_dir, limit=1)

        assert out.getvalue() == "applying 1/3: 01.create_books.up.sql ...SUCCESS\n"

    def test_writes_each_fragment_to_sink_without_flush(self, two_pairs_dir):
        sink = WriteOnlySink()

        migrate_up(sink, InMemoryStore(), two_pairs_dir)

        assert sink.writes == [
            "applying 1/2: 01.x.up.sql ",
            "...SUCCESS\n",
            "applying 2/2: 02.y.up.sql ",
            "...SUCCESS\n",
        ]

    def test_prefix_written_before_store_is_called(self, two_pairs_dir):
        out = io.StringIO()
        observed = []

        class PeekingStore:
            def apply_migration(self, name, content):
                observed.append(out.getvalue())

        migrate_up(out, PeekingStore(), two_pairs_dir, limit=1)

        assert observed == ["applying 1/2: 01.x.up.sql "]


class TestOrderingAndDirection:
    """Catalog order and direction isolation through the runner."""

    def test_down_limit_one(self, two_pairs_dir, memory_store):
        out = io.StringIO()

        batch = migrate(out, memory_store, two_pairs_dir, 1, Direction.DOWN)

        assert batch.applied == ["02.y.down.sql"]
        assert batch.direction is Direction.DOWN
        assert out.getvalue() == "applying 1/2: 02.y.down.sql ...SUCCESS\n"

    def test_down_applies_descending(self, migrations_dir, memory_store):
        batch = migrate_down(io.StringIO(), memory_store, migrations_dir)

        assert batch.applied == sorted(batch.applied, reverse=True)
        assert memory_store.applied == batch.applied

    def test_up_never_touches_down_files(self, migrations_dir, memory_store):
        migrate_up(io.StringIO(), memory_store, migrations_dir)

        assert all(name.endswith("up.sql") for name in memory_store.applied)

    def test_passes_file_content_to_store(self, two_pairs_dir, memory_store):
        migrate_up(io.StringIO(), memory_store, two_pairs_dir)

        assert (
            memory_store.migrations["01.x.up.sql"].content
            == TWO_PAIRS["01.x.up.sql"]
        )

    def test_custom_suffix(self, make_migrations_dir, memory_store):
        directory = make_migrations_dir(
            {"01.a.fwd.sql": "", "02.b.fwd.sql": "", "01.a.up.sql": ""}
        )

        batch = migrate_up(io.StringIO(), memory_store, directory, suffix="fwd.sql")

        assert batch.applied == ["01.a.fwd.sql", "02.b.fwd.sql"]

    def test_accepts_direction_string(self, two_pairs_dir, memory_store):
        batch = migrate(io.StringIO(), memory_store, two_pairs_dir, ALL, "down")

        assert batch.direction is Direction.DOWN


class TestLimit:
    """Bounded application."""

    @pytest.mark.parametrize("limit", [0, 1, 2])
    def test_applies_prefix_of_catalog(self, migrations_dir, limit):
        store = InMemoryStore()

        batch = migrate_up(io.StringIO(), store, migrations_dir, limit=limit)

        expected = [
            "01.create_books.up.sql",
            "02.books_title_index.up.sql",
            "03.create_readers.up.sql",
        ][:limit]
        assert batch.applied == expected
        assert store.applied == expected
        assert batch.total == 3

    def test_limit_zero_writes_nothing(self, migrations_dir, memory_store):
        out = io.StringIO()

        batch = migrate_up(out, memory_store, migrations_dir, limit=0)

        assert batch.applied == []
        assert batch.completed
        assert out.getvalue() == ""
        assert memory_store.applied == []

    def test_limit_above_total_applies_all(self, migrations_dir, memory_store):
        batch = migrate_up(io.StringIO(), memory_store, migrations_dir, limit=10)

        assert len(batch.applied) == 3

    def test_all_applies_everything(self, migrations_dir, memory_store):
        batch = migrate_up(io.StringIO(), memory_store, migrations_dir, limit=ALL)

        assert len(batch.applied) == batch.total == 3

    def test_limit_below_minus_one_rejected(self, migrations_dir, memory_store):
        out = io.StringIO()

        with pytest.raises(ValueError, match="limit"):
            migrate_up(out, memory_store, migrations_dir, limit=-2)

        assert out.getvalue() == ""
        assert memory_store.applied == []


class TestHaltOnFailure:
    """The first failure stops the run."""

    def test_halts_and_returns_partial_batch(self, migrations_dir):
        out = io.StringIO()
        store = ExplodingStore(
            "02.books_title_index.up.sql", RuntimeError("index exists")
        )

        batch = migrate_up(out, store, migrations_dir)

        assert batch.applied == ["01.create_books.up.sql"]
        assert store.seen == ["01.create_books.up.sql", "02.books_title_index.up.sql"]
        assert "03.create_readers.up.sql" not in out.getvalue()
        assert out.getvalue().endswith("...FAILURE: index exists\n")
        assert not batch.completed
        assert batch.status == "halted"

    def test_store_error_kept_verbatim(self, two_pairs_dir):
        original = KeyError("backend specific")
        store = ExplodingStore("01.x.up.sql", original)

        batch = migrate_up(io.StringIO(), store, two_pairs_dir)

        assert batch.error is original
        assert batch.applied == []

    def test_raise_for_error_reraises_store_error(self, two_pairs_dir):
        store = ExplodingStore("02.y.up.sql", RuntimeError("boom"))

        batch = migrate_up(io.StringIO(), store, two_pairs_dir)

        with pytest.raises(RuntimeError, match="boom"):
            batch.raise_for_error()

    def test_rejecting_memory_store(self, make_migrations_dir):
        directory = make_migrations_dir(
            {
                "01.books.up.sql": "CREATE TABLE books (id INTEGER);",
                "02.cake.up.sql": "cake is superior",
                "03.readers.up.sql": "CREATE TABLE readers (id INTEGER);",
            }
        )
        out = io.StringIO()
        store = InMemoryStore(reject_patterns=["cake"])

        batch = migrate_up(out, store, directory)

        assert batch.applied == ["01.books.up.sql"]
        assert isinstance(batch.error, MigrationApplyError)
        assert out.getvalue() == (
            "applying 1/3: 01.books.up.sql ...SUCCESS\n"
            "applying 2/3: 02.cake.up.sql ...FAILURE: content rejected by pattern 'cake'\n"
        )
        assert store.applied == ["01.books.up.sql"]


class TestErrors:
    """Errors raised before or during file handling."""

    def test_missing_directory_writes_nothing(self, tmp_path, memory_store):
        out = io.StringIO()

        with pytest.raises(MigrationDirectoryNotFoundError):
            migrate_up(out, memory_store, tmp_path / "missing")

        assert out.getvalue() == ""

    def test_empty_directory(self, empty_migrations_dir, memory_store):
        out = io.StringIO()

        with pytest.raises(EmptyMigrationSetError):
            migrate_up(out, memory_store, empty_migrations_dir)

        assert out.getvalue() == ""

    def test_unreadable_file_halts_without_progress_line(
        self, make_migrations_dir, memory_store
    ):
        directory = make_migrations_dir({"01.a.up.sql": "SELECT 1;"})
        (directory / "02.b.up.sql").write_bytes(b"\xff\xfe\x00 not utf-8")
        (directory / "03.c.up.sql").write_text("SELECT 3;", encoding="utf-8")
        out = io.StringIO()

        batch = migrate_up(out, memory_store, directory)

        assert batch.applied == ["01.a.up.sql"]
        assert isinstance(batch.error, MigrationFileReadError)
        assert batch.error.name == "02.b.up.sql"
        assert isinstance(batch.error.__cause__, UnicodeDecodeError)
        assert out.getvalue() == "applying 1/3: 01.a.up.sql ...SUCCESS\n"
        assert memory_store.applied == ["01.a.up.sql"]


class TestMigrationBatch:
    """Test MigrationBatch result object."""

    def test_to_dict_completed(self):
        batch = MigrationBatch(direction=Direction.UP, total=2, applied=["a", "b"])

        assert batch.to_dict() == {
            "direction": "up",
            "applied": ["a", "b"],
            "total": 2,
            "status": "completed",
            "error": None,
        }

    def test_to_dict_halted(self):
        batch = MigrationBatch(
            direction=Direction.DOWN, total=2, error=RuntimeError("nope")
        )

        data = batch.to_dict()
        assert data["status"] == "halted"
        assert data["error"] == "nope"

    def test_raise_for_error_noop_when_completed(self):
        MigrationBatch(direction=Direction.UP, total=0).raise_for_error()


class TestRoundTrip:
    """Up, down and up again with content that is safe to re-run."""

    def test_up_down_up(self, migrations_dir, memory_store):
        first = migrate_up(io.StringIO(), memory_store, migrations_dir)
        down = migrate_down(io.StringIO(), memory_store, migrations_dir)
        second = migrate_up(io.StringIO(), memory_store, migrations_dir)

        assert first.applied == second.applied
        assert down.applied == [
            name.replace("up.sql", "down.sql") for name in reversed(first.applied)
        ]
        assert memory_store.calls["01.create_books.up.sql"] == 2


class TestReset:
    """Test reset()."""

    def test_runs_down_then_up(self, two_pairs_dir, memory_store):
        out = io.StringIO()

        down_batch, up_batch = reset(out, memory_store, two_pairs_dir)

        assert down_batch.applied == ["02.y.down.sql", "01.x.down.sql"]
        assert up_batch.applied == ["01.x.up.sql", "02.y.up.sql"]
        assert memory_store.applied == down_batch.applied + up_batch.applied
        assert out.getvalue().splitlines() == [
            "applying 1/2: 02.y.down.sql ...SUCCESS",
            "applying 2/2: 01.x.down.sql ...SUCCESS",
            "applying 1/2: 01.x.up.sql ...SUCCESS",
            "applying 2/2: 02.y.up.sql ...SUCCESS",
        ]

    def test_skips_up_when_down_halts(self, two_pairs_dir):
        store = ExplodingStore("01.x.down.sql", RuntimeError("locked"))

        down_batch, up_batch = reset(io.StringIO(), store, two_pairs_dir)

        assert up_batch is None
        assert down_batch.applied == ["02.y.down.sql"]
        assert not any(name.endswith("up.sql") for name in store.seen)


def test_memory_store_satisfies_protocol():
    assert isinstance(InMemoryStore(), MigrationStore)
    assert isinstance(ExplodingStore("x", RuntimeError()), MigrationStore)
