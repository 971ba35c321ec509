"""Tests for storage.memory_store - recording in-memory MigrationStore."""

import pytest

from bookshelf_migrate.exceptions import MigrationApplyError, StoreError
from bookshelf_migrate.storage.memory_store import InMemoryStore


def test_records_application_order():
    store = InMemoryStore()

    store.apply_migration("01.a.up.sql", "CREATE TABLE a (id INTEGER);")
    store.apply_migration("02.b.up.sql", "CREATE TABLE b (id INTEGER);")

    assert store.applied == ["01.a.up.sql", "02.b.up.sql"]
    assert store.migrations["02.b.up.sql"].content == "CREATE TABLE b (id INTEGER);"


def test_counts_repeated_applications():
    store = InMemoryStore()

    store.apply_migration("01.a.up.sql", "first")
    store.apply_migration("01.a.up.sql", "second")

    assert store.calls == {"01.a.up.sql": 2}
    assert store.applied == ["01.a.up.sql", "01.a.up.sql"]
    # Content of the first application is kept
    assert store.migrations["01.a.up.sql"].content == "first"


def test_reject_pattern_is_case_insensitive():
    store = InMemoryStore(reject_patterns=["Cake"])

    with pytest.raises(MigrationApplyError) as exc_info:
        store.apply_migration("02.cake.up.sql", "CAKE is superior")

    assert exc_info.value.name == "02.cake.up.sql"
    assert str(exc_info.value) == "content rejected by pattern 'cake'"
    assert isinstance(exc_info.value, StoreError)


def test_rejected_migration_is_not_recorded():
    store = InMemoryStore(reject_patterns=["cake"])

    with pytest.raises(MigrationApplyError):
        store.apply_migration("02.cake.up.sql", "cake")

    assert store.applied == []
    assert store.calls == {}
