"""Tests for utils.logging - JSON formatter and logging setup."""

import json
import logging
import sys
from pathlib import Path

import pytest
from freezegun import freeze_time

from bookshelf_migrate.utils.logging import (
    JSONFormatter,
    log_with_context,
    setup_logging,
)


def _record(message="hello", level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="bookshelf_migrate.migrations.runner",
        level=level,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJSONFormatter:
    """Test JSONFormatter output."""

    @freeze_time("2025-11-02 08:30:45")
    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(_record("Applied 01.a.up.sql")))

        assert entry == {
            "timestamp": "2025-11-02T08:30:45Z",
            "level": "INFO",
            "component": "bookshelf_migrate.migrations.runner",
            "message": "Applied 01.a.up.sql",
        }

    def test_context_included_and_serializable(self):
        record = _record(context={"directory": Path("migrations"), "total": 3})

        entry = json.loads(JSONFormatter().format(record))

        assert entry["context"] == {"directory": "migrations", "total": 3}

    def test_non_dict_context_ignored(self):
        entry = json.loads(JSONFormatter().format(_record(context="oops")))
        assert "context" not in entry

    def test_exception_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        entry = json.loads(JSONFormatter().format(record))

        assert "RuntimeError: boom" in entry["exception"]


class TestSetupLogging:
    """Test setup_logging() levels and handlers."""

    @pytest.mark.parametrize(
        ("verbose", "quiet_logs", "expected"),
        [
            (False, False, logging.INFO),
            (True, False, logging.DEBUG),
            (False, True, logging.WARNING),
            (True, True, logging.DEBUG),
        ],
    )
    def test_levels(self, restore_root_logger, verbose, quiet_logs, expected):
        setup_logging(verbose=verbose, quiet_logs=quiet_logs)

        assert restore_root_logger.level == expected

    def test_single_stderr_json_handler(self, restore_root_logger):
        setup_logging()
        setup_logging()

        assert len(restore_root_logger.handlers) == 1
        handler = restore_root_logger.handlers[0]
        assert handler.stream is sys.stderr
        assert isinstance(handler.formatter, JSONFormatter)


def test_log_with_context(caplog):
    logger = logging.getLogger("bookshelf_migrate.tests")

    with caplog.at_level(logging.ERROR, logger="bookshelf_migrate.tests"):
        log_with_context(
            logger, logging.ERROR, "Migration failed", context={"position": 2}
        )
        log_with_context(logger, logging.ERROR, "No context")

    assert caplog.records[0].context == {"position": 2}
    assert not hasattr(caplog.records[1], "context")
