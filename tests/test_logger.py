"""Tests for the logging configuration."""

import logging

from conduit.logger import ConsoleFormatter, get_logger, set_level


def make_record(level, message):
    return logging.LogRecord("conduit.fetch", level, __file__, 1, message, None, None)


def test_handler_attached_once():
    get_logger("conduit.upload")
    get_logger()
    get_logger("conduit.status")

    assert len(logging.getLogger("conduit").handlers) == 1


def test_stage_loggers_propagate_without_handlers():
    logger = get_logger("conduit.transform")

    assert logger.handlers == []
    assert logger.propagate is True
    assert logger.parent.name == "conduit"


def test_stage_message_recorded_once(caplog):
    with caplog.at_level(logging.INFO):
        get_logger("conduit.fetch").info("Fetching page 1")

    assert [r.message for r in caplog.records].count("Fetching page 1") == 1


def test_formatter_leaves_progress_plain():
    formatter = ConsoleFormatter("%(message)s")

    assert formatter.format(make_record(logging.INFO, "Step 1/4")) == "Step 1/4"


def test_formatter_prefixes_warnings_and_errors():
    formatter = ConsoleFormatter("%(message)s")

    assert formatter.format(make_record(logging.WARNING, "Skipping institution BAD")) == "WARNING: Skipping institution BAD"
    assert formatter.format(make_record(logging.ERROR, "Pipeline aborted")) == "ERROR: Pipeline aborted"


def test_set_level_applies_to_stage_loggers():
    root = get_logger()
    previous = root.level
    try:
        set_level("debug")
        assert get_logger("conduit.fetch").isEnabledFor(logging.DEBUG)

        set_level("WARNING")
        assert not get_logger("conduit.fetch").isEnabledFor(logging.INFO)
    finally:
        root.setLevel(previous)


def test_unknown_level_falls_back_to_info():
    root = get_logger()
    previous = root.level
    try:
        set_level("chatty")
        assert root.level == logging.INFO
    finally:
        root.setLevel(previous)
