"""Tests for structured logging setup."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from wraith.log import configure_logging


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    structlog.reset_defaults()


def test_json_output_on_stderr(capsys):
    configure_logging("INFO", json_output=True)
    structlog.get_logger("wraith.test").info("file_ingested", chunks=3)

    line = capsys.readouterr().err.strip().splitlines()[-1]
    event = json.loads(line)
    assert event["event"] == "file_ingested"
    assert event["chunks"] == 3
    assert event["level"] == "info"
    assert "timestamp" in event


def test_level_filters_lower_events(capsys):
    configure_logging("WARNING")
    log = structlog.get_logger("wraith.test")
    log.info("hidden_event")
    log.warning("shown_event")

    err = capsys.readouterr().err
    assert "shown_event" in err
    assert "hidden_event" not in err


def test_level_name_is_case_insensitive():
    configure_logging("debug")
    assert logging.getLogger().level == logging.DEBUG


def test_litellm_logger_kept_at_warning():
    configure_logging("DEBUG")
    assert logging.getLogger("LiteLLM").level == logging.WARNING


def test_unknown_level_raises():
    with pytest.raises(ValueError, match="Unknown log level"):
        configure_logging("CHATTY")
