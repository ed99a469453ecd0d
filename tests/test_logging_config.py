import json

import pytest
from loguru import logger

from tripwire.logging_config import configure_logging


@pytest.fixture(autouse=True)
def _drop_handlers():
    yield
    logger.remove()


def _messages(out):
    return [json.loads(line)["record"]["message"] for line in out.splitlines() if line.strip()]


def test_configured_level_filters_records(capsys):
    assert configure_logging("warning") == "WARNING"
    logger.info("routine")
    logger.bind(security_event={"category": "SlowRequest"}).warning("slow")

    out = capsys.readouterr().out
    assert _messages(out) == ["slow"]
    assert json.loads(out.splitlines()[0])["record"]["extra"]["security_event"]["category"] == "SlowRequest"


def test_unknown_level_falls_back_to_info(capsys):
    assert configure_logging("chatty") == "INFO"
    logger.debug("hidden")
    logger.info("shown")
    assert _messages(capsys.readouterr().out) == ["unknown log level 'chatty', using INFO", "shown"]


def test_level_defaults_to_env(monkeypatch):
    monkeypatch.setenv("TW_LOG_LEVEL", "debug")
    assert configure_logging() == "DEBUG"
