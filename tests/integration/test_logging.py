"""Integration tests for logging setup."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest
from loguru import logger

from printprep.cli.logging_config import setup_logging, truncate_data_uris


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    for name in ("httpx",):
        logging.getLogger(name).handlers.clear()
        logging.getLogger(name).propagate = True
    logger.remove()
    logger.add(sys.stderr)


def test_truncate_data_uris() -> None:
    payload = "A" * 5000
    message = truncate_data_uris(f"converted data:image/png;base64,{payload} ok")
    assert payload not in message
    assert "(5000 chars)" in message
    assert message.endswith(" ok")


def test_short_payloads_untouched() -> None:
    message = "data:image/png;base64,AAAA"
    assert truncate_data_uris(message) == message


def test_file_sink_receives_truncated_messages(tmp_path: Path) -> None:
    _, log_file = setup_logging(verbose=True, log_dir=str(tmp_path / "logs"), quiet=True)

    logger.info(f"payload data:image/png;base64,{'B' * 400}")
    logging.getLogger("httpx").warning("intercepted warning")
    logger.complete()

    assert log_file is not None and log_file.exists()
    content = log_file.read_text()
    assert "B" * 400 not in content
    assert "(400 chars)" in content
    assert "intercepted warning" in content


def test_no_file_sink_without_dir() -> None:
    console_id, log_file = setup_logging(verbose=False)
    assert console_id is not None
    assert log_file is None
