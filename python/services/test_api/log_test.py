import logging
import sys

import pytest
from loguru import logger

from test_api.app import SERVICE_NAME
from test_api.log import setup_logging


@pytest.fixture(autouse=True)
def restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_lines_carry_service_name(capsys):
    setup_logging("DEBUG")
    logger.info("hello")
    out = capsys.readouterr().out
    assert f"| {SERVICE_NAME} | hello" in out


def test_level_filters_lower_records(capsys):
    setup_logging("warning")
    logger.info("quiet")
    logger.warning("loud")
    out = capsys.readouterr().out
    assert "quiet" not in out
    assert "loud" in out


def test_uvicorn_records_are_routed_to_loguru(capsys):
    setup_logging("INFO")
    logging.getLogger("uvicorn.error").info("from uvicorn")
    assert "from uvicorn" in capsys.readouterr().out
