import logging

import pytest

from drip import setup_logging


@pytest.fixture
def drip_logger():
    logger = logging.getLogger("drip")
    yield logger
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


def test_setup_logging_console_only(drip_logger):
    setup_logging(logging.DEBUG)

    assert drip_logger.level == logging.DEBUG
    assert len(drip_logger.handlers) == 1


def test_setup_logging_does_not_stack_handlers(drip_logger, tmp_path):
    log_file = tmp_path / "drip.log"

    setup_logging(logging.INFO, log_file=str(log_file))
    setup_logging(logging.INFO, log_file=str(log_file))
    logging.getLogger("drip.simulation").info("pipe 3 full")

    assert len(drip_logger.handlers) == 2
    for handler in drip_logger.handlers:
        handler.flush()
    assert "pipe 3 full" in log_file.read_text(encoding="utf-8")


def test_setup_logging_returns_the_engine_logger(drip_logger, capsys):
    logger = setup_logging(logging.WARNING)
    logging.getLogger("drip.mover").warning("pipe 7 clamped")
    logging.getLogger("drip.mover").info("not shown")

    assert logger is drip_logger
    out = capsys.readouterr().out
    assert "WARNING drip.mover | pipe 7 clamped" in out
    assert "not shown" not in out
