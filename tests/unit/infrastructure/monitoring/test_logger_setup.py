import io
import logging

import pytest

from figmadl.infrastructure.monitoring.logger_setup import resolve_log_level, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.mark.parametrize("name, verbose, expected", [
    ("warning", False, logging.WARNING),
    ("DEBUG", False, logging.DEBUG),
    ("nonsense", False, logging.INFO),
    (None, False, logging.INFO),
    ("error", True, logging.DEBUG),
])
def test_resolve_log_level(name, verbose, expected):
    assert resolve_log_level(name, verbose) == expected


def test_setup_logging_writes_to_given_stream(restore_root_logger):
    stream = io.StringIO()
    setup_logging(log_level=logging.INFO, log_format="%(levelname)s %(message)s", stream=stream)

    logging.getLogger("figmadl.test").info("hello")
    logging.getLogger("httpx").info("GET https://signed.example/?sig=1")

    assert "INFO hello" in stream.getvalue()
    assert "signed.example" not in stream.getvalue()
    assert len(restore_root_logger.handlers) == 1


def test_setup_logging_with_file(restore_root_logger, tmp_path):
    log_file = tmp_path / "figmadl.log"
    setup_logging(log_level=logging.INFO, log_file=str(log_file), stream=io.StringIO())

    logging.getLogger("figmadl.test").warning("to file")
    for handler in restore_root_logger.handlers:
        handler.flush()

    assert "to file" in log_file.read_text(encoding="utf-8")
