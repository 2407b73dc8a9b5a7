import logging

import pytest

from fabriclog.config import LoggerConfig
from fabriclog.logger import AppLogger, from_context, new_logger, use_logger


class _ListHandler(logging.Handler):
    def __init__(self):
        super().__init__(logging.DEBUG)
        self.messages = []

    def emit(self, record):
        self.messages.append(record.getMessage())


def _memory_logger():
    base = logging.Logger("memory", logging.DEBUG)
    handler = _ListHandler()
    base.addHandler(handler)
    return AppLogger(base, None), handler


def _log_files(folder):
    return list(folder.glob("*.log"))


def test_new_logger_writes_file(tmp_path):
    folder = tmp_path / "logs"
    lg = new_logger(LoggerConfig(folder=str(folder)))
    lg.debug("hello", answer=42)
    lg.close()
    files = _log_files(folder)
    assert len(files) == 1
    text = files[0].read_text(encoding="utf-8")
    assert "hello" in text
    assert '"answer": 42' in text
    assert "DEBUG" in text


def test_level_filters_entries(tmp_path):
    lg = new_logger(LoggerConfig(folder=str(tmp_path), level="error"))
    lg.debug("hidden")
    lg.error("shown")
    lg.close()
    text = _log_files(tmp_path)[0].read_text(encoding="utf-8")
    assert "hidden" not in text
    assert "shown" in text


def test_invalid_level(tmp_path):
    with pytest.raises(ValueError):
        new_logger(LoggerConfig(folder=str(tmp_path), level="loud"))


def test_caller_is_reported(tmp_path, capsys):
    lg = new_logger(LoggerConfig(folder=str(tmp_path)))
    lg.info("where")
    lg.close()
    out = capsys.readouterr().out
    assert "test_logger.py:" in out


def test_close_stops_file_output(tmp_path):
    lg = new_logger(LoggerConfig(folder=str(tmp_path)))
    lg.info("before")
    lg.close()
    lg.info("after")
    text = _log_files(tmp_path)[0].read_text(encoding="utf-8")
    assert "before" in text
    assert "after" not in text


def test_bind_adds_fields():
    base, handler = _memory_logger()
    child = base.bind(request_id="r1")
    child.info("x")
    base.info("y")
    assert "r1" in handler.messages[0]
    assert "request_id" in handler.messages[0]
    assert handler.messages[1] == "y"


def test_context_logger():
    lg, _ = _memory_logger()
    with pytest.raises(RuntimeError):
        from_context()
    with use_logger(lg):
        assert from_context() is lg
    with pytest.raises(RuntimeError):
        from_context()