"""
Unit tests for the leveled logging switchboard.
"""

import io
import logging

import pytest

from tinyweb import log
from tinyweb.log import (
    DEFAULT_LOG_LEVELS,
    LOG_ERROR,
    LOG_INFO,
    LOG_OUTPUT,
    LOG_WARNING,
    MAX_LOG_LEVEL,
    LevelMaskFilter,
    disable_levels,
    enable_levels,
    level_enabled,
    level_names,
    log_message,
    register_level,
    setup_logging,
)


@pytest.fixture
def root_logger():
    """Restore the root logger's handlers after setup_logging() replaces them."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def record(levelno, mask=None):
    rec = logging.LogRecord("tinyweb.test", levelno, __file__, 1, "msg", (), None)
    if mask is not None:
        rec.log_mask = mask
    return rec


class TestLevels:
    def test_default_bits(self):
        assert (LOG_ERROR, LOG_WARNING, LOG_INFO, LOG_OUTPUT) == (1, 2, 4, 8)
        assert level_names(0b1111) == ["ERROR", "WARNING", "INFO", "OUTPUT"]

    def test_default_mask(self):
        assert level_enabled(LOG_ERROR)
        assert level_enabled(LOG_WARNING)
        assert level_enabled(LOG_OUTPUT)
        assert not level_enabled(LOG_INFO)
        assert DEFAULT_LOG_LEVELS == LOG_ERROR | LOG_WARNING | LOG_OUTPUT

    def test_enable_and_disable(self):
        enable_levels(LOG_INFO)
        assert level_enabled(LOG_INFO)

        disable_levels(LOG_INFO | LOG_OUTPUT)
        assert not level_enabled(LOG_INFO)
        assert not level_enabled(LOG_OUTPUT)
        assert level_enabled(LOG_ERROR)

    def test_any_bit_enables_a_combined_mask(self):
        assert level_enabled(LOG_INFO | LOG_ERROR)
        assert not level_enabled(0)

    def test_register_takes_next_bit(self):
        first = register_level("AUDIT")
        second = register_level("TRACE", enable=True)

        assert first == 16
        assert second == 32
        assert not level_enabled(first)
        assert level_enabled(second)
        assert level_names(first | second) == ["AUDIT", "TRACE"]

    def test_register_overflow(self):
        for i in range(MAX_LOG_LEVEL - 4):
            register_level(f"L{i}")

        with pytest.raises(ValueError):
            register_level("one too many")

    def test_reset_restores_defaults(self):
        register_level("EXTRA", enable=True)
        enable_levels(LOG_INFO)

        log.reset_levels()

        assert level_names(0xFFFFFFFF) == ["ERROR", "WARNING", "INFO", "OUTPUT"]
        assert not level_enabled(LOG_INFO)


class TestLevelMaskFilter:
    @pytest.mark.parametrize("levelno,passes", [
        (logging.CRITICAL, True),
        (logging.ERROR, True),
        (logging.WARNING, True),
        (log.OUTPUT, True),
        (logging.INFO, False),
        (logging.DEBUG, False),
    ])
    def test_stdlib_levels_by_default(self, levelno, passes):
        assert LevelMaskFilter().filter(record(levelno)) is passes

    def test_explicit_mask_wins(self):
        custom = register_level("CUSTOM")
        assert not LevelMaskFilter().filter(record(logging.ERROR, custom))

        enable_levels(custom)
        assert LevelMaskFilter().filter(record(logging.INFO, custom))


class TestOutput:
    def test_log_message_returns_whether_emitted(self, root_logger):
        setup_logging(stream=io.StringIO())

        assert log_message(LOG_OUTPUT, "port = %d", 8080) is True
        assert log_message(LOG_INFO, "quiet") is False

    def test_formatted_output(self, root_logger):
        stream = io.StringIO()
        setup_logging(stream=stream)

        log_message(LOG_OUTPUT, "port = %d", 8080)
        log_message(LOG_INFO, "hidden")
        logging.getLogger("tinyweb.handlers").info("also hidden")
        logging.getLogger("tinyweb.handlers").warning("shown")

        text = stream.getvalue()
        assert "[OUTPUT] tinyweb: port = 8080" in text
        assert "[WARNING] tinyweb.handlers: shown" in text
        assert "hidden" not in text

    def test_verbose_enables_info(self, root_logger):
        stream = io.StringIO()
        setup_logging(verbose=True, stream=stream)

        logging.getLogger("tinyweb.handlers").info("Filename = %s", "x.html")

        assert level_enabled(LOG_INFO)
        assert "[INFO] tinyweb.handlers: Filename = x.html" in stream.getvalue()

    def test_log_file(self, root_logger, tmp_path):
        path = tmp_path / "server.log"
        handler = setup_logging(log_file=str(path))

        log_message(LOG_ERROR, "Failed to %s", "bind")
        handler.flush()
        handler.close()

        assert "[ERROR] tinyweb: Failed to bind" in path.read_text()
