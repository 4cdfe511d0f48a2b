import logging
from unittest.mock import Mock

import pytest

from ghproxy.utils.exception_logging import (
    format_exception_trace,
    log_exception_with_details,
)


class BrokenStrException(Exception):
    """An exception that breaks when __str__ is called."""

    def __str__(self):
        raise RuntimeError("Cannot convert to string!")

    def __repr__(self):
        return "BrokenStrException(cannot convert to string)"


def _raised(exception):
    try:
        raise exception
    except BaseException as e:
        return e


class TestLogExceptionWithDetails:
    def test_regular_exception_logged_with_traceback(self):
        logger = Mock(spec=logging.Logger)
        exc = _raised(ValueError("bad value"))

        log_exception_with_details(logger, "[Proxy]", exc)

        logger.log.assert_called_once()
        level, message = logger.log.call_args[0]
        assert level == logging.ERROR
        assert message == "[Proxy] Exception: bad value"
        assert logger.log.call_args[1]["exc_info"] is exc

    def test_exception_group_logs_each_sub_exception(self):
        logger = Mock(spec=logging.Logger)
        group = ExceptionGroup(
            "hop failed", [ValueError("first"), KeyError("second")]
        )

        log_exception_with_details(logger, "[Proxy]", group, level=logging.WARNING)

        messages = [c[0][1] for c in logger.log.call_args_list]
        assert "2 sub-exceptions" in messages[0]
        assert messages[1] == "[Proxy] Sub-exception 1: ValueError: first"
        assert messages[2] == "[Proxy] Sub-exception 2: KeyError: 'second'"
        assert all(c[0][0] == logging.WARNING for c in logger.log.call_args_list)

    def test_broken_str_does_not_raise(self):
        logger = Mock(spec=logging.Logger)

        log_exception_with_details(logger, "[Proxy]", BrokenStrException())

        message = logger.log.call_args[0][1]
        assert "BrokenStrException(cannot convert to string)" in message

    def test_failing_logger_does_not_raise(self):
        logger = Mock(spec=logging.Logger)
        logger.log.side_effect = RuntimeError("handler broken")

        log_exception_with_details(logger, "[Proxy]", ValueError("x"))

    def test_none_exception(self):
        logger = Mock(spec=logging.Logger)

        log_exception_with_details(logger, "[Proxy]", None)

        assert logger.log.call_args[0][1] == "[Proxy] Exception: None"
        assert logger.log.call_args[1]["exc_info"] is False


class TestFormatExceptionTrace:
    def test_contains_traceback_and_message(self):
        text = format_exception_trace(_raised(RuntimeError("upstream exploded")))

        assert text.startswith("Traceback (most recent call last):")
        assert "_raised" in text
        assert text.rstrip().endswith("RuntimeError: upstream exploded")

    def test_exception_without_traceback(self):
        text = format_exception_trace(ValueError("never raised"))

        assert text.strip() == "ValueError: never raised"

    def test_broken_str_does_not_raise(self):
        text = format_exception_trace(_raised(BrokenStrException()))

        assert "BrokenStrException" in text

    @pytest.mark.parametrize("exc", [TimeoutError(), ConnectionResetError(104, "reset")])
    def test_builtin_errors(self, exc):
        assert type(exc).__name__ in format_exception_trace(exc)
