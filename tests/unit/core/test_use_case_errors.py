"""Tests for use case error formatting and logging."""

import logging

import pytest

from kindling.core.use_case_errors import (
    ConfigurationError,
    CorruptStateError,
    KindlingError,
    format_error_message,
    is_fatal,
    log_use_case_error,
)


class TestFormatErrorMessage:
    def test_kindling_error_uses_its_message(self) -> None:
        assert format_error_message(ConfigurationError("no key"), "indexing") == "no key"

    def test_os_error(self) -> None:
        message = format_error_message(ConnectionError("refused"), "search")
        assert message.startswith("I/O error: refused")

    @pytest.mark.parametrize("exc_type", [ValueError, RuntimeError])
    def test_value_and_runtime_errors(self, exc_type: type[Exception]) -> None:
        assert format_error_message(exc_type("bad"), "indexing") == "Indexing error: bad"

    def test_unexpected_error_is_generic(self) -> None:
        message = format_error_message(KeyError("x"), "status check")
        assert message == "Internal error during status check. Check logs for details."


class TestLogUseCaseError:
    def test_expected_errors_log_without_traceback(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.ERROR):
            log_use_case_error(ValueError("bad input"), "search")

        assert "Error during search: bad input" in caplog.text
        assert caplog.records[0].exc_info is None

    def test_unexpected_errors_log_traceback(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.ERROR):
            try:
                raise KeyError("missing")
            except KeyError as e:
                log_use_case_error(e, "indexing")

        assert "Unexpected error during indexing" in caplog.text
        assert caplog.records[0].exc_info is not None


def test_error_hierarchy() -> None:
    assert issubclass(ConfigurationError, KindlingError)
    assert issubclass(CorruptStateError, KindlingError)
    assert ConfigurationError("msg").message == "msg"


@pytest.mark.parametrize(
    ("exc", "fatal"),
    [
        (ConfigurationError("no key"), True),
        (CorruptStateError("bad"), False),
        (ConnectionError("refused"), False),
        (ValueError("bad"), False),
    ],
)
def test_only_configuration_errors_are_fatal(exc: Exception, fatal: bool) -> None:
    assert is_fatal(exc) is fatal
