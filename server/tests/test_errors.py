"""Tests for src.utils.errors — error message extraction."""

from __future__ import annotations

import asyncio

from src.utils.errors import format_status_error, get_error_message


class TestGetErrorMessage:
    """Tests for get_error_message()."""

    def test_exception_with_message(self) -> None:
        assert get_error_message(ValueError("something broke")) == "something broke"

    def test_exception_without_message(self) -> None:
        assert get_error_message(asyncio.TimeoutError()) == "TimeoutError"

    def test_custom_exception(self) -> None:
        class NavigationError(Exception):
            pass

        assert get_error_message(NavigationError("net::ERR_CONNECTION_REFUSED")) == "net::ERR_CONNECTION_REFUSED"

    def test_non_exception(self) -> None:
        assert get_error_message("oops") == "Unknown error"


class TestFormatStatusError:
    """Tests for format_status_error()."""

    def test_prefixes_message(self) -> None:
        assert format_status_error(RuntimeError("browser crashed")) == "Error: browser crashed"

    def test_unknown_error(self) -> None:
        assert format_status_error(None) == "Error: Unknown error"
