"""Unit tests for DateFormatter and RecentLogBuffer."""

import logging
from datetime import date, time

import pytest

from app.core.shared import DateFormatter, RecentLogBuffer

EPOCH = date(1899, 12, 30)


class TestDateFormatter:
    @pytest.mark.parametrize("value", ["17/03/2025", " 01/01/2026 "])
    def test_strict_date(self, value: str) -> None:
        assert DateFormatter.parse_strict_date(value) is not None

    @pytest.mark.parametrize("value", ["31/02/2025", "2025-03-17", "1/3/2025", "", "not-a-date"])
    def test_strict_date_rejects(self, value: str) -> None:
        assert DateFormatter.parse_strict_date(value) is None

    def test_parse_time(self) -> None:
        assert DateFormatter.parse_time("9:05") == time(9, 5)
        assert DateFormatter.parse_time("25:00") is None

    def test_serial_date(self) -> None:
        assert DateFormatter.from_serial_date("45733", EPOCH) == "17/03/2025"

    @pytest.mark.parametrize("value", ["0", "-3", "99999999999"])
    def test_serial_date_out_of_range(self, value: str) -> None:
        with pytest.raises(ValueError):
            DateFormatter.from_serial_date(value, EPOCH)

    @pytest.mark.parametrize("value,expected", [("0", "00:00"), ("0.375", "09:00"), ("0.99999", "00:00")])
    def test_day_fraction(self, value: str, expected: str) -> None:
        assert DateFormatter.from_day_fraction(value) == expected

    @pytest.mark.parametrize(
        "milliseconds,expected",
        [
            (10_000, "alguns segundos"),
            (60_000, "um minuto"),
            (10 * 60_000, "10 minutos"),
            (3 * 3_600_000, "3 horas"),
            (30 * 3_600_000, "um dia"),
            (5 * 86_400_000, "5 dias"),
        ],
    )
    def test_humanize_duration(self, milliseconds: int, expected: str) -> None:
        assert DateFormatter.humanize_duration(milliseconds) == expected


class TestRecentLogBuffer:
    def _logger(self, buffer: RecentLogBuffer) -> logging.Logger:
        logger = logging.getLogger("tests.recent_log_buffer")
        logger.handlers = [buffer]
        logger.propagate = False
        logger.setLevel(logging.DEBUG)
        return logger

    def test_keeps_warnings_and_counts_everything(self) -> None:
        buffer = RecentLogBuffer(capacity=10)
        logger = self._logger(buffer)

        logger.info("routine")
        logger.warning("registry slow")
        logger.error("send failed")

        assert buffer.total_count == 3
        assert [entry["message"] for entry in buffer.recent()] == ["registry slow", "send failed"]
        assert buffer.recent(1)[0]["level"] == "ERROR"

    def test_capacity_is_bounded(self) -> None:
        buffer = RecentLogBuffer(capacity=2)
        logger = self._logger(buffer)

        for i in range(5):
            logger.error(f"error {i}")

        assert [entry["message"] for entry in buffer.recent()] == ["error 3", "error 4"]

    def test_capture_debug(self) -> None:
        buffer = RecentLogBuffer(capture_debug=True)
        self._logger(buffer).debug("detail")

        assert buffer.recent()[0]["level"] == "DEBUG"
