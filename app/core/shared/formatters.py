"""
Shared Formatters

Common date/time formatting utilities for registry values and operator digests.
"""

import re
from datetime import date, datetime, time, timedelta


class DateFormatter:
    """Date and time formatting utilities."""

    # Common formats
    DATE_ISO = "%Y-%m-%d"
    DATE_BR = "%d/%m/%Y"
    TIME_24H = "%H:%M"
    DATETIME_BR = "%d/%m/%Y %H:%M"

    _STRICT_DATE = re.compile(r"^\d{2}/\d{2}/\d{4}$")
    _STRICT_TIME = re.compile(r"^\d{1,2}:\d{2}$")
    _NUMERIC = re.compile(r"^-?\d+(\.\d+)?$")

    @classmethod
    def format_date(cls, d: date | datetime, fmt: str = DATE_BR) -> str:
        """Format date with specified format."""
        if d is None:
            return ""
        return d.strftime(fmt)

    @classmethod
    def format_time(cls, t: time | datetime, fmt: str = TIME_24H) -> str:
        """Format time."""
        if t is None:
            return ""
        return t.strftime(fmt)

    @classmethod
    def parse_strict_date(cls, value: str) -> date | None:
        """Parse `DD/MM/YYYY` exactly; anything else (including 31/02/2025) is None."""
        text = (value or "").strip()
        if not cls._STRICT_DATE.match(text):
            return None
        try:
            return datetime.strptime(text, cls.DATE_BR).date()
        except ValueError:
            return None

    @classmethod
    def parse_time(cls, value: str) -> time | None:
        text = (value or "").strip()
        if not cls._STRICT_TIME.match(text):
            return None
        try:
            return datetime.strptime(text, cls.TIME_24H).time()
        except ValueError:
            return None

    @classmethod
    def is_numeric(cls, value: str) -> bool:
        return bool(cls._NUMERIC.match((value or "").strip()))

    @classmethod
    def from_serial_date(cls, value: str, epoch: date) -> str:
        """
        Convert a spreadsheet date serial (days since `epoch`) to `DD/MM/YYYY`.

        Raises:
            ValueError: If the serial is out of range.
        """
        days = int(float(value.strip()))
        if days <= 0:
            raise ValueError(f"Date serial out of range: {value}")
        try:
            converted = epoch + timedelta(days=days)
        except OverflowError as e:
            raise ValueError(f"Date serial out of range: {value}") from e
        return converted.strftime(cls.DATE_BR)

    @classmethod
    def from_day_fraction(cls, value: str) -> str:
        """
        Convert a fractional-day time value to `HH:MM`.

        Raises:
            ValueError: If the value is not in [0, 1).
        """
        fraction = float(value.strip())
        if not 0 <= fraction < 1:
            raise ValueError(f"Time fraction out of range: {value}")
        total_minutes = int(round(fraction * 24 * 60))
        hours, minutes = divmod(total_minutes, 60)
        # 23:59:59.x rounds up to a full day
        hours %= 24
        return f"{hours:02d}:{minutes:02d}"

    @classmethod
    def humanize_duration(cls, milliseconds: float) -> str:
        """Approximate duration in Portuguese (e.g. 'há 2 horas' without the prefix)."""
        seconds = max(0.0, milliseconds / 1000)

        if seconds < 45:
            return "alguns segundos"
        elif seconds < 90:
            return "um minuto"
        elif seconds < 45 * 60:
            return f"{round(seconds / 60)} minutos"
        elif seconds < 90 * 60:
            return "uma hora"
        elif seconds < 22 * 3600:
            return f"{round(seconds / 3600)} horas"
        elif seconds < 36 * 3600:
            return "um dia"
        else:
            return f"{round(seconds / 86400)} dias"
