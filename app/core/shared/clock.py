"""
Clinic clock.

Every time-dependent decision reads the current instant through a Clock so
tests can freeze or advance time.
"""

import asyncio
from datetime import datetime

from pytz import timezone


class Clock:
    """Reloj en la zona horaria de la clínica."""

    def __init__(self, timezone_name: str = "America/Sao_Paulo"):
        self.tz = timezone(timezone_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def now_ms(self) -> int:
        return int(self.now().timestamp() * 1000)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
