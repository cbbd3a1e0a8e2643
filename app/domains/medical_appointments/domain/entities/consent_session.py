"""Consent Session Entity.

An open TCLE conversation with one patient, keyed by canonical phone.
"""

from dataclasses import asdict, dataclass
from typing import Any


@dataclass
class ConsentSession:
    """Sesión TCLE abierta.

    Timestamps are epoch milliseconds. attempts counts prompts sent plus
    unrecognized replies received.
    """

    name: str
    first_sent_at: int
    last_sent_at: int
    attempts: int = 0

    def age_ms(self, now_ms: int) -> int:
        return now_ms - (self.first_sent_at or self.last_sent_at)

    def is_exhausted(self, max_attempts: int) -> bool:
        return self.attempts >= max_attempts

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
