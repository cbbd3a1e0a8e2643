"""Patient Entity.

Represents one registry row in the outreach workflow.
"""

from dataclasses import dataclass
from typing import Any

from ..value_objects.appointment_status import AppointmentStatus
from ..value_objects.consent_status import ConsentStatus

# Registry column letter for every field that can be written back.
COLUMN_LETTERS: dict[str, str] = {
    "name": "A",
    "phone": "B",
    "email": "C",
    "appointment_date": "D",
    "appointment_time": "E",
    "address": "F",
    "status": "G",
    "feedback": "H",
    "birth_date": "I",
    "notes": "J",
    "consent": "K",
    "confirmation": "L",
}

ROW_WIDTH = len(COLUMN_LETTERS)
# Row 1 holds headers; the configured range starts at row 2.
FIRST_DATA_ROW = 2


@dataclass
class PatientRecord:
    """A patient row as it appears in the registration sheet.

    Identity is the canonical phone key, not row_number: the row number is only
    valid for the cache generation that produced it.
    """

    row_number: int
    name: str = ""
    phone: str = ""
    email: str = ""
    appointment_date: str = ""
    appointment_time: str = ""
    address: str = ""
    status: str = ""
    feedback: str = ""
    birth_date: str = ""
    notes: str = ""
    consent: str = ""
    confirmation: str = ""

    @classmethod
    def from_row(cls, row: list[Any], row_number: int) -> "PatientRecord":
        """Build a record from a raw registry row, padding short rows."""
        cells = [str(cell) if cell is not None else "" for cell in row]
        cells.extend([""] * (ROW_WIDTH - len(cells)))
        values = dict(zip(COLUMN_LETTERS.keys(), cells[:ROW_WIDTH]))
        return cls(row_number=row_number, **values)

    @staticmethod
    def is_blank_row(row: list[Any]) -> bool:
        return not row or not any(str(cell).strip() for cell in row if cell is not None)

    @property
    def workflow_status(self) -> AppointmentStatus | None:
        return AppointmentStatus.parse(self.status)

    @property
    def consent_status(self) -> ConsentStatus:
        return ConsentStatus.parse(self.consent)

    @property
    def has_accepted_consent(self) -> bool:
        return self.consent_status is ConsentStatus.ACCEPTED

    @property
    def has_feedback(self) -> bool:
        return bool(self.feedback.strip())

    @property
    def display_name(self) -> str:
        """Nombre para mostrar."""
        return self.name.strip()

    def is_contactable(self) -> bool:
        """Name and phone are the minimum to address the patient."""
        return bool(self.name.strip()) and bool(self.phone.strip())

    def set_field(self, field_name: str, value: str) -> None:
        if field_name not in COLUMN_LETTERS:
            raise KeyError(f"Unknown registry field: {field_name}")
        setattr(self, field_name, value)
