"""Appointment Status Value Object.

Defines the workflow status values stored in the registry's status column.
"""

from enum import Enum


class AppointmentStatus(str, Enum):
    """Estado del examen tal como aparece en la planilla."""

    PENDING = "Pendente"  # Esperando confirmación
    CONFIRMED = "Confirmado"  # Confirmado por el paciente
    RESCHEDULED = "Remarcado"  # El paciente pidió reprogramar
    CANCELLED = "Cancelado"  # Cancelado
    COMPLETED = "Concluído"  # Examen realizado o feedback recibido

    @classmethod
    def parse(cls, raw: object) -> "AppointmentStatus | None":
        """Estado de una celda; None si está vacía o es desconocido."""
        text = str(raw or "").strip()
        for status in cls:
            if status.value == text:
                return status
        return None

    @property
    def emoji(self) -> str:
        """Emoji representativo del estado."""
        emojis = {
            "Pendente": "⏳",
            "Confirmado": "✅",
            "Remarcado": "🔄",
            "Cancelado": "❌",
            "Concluído": "✔️",
        }
        return emojis.get(self.value, "")

    def blocks_reminders(self) -> bool:
        """¿Bloquea los recordatorios de 7 y 2 días?"""
        return self in (AppointmentStatus.CANCELLED, AppointmentStatus.RESCHEDULED, AppointmentStatus.COMPLETED)

    def blocks_feedback(self) -> bool:
        """¿Bloquea el pedido de feedback? Con Concluído sigue permitido."""
        return self in (AppointmentStatus.CANCELLED, AppointmentStatus.RESCHEDULED)

    def shows_schedule_menu(self) -> bool:
        """¿El menú inicial muestra el examen agendado con las opciones 1-3?"""
        return self in (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)

    def is_final(self) -> bool:
        """Estados en los que el menú solo acepta el pedido de atención humana."""
        return self in (AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED, AppointmentStatus.RESCHEDULED)
