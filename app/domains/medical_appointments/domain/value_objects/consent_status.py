"""Consent (TCLE) Status Value Object."""

from enum import Enum


class ConsentStatus(str, Enum):
    """Estado del TCLE en la columna de consentimiento."""

    NONE = ""
    ACCEPTED = "TCLE_ACEITO"
    REJECTED = "TCLE_REJEITADO"

    @classmethod
    def parse(cls, raw: object) -> "ConsentStatus":
        text = str(raw or "").strip().upper()
        if text == cls.ACCEPTED.value:
            return cls.ACCEPTED
        if text == cls.REJECTED.value:
            return cls.REJECTED
        return cls.NONE

    def is_terminal(self) -> bool:
        """Aceito o rejeitado: no se vuelve a pedir el TCLE."""
        return self is not ConsentStatus.NONE


ACCEPT_REPLIES = frozenset({"ACEITO", "1", "SIM", "CONCORDO", "ACEITAR"})
REJECT_REPLIES = frozenset({"NÃO ACEITO", "NAO ACEITO", "2", "NAO", "NÃO", "DISCORDO", "REJEITAR"})


def classify_reply(text: str) -> ConsentStatus:
    """
    Map a free-text consent reply onto an outcome.

    Returns NONE for anything outside the fixed vocabularies.
    """
    normalized = " ".join(text.strip().upper().split())
    if normalized in ACCEPT_REPLIES:
        return ConsentStatus.ACCEPTED
    if normalized in REJECT_REPLIES:
        return ConsentStatus.REJECTED
    return ConsentStatus.NONE
