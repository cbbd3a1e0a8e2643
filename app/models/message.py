from typing import Any, ClassVar, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.domains.medical_appointments.application.services.message_router import InboundMessage

BROADCAST_SENDERS = frozenset({"status@broadcast", "broadcast"})


class TextMessage(BaseModel):
    """Modelo para mensajes de texto"""

    body: str


class ButtonReply(BaseModel):
    """Modelo para respuestas de botones"""

    id: str
    title: str


class ListReply(BaseModel):
    """Modelo para respuestas de listas"""

    id: str
    title: str
    description: Optional[str] = None


class InteractiveContent(BaseModel):
    """Modelo para contenido interactivo"""

    type: str
    button_reply: Optional[ButtonReply] = None
    list_reply: Optional[ListReply] = None


class WhatsAppMessage(BaseModel):
    """Modelo para mensajes de WhatsApp"""

    from_: str = Field(..., alias="from")
    id: str
    timestamp: str
    type: str
    text: Optional[TextMessage] = None
    interactive: Optional[InteractiveContent] = None
    group_id: Optional[str] = None

    model_config: ClassVar[ConfigDict] = ConfigDict(populate_by_name=True, extra="ignore")

    @property
    def body(self) -> str:
        """Texto del mensaje; las respuestas interactivas usan el título elegido."""
        if self.text is not None:
            return self.text.body
        if self.interactive is not None:
            reply = self.interactive.button_reply or self.interactive.list_reply
            if reply is not None:
                return reply.title
        return ""

    def to_inbound(self) -> InboundMessage:
        return InboundMessage(
            sender=self.from_,
            body=self.body,
            is_group=self.group_id is not None,
            is_broadcast=self.from_ in BROADCAST_SENDERS,
            message_id=self.id,
        )


class Contact(BaseModel):
    """Modelo para contactos de WhatsApp"""

    wa_id: str
    profile: Dict[str, str] = Field(default_factory=dict)


class Change(BaseModel):
    """Modelo para cambios en el webhook"""

    value: Dict[str, Any]
    field: str


class Entry(BaseModel):
    """Modelo para entradas en el webhook"""

    id: str
    changes: List[Change]


class WhatsAppWebhookRequest(BaseModel):
    """Modelo para solicitudes de webhook de WhatsApp"""

    object: str
    entry: List[Entry]

    def get_messages(self) -> List[WhatsAppMessage]:
        """Extrae todos los mensajes del webhook; los cambios de status de entrega se ignoran."""
        messages = []
        for entry in self.entry:
            for change in entry.changes:
                if change.field != "messages":
                    continue
                for raw in change.value.get("messages", []):
                    messages.append(WhatsAppMessage.model_validate(raw))
        return messages

    def get_contact(self) -> Optional[Contact]:
        """Extrae el contacto de la solicitud del webhook"""
        try:
            contacts = self.entry[0].changes[0].value.get("contacts", [])
            if contacts:
                return Contact.model_validate(contacts[0])
            return None
        except (IndexError, KeyError):
            return None

    def to_inbound(self) -> List[InboundMessage]:
        return [message.to_inbound() for message in self.get_messages()]
