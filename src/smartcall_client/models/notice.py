"""User-facing notices raised by the chat core."""

from dataclasses import dataclass
from enum import Enum


class NoticeKind(Enum):
    """What happened, from the user's point of view."""

    TICKET_RESOLVED = "ticket_resolved"
    SEND_FAILED = "send_failed"
    RESOLVE_CONFIRMED = "resolve_confirmed"
    RESOLVE_FAILED = "resolve_failed"
    ESCALATED = "escalated"
    ESCALATE_FAILED = "escalate_failed"
    LOAD_FAILED = "load_failed"
    INVALID_INPUT = "invalid_input"


DEFAULT_TEXTS = {
    NoticeKind.TICKET_RESOLVED: (
        "Este chamado já foi marcado como resolvido e não aceita mais mensagens."
    ),
    NoticeKind.SEND_FAILED: "Não foi possível enviar a mensagem. Tente novamente.",
    NoticeKind.RESOLVE_CONFIRMED: (
        "Chamado marcado como resolvido. Obrigado por usar nosso serviço!"
    ),
    NoticeKind.RESOLVE_FAILED: (
        "Não foi possível marcar o chamado como resolvido. Tente novamente."
    ),
    NoticeKind.ESCALATED: (
        "Seu chamado foi escalado para um técnico especializado que entrará em contato em breve."
    ),
    NoticeKind.ESCALATE_FAILED: "Não foi possível encaminhar o chamado. Tente novamente.",
    NoticeKind.LOAD_FAILED: "Não foi possível carregar o chamado.",
    NoticeKind.INVALID_INPUT: "Digite uma mensagem antes de enviar.",
}


@dataclass(frozen=True)
class Notice:
    """A notice for the front end to show."""

    kind: NoticeKind
    text: str

    @classmethod
    def of(cls, kind: NoticeKind, text: str | None = None) -> "Notice":
        return cls(kind=kind, text=text or DEFAULT_TEXTS[kind])
