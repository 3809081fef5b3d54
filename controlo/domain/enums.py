from __future__ import annotations

from enum import Enum, IntEnum


class _LabeledIntEnum(IntEnum):
    """IntEnum whose members carry a display label matching the lookup table row."""

    def __new__(cls, value: int, label: str):
        member = int.__new__(cls, value)
        member._value_ = value
        member._label = label
        return member

    @property
    def label(self) -> str:
        return self._label

    @classmethod
    def from_value(cls, value: object):
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            return None

    @classmethod
    def label_for(cls, value: object, default: str = "") -> str:
        member = cls.from_value(value)
        return member.label if member is not None else default

    @classmethod
    def choices(cls) -> list[dict]:
        return [{"id": member.value, "descricao": member.label} for member in cls]


class Role(_LabeledIntEnum):
    ADMIN = 1, "Admin"
    SAV = 2, "SAV"
    DCP = 3, "DCP"
    GUEST = 4, "Convidado"


class ObjectType(_LabeledIntEnum):
    CTE = 1, "CTE"
    CON = 2, "CON"
    INF = 3, "INF"
    CI = 4, "CI"
    ROB = 5, "ROB"


class Status(_LabeledIntEnum):
    POR_DEFINIR = 1, "Por Definir"
    EM_ANDAMENTO = 2, "Em Andamento"
    ENVIADO = 3, "Enviado"
    NAO_ENVIADO = 4, "Não Enviado"
    DECLARACAO = 5, "Declaração"


class Outcome(_LabeledIntEnum):
    SEM_RESULTADO = 1, "Sem Resultado"
    ADJUDICADO = 2, "Adjudicado"
    NAO_ADJUDICADO = 3, "Não Adjudicado"
    EXCLUIDO = 4, "Excluído"


class EventCategory(str, Enum):
    PROPOSAL = "Proposta"
    ERROR = "Esclarecimentos/Erro"
    HEARING = "Audiência"

    @property
    def label(self) -> str:
        return self.value


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


# Roles that never receive broadcast notifications.
BROADCAST_EXCLUDED_ROLES = (Role.ADMIN, Role.GUEST)
