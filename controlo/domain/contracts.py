from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class DateTimePair:
    date: Optional[str] = None
    time: Optional[str] = None

    @property
    def is_set(self) -> bool:
        return bool(self.date) and bool(self.time)


@dataclass(frozen=True)
class ConcursoInput:
    referencia: str
    entidade: str
    referencia_bc: str
    preco: float
    erro: DateTimePair
    proposta: DateTimePair
    audiencia: DateTimePair
    preliminar: bool
    final: bool
    recurso: bool
    impugnacao: bool
    tipo_id: int
    plataforma_id: int
    estado_id: int
    resultado_id: Optional[int]
    link: str
    adjudicatario: str

    def to_columns(self) -> Dict[str, Any]:
        return {
            "referencia": self.referencia,
            "entidade": self.entidade,
            "referencia_bc": self.referencia_bc,
            "preco": self.preco,
            "dia_erro": self.erro.date,
            "hora_erro": self.erro.time,
            "dia_proposta": self.proposta.date,
            "hora_proposta": self.proposta.time,
            "dia_audiencia": self.audiencia.date,
            "hora_audiencia": self.audiencia.time,
            "preliminar": self.preliminar,
            "final": self.final,
            "recurso": self.recurso,
            "impugnacao": self.impugnacao,
            "tipo_id": self.tipo_id,
            "plataforma_id": self.plataforma_id,
            "estado_id": self.estado_id,
            "resultado_id": self.resultado_id,
            "link": self.link,
            "adjudicatario": self.adjudicatario,
        }


@dataclass(frozen=True)
class Concurso:
    id: int
    referencia: str
    entidade: str
    referencia_bc: str
    preco: float
    erro: DateTimePair
    proposta: DateTimePair
    audiencia: DateTimePair
    preliminar: bool
    final: bool
    recurso: bool
    impugnacao: bool
    tipo_id: int
    plataforma_id: int
    estado_id: int
    resultado_id: Optional[int]
    link: str
    adjudicatario: str
    tipo_desc: str = ""
    plataforma_desc: str = ""
    resultado_desc: str = ""
    estado_desc: str = ""

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Concurso":
        return cls(
            id=int(row["id_concurso"]),
            referencia=row.get("referencia") or "",
            entidade=row.get("entidade") or "",
            referencia_bc=row.get("referencia_bc") or "",
            preco=float(row.get("preco") or 0),
            erro=DateTimePair(_text(row.get("dia_erro")), _text(row.get("hora_erro"))),
            proposta=DateTimePair(_text(row.get("dia_proposta")), _text(row.get("hora_proposta"))),
            audiencia=DateTimePair(_text(row.get("dia_audiencia")), _text(row.get("hora_audiencia"))),
            preliminar=bool(row.get("preliminar")),
            final=bool(row.get("final")),
            recurso=bool(row.get("recurso")),
            impugnacao=bool(row.get("impugnacao")),
            tipo_id=int(row["tipo_id"]),
            plataforma_id=int(row["plataforma_id"]),
            estado_id=int(row["estado_id"]),
            resultado_id=int(row["resultado_id"]) if row.get("resultado_id") is not None else None,
            link=row.get("link") or "",
            adjudicatario=row.get("adjudicatario") or "",
            tipo_desc=row.get("tipo_desc") or "",
            plataforma_desc=row.get("plataforma_desc") or "",
            resultado_desc=row.get("resultado_desc") or "",
            estado_desc=row.get("estado_desc") or "",
        )

    @property
    def preco_formatted(self) -> str:
        return f"{self.preco:.2f}€"

    def snapshot(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ("tipo_desc", "plataforma_desc", "resultado_desc", "estado_desc"):
            data.pop(key, None)
        return data


@dataclass(frozen=True)
class TimelineEvent:
    referencia: str
    entidade: str
    objeto: Optional[int]
    data: str
    hora: str
    tipo: str
    dias_restantes: int
    link: str = ""
    adjudicatario: str = ""
    resultado_id: Optional[int] = None


@dataclass(frozen=True)
class User:
    id: int
    nome: str
    email: str
    cargo_id: Optional[int]
    failed_attempts: int = 0
    cargo_desc: str = ""

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "User":
        return cls(
            id=int(row["id_user"]),
            nome=row.get("nome") or "",
            email=row.get("email") or "",
            cargo_id=int(row["cargo_id"]) if row.get("cargo_id") is not None else None,
            failed_attempts=int(row.get("failed_attempts") or 0),
            cargo_desc=row.get("cargo_desc") or "",
        )

    def snapshot(self) -> Dict[str, Any]:
        return {"user_id": self.id, "nome": self.nome, "email": self.email, "cargo_id": self.cargo_id}


@dataclass(frozen=True)
class UserInput:
    nome: str
    email: str
    cargo_id: int
    password: str = ""


@dataclass(frozen=True)
class AuthLoginInput:
    email: str
    password: str


@dataclass(frozen=True)
class AuthRegisterInput:
    email: str
    password: str
    confirm_password: str
    nome: str | None = None


@dataclass(frozen=True)
class AuthUser:
    user_id: int
    email: str
    nome: str
    cargo_id: Optional[int]


@dataclass(frozen=True)
class AuditLogEntry:
    id: int
    table: str
    action: str
    old_data: Any
    new_data: Any
    user_id: Optional[int]
    timestamp: str


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
