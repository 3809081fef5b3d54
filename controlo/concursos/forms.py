from __future__ import annotations

import re
from datetime import datetime
from typing import Mapping, Optional

from controlo.domain.contracts import ConcursoInput, DateTimePair, UserInput
from controlo.domain.enums import ObjectType, Outcome, Role, Status
from controlo.errors import ValidationError


_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_CHECKBOX_ON = {"on", "true", "1", "yes"}


def _invalid(message_key: str, field: str | None = None) -> ValidationError:
    return ValidationError(
        code=message_key,
        message_key=message_key,
        http_status=400,
        critical=False,
        payload={"field": field} if field else None,
    )


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_PATTERN.match(value or ""))


def _text(form: Mapping[str, str], name: str) -> str:
    return str(form.get(name) or "").strip()


def _checkbox(form: Mapping[str, str], name: str) -> bool:
    return _text(form, name).lower() in _CHECKBOX_ON


def parse_price(raw: str) -> float:
    if not raw:
        return 0.0
    normalized = raw.replace("€", "").replace(" ", "")
    if "," in normalized and "." not in normalized:
        normalized = normalized.replace(",", ".")
    try:
        value = float(normalized)
    except ValueError:
        raise _invalid("price_invalid", "preco") from None
    if value < 0:
        raise _invalid("price_invalid", "preco")
    return round(value, 2)


def parse_lookup_id(raw: str, enum_cls, message_key: str, field: str, *, required: bool = True) -> Optional[int]:
    if not raw:
        if required:
            raise _invalid(message_key, field)
        return None
    try:
        value = int(raw)
    except ValueError:
        raise _invalid(message_key, field) from None
    if enum_cls is not None and enum_cls.from_value(value) is None:
        raise _invalid(message_key, field)
    return value


def normalize_date(raw: str, field: str) -> Optional[str]:
    if not raw:
        return None
    try:
        return datetime.strptime(raw, "%Y-%m-%d").strftime("%Y-%m-%d")
    except ValueError:
        raise _invalid("date_invalid", field) from None


def normalize_time(raw: str, field: str) -> Optional[str]:
    if not raw:
        return None
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(raw, fmt).strftime("%H:%M:%S")
        except ValueError:
            continue
    raise _invalid("time_invalid", field)


def parse_date_time_pair(form: Mapping[str, str], date_field: str, time_field: str) -> DateTimePair:
    day = normalize_date(_text(form, date_field), date_field)
    hour = normalize_time(_text(form, time_field), time_field)
    if bool(day) != bool(hour):
        raise _invalid("date_time_pair_incomplete", date_field if not day else time_field)
    return DateTimePair(day, hour)


def parse_concurso_form(form: Mapping[str, str]) -> ConcursoInput:
    referencia = _text(form, "referencia")
    if not referencia:
        raise _invalid("referencia_required", "referencia")
    entidade = _text(form, "entidade")
    if not entidade:
        raise _invalid("entidade_required", "entidade")

    adjudicatario = _text(form, "adjudicatario")
    if adjudicatario and not is_valid_email(adjudicatario):
        raise _invalid("email_invalid", "adjudicatario")

    return ConcursoInput(
        referencia=referencia,
        entidade=entidade,
        referencia_bc=_text(form, "referencia_bc"),
        preco=parse_price(_text(form, "preco")),
        erro=parse_date_time_pair(form, "dia_erro", "hora_erro"),
        proposta=parse_date_time_pair(form, "dia_proposta", "hora_proposta"),
        audiencia=parse_date_time_pair(form, "dia_audiencia", "hora_audiencia"),
        preliminar=_checkbox(form, "preliminar"),
        final=_checkbox(form, "final"),
        recurso=_checkbox(form, "recurso"),
        impugnacao=_checkbox(form, "impugnacao"),
        tipo_id=parse_lookup_id(_text(form, "tipo_id"), ObjectType, "tipo_invalid", "tipo_id"),
        plataforma_id=parse_lookup_id(_text(form, "plataforma_id"), None, "plataforma_invalid", "plataforma_id"),
        estado_id=parse_lookup_id(_text(form, "estado_id"), Status, "estado_invalid", "estado_id"),
        resultado_id=parse_lookup_id(
            _text(form, "resultado_id"),
            Outcome,
            "resultado_invalid",
            "resultado_id",
            required=False,
        ),
        link=_text(form, "link"),
        adjudicatario=adjudicatario,
    )


def parse_user_form(form: Mapping[str, str], *, require_password: bool) -> UserInput:
    email = _text(form, "email").lower()
    if not is_valid_email(email):
        raise _invalid("email_invalid", "email")

    password = str(form.get("password") or "")
    confirm_password = str(form.get("confirm-password") or "")
    if require_password and not password:
        raise _invalid("auth_missing_credentials", "password")
    if (password or confirm_password) and password != confirm_password:
        raise _invalid("password_mismatch", "confirm-password")

    cargo_id = parse_lookup_id(_text(form, "cargo_id"), Role, "cargo_invalid", "cargo_id")
    return UserInput(
        nome=_text(form, "nome") or "user",
        email=email,
        cargo_id=cargo_id,
        password=password,
    )
