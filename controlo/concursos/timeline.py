"""Flatten bid rows into a sorted list of upcoming events.

Every bid carries up to three (date, time) pairs: proposal, error/clarification
and hearing. Each pair that lies strictly after the evaluation instant becomes
one :class:`TimelineEvent`. The HTML "concursos ordenados" page and the PDF
export both call :func:`derive_timeline`, so they always show the same list.

Dates and times are compared as zero-padded ISO strings (``YYYY-MM-DD`` and
``HH:MM:SS``), which orders the same way as the calendar. Remaining days are
whole calendar days between the evaluation date and the event date, ignoring
time zones.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from controlo.domain.contracts import TimelineEvent
from controlo.domain.enums import EventCategory


DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M:%S"
UNPARSEABLE_DAYS = -1

# Source columns per category, in emission order.
EVENT_FIELDS: Tuple[Tuple[EventCategory, str, str], ...] = (
    (EventCategory.PROPOSAL, "dia_proposta", "hora_proposta"),
    (EventCategory.ERROR, "dia_erro", "hora_erro"),
    (EventCategory.HEARING, "dia_audiencia", "hora_audiencia"),
)


def derive_timeline(rows: Iterable[Mapping[str, Any]], now: datetime) -> List[TimelineEvent]:
    today = now.strftime(DATE_FORMAT)
    current_time = now.strftime(TIME_FORMAT)
    evaluation_date = now.date()

    events: List[TimelineEvent] = []
    for row in rows:
        for category, date_column, time_column in EVENT_FIELDS:
            event_date = _as_date_text(row.get(date_column))
            event_time = _as_time_text(row.get(time_column))
            if not event_date or not event_time:
                continue
            if not is_future(event_date, event_time, today, current_time):
                continue
            events.append(
                TimelineEvent(
                    referencia=str(row.get("referencia") or ""),
                    entidade=str(row.get("entidade") or ""),
                    objeto=_as_int(row.get("tipo_id")),
                    data=event_date,
                    hora=event_time,
                    tipo=category.label,
                    dias_restantes=days_remaining(event_date, evaluation_date),
                    link=str(row.get("link") or ""),
                    adjudicatario=str(row.get("adjudicatario") or ""),
                    resultado_id=_as_int(row.get("resultado_id")),
                )
            )

    # sorted() is stable, so equal (date, time) keys keep row order.
    return sorted(events, key=_sort_key)


def is_future(event_date: str, event_time: str, today: str, current_time: str) -> bool:
    if event_date > today:
        return True
    return event_date == today and event_time > current_time


def days_remaining(event_date: str, evaluation_date: date) -> int:
    parsed = _parse_date(event_date)
    if parsed is None:
        return UNPARSEABLE_DAYS
    return (parsed - evaluation_date).days


def _sort_key(event: TimelineEvent) -> tuple:
    if _parse_date(event.data) is None or _parse_time(event.hora) is None:
        return (1, "", "")
    return (0, event.data, event.hora)


def _parse_date(value: str) -> Optional[date]:
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError):
        return None


def _parse_time(value: str) -> Optional[time]:
    try:
        return datetime.strptime(value, TIME_FORMAT).time()
    except (TypeError, ValueError):
        return None


def _as_date_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def _as_time_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, time):
        return value.strftime(TIME_FORMAT)
    text = str(value).strip()
    # HTML time inputs submit HH:MM.
    if len(text) == 5 and text[2:3] == ":":
        return f"{text}:00"
    return text


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
