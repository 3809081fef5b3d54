from __future__ import annotations

import dataclasses
import json
import logging
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, List

from controlo.domain.contracts import AuditLogEntry
from controlo.domain.enums import AuditAction
from controlo.errors import AuditLogError
from controlo.infrastructure.repositories.audit_log_repository import AuditLogRepository


logger = logging.getLogger(__name__)


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize_snapshot(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, default=_json_default, ensure_ascii=False, sort_keys=True)


def _decode_snapshot(raw: Any) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return raw


class AuditService:
    def __init__(self, repository: AuditLogRepository | None = None) -> None:
        self.repository = repository or AuditLogRepository()

    def record(
        self,
        db,
        actor_id: int | None,
        table: str,
        action: str,
        before: Any = None,
        after: Any = None,
    ) -> int:
        try:
            normalized_action = AuditAction(str(action)).value
        except ValueError:
            raise AuditLogError(
                code="audit_log_failed",
                message_key="audit_log_failed",
                details=f"unknown audit action: {action}",
            ) from None

        try:
            entry_id = self.repository.insert(
                db,
                table=table,
                action=normalized_action,
                old_data=serialize_snapshot(before),
                new_data=serialize_snapshot(after),
                user_id=actor_id,
            )
            db.commit()
        except Exception as exc:
            logger.error(
                "audit_log_failed",
                extra={"table": table, "action": normalized_action, "actor_id": actor_id, "error": str(exc)},
            )
            raise AuditLogError(
                code="audit_log_failed",
                message_key="audit_log_failed",
                details=str(exc),
            ) from exc
        return entry_id

    def record_safely(
        self,
        db,
        actor_id: int | None,
        table: str,
        action: str,
        before: Any = None,
        after: Any = None,
    ) -> int | None:
        """Write an audit entry without letting a failure reach the caller."""
        try:
            return self.record(db, actor_id, table, action, before, after)
        except AuditLogError as exc:
            logger.warning("audit_log_skipped", extra={"table": table, "action": action, "details": exc.details})
            return None

    def list_entries(
        self,
        db,
        table: str | None = None,
        action: str | None = None,
        actor_id: int | None = None,
        limit: int = 0,
        offset: int = 0,
    ) -> List[AuditLogEntry]:
        rows = self.repository.list(
            db,
            table=table,
            action=action,
            user_id=actor_id,
            limit=int(limit or 0),
            offset=int(offset or 0),
        )
        return [
            AuditLogEntry(
                id=int(row["id_logs"]),
                table=row["tabela"],
                action=row["acao"],
                old_data=_decode_snapshot(row.get("old_data")),
                new_data=_decode_snapshot(row.get("new_data")),
                user_id=int(row["id_user"]) if row.get("id_user") is not None else None,
                timestamp=str(row.get("timestamp") or ""),
            )
            for row in rows
        ]
