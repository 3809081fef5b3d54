from __future__ import annotations

import logging
from datetime import datetime
from typing import List

from controlo.application.audit_service import AuditService
from controlo.application.notification_service import NotificationService, awardee_changed
from controlo.concursos.timeline import derive_timeline
from controlo.domain.contracts import Concurso, ConcursoInput, TimelineEvent
from controlo.domain.enums import AuditAction, ObjectType, Status
from controlo.errors import NotificationError, SystemError, ValidationError
from controlo.infrastructure.repositories.concurso_repository import ConcursoRepository
from controlo.infrastructure.repositories.lookup_repository import LookupRepository


logger = logging.getLogger(__name__)

AUDIT_TABLE = "concurso"


class ConcursoService:
    """Orchestrates bid mutations: write, audit, then notify.

    The row is committed before the audit entry and the emails. Neither of
    those later steps can undo it; their failures are logged and dropped.
    """

    def __init__(
        self,
        notification_service: NotificationService | None = None,
        audit_service: AuditService | None = None,
        repository: ConcursoRepository | None = None,
        lookups: LookupRepository | None = None,
    ) -> None:
        self.notification_service = notification_service
        self.audit_service = audit_service or AuditService()
        self.repository = repository or ConcursoRepository()
        self.lookups = lookups or LookupRepository()

    def list_concursos(self, db, entidade: str | None = None) -> List[Concurso]:
        try:
            return self.repository.list_with_lookups(db, (entidade or "").strip() or None)
        except Exception as exc:
            raise SystemError(
                code="concurso_list_failed",
                message_key="concurso_list_failed",
                details=str(exc),
            ) from exc

    def future_events(self, db, now: datetime | None = None) -> List[TimelineEvent]:
        try:
            rows = self.repository.future_event_rows(db, Status.EM_ANDAMENTO)
        except Exception as exc:
            raise SystemError(
                code="future_concursos_failed",
                message_key="future_concursos_failed",
                details=str(exc),
            ) from exc
        return derive_timeline(rows, now or datetime.now())

    def get(self, db, concurso_id: int) -> Concurso:
        concurso = self.repository.get_by_id(db, concurso_id)
        if concurso is None:
            # Missing rows surface as a server error, same as a failed query.
            raise SystemError(
                code="concurso_lookup_failed",
                message_key="concurso_lookup_failed",
                critical=False,
                details=f"concurso {concurso_id} not found",
            )
        return concurso

    def form_options(self, db) -> dict:
        try:
            return self.lookups.form_options(db)
        except Exception as exc:
            raise SystemError(code="lookup_failed", message_key="lookup_failed", details=str(exc)) from exc

    def create(self, db, actor_id: int | None, data: ConcursoInput) -> Concurso:
        self._check_platform(db, data.plataforma_id)
        concurso_id = self.repository.create(db, data.to_columns())
        db.commit()
        created = self.get(db, concurso_id)
        logger.info("concurso_created", extra={"concurso_id": concurso_id, "actor_id": actor_id})

        self.audit_service.record_safely(db, actor_id, AUDIT_TABLE, AuditAction.CREATE.value, after=created.snapshot())
        self._notify(db, created, awardee_is_new=bool(created.adjudicatario))
        return created

    def update(self, db, actor_id: int | None, concurso_id: int, data: ConcursoInput) -> Concurso:
        previous = self.get(db, concurso_id)
        self._check_platform(db, data.plataforma_id)
        self.repository.update(db, concurso_id, data.to_columns())
        db.commit()
        updated = self.get(db, concurso_id)
        logger.info("concurso_updated", extra={"concurso_id": concurso_id, "actor_id": actor_id})

        self.audit_service.record_safely(
            db,
            actor_id,
            AUDIT_TABLE,
            AuditAction.UPDATE.value,
            before=previous.snapshot(),
            after=updated.snapshot(),
        )
        self._notify(db, updated, awardee_is_new=awardee_changed(previous.adjudicatario, updated.adjudicatario))
        return updated

    def delete(self, db, actor_id: int | None, concurso_id: int) -> None:
        previous = self.get(db, concurso_id)
        self.repository.delete(db, concurso_id)
        db.commit()
        logger.info("concurso_deleted", extra={"concurso_id": concurso_id, "actor_id": actor_id})
        self.audit_service.record_safely(db, actor_id, AUDIT_TABLE, AuditAction.DELETE.value, before=previous.snapshot())

    def _check_platform(self, db, plataforma_id: int) -> None:
        if not self.lookups.exists(db, "plataforma", plataforma_id):
            raise ValidationError(
                code="plataforma_invalid",
                message_key="plataforma_invalid",
                payload={"field": "plataforma_id"},
            )

    def _notify(self, db, concurso: Concurso, *, awardee_is_new: bool) -> None:
        if self.notification_service is None:
            return
        tipo_desc = concurso.tipo_desc or ObjectType.label_for(concurso.tipo_id)
        try:
            self.notification_service.notify_update(db, concurso, tipo_desc)
        except NotificationError as exc:
            logger.warning("concurso_broadcast_not_sent", extra={"concurso_id": concurso.id, "error_code": exc.code})

        if not awardee_is_new:
            return
        estado_desc = concurso.estado_desc or Status.label_for(concurso.estado_id)
        try:
            self.notification_service.notify_awardee(concurso, tipo_desc, estado_desc)
        except NotificationError as exc:
            logger.warning("concurso_awardee_not_sent", extra={"concurso_id": concurso.id, "error_code": exc.code})
