from __future__ import annotations

import logging
from typing import List

from controlo.application.audit_service import AuditService
from controlo.domain.contracts import User, UserInput
from controlo.domain.enums import AuditAction
from controlo.errors import SystemError, UserActionError, ValidationError
from controlo.infrastructure.repositories.user_repository import UserRepository


logger = logging.getLogger(__name__)

AUDIT_TABLE = "user"


class UserService:
    def __init__(
        self,
        repository: UserRepository | None = None,
        audit_service: AuditService | None = None,
    ) -> None:
        self.repository = repository or UserRepository()
        self.audit_service = audit_service or AuditService()

    def list_users(self, db) -> List[User]:
        return self.repository.list_all(db)

    def get(self, db, user_id: int) -> User:
        user = self.repository.get_by_id(db, user_id)
        if user is None:
            raise SystemError(
                code="user_lookup_failed",
                message_key="user_lookup_failed",
                critical=False,
                details=f"user {user_id} not found",
            )
        return user

    def create(self, db, actor_id: int | None, data: UserInput) -> User:
        if not data.password:
            raise ValidationError(code="auth_missing_credentials", message_key="auth_missing_credentials")
        if self.repository.email_exists(db, data.email):
            raise ValidationError(code="email_already_registered", message_key="email_already_registered")

        user_id = self.repository.create(
            db,
            nome=data.nome,
            email=data.email,
            password=data.password,
            cargo_id=data.cargo_id,
        )
        db.commit()
        created = self.get(db, user_id)
        logger.info("user_created", extra={"user_id": user_id, "actor_id": actor_id})
        self.audit_service.record_safely(db, actor_id, AUDIT_TABLE, AuditAction.CREATE.value, after=created.snapshot())
        return created

    def update(self, db, actor_id: int | None, user_id: int, data: UserInput) -> User:
        previous = self.get(db, user_id)
        if self.repository.email_exists(db, data.email, exclude_user_id=user_id):
            raise ValidationError(code="email_already_registered", message_key="email_already_registered")

        self.repository.update_profile(db, user_id, nome=data.nome, email=data.email, cargo_id=data.cargo_id)
        if data.password:
            self.repository.update_password(db, user_id, data.password)
        db.commit()
        updated = self.get(db, user_id)
        logger.info(
            "user_updated",
            extra={"user_id": user_id, "actor_id": actor_id, "password_changed": bool(data.password)},
        )

        after = updated.snapshot()
        if data.password:
            after["password_changed"] = True
        self.audit_service.record_safely(
            db,
            actor_id,
            AUDIT_TABLE,
            AuditAction.UPDATE.value,
            before=previous.snapshot(),
            after=after,
        )
        return updated

    def delete(self, db, actor_id: int | None, user_id: int) -> None:
        if actor_id is not None and int(actor_id) == int(user_id):
            raise UserActionError(code="user_self_delete", message_key="user_self_delete", http_status=400)
        previous = self.get(db, user_id)
        self.repository.delete(db, user_id)
        db.commit()
        logger.info("user_deleted", extra={"user_id": user_id, "actor_id": actor_id})
        self.audit_service.record_safely(db, actor_id, AUDIT_TABLE, AuditAction.DELETE.value, before=previous.snapshot())

    def unlock(self, db, actor_id: int | None, user_id: int) -> User:
        previous = self.get(db, user_id)
        self.repository.reset_failed_attempts(db, user_id)
        db.commit()
        unlocked = self.get(db, user_id)
        logger.info("user_unlocked", extra={"user_id": user_id, "actor_id": actor_id})
        self.audit_service.record_safely(
            db,
            actor_id,
            AUDIT_TABLE,
            AuditAction.UPDATE.value,
            before={**previous.snapshot(), "failed_attempts": previous.failed_attempts},
            after={**unlocked.snapshot(), "failed_attempts": unlocked.failed_attempts},
        )
        return unlocked
