from __future__ import annotations

import logging

from werkzeug.security import check_password_hash

from controlo.concursos.forms import is_valid_email
from controlo.domain.contracts import AuthLoginInput, AuthRegisterInput, AuthUser
from controlo.domain.enums import AuditAction, Role
from controlo.errors import AccountLockedError, AuthenticationError, ValidationError
from controlo.infrastructure.repositories.user_repository import UserRepository


logger = logging.getLogger(__name__)

DEFAULT_MAX_FAILED_ATTEMPTS = 3


class AuthService:
    def __init__(
        self,
        repository: UserRepository | None = None,
        max_failed_attempts: int = DEFAULT_MAX_FAILED_ATTEMPTS,
    ) -> None:
        self.repository = repository or UserRepository()
        self.max_failed_attempts = max(1, int(max_failed_attempts))

    def login(self, db, auth_input: AuthLoginInput) -> AuthUser:
        email = (auth_input.email or "").strip().lower()
        password = auth_input.password or ""
        if not email or not password:
            raise AuthenticationError(
                code="auth_missing_credentials",
                message_key="auth_missing_credentials",
                http_status=400,
            )

        db_user = self.repository.find_credentials_by_email(db, email)
        if not db_user:
            logger.info("login_unknown_email")
            raise AuthenticationError()

        attempts = int(db_user.get("failed_attempts") or 0)
        if attempts >= self.max_failed_attempts:
            logger.warning("login_account_locked", extra={"user_id": db_user["id_user"], "failed_attempts": attempts})
            raise AccountLockedError()

        if not check_password_hash(db_user["password"], password):
            self.repository.increment_failed_attempts(db, db_user["id_user"])
            db.commit()
            logger.info(
                "login_wrong_password",
                extra={"user_id": db_user["id_user"], "failed_attempts": attempts + 1},
            )
            raise AuthenticationError()

        if attempts:
            self.repository.reset_failed_attempts(db, db_user["id_user"])
            db.commit()

        return AuthUser(
            user_id=int(db_user["id_user"]),
            email=db_user["email"],
            nome=db_user.get("nome") or email.split("@")[0],
            cargo_id=int(db_user["cargo_id"]) if db_user.get("cargo_id") is not None else None,
        )

    def register(self, db, auth_input: AuthRegisterInput, audit_service=None) -> AuthUser:
        email = (auth_input.email or "").strip().lower()
        password = auth_input.password or ""
        if not email or not password:
            raise ValidationError(code="auth_missing_credentials", message_key="auth_missing_credentials")
        if not is_valid_email(email):
            raise ValidationError(code="email_invalid", message_key="email_invalid")
        if password != (auth_input.confirm_password or ""):
            raise ValidationError(code="password_mismatch", message_key="password_mismatch")
        if self.repository.email_exists(db, email):
            raise ValidationError(code="email_already_registered", message_key="email_already_registered")

        nome = (auth_input.nome or "").strip() or "user"
        user_id = self.repository.create(
            db,
            nome=nome,
            email=email,
            password=password,
            cargo_id=int(Role.GUEST),
        )
        db.commit()
        user = AuthUser(user_id=user_id, email=email, nome=nome, cargo_id=int(Role.GUEST))

        if audit_service is not None:
            audit_service.record_safely(
                db,
                user_id,
                "user",
                AuditAction.CREATE.value,
                after={"user_id": user_id, "nome": nome, "email": email, "cargo_id": int(Role.GUEST)},
            )
        return user
