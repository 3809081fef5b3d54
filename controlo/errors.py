from __future__ import annotations

from typing import Any, Dict

from controlo.ui_strings import error_message


_FALLBACK_TEXT = "Nao foi possivel concluir a operacao."


class AppError(Exception):
    """Base for every error that maps to an HTTP answer.

    Subclasses pin ``code``, ``message_key``, ``http_status`` and ``critical``
    as class attributes; any of them can be overridden per raise. Critical
    errors are logged with a traceback, the rest as warnings.
    """

    code = "system_error"
    message_key = "unexpected_error"
    http_status = 500
    critical = True

    def __init__(
        self,
        code: str | None = None,
        message_key: str | None = None,
        http_status: int | None = None,
        critical: bool | None = None,
        details: str | None = None,
        payload: Dict[str, Any] | None = None,
    ) -> None:
        if code:
            self.code = code.strip()
            # A bare code doubles as the message key.
            self.message_key = code.strip()
        if message_key:
            self.message_key = message_key.strip()
        if http_status:
            self.http_status = int(http_status)
        if critical is not None:
            self.critical = bool(critical)
        self.details = (details or "").strip() or None
        self.payload = dict(payload or {})
        super().__init__(self.details or self.code)

    def user_message(self) -> str:
        return error_message(self.message_key, error_message("unexpected_error", _FALLBACK_TEXT))

    def to_response_text(self) -> str:
        return self.user_message()


class UserActionError(AppError):
    code = "action_invalid"
    message_key = "action_invalid"
    http_status = 400
    critical = False


class ValidationError(UserActionError):
    code = "validation_error"
    message_key = "form_invalid"


class AuthenticationError(UserActionError):
    code = "auth_invalid_credentials"
    message_key = "auth_invalid_credentials"
    http_status = 401


class AccountLockedError(AuthenticationError):
    code = "auth_account_locked"
    message_key = "auth_account_locked"
    http_status = 423


class PermissionError(UserActionError):
    code = "permission_denied"
    message_key = "permission_denied"
    http_status = 403


class SystemError(AppError):
    pass


class NotificationError(AppError):
    """Delivery failed or had nobody to deliver to. Callers log it and move on."""

    code = "notification_failed"
    message_key = "notification_failed"
    http_status = 502
    critical = False


class AuditLogError(AppError):
    code = "audit_log_failed"
    message_key = "audit_log_failed"
    critical = False
