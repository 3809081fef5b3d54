from __future__ import annotations

import secrets

from flask import current_app, request, session

from controlo.errors import ValidationError
from controlo.session_state import current_session


CSRF_SESSION_KEY = "_csrf_token"
CSRF_FORM_FIELD = "csrf_token"

# These views check the token themselves so they can re-render their form.
_SELF_CHECKED_PATHS = frozenset({"/login", "/register"})
_CHECKED_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
_FORM_MIMETYPES = frozenset({"application/x-www-form-urlencoded", "multipart/form-data"})

_CONTENT_SECURITY_POLICY = "; ".join(
    (
        "default-src 'self'",
        "img-src 'self' data:",
        "style-src 'self' 'unsafe-inline'",
        "script-src 'self'",
        "frame-ancestors 'none'",
        "base-uri 'self'",
        "form-action 'self'",
    )
)
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Content-Security-Policy": _CONTENT_SECURITY_POLICY,
}


def _csrf_enabled() -> bool:
    return bool(current_app.config.get("CSRF_ENABLED", True))


def csrf_token() -> str:
    """Session-bound token, created on first use and rendered into every form."""
    if not session.get(CSRF_SESSION_KEY):
        session[CSRF_SESSION_KEY] = secrets.token_urlsafe(24)
    return session[CSRF_SESSION_KEY]


def validate_csrf_token(token: str | None) -> bool:
    if not _csrf_enabled():
        return True
    expected = session.get(CSRF_SESSION_KEY) or ""
    provided = (token or "").strip()
    return bool(expected and provided) and secrets.compare_digest(expected, provided)


def _requires_csrf_check() -> bool:
    if request.method not in _CHECKED_METHODS or not _csrf_enabled():
        return False
    if request.path in _SELF_CHECKED_PATHS or request.path.startswith("/static/"):
        return False
    # Anonymous requests are turned away by the role guard with a redirect.
    if not current_session().authenticated:
        return False
    return request.mimetype in _FORM_MIMETYPES


def enforce_form_csrf() -> None:
    if _requires_csrf_check() and not validate_csrf_token(request.form.get(CSRF_FORM_FIELD)):
        raise ValidationError(code="csrf_invalid")


def apply_security_headers(response):
    if not current_app.config.get("SECURITY_HEADERS_ENABLED", True):
        return response
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    if request.is_secure:
        response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response
