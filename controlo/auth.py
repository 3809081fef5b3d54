from __future__ import annotations

from flask import Blueprint, current_app, redirect, render_template, request, url_for

from controlo.application.audit_service import AuditService
from controlo.application.auth_service import AuthService
from controlo.db import get_db
from controlo.domain.contracts import AuthLoginInput, AuthRegisterInput
from controlo.errors import AuthenticationError, ValidationError
from controlo.security import validate_csrf_token
from controlo.session_state import current_session, end_session, start_session
from controlo.ui_strings import error_message, success_message


auth_bp = Blueprint("auth", __name__)
_audit_service = AuditService()


def _auth_service() -> AuthService:
    return AuthService(max_failed_attempts=current_app.config.get("LOGIN_MAX_FAILED_ATTEMPTS", 3))


@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    if request.method == "GET" and current_session().authenticated:
        return redirect(url_for("concursos.list_concursos"))

    notice = success_message("registered") if request.args.get("registered") == "true" else None
    error = None
    status = 200
    email = ""
    if request.method == "POST":
        email = (request.form.get("email") or "").strip().lower()
        if not validate_csrf_token(request.form.get("csrf_token")):
            error, status = error_message("csrf_invalid"), 400
        else:
            password = request.form.get("password") or ""
            try:
                user = _auth_service().login(get_db(), AuthLoginInput(email=email, password=password))
            except AuthenticationError as exc:
                error, status = exc.user_message(), exc.http_status
            else:
                start_session(user)
                current_app.logger.info("login_succeeded", extra={"user_id": user.user_id})
                return redirect(url_for("concursos.list_concursos"), code=303)

    return render_template("login.html", error=error, notice=notice, email=email), status


@auth_bp.route("/register", methods=["GET", "POST"])
def register():
    error = None
    status = 200
    form = {"email": "", "nome": ""}
    if request.method == "POST":
        form = {
            "email": (request.form.get("email") or "").strip().lower(),
            "nome": (request.form.get("nome") or "").strip(),
        }
        if not validate_csrf_token(request.form.get("csrf_token")):
            error, status = error_message("csrf_invalid"), 400
        else:
            try:
                _auth_service().register(
                    get_db(),
                    AuthRegisterInput(
                        email=form["email"],
                        password=request.form.get("password") or "",
                        confirm_password=request.form.get("confirm-password") or "",
                        nome=form["nome"] or None,
                    ),
                    audit_service=_audit_service,
                )
            except ValidationError as exc:
                error, status = exc.user_message(), exc.http_status
            else:
                return redirect(url_for("auth.login", registered="true"), code=303)

    return render_template("register.html", error=error, form=form), status


@auth_bp.route("/logout", methods=["GET", "POST"])
def logout():
    end_session()
    return redirect(url_for("auth.login"), code=303)
