from __future__ import annotations

from flask import Blueprint, redirect, render_template, request, url_for

from controlo.application.audit_service import AuditService
from controlo.application.user_service import UserService
from controlo.concursos.forms import parse_user_form
from controlo.db import get_db
from controlo.domain.enums import AuditAction, Role
from controlo.errors import ValidationError
from controlo.policies import ADMIN_ONLY, guard_route_group
from controlo.session_state import current_session


admin_bp = Blueprint("admin", __name__, url_prefix="/admin")
guard_route_group(admin_bp, ADMIN_ONLY)

_user_service = UserService()
_audit_service = AuditService()

LOGS_PAGE_SIZE = 50


def _parse_user_id(raw: str) -> int:
    try:
        user_id = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(code="user_id_invalid", message_key="user_id_invalid") from None
    if user_id <= 0:
        raise ValidationError(code="user_id_invalid", message_key="user_id_invalid")
    return user_id


def _positive_int(raw: str | None, default: int) -> int:
    try:
        value = int(raw or default)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


@admin_bp.route("/users", methods=["GET"])
def list_users():
    return render_template(
        "admin/users/list.html",
        users=_user_service.list_users(get_db()),
        current_user_id=current_session().user_id,
    )


@admin_bp.route("/users/create", methods=["GET"])
def create_user():
    return render_template(
        "admin/users/form.html",
        user=None,
        editing=False,
        cargos=Role.choices(),
        action=url_for(".save_user"),
    )


@admin_bp.route("/users/save", methods=["POST"])
def save_user():
    data = parse_user_form(request.form, require_password=True)
    _user_service.create(get_db(), current_session().user_id, data)
    return redirect(url_for(".list_users"), code=303)


@admin_bp.route("/users/edit/<user_id>", methods=["GET"])
def edit_user(user_id: str):
    parsed_id = _parse_user_id(user_id)
    return render_template(
        "admin/users/form.html",
        user=_user_service.get(get_db(), parsed_id),
        editing=True,
        cargos=Role.choices(),
        action=url_for(".update_user", user_id=parsed_id),
    )


@admin_bp.route("/users/update/<user_id>", methods=["POST"])
def update_user(user_id: str):
    parsed_id = _parse_user_id(user_id)
    data = parse_user_form(request.form, require_password=False)
    _user_service.update(get_db(), current_session().user_id, parsed_id, data)
    return redirect(url_for(".list_users"), code=303)


@admin_bp.route("/users/delete/<user_id>", methods=["GET", "POST"])
def delete_user(user_id: str):
    parsed_id = _parse_user_id(user_id)
    _user_service.delete(get_db(), current_session().user_id, parsed_id)
    return redirect(url_for(".list_users"), code=303)


@admin_bp.route("/users/unlock/<user_id>", methods=["GET", "POST"])
def unlock_user(user_id: str):
    parsed_id = _parse_user_id(user_id)
    _user_service.unlock(get_db(), current_session().user_id, parsed_id)
    return redirect(url_for(".list_users"), code=303)


@admin_bp.route("/logs", methods=["GET"])
def list_logs():
    table = (request.args.get("tabela") or "").strip() or None
    action = (request.args.get("acao") or "").strip() or None
    if action and action not in {item.value for item in AuditAction}:
        action = None
    actor_id = _positive_int(request.args.get("id_user"), 0) or None
    page = _positive_int(request.args.get("page"), 1)
    entries = _audit_service.list_entries(
        get_db(),
        table=table,
        action=action,
        actor_id=actor_id,
        limit=LOGS_PAGE_SIZE,
        offset=(page - 1) * LOGS_PAGE_SIZE,
    )
    return render_template(
        "admin/logs/list.html",
        entries=entries,
        tabela=table or "",
        acao=action or "",
        id_user=actor_id or "",
        page=page,
        has_next=len(entries) == LOGS_PAGE_SIZE,
    )
