from __future__ import annotations

from datetime import datetime

from flask import Blueprint, current_app, make_response, redirect, render_template, request, url_for

from controlo.application.concurso_service import ConcursoService
from controlo.application.notification_service import NotificationService
from controlo.application.pdf_export import PDF_FILENAME, render_timeline_pdf
from controlo.concursos.forms import parse_concurso_form
from controlo.db import get_db
from controlo.domain.enums import ObjectType
from controlo.errors import ValidationError
from controlo.policies import ADMIN_SAV, VIEW_ONLY, can_edit_concursos, guard_route_group
from controlo.session_state import current_session


concursos_bp = Blueprint("concursos", __name__)
concurso_editor_bp = Blueprint("concurso_editor", __name__)

guard_route_group(concursos_bp, VIEW_ONLY)
guard_route_group(concurso_editor_bp, ADMIN_SAV)


def _service() -> ConcursoService:
    notification_service = NotificationService(
        transport=current_app.extensions["mail_transport"],
        sender=current_app.config.get("EMAIL_FROM", ""),
    )
    return ConcursoService(notification_service=notification_service)


def _parse_concurso_id(raw: str) -> int:
    try:
        concurso_id = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(code="concurso_id_invalid", message_key="concurso_id_invalid") from None
    if concurso_id <= 0:
        raise ValidationError(code="concurso_id_invalid", message_key="concurso_id_invalid")
    return concurso_id


@concursos_bp.route("/concursos", methods=["GET"])
def list_concursos():
    entidade = (request.args.get("entidade") or "").strip()
    concursos = _service().list_concursos(get_db(), entidade)
    return render_template(
        "concursos/list.html",
        concursos=concursos,
        entidade=entidade,
        can_edit=can_edit_concursos(),
    )


@concursos_bp.route("/concursos-ordenados", methods=["GET"])
def ordered_concursos():
    events = _service().future_events(get_db(), datetime.now())
    return render_template(
        "concursos/ordered.html",
        events=events,
        object_label=ObjectType.label_for,
    )


@concursos_bp.route("/download-pdf", methods=["GET"])
def download_pdf():
    now = datetime.now()
    events = _service().future_events(get_db(), now)
    pdf_bytes = render_timeline_pdf(events, generated_at=now)
    response = make_response(pdf_bytes)
    response.headers["Content-Type"] = "application/pdf"
    response.headers["Content-Disposition"] = f"attachment; filename={PDF_FILENAME}"
    return response


@concurso_editor_bp.route("/create-concurso", methods=["GET"])
def create_concurso():
    options = _service().form_options(get_db())
    return render_template(
        "concursos/form.html",
        concurso=None,
        editing=False,
        action=url_for(".save_concurso"),
        **options,
    )


@concurso_editor_bp.route("/save-concurso", methods=["POST"])
def save_concurso():
    data = parse_concurso_form(request.form)
    _service().create(get_db(), current_session().user_id, data)
    return redirect(url_for("concursos.list_concursos"), code=303)


@concurso_editor_bp.route("/edit-concurso/<concurso_id>", methods=["GET"])
def edit_concurso(concurso_id: str):
    parsed_id = _parse_concurso_id(concurso_id)
    service = _service()
    db = get_db()
    concurso = service.get(db, parsed_id)
    options = service.form_options(db)
    return render_template(
        "concursos/form.html",
        concurso=concurso,
        editing=True,
        action=url_for(".update_concurso", concurso_id=parsed_id),
        **options,
    )


@concurso_editor_bp.route("/update-concurso/<concurso_id>", methods=["POST"])
def update_concurso(concurso_id: str):
    parsed_id = _parse_concurso_id(concurso_id)
    data = parse_concurso_form(request.form)
    _service().update(get_db(), current_session().user_id, parsed_id, data)
    return redirect(url_for("concursos.list_concursos"), code=303)


@concurso_editor_bp.route("/delete-concurso/<concurso_id>", methods=["GET", "POST"])
def delete_concurso(concurso_id: str):
    parsed_id = _parse_concurso_id(concurso_id)
    _service().delete(get_db(), current_session().user_id, parsed_id)
    return redirect(url_for("concursos.list_concursos"), code=303)
