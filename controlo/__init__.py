import os

from flask import Flask, request
from werkzeug.exceptions import HTTPException

from controlo.config import Config
from controlo.db import close_db, get_db, init_db
from controlo.db_migrations import register_db_cli
from controlo.errors import AppError, SystemError
from controlo.observability import (
    REQUEST_ID_HEADER,
    configure_json_logging,
    ensure_request_id,
    mark_request_start,
    metrics_snapshot,
    observe_response,
)
from controlo.security import apply_security_headers, csrf_token, enforce_form_csrf
from controlo.ui_strings import get_ui_text, template_bundle


def create_app(config_class=Config):
    app = Flask(__name__)
    # Config.__init__ holds the production checks, so always go through an instance.
    app.config.from_object(config_class() if isinstance(config_class, type) else config_class)
    configure_json_logging(app)

    if app.config.get("DATABASE_DIR"):
        os.makedirs(app.config["DATABASE_DIR"], exist_ok=True)

    _install_request_hooks(app)
    _install_error_handlers(app)
    _install_mail_transport(app)
    _install_template_context(app)
    _install_blueprints(app)
    _install_health(app)
    _install_cli(app)
    _auto_init_schema(app)

    app.teardown_appcontext(close_db)
    return app


def _install_request_hooks(app: Flask) -> None:
    @app.before_request
    def _start_request() -> None:
        ensure_request_id()
        mark_request_start()
        enforce_form_csrf()

    @app.after_request
    def _finish_request(response):
        response.headers[REQUEST_ID_HEADER] = ensure_request_id()
        return apply_security_headers(observe_response(response))


def _plain_text(body: str, status: int):
    return body, status, {"Content-Type": "text/plain; charset=utf-8", REQUEST_ID_HEADER: ensure_request_id()}


def _install_error_handlers(app: Flask) -> None:
    @app.errorhandler(AppError)
    def _app_error(exc: AppError):
        log = app.logger.error if exc.critical else app.logger.warning
        log(
            "application_error",
            extra={
                "error_code": exc.code,
                "http_status": exc.http_status,
                "message_key": exc.message_key,
                "details": exc.details,
            },
            exc_info=exc.critical,
        )
        return _plain_text(exc.to_response_text(), exc.http_status)

    @app.errorhandler(Exception)
    def _unexpected_error(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        app.logger.exception("unexpected_exception", extra={"error_code": "unexpected_error"})
        wrapped = SystemError(code="unexpected_error", details=str(exc))
        return _plain_text(wrapped.to_response_text(), wrapped.http_status)


def _install_mail_transport(app: Flask) -> None:
    from controlo.application.notification_service import build_transport

    # Tests put a recording transport here before the first request.
    app.extensions.setdefault("mail_transport", build_transport(app.config))


def _install_template_context(app: Flask) -> None:
    from controlo.domain.enums import Role
    from controlo.policies import can_edit_concursos
    from controlo.session_state import current_session

    @app.context_processor
    def _ui_context():
        state = current_session()
        role = Role.from_value(state.role_id) if state.authenticated else None
        return {
            "authenticated": state.authenticated,
            "current_role": role,
            "current_role_label": role.label if role is not None else "",
            "is_admin": role == Role.ADMIN,
            "can_edit": can_edit_concursos(state),
            "ui_text": get_ui_text,
            "csrf_token": csrf_token,
            **template_bundle(),
        }


def _install_blueprints(app: Flask) -> None:
    from controlo.auth import auth_bp
    from controlo.routes.admin_routes import admin_bp
    from controlo.routes.concurso_routes import concurso_editor_bp, concursos_bp
    from controlo.routes.home_routes import home_bp

    for blueprint in (home_bp, auth_bp, concursos_bp, concurso_editor_bp, admin_bp):
        app.register_blueprint(blueprint)


def _install_health(app: Flask) -> None:
    @app.route("/health")
    def health():
        backend = "postgres" if str(app.config.get("DB_PATH") or "").startswith("postgres") else "sqlite"
        status = "ok"
        try:
            get_db().execute("SELECT 1").fetchone()
        except Exception as exc:
            app.logger.warning("health_db_unavailable", extra={"error": str(exc)})
            status = "degraded"
        return {"status": status, "db": backend, "metrics": {"http": metrics_snapshot()}}, 200


def _install_cli(app: Flask) -> None:
    from controlo.cli import register_users_cli

    register_db_cli(app)
    register_users_cli(app)


def _auto_init_schema(app: Flask) -> None:
    """Create the schema on startup in tests and, when DB_AUTO_INIT is set, in development."""
    if not (app.testing or app.config.get("DB_AUTO_INIT", False)):
        return
    flask_env = (os.environ.get("FLASK_ENV") or "development").strip().lower()
    if not app.testing and flask_env != "development":
        app.logger.warning("db_auto_init_skipped", extra={"flask_env": flask_env})
        return
    with app.app_context():
        init_db()
