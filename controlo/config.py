import os
from datetime import timedelta
from urllib.parse import quote


def _bool_env(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _int_env(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _str_env(name: str, default: str) -> str:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return value


def build_postgres_url(host: str, port: str, user: str, password: str, name: str) -> str:
    credentials = quote(user, safe="")
    if password:
        credentials = f"{credentials}:{quote(password, safe='')}"
    return f"postgresql://{credentials}@{host}:{port}/{name}"


DEFAULT_SESSION_SECRET = "secret-key"


class Config:
    BASE_DIR = os.path.dirname(os.path.dirname(__file__))

    DB_BACKEND = _str_env("DB_BACKEND", "sqlite").strip().lower()
    DB_HOST = _str_env("DB_HOST", "127.0.0.1")
    DB_PORT = _str_env("DB_PORT", "5432")
    DB_USER = _str_env("DB_USER", "beso")
    DB_PASSWORD = _str_env("DB_PASSWORD", "beso")
    DB_NAME = _str_env("DB_NAME", "concurso")
    DB_MAX_OPEN = _int_env("DB_MAX_OPEN", 25)
    DB_MAX_IDLE = _int_env("DB_MAX_IDLE", 5)

    DATABASE_URL = os.environ.get("DATABASE_URL") or (
        build_postgres_url(DB_HOST, DB_PORT, DB_USER, DB_PASSWORD, DB_NAME) if DB_BACKEND == "postgres" else None
    )
    DATABASE_DIR = None if DATABASE_URL else os.path.join(BASE_DIR, "database")
    DB_PATH = DATABASE_URL or os.path.join(DATABASE_DIR, f"{DB_NAME}.db")
    DB_AUTO_INIT = _bool_env("DB_AUTO_INIT", True)

    SERVER_PORT = _int_env("SERVER_PORT", 8080)

    SECRET_KEY = _str_env("SESSION_SECRET", DEFAULT_SESSION_SECRET)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    PERMANENT_SESSION_LIFETIME = timedelta(days=7)
    CSRF_ENABLED = _bool_env("CSRF_ENABLED", True)
    SECURITY_HEADERS_ENABLED = _bool_env("SECURITY_HEADERS_ENABLED", True)
    LOGIN_MAX_FAILED_ATTEMPTS = _int_env("LOGIN_MAX_FAILED_ATTEMPTS", 3)

    MAIL_ENABLED = _bool_env("MAIL_ENABLED", True)
    EMAIL_FROM = _str_env("EMAIL_FROM", "")
    EMAIL_PASSWORD = _str_env("EMAIL_PASSWORD", "")
    EMAIL_SMTP_HOST = _str_env("EMAIL_SMTP_HOST", "smtp.gmail.com")
    EMAIL_SMTP_PORT = _int_env("EMAIL_SMTP_PORT", 587)
    EMAIL_TIMEOUT_SECONDS = _int_env("EMAIL_TIMEOUT_SECONDS", 20)

    LOG_JSON = _bool_env("LOG_JSON", True)
    LOG_LEVEL = _str_env("LOG_LEVEL", "INFO")

    def __init__(self):
        env = os.environ.get("FLASK_ENV", "development").lower()
        if env == "production" and self.SECRET_KEY == DEFAULT_SESSION_SECRET:
            raise RuntimeError("SESSION_SECRET insegura para producao.")
        if env == "production" and self.MAIL_ENABLED and not self.EMAIL_FROM:
            raise RuntimeError("EMAIL_FROM nao definido para ambiente de producao.")
