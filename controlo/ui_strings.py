from __future__ import annotations

from typing import Dict


FRIENDLY_TERMS: Dict[str, str] = {
    "app_name": "Controlo de Concursos",
    "concurso": "Concurso",
    "entidade": "Entidade",
    "referencia": "Referencia",
    "adjudicatario": "Adjudicatario",
    "user": "Utilizador",
    "cargo": "Cargo",
}


UI_TEXTS: Dict[str, str] = {
    "page.index": "Controlo de Concursos",
    "page.login": "Login",
    "page.register": "Registo",
    "page.concursos": "Lista de Concursos",
    "page.concursos_ordered": "Concursos Futuros",
    "page.concurso_create": "Criar Concurso",
    "page.concurso_edit": "Editar Concurso",
    "page.users": "Gerir Utilizadores",
    "page.user_create": "Criar Utilizador",
    "page.user_edit": "Editar Utilizador",
    "page.logs": "Registo de Alteracoes",
    "label.search_entity": "Pesquisar entidade",
    "label.download_pdf": "Descarregar PDF",
    "label.days_remaining": "Dias restantes",
    "label.updated_at": "Atualizado em",
    "label.unknown_role": "Desconhecido",
    "label.default_user_name": "Utilizador",
    "label.yes": "Sim",
    "label.no": "Nao",
}


MESSAGES: Dict[str, Dict[str, str]] = {
    "success": {
        "registered": "Registo concluido. Pode iniciar sessao.",
    },
    "error": {
        "unexpected_error": "Nao foi possivel concluir a operacao.",
        "action_invalid": "Acao invalida.",
        "permission_denied": "Não autorizado para esta operação",
        "role_invalid": "Erro de cargo na sessao.",
        "csrf_invalid": "Sessao expirada. Recarregue a pagina e tente novamente.",
        "form_invalid": "Erro ao processar formulario.",
        "auth_invalid_credentials": "Credenciais invalidas. Tente novamente.",
        "auth_account_locked": (
            "Conta bloqueada apos demasiadas tentativas falhadas. Contacte um administrador."
        ),
        "auth_missing_credentials": "Informe email e senha.",
        "password_mismatch": "As senhas nao coincidem.",
        "email_already_registered": "Email ja em uso.",
        "email_invalid": "Email invalido.",
        "cargo_invalid": "Cargo invalido.",
        "user_id_invalid": "ID do utilizador invalido.",
        "user_lookup_failed": "Erro ao buscar utilizador.",
        "user_self_delete": "Nao e possivel excluir o proprio utilizador.",
        "concurso_id_invalid": "ID do concurso invalido.",
        "concurso_lookup_failed": "Erro ao buscar concurso.",
        "concurso_list_failed": "Erro ao buscar concursos.",
        "future_concursos_failed": "Erro ao buscar concursos futuros.",
        "lookup_failed": "Erro ao buscar tabelas de apoio.",
        "price_invalid": "Preco invalido.",
        "tipo_invalid": "Tipo invalido.",
        "plataforma_invalid": "Plataforma invalida.",
        "estado_invalid": "Estado invalido.",
        "resultado_invalid": "Resultado invalido.",
        "date_invalid": "Data invalida. Use o formato AAAA-MM-DD.",
        "time_invalid": "Hora invalida. Use o formato HH:MM.",
        "date_time_pair_incomplete": "Data e hora devem ser preenchidas em conjunto.",
        "referencia_required": "Referencia obrigatoria.",
        "entidade_required": "Entidade obrigatoria.",
        "pdf_failed": "Erro ao gerar PDF.",
        "notification_no_recipients": "Nenhum destinatario encontrado.",
        "notification_failed": "Erro ao enviar email.",
        "audit_log_failed": "Erro ao registar alteracao.",
    },
}


def get_ui_text(key: str, default: str | None = None) -> str:
    if key in UI_TEXTS:
        return UI_TEXTS[key]
    if key in FRIENDLY_TERMS:
        return FRIENDLY_TERMS[key]
    return default if default is not None else key


def get_message(category: str, key: str, default: str | None = None) -> str:
    message = MESSAGES.get(category, {}).get(key)
    if message:
        return message
    return default if default is not None else key


def error_message(key: str, default: str | None = None) -> str:
    return get_message("error", key, default)


def success_message(key: str, default: str | None = None) -> str:
    return get_message("success", key, default)


def template_bundle() -> Dict[str, object]:
    return {
        "ui_terms": FRIENDLY_TERMS,
        "ui_messages": MESSAGES,
        "ui_texts": UI_TEXTS,
    }
