"""Email notifications for bid changes.

Two delivery modes exist. A broadcast goes to every user whose role is not
Admin or Guest; the awardee ("adjudicatário") gets a separate message when
their address is set on create or changes on update. Delivery problems are
raised as :class:`NotificationError` so the caller can log them; the database
mutation that triggered the message is never undone.
"""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass, field
from email.mime.text import MIMEText
from typing import List, Protocol

from controlo.domain.enums import BROADCAST_EXCLUDED_ROLES, EventCategory, Outcome
from controlo.errors import NotificationError
from controlo.infrastructure.repositories.user_repository import UserRepository
from controlo.observability import observe_notification


logger = logging.getLogger(__name__)

AUTOMATIC_FOOTER = "Este é um email automático. Por favor, não responda a este email."


@dataclass(frozen=True)
class NotificationMessage:
    subject: str
    body: str
    recipients: List[str] = field(default_factory=list)

    def as_text(self) -> str:
        return f"Subject: {self.subject}\n\n{self.body}"

    def to_mime(self, sender: str) -> MIMEText:
        msg = MIMEText(self.body, "plain", "utf-8")
        msg["Subject"] = self.subject
        msg["From"] = sender
        msg["To"] = ", ".join(self.recipients)
        return msg


class MailTransport(Protocol):
    def send(self, sender: str, message: NotificationMessage) -> None:
        ...


class SmtpTransport:
    def __init__(self, host: str, port: int, username: str, password: str, timeout: int = 20) -> None:
        self.host = host
        self.port = int(port)
        self.username = username
        self.password = password
        self.timeout = timeout

    def send(self, sender: str, message: NotificationMessage) -> None:
        mime = message.to_mime(sender)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.starttls()
            if self.username:
                server.login(self.username, self.password)
            server.sendmail(sender, message.recipients, mime.as_string())


class DisabledTransport:
    """Used when MAIL_ENABLED is off: messages are logged, never sent."""

    def send(self, sender: str, message: NotificationMessage) -> None:
        logger.info(
            "notification_skipped_mail_disabled",
            extra={"subject": message.subject, "recipients": len(message.recipients)},
        )


def build_transport(config) -> MailTransport:
    if not config.get("MAIL_ENABLED"):
        return DisabledTransport()
    return SmtpTransport(
        host=config.get("EMAIL_SMTP_HOST", "smtp.gmail.com"),
        port=config.get("EMAIL_SMTP_PORT", 587),
        username=config.get("EMAIL_FROM", ""),
        password=config.get("EMAIL_PASSWORD", ""),
        timeout=config.get("EMAIL_TIMEOUT_SECONDS", 20),
    )


def _date_lines(concurso, *, label_first: bool) -> List[str]:
    pairs = (
        (concurso.erro, EventCategory.ERROR),
        (concurso.proposta, EventCategory.PROPOSAL),
        (concurso.audiencia, EventCategory.HEARING),
    )
    lines = []
    for pair, category in pairs:
        if not pair.is_set:
            continue
        if label_first:
            lines.append(f"{category.label}: {pair.date} {pair.time}")
        else:
            lines.append(f"{pair.date} {pair.time} - {category.label}")
    return lines


def _flag_lines(concurso, prefix: str = "") -> List[str]:
    flags = (
        (concurso.preliminar, "Preliminar"),
        (concurso.final, "Final"),
        (concurso.recurso, "Recurso"),
        (concurso.impugnacao, "Impugnação"),
    )
    return [f"{prefix}{label}: Sim" for enabled, label in flags if enabled]


def _outcome_label(resultado_id) -> str:
    if resultado_id is None or int(resultado_id) == Outcome.SEM_RESULTADO:
        return ""
    return Outcome.label_for(resultado_id, str(resultado_id))


def build_update_message(concurso, tipo_desc: str) -> NotificationMessage:
    lines = _date_lines(concurso, label_first=False)
    flags = _flag_lines(concurso)
    if flags:
        lines.append("")
        lines.extend(flags)
    outcome = _outcome_label(concurso.resultado_id)
    if outcome:
        lines.append(f"Resultado: {outcome}")
    if concurso.link:
        lines.append(f"Link: {concurso.link}")
    return NotificationMessage(
        subject=f"{concurso.referencia} - {concurso.entidade} - {tipo_desc}",
        body="\n".join(lines) + "\n",
    )


def build_awardee_message(concurso, tipo_desc: str, estado_desc: str) -> NotificationMessage:
    lines = [
        "Olá,",
        "",
        "foi designado como adjudicatário para o seguinte concurso:",
        "",
        f"Referência: {concurso.referencia}",
        f"Entidade: {concurso.entidade}",
        f"Tipo: {tipo_desc}",
        f"Estado: {estado_desc}",
        "",
    ]
    lines.extend(_date_lines(concurso, label_first=True))
    lines.append("")
    lines.append("Detalhes adicionais:")
    lines.extend(_flag_lines(concurso, prefix="- "))
    outcome = _outcome_label(concurso.resultado_id)
    if outcome:
        lines.append(f"- Resultado: {outcome}")
    if concurso.link:
        lines.append("")
        lines.append(f"Link para o concurso: {concurso.link}")
    lines.extend(["", "", AUTOMATIC_FOOTER])
    return NotificationMessage(
        subject=f"Foi designado como adjudicatário: {concurso.referencia} - {concurso.entidade} - {tipo_desc}",
        body="\n".join(lines) + "\n",
        recipients=[concurso.adjudicatario],
    )


class NotificationService:
    def __init__(
        self,
        transport: MailTransport,
        sender: str,
        user_repository: UserRepository | None = None,
    ) -> None:
        self.transport = transport
        self.sender = sender
        self.user_repository = user_repository or UserRepository()

    def broadcast_recipients(self, db) -> List[str]:
        try:
            return self.user_repository.broadcast_emails(db, BROADCAST_EXCLUDED_ROLES)
        except Exception as exc:
            logger.warning("notification_recipient_query_failed", extra={"error": str(exc)})
        try:
            return self.user_repository.all_emails(db)
        except Exception as exc:
            observe_notification(delivered=False)
            logger.error("notification_recipient_fallback_failed", extra={"error": str(exc)})
            raise NotificationError(
                code="notification_no_recipients",
                message_key="notification_no_recipients",
                details=str(exc),
            ) from exc

    def notify_update(self, db, concurso, tipo_desc: str) -> NotificationMessage:
        message = build_update_message(concurso, tipo_desc)
        recipients = self.broadcast_recipients(db)
        if not recipients:
            observe_notification(delivered=False)
            raise NotificationError(
                code="notification_no_recipients",
                message_key="notification_no_recipients",
                details="no broadcast recipients",
            )
        message = NotificationMessage(message.subject, message.body, list(recipients))
        self._deliver(message)
        return message

    def notify_awardee(self, concurso, tipo_desc: str, estado_desc: str) -> NotificationMessage:
        message = build_awardee_message(concurso, tipo_desc, estado_desc)
        self._deliver(message)
        return message

    def _deliver(self, message: NotificationMessage) -> None:
        try:
            self.transport.send(self.sender, message)
        except (smtplib.SMTPException, OSError) as exc:
            observe_notification(delivered=False)
            logger.error(
                "notification_failed",
                extra={"subject": message.subject, "recipients": len(message.recipients), "error": str(exc)},
            )
            raise NotificationError(
                code="notification_failed",
                message_key="notification_failed",
                details=str(exc),
            ) from exc
        observe_notification(delivered=True)
        logger.info(
            "notification_sent",
            extra={"subject": message.subject, "recipients": len(message.recipients)},
        )


def awardee_changed(previous: str | None, current: str | None) -> bool:
    return bool(current) and (previous or "") != current
