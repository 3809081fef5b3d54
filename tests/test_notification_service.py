import sqlite3
import unittest
from unittest import mock

from controlo.application.notification_service import (
    AUTOMATIC_FOOTER,
    DisabledTransport,
    NotificationService,
    SmtpTransport,
    awardee_changed,
    build_awardee_message,
    build_transport,
    build_update_message,
)
from controlo.db import close_db, get_db
from controlo.domain.contracts import Concurso, DateTimePair
from controlo.domain.enums import Role
from controlo.errors import NotificationError
from controlo.observability import metrics_snapshot, reset_metrics_for_tests
from tests.helpers.app_case import AppTestCase
from tests.helpers.mail import RecordingTransport


def _concurso(**fields) -> Concurso:
    base = dict(
        id=1,
        referencia="REF-7",
        entidade="Camara Municipal",
        referencia_bc="BC-1",
        preco=100.0,
        erro=DateTimePair(),
        proposta=DateTimePair(),
        audiencia=DateTimePair(),
        preliminar=False,
        final=False,
        recurso=False,
        impugnacao=False,
        tipo_id=1,
        plataforma_id=1,
        estado_id=2,
        resultado_id=None,
        link="",
        adjudicatario="",
    )
    base.update(fields)
    return Concurso(**base)


class MessageFormatTest(unittest.TestCase):
    def test_update_message_lists_dates_flags_outcome_and_link(self) -> None:
        concurso = _concurso(
            proposta=DateTimePair("2024-06-10", "12:00:00"),
            erro=DateTimePair("2024-06-05", "17:00:00"),
            final=True,
            impugnacao=True,
            resultado_id=2,
            link="https://example.com/c/7",
        )
        message = build_update_message(concurso, "CTE")
        self.assertEqual(message.subject, "REF-7 - Camara Municipal - CTE")
        self.assertEqual(
            message.body,
            "2024-06-05 17:00:00 - Esclarecimentos/Erro\n"
            "2024-06-10 12:00:00 - Proposta\n"
            "\n"
            "Final: Sim\n"
            "Impugnação: Sim\n"
            "Resultado: Adjudicado\n"
            "Link: https://example.com/c/7\n",
        )

    def test_update_message_omits_empty_sections(self) -> None:
        message = build_update_message(_concurso(resultado_id=1), "CON")
        self.assertEqual(message.body, "\n")
        self.assertNotIn("Resultado", message.body)

    def test_awardee_message_is_addressed_to_awardee(self) -> None:
        concurso = _concurso(
            audiencia=DateTimePair("2024-07-01", "09:30:00"),
            preliminar=True,
            adjudicatario="vencedor@example.com",
            link="https://example.com/c/7",
        )
        message = build_awardee_message(concurso, "CTE", "Em Andamento")
        self.assertEqual(message.recipients, ["vencedor@example.com"])
        self.assertEqual(message.subject, "Foi designado como adjudicatário: REF-7 - Camara Municipal - CTE")
        self.assertIn("Estado: Em Andamento", message.body)
        self.assertIn("Audiência: 2024-07-01 09:30:00", message.body)
        self.assertIn("- Preliminar: Sim", message.body)
        self.assertIn("Link para o concurso: https://example.com/c/7", message.body)
        self.assertTrue(message.body.rstrip().endswith(AUTOMATIC_FOOTER))

    def test_mime_rendering_keeps_utf8_subject(self) -> None:
        message = build_awardee_message(_concurso(adjudicatario="a@example.com"), "CTE", "Enviado")
        mime = message.to_mime("noreply@example.com")
        self.assertEqual(mime["From"], "noreply@example.com")
        self.assertEqual(mime["To"], "a@example.com")
        self.assertIn("Subject: Foi designado", message.as_text())

    def test_awardee_changed(self) -> None:
        self.assertTrue(awardee_changed("", "novo@example.com"))
        self.assertTrue(awardee_changed("velho@example.com", "novo@example.com"))
        self.assertFalse(awardee_changed("igual@example.com", "igual@example.com"))
        self.assertFalse(awardee_changed("velho@example.com", ""))


class TransportSelectionTest(unittest.TestCase):
    def test_disabled_mail_uses_logging_transport(self) -> None:
        self.assertIsInstance(build_transport({"MAIL_ENABLED": False}), DisabledTransport)

    def test_enabled_mail_uses_smtp(self) -> None:
        transport = build_transport(
            {"MAIL_ENABLED": True, "EMAIL_SMTP_HOST": "smtp.example.com", "EMAIL_SMTP_PORT": "2525"}
        )
        self.assertIsInstance(transport, SmtpTransport)
        self.assertEqual(transport.port, 2525)

    def test_smtp_transport_uses_starttls_and_login(self) -> None:
        transport = SmtpTransport("smtp.example.com", 587, "bot@example.com", "pw")
        message = build_update_message(_concurso(), "CTE")
        with mock.patch("controlo.application.notification_service.smtplib.SMTP") as smtp_cls:
            server = smtp_cls.return_value.__enter__.return_value
            transport.send("bot@example.com", message)
        smtp_cls.assert_called_once_with("smtp.example.com", 587, timeout=20)
        server.starttls.assert_called_once_with()
        server.login.assert_called_once_with("bot@example.com", "pw")
        server.sendmail.assert_called_once()


class _UnreachableUserRepository:
    def __init__(self, fallback=None) -> None:
        self.fallback = fallback

    def broadcast_emails(self, _db, _excluded_role_ids):
        raise sqlite3.OperationalError("database is locked")

    def all_emails(self, _db):
        if self.fallback is None:
            raise sqlite3.OperationalError("database is locked")
        return list(self.fallback)


class RecipientFallbackTest(unittest.TestCase):
    def setUp(self) -> None:
        reset_metrics_for_tests()
        self.mail = RecordingTransport()

    def test_failed_role_query_falls_back_to_every_user(self) -> None:
        service = NotificationService(
            transport=self.mail,
            sender="noreply@example.com",
            user_repository=_UnreachableUserRepository(fallback=["admin@example.com", "sav@example.com"]),
        )
        service.notify_update(None, _concurso(), "CTE")
        _, message = self.mail.sent[0]
        self.assertEqual(message.recipients, ["admin@example.com", "sav@example.com"])

    def test_failed_fallback_becomes_notification_error(self) -> None:
        service = NotificationService(
            transport=self.mail,
            sender="noreply@example.com",
            user_repository=_UnreachableUserRepository(),
        )
        with self.assertRaises(NotificationError) as ctx:
            service.notify_update(None, _concurso(), "CTE")
        self.assertEqual(ctx.exception.code, "notification_no_recipients")
        self.assertIn("database is locked", ctx.exception.details)
        self.assertEqual(self.mail.sent, [])
        self.assertEqual(metrics_snapshot()["notifications_failed_total"], 1)


class BroadcastRecipientsTest(AppTestCase):
    sandbox_prefix = "notify_recipients"

    def _service(self, transport=None) -> NotificationService:
        return NotificationService(transport=transport or self.mail, sender="noreply@example.com")

    def test_broadcast_skips_admin_and_guest(self) -> None:
        self.create_user("admin@example.com", Role.ADMIN)
        self.create_user("sav@example.com", Role.SAV)
        self.create_user("dcp@example.com", Role.DCP)
        self.create_user("guest@example.com", Role.GUEST)
        self.create_user("semcargo@example.com", None)

        with self.app.app_context():
            recipients = self._service().broadcast_recipients(get_db())
            close_db()
        self.assertEqual(recipients, ["sav@example.com", "dcp@example.com", "semcargo@example.com"])

    def test_no_recipients_is_an_error(self) -> None:
        self.create_user("admin@example.com", Role.ADMIN)
        with self.app.app_context():
            with self.assertRaises(NotificationError) as ctx:
                self._service().notify_update(get_db(), _concurso(), "CTE")
            close_db()
        self.assertEqual(ctx.exception.code, "notification_no_recipients")
        self.assertEqual(self.mail.sent, [])

    def test_smtp_failure_becomes_notification_error(self) -> None:
        self.create_user("sav@example.com", Role.SAV)
        with self.app.app_context():
            with self.assertRaises(NotificationError) as ctx:
                self._service(RecordingTransport(fail=True)).notify_update(get_db(), _concurso(), "CTE")
            close_db()
        self.assertEqual(ctx.exception.code, "notification_failed")
        self.assertEqual(metrics_snapshot()["notifications_failed_total"], 1)

    def test_delivered_message_carries_sender_and_recipients(self) -> None:
        self.create_user("sav@example.com", Role.SAV)
        with self.app.app_context():
            self._service().notify_update(get_db(), _concurso(), "CTE")
            close_db()
        sender, message = self.mail.sent[0]
        self.assertEqual(sender, "noreply@example.com")
        self.assertEqual(message.recipients, ["sav@example.com"])


if __name__ == "__main__":
    unittest.main()
