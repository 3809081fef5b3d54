import json
import unittest
from datetime import date
from decimal import Decimal
from unittest import mock

from controlo.application.audit_service import AuditService, serialize_snapshot
from controlo.db import close_db, get_db
from controlo.domain.contracts import DateTimePair
from controlo.domain.enums import Role
from controlo.errors import AuditLogError
from tests.helpers.app_case import AppTestCase


class AuditServiceTest(AppTestCase):
    sandbox_prefix = "audit_log"

    def setUp(self) -> None:
        super().setUp()
        self.service = AuditService()

    def _record(self, *args, **kwargs):
        with self.app.app_context():
            try:
                return self.service.record(get_db(), *args, **kwargs)
            finally:
                close_db()

    def _list(self, **kwargs):
        with self.app.app_context():
            try:
                return self.service.list_entries(get_db(), **kwargs)
            finally:
                close_db()

    def test_create_stores_null_before_and_json_after(self) -> None:
        self._record(7, "user", "create", None, {"user_id": 9, "email": "x@example.com"})
        rows = self.query("SELECT tabela, acao, old_data, new_data, id_user, timestamp FROM logs")
        self.assertEqual(len(rows), 1)
        row = rows[0]
        self.assertEqual(row["tabela"], "user")
        self.assertEqual(row["acao"], "create")
        self.assertIsNone(row["old_data"])
        self.assertEqual(json.loads(row["new_data"]), {"user_id": 9, "email": "x@example.com"})
        self.assertEqual(row["id_user"], 7)
        self.assertTrue(row["timestamp"])

    def test_delete_stores_null_after(self) -> None:
        self._record(1, "concurso", "delete", before={"id": 3})
        row = self.query("SELECT old_data, new_data FROM logs")[0]
        self.assertEqual(json.loads(row["old_data"]), {"id": 3})
        self.assertIsNone(row["new_data"])

    def test_unknown_action_is_rejected(self) -> None:
        with self.assertRaises(AuditLogError):
            self._record(1, "concurso", "truncate", None, {"id": 1})
        self.assertEqual(self.query("SELECT COUNT(*) AS n FROM logs")[0]["n"], 0)

    def test_insert_failure_raises_audit_error(self) -> None:
        with mock.patch.object(self.service.repository, "insert", side_effect=RuntimeError("disk full")):
            with self.assertRaises(AuditLogError) as ctx:
                self._record(1, "concurso", "update", {"a": 1}, {"a": 2})
        self.assertIn("disk full", ctx.exception.details)

    def test_record_safely_swallows_failures(self) -> None:
        with mock.patch.object(self.service.repository, "insert", side_effect=RuntimeError("boom")):
            with self.app.app_context():
                result = self.service.record_safely(get_db(), 1, "concurso", "update", {"a": 1}, {"a": 2})
                close_db()
        self.assertIsNone(result)

    def test_list_filters_and_orders_newest_first(self) -> None:
        self._record(1, "concurso", "create", None, {"n": 1})
        self._record(2, "user", "create", None, {"n": 2})
        self._record(1, "concurso", "update", {"n": 1}, {"n": 3})

        everything = self._list()
        self.assertEqual([entry.new_data["n"] for entry in everything], [3, 2, 1])

        only_concurso = self._list(table="concurso")
        self.assertEqual({entry.table for entry in only_concurso}, {"concurso"})
        self.assertEqual(len(only_concurso), 2)

        by_actor = self._list(actor_id=2)
        self.assertEqual([entry.user_id for entry in by_actor], [2])

        updates = self._list(action="update")
        self.assertEqual(updates[0].old_data, {"n": 1})

    def test_limit_and_offset(self) -> None:
        for n in range(5):
            self._record(1, "concurso", "create", None, {"n": n})
        page = self._list(limit=2, offset=1)
        self.assertEqual([entry.new_data["n"] for entry in page], [3, 2])
        # offset without a positive limit is ignored
        self.assertEqual(len(self._list(offset=3)), 5)

    def test_invalid_json_is_returned_raw(self) -> None:
        conn = self._temp_db.connect()
        conn.execute(
            "INSERT INTO logs (tabela, acao, old_data, new_data, id_user) VALUES (?, ?, ?, ?, ?)",
            ("concurso", "update", "{not json", None, 1),
        )
        conn.commit()
        conn.close()
        entry = self._list()[0]
        self.assertEqual(entry.old_data, "{not json")
        self.assertIsNone(entry.new_data)


class SnapshotSerializationTest(unittest.TestCase):
    def test_serializes_dataclasses_dates_decimals_and_enums(self) -> None:
        payload = {
            "pair": DateTimePair("2024-06-01", "10:00:00"),
            "day": date(2024, 6, 1),
            "preco": Decimal("12.50"),
            "cargo": Role.SAV,
        }
        decoded = json.loads(serialize_snapshot(payload))
        self.assertEqual(decoded["pair"], {"date": "2024-06-01", "time": "10:00:00"})
        self.assertEqual(decoded["day"], "2024-06-01")
        self.assertEqual(decoded["preco"], 12.5)
        self.assertEqual(decoded["cargo"], 2)

    def test_none_stays_none(self) -> None:
        self.assertIsNone(serialize_snapshot(None))
