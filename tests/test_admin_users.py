import json
import unittest

from controlo.domain.enums import Role
from controlo.ui_strings import error_message
from tests.helpers.app_case import AppTestCase


class AdminUsersTest(AppTestCase):
    sandbox_prefix = "admin_users"

    def setUp(self) -> None:
        super().setUp()
        self.admin_id = self.create_user("admin@example.com", Role.ADMIN)
        self.login_as(self.admin_id, int(Role.ADMIN))

    def _user(self, email: str):
        rows = self.query("SELECT * FROM users WHERE email = ?", (email,))
        return rows[0] if rows else None

    def test_list_shows_users(self) -> None:
        self.create_user("sav@example.com", Role.SAV)
        page = self.client.get("/admin/users").get_data(as_text=True)
        self.assertIn("admin@example.com", page)
        self.assertIn("sav@example.com", page)

    def test_create_user_hashes_password_and_audits(self) -> None:
        response = self.client.post(
            "/admin/users/save",
            data={
                "nome": "Nova",
                "email": "Nova@Example.com",
                "password": "abc12345",
                "confirm-password": "abc12345",
                "cargo_id": str(int(Role.DCP)),
            },
        )
        self.assertEqual(response.status_code, 303)
        created = self._user("nova@example.com")
        self.assertEqual(created["cargo_id"], int(Role.DCP))
        self.assertNotEqual(created["password"], "abc12345")

        audit = self.query("SELECT tabela, acao, new_data, id_user FROM logs")
        self.assertEqual(audit[0]["tabela"], "user")
        self.assertEqual(audit[0]["acao"], "create")
        self.assertEqual(audit[0]["id_user"], self.admin_id)
        self.assertNotIn("password", json.loads(audit[0]["new_data"]))

    def test_create_rejects_duplicate_email_and_unknown_role(self) -> None:
        self.create_user("sav@example.com", Role.SAV)
        duplicate = self.client.post(
            "/admin/users/save",
            data={"email": "sav@example.com", "password": "x1", "confirm-password": "x1", "cargo_id": "2"},
        )
        self.assertEqual(duplicate.status_code, 400)
        self.assertEqual(duplicate.get_data(as_text=True), error_message("email_already_registered"))

        bad_role = self.client.post(
            "/admin/users/save",
            data={"email": "x@example.com", "password": "x1", "confirm-password": "x1", "cargo_id": "9"},
        )
        self.assertEqual(bad_role.status_code, 400)
        self.assertEqual(bad_role.get_data(as_text=True), error_message("cargo_invalid"))

    def test_update_changes_role_and_optionally_password(self) -> None:
        user_id = self.create_user("sav@example.com", Role.SAV, password="antiga123")
        self.client.post(
            f"/admin/users/update/{user_id}",
            data={"nome": "Renomeado", "email": "sav@example.com", "cargo_id": str(int(Role.DCP))},
        )
        row = self._user("sav@example.com")
        self.assertEqual(row["cargo_id"], int(Role.DCP))
        self.assertEqual(row["nome"], "Renomeado")
        old_hash = row["password"]

        self.client.post(
            f"/admin/users/update/{user_id}",
            data={
                "email": "sav@example.com",
                "cargo_id": str(int(Role.DCP)),
                "password": "nova12345",
                "confirm-password": "nova12345",
            },
        )
        self.assertNotEqual(self._user("sav@example.com")["password"], old_hash)

    def test_password_reset_clears_lockout(self) -> None:
        user_id = self.create_user("sav@example.com", Role.SAV)
        conn = self._temp_db.connect()
        conn.execute("UPDATE users SET failed_attempts = 3 WHERE id_user = ?", (user_id,))
        conn.commit()
        conn.close()

        self.client.post(
            f"/admin/users/update/{user_id}",
            data={
                "email": "sav@example.com",
                "cargo_id": str(int(Role.SAV)),
                "password": "nova12345",
                "confirm-password": "nova12345",
            },
        )
        self.assertEqual(self._user("sav@example.com")["failed_attempts"], 0)

    def test_unlock_resets_failed_attempts(self) -> None:
        user_id = self.create_user("sav@example.com", Role.SAV)
        conn = self._temp_db.connect()
        conn.execute("UPDATE users SET failed_attempts = 5 WHERE id_user = ?", (user_id,))
        conn.commit()
        conn.close()

        response = self.client.post(f"/admin/users/unlock/{user_id}")
        self.assertEqual(response.status_code, 303)
        self.assertEqual(self._user("sav@example.com")["failed_attempts"], 0)

        audit = self.query("SELECT old_data, new_data FROM logs WHERE acao = 'update'")
        self.assertEqual(json.loads(audit[0]["old_data"])["failed_attempts"], 5)
        self.assertEqual(json.loads(audit[0]["new_data"])["failed_attempts"], 0)

    def test_delete_user_and_self_delete_guard(self) -> None:
        user_id = self.create_user("sav@example.com", Role.SAV)
        self.assertEqual(self.client.post(f"/admin/users/delete/{user_id}").status_code, 303)
        self.assertIsNone(self._user("sav@example.com"))

        own = self.client.post(f"/admin/users/delete/{self.admin_id}")
        self.assertEqual(own.status_code, 400)
        self.assertEqual(own.get_data(as_text=True), error_message("user_self_delete"))
        self.assertIsNotNone(self._user("admin@example.com"))

    def test_unknown_user_answers_500_and_bad_id_400(self) -> None:
        self.assertEqual(self.client.get("/admin/users/edit/999").status_code, 500)
        self.assertEqual(self.client.get("/admin/users/edit/zero").status_code, 400)

    def test_logs_page_filters_by_table(self) -> None:
        self.client.post(
            "/admin/users/save",
            data={
                "email": "auditado@example.com",
                "password": "abc12345",
                "confirm-password": "abc12345",
                "cargo_id": "3",
            },
        )
        page = self.client.get("/admin/logs?tabela=user").get_data(as_text=True)
        self.assertIn("auditado@example.com", page)

        empty = self.client.get("/admin/logs?tabela=concurso").get_data(as_text=True)
        self.assertIn("Sem registos.", empty)
        self.assertNotIn("auditado@example.com", empty)

    def test_logs_page_filters_by_actor(self) -> None:
        self.client.post(
            "/admin/users/save",
            data={
                "email": "porautor@example.com",
                "password": "abc12345",
                "confirm-password": "abc12345",
                "cargo_id": "3",
            },
        )
        own = self.client.get(f"/admin/logs?id_user={self.admin_id}").get_data(as_text=True)
        self.assertIn("porautor@example.com", own)

        other = self.client.get(f"/admin/logs?id_user={self.admin_id + 100}").get_data(as_text=True)
        self.assertIn("Sem registos.", other)
        self.assertNotIn("porautor@example.com", other)

        ignored = self.client.get("/admin/logs?id_user=abc").get_data(as_text=True)
        self.assertIn("porautor@example.com", ignored)

if __name__ == "__main__":
    unittest.main()
