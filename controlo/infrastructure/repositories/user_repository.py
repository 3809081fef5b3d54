from __future__ import annotations

from typing import Iterable

from werkzeug.security import generate_password_hash

from controlo.domain.contracts import User
from controlo.infrastructure.repositories.base import BaseRepository


_USER_COLUMNS = "u.id_user, u.nome, u.email, u.cargo_id, u.failed_attempts, c.descricao AS cargo_desc"


class UserRepository(BaseRepository):
    def find_credentials_by_email(self, db, email: str) -> dict | None:
        row = db.execute(
            """
            SELECT id_user, nome, email, password, cargo_id, failed_attempts
            FROM users
            WHERE email = ?
            """,
            (email,),
        ).fetchone()
        return self.row_to_dict(row)

    def email_exists(self, db, email: str, *, exclude_user_id: int | None = None) -> bool:
        if exclude_user_id is None:
            row = db.execute("SELECT 1 FROM users WHERE email = ?", (email,)).fetchone()
        else:
            row = db.execute(
                "SELECT 1 FROM users WHERE email = ? AND id_user <> ?",
                (email, exclude_user_id),
            ).fetchone()
        return bool(row)

    def create(self, db, *, nome: str, email: str, password: str, cargo_id: int) -> int:
        cursor = db.execute(
            """
            INSERT INTO users (nome, email, password, cargo_id)
            VALUES (?, ?, ?, ?)
            RETURNING id_user
            """,
            (nome, email, generate_password_hash(password), cargo_id),
        )
        return self.returned_id(cursor, "id_user")

    def get_by_id(self, db, user_id: int) -> User | None:
        row = db.execute(
            f"""
            SELECT {_USER_COLUMNS}
            FROM users u
            LEFT JOIN cargo c ON u.cargo_id = c.id_cargo
            WHERE u.id_user = ?
            """,
            (user_id,),
        ).fetchone()
        data = self.row_to_dict(row)
        return User.from_row(data) if data else None

    def list_all(self, db) -> list[User]:
        rows = db.execute(
            f"""
            SELECT {_USER_COLUMNS}
            FROM users u
            LEFT JOIN cargo c ON u.cargo_id = c.id_cargo
            ORDER BY u.nome, u.email
            """
        ).fetchall()
        return [User.from_row(row) for row in self.rows_to_dicts(rows)]

    def update_profile(self, db, user_id: int, *, nome: str, email: str, cargo_id: int) -> None:
        db.execute(
            "UPDATE users SET nome = ?, email = ?, cargo_id = ? WHERE id_user = ?",
            (nome, email, cargo_id, user_id),
        )

    def update_password(self, db, user_id: int, password: str) -> None:
        db.execute(
            "UPDATE users SET password = ?, failed_attempts = 0 WHERE id_user = ?",
            (generate_password_hash(password), user_id),
        )

    def delete(self, db, user_id: int) -> None:
        db.execute("DELETE FROM users WHERE id_user = ?", (user_id,))

    def increment_failed_attempts(self, db, user_id: int) -> None:
        db.execute(
            "UPDATE users SET failed_attempts = failed_attempts + 1 WHERE id_user = ?",
            (user_id,),
        )

    def reset_failed_attempts(self, db, user_id: int) -> None:
        db.execute("UPDATE users SET failed_attempts = 0 WHERE id_user = ?", (user_id,))

    def display_name(self, db, user_id: int) -> str | None:
        row = db.execute("SELECT nome FROM users WHERE id_user = ?", (user_id,)).fetchone()
        data = self.row_to_dict(row)
        return data["nome"] if data else None

    def broadcast_emails(self, db, excluded_role_ids: Iterable[int]) -> list[str]:
        excluded = [int(role_id) for role_id in excluded_role_ids]
        placeholders = ", ".join("?" for _ in excluded)
        rows = db.execute(
            f"""
            SELECT email FROM users
            WHERE cargo_id NOT IN ({placeholders}) OR cargo_id IS NULL
            ORDER BY id_user
            """,
            excluded,
        ).fetchall()
        return [row["email"] for row in self.rows_to_dicts(rows)]

    def all_emails(self, db) -> list[str]:
        rows = db.execute("SELECT email FROM users ORDER BY id_user").fetchall()
        return [row["email"] for row in self.rows_to_dicts(rows)]
