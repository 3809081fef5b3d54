from __future__ import annotations

import click
from flask import Flask

from controlo.application.user_service import UserService
from controlo.concursos.forms import is_valid_email
from controlo.db import get_db
from controlo.domain.contracts import UserInput
from controlo.domain.enums import Role
from controlo.errors import AppError


def register_users_cli(app: Flask) -> None:
    @app.cli.group("users")
    def users_group() -> None:
        """Gestao de utilizadores."""

    @users_group.command("create-admin")
    @click.option("--email", prompt=True)
    @click.option("--nome", default="admin", show_default=True)
    @click.password_option()
    def create_admin(email: str, nome: str, password: str) -> None:
        if not is_valid_email(email.strip()):
            raise click.BadParameter("email invalido", param_hint="--email")
        data = UserInput(nome=nome, email=email.strip().lower(), cargo_id=int(Role.ADMIN), password=password)
        try:
            user = UserService().create(get_db(), None, data)
        except AppError as exc:
            raise click.ClickException(exc.user_message()) from exc
        click.echo(f"Administrador criado: {user.email} (id {user.id}).")
