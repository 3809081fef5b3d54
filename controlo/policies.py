from __future__ import annotations

from typing import FrozenSet, Iterable

from flask import redirect, url_for

from controlo.domain.enums import Role
from controlo.errors import PermissionError as AppPermissionError
from controlo.errors import SystemError as AppSystemError
from controlo.session_state import SessionState, current_session


ADMIN_ONLY: FrozenSet[int] = frozenset({Role.ADMIN})
ADMIN_SAV: FrozenSet[int] = frozenset({Role.ADMIN, Role.SAV})
VIEW_ONLY: FrozenSet[int] = frozenset({Role.ADMIN, Role.SAV, Role.DCP, Role.GUEST})


def normalize_allowed_roles(roles: Iterable[int]) -> FrozenSet[int]:
    return frozenset(int(role) for role in roles)


def has_any_role(role_id: int | None, allowed_roles: Iterable[int]) -> bool:
    if role_id is None:
        return False
    return role_id in normalize_allowed_roles(allowed_roles)


def can_edit_concursos(state: SessionState | None = None) -> bool:
    state = state or current_session()
    return state.authenticated and has_any_role(state.role_id, ADMIN_SAV)


def require_roles(allowed_roles: Iterable[int], state: SessionState | None = None) -> int:
    """Return the caller's role id or raise when it is not allowed.

    Callers must have checked ``state.authenticated`` first. A missing or
    non-integer role is treated as corrupt session state and fails closed.
    """
    state = state or current_session()
    if not state.role_valid or state.role_id is None:
        raise AppSystemError(
            code="role_invalid",
            message_key="role_invalid",
            http_status=500,
            critical=True,
            details=f"session cargo present={state.role_present}",
        )
    if has_any_role(state.role_id, allowed_roles):
        return state.role_id
    raise AppPermissionError(
        code="permission_denied",
        message_key="permission_denied",
        http_status=403,
        critical=False,
    )


def guard_route_group(blueprint, allowed_roles: Iterable[int]) -> None:
    allowed = normalize_allowed_roles(allowed_roles)

    @blueprint.before_request
    def _role_guard():
        state = current_session()
        if not state.authenticated:
            return redirect(url_for("auth.login"), code=303)
        require_roles(allowed, state)
        return None
