"""Typed view over the Flask session cookie.

The cookie is decoded once per request into :class:`SessionState` and cached
on ``flask.g``. Handlers and the role guard read the dataclass instead of
poking at raw session keys.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from flask import g, session

from controlo.domain.contracts import AuthUser


SESSION_AUTHENTICATED = "authenticated"
SESSION_USER_ID = "user_id"
SESSION_ROLE = "cargo"


@dataclass(frozen=True)
class SessionState:
    authenticated: bool = False
    user_id: Optional[int] = None
    role_id: Optional[int] = None
    role_present: bool = False
    role_valid: bool = False


def _as_int(value: Any) -> Optional[int]:
    # bool is an int subclass; a True cargo is corrupt, not role 1.
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def decode_session(raw: Any) -> SessionState:
    raw = raw or {}
    role_raw = raw.get(SESSION_ROLE)
    role_id = _as_int(role_raw)
    return SessionState(
        authenticated=raw.get(SESSION_AUTHENTICATED) is True,
        user_id=_as_int(raw.get(SESSION_USER_ID)),
        role_id=role_id,
        role_present=role_raw is not None,
        role_valid=role_id is not None,
    )


def current_session() -> SessionState:
    state = g.get("session_state")
    if state is None:
        state = decode_session(session)
        g.session_state = state
    return state


def start_session(user: AuthUser) -> None:
    session.clear()
    session[SESSION_AUTHENTICATED] = True
    session[SESSION_USER_ID] = user.user_id
    session[SESSION_ROLE] = user.cargo_id
    session.permanent = True
    g.pop("session_state", None)


def end_session() -> None:
    session.clear()
    g.pop("session_state", None)
