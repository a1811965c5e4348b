"""Explicit session state and a pluggable identity provider.

Views receive a ``Session`` instead of reading global role flags, and the
credentials behind ``authenticate`` are injected by the caller (Streamlit
secrets, a test fixture, or a real identity service).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Protocol, Tuple

from core.filters import id_text


logger = logging.getLogger(__name__)


ADMIN = "admin"
USER = "user"


@dataclass(frozen=True)
class Session:
    role: Optional[str] = None
    user_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.role in {ADMIN, USER}

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN


ANONYMOUS = Session()


class IdentityProvider(Protocol):
    def authenticate(self, email: str, password: str) -> Optional[Session]:
        ...


class StaticIdentityProvider:
    """Checks credentials against mappings supplied at construction time.

    ``admins`` maps email -> password; ``users`` maps email -> (password, id).
    """

    def __init__(
        self,
        admins: Optional[Mapping[str, str]] = None,
        users: Optional[Mapping[str, Tuple[str, object]]] = None,
    ) -> None:
        self._admins = dict(admins or {})
        self._users = dict(users or {})

    @classmethod
    def from_config(cls, config: Mapping[str, object]) -> "StaticIdentityProvider":
        """Build from a ``{"admins": [...], "users": [...]}`` credentials block."""
        admins = {}
        for entry in config.get("admins", []) or []:
            admins[str(entry["email"])] = str(entry["password"])
        users = {}
        for entry in config.get("users", []) or []:
            if entry.get("id") is None:
                logger.warning("skipping credentials for %s: no application id", entry.get("email"))
                continue
            users[str(entry["email"])] = (str(entry["password"]), entry["id"])
        return cls(admins=admins, users=users)

    def authenticate(self, email: str, password: str) -> Optional[Session]:
        email = (email or "").strip()
        if email in self._admins and self._admins[email] == password:
            return Session(role=ADMIN)
        if email in self._users:
            expected, user_id = self._users[email]
            if expected == password:
                return Session(role=USER, user_id=id_text(user_id))
        return None


def can_view_user(session: Session, user_id: object) -> bool:
    if session.is_admin:
        return True
    if session.role != USER or not session.user_id:
        return False
    return session.user_id == id_text(user_id)


def landing_page(session: Session) -> str:
    if session.is_admin:
        return "admin"
    if session.role == USER:
        return "user"
    return "login"
