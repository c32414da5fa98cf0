from __future__ import annotations

import logging
from typing import Protocol

from tasksync.domain.entities import AuthSession

logger = logging.getLogger(__name__)


class AuthProvider(Protocol):
    def current_session(self) -> AuthSession: ...

    def sign_out(self) -> None: ...


class StaticAuthProvider:
    def __init__(self, user_id: str | None = None) -> None:
        self._session = AuthSession(user_id)

    def current_session(self) -> AuthSession:
        return self._session

    def sign_in(self, user_id: str) -> AuthSession:
        self._session = AuthSession(user_id)
        logger.info("Signed in as %s", user_id)
        return self._session

    def sign_out(self) -> None:
        self._session = AuthSession()
