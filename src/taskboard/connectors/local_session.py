# src/taskboard/connectors/local_session.py

from __future__ import annotations

import logging

from ..core.errors import ValidationError
from ..tasks.task_models import User

logger = logging.getLogger(__name__)


class LocalSession:
    """
    In-process SessionService for the console.

    Signing in only records a display name; no credentials are checked.
    """

    def __init__(self, user: User | None = None) -> None:
        self._user = user

    async def get_session(self) -> User | None:
        return self._user

    async def sign_in(self, name: str) -> User:
        clean = (name or "").strip()
        if not clean:
            raise ValidationError("Name is required")
        self._user = User(id=f"local:{clean}", name=clean)
        logger.info("Signed in as %s", clean)
        return self._user

    async def sign_out(self) -> None:
        if self._user is not None:
            logger.info("Signed out %s", self._user.name)
        self._user = None
