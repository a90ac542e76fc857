# services/api/core/sessions.py
from __future__ import annotations

import hmac
import logging
import secrets
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from cachetools import TTLCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    token: str
    username: str
    is_admin: bool = False


class SessionStore:
    """
    Bearer-token sessions, expiring `ttl_seconds` after login.
    Credentials are the configured username -> password map.
    """

    def __init__(
        self,
        users: Dict[str, str],
        admins: Iterable[str] = (),
        ttl_seconds: int = 12 * 60 * 60,
        maxsize: int = 1024,
    ):
        self.users = dict(users)
        self.admins = {a.lower() for a in admins}
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl_seconds)
        self._lock = threading.Lock()

    def login(self, username: str, password: str) -> Optional[Session]:
        expected = self.users.get(username)
        if expected is None or not hmac.compare_digest(expected.encode(), (password or "").encode()):
            logger.warning(f"✗ Failed login for {username!r}")
            return None

        session = Session(
            token=secrets.token_urlsafe(32),
            username=username,
            is_admin=username.lower() in self.admins,
        )
        with self._lock:
            self._cache[session.token] = session
        logger.info(f"✓ {username} logged in")
        return session

    def get(self, token: Optional[str]) -> Optional[Session]:
        if not token:
            return None
        with self._lock:
            return self._cache.get(token)

    def logout(self, token: Optional[str]) -> bool:
        with self._lock:
            session = self._cache.pop(token, None) if token else None
        if session:
            logger.info(f"{session.username} logged out")
        return session is not None
