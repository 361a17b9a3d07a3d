"""Reviewer identity cache - remembers the login of the token's user"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class ReviewerIdentityCache:
    """Lazily resolved reviewer login, owned by the application"""

    def __init__(self):
        self._login: Optional[str] = None
        self._lock = asyncio.Lock()

    async def get(self, client) -> Optional[str]:
        """Return the cached login, resolving it through the client on first use"""
        if self._login is not None:
            return self._login

        async with self._lock:
            if self._login is None:
                user = await client.get_authenticated_user()
                self._login = (user or {}).get("login")
                logger.info("[IdentityCache] Resolved reviewer login: %s", self._login)
        return self._login

    def peek(self) -> Optional[str]:
        return self._login

    def reset(self):
        """Forget the cached login (e.g. after a token change)"""
        self._login = None
