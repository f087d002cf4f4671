import asyncio
from dataclasses import replace
from typing import Dict, List, Optional

from models import ActiveCrawl, CrawlSession, SessionStatus
from storage.base import CrawlStorage


class SessionRegistry:
    """
    Live state of the crawls currently running in this process.

    An entry exists from the moment a crawl is started until its task
    finishes, whatever the outcome. All access goes through one lock and
    readers get copies.
    """

    def __init__(self):
        self._lock = asyncio.Lock()
        self._status_lock = asyncio.Lock()
        self._active: Dict[str, ActiveCrawl] = {}

    async def transition(
        self,
        storage: CrawlStorage,
        session_id: str,
        target: SessionStatus,
        **changes,
    ) -> Optional[CrawlSession]:
        """
        Move a session to ``target`` if its current status allows it.

        Check and write happen under one lock so the crawl task and a stop
        request cannot both pass the check. Returns the session as stored
        afterwards, or None if it does not exist.
        """
        async with self._status_lock:
            session = await storage.get_session(session_id)
            if session is None:
                return None
            if not session.status.can_become(target):
                return session
            return await storage.update_session(session_id, status=target, **changes)

    async def register(self, session_id: str, current_url: Optional[str] = None) -> None:
        async with self._lock:
            self._active[session_id] = ActiveCrawl(current_url=current_url)

    async def remove(self, session_id: str) -> None:
        async with self._lock:
            self._active.pop(session_id, None)

    async def get(self, session_id: str) -> Optional[ActiveCrawl]:
        async with self._lock:
            state = self._active.get(session_id)
            return replace(state) if state is not None else None

    async def request_stop(self, session_id: str) -> bool:
        async with self._lock:
            state = self._active.get(session_id)
            if state is None:
                return False
            state.should_stop = True
            return True

    async def should_stop(self, session_id: str) -> bool:
        async with self._lock:
            state = self._active.get(session_id)
            return state is not None and state.should_stop

    async def set_current_url(self, session_id: str, url: str) -> None:
        async with self._lock:
            state = self._active.get(session_id)
            if state is not None:
                state.current_url = url

    async def active_ids(self) -> List[str]:
        async with self._lock:
            return list(self._active)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._active

    def __len__(self) -> int:
        return len(self._active)
