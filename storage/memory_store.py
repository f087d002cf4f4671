from dataclasses import fields, replace
from typing import Dict, List, Optional

from models import CrawledPage, CrawlSession
from utils import new_id
from .base import CrawlStorage

_SESSION_FIELDS = {f.name for f in fields(CrawlSession)} - {"id"}


class MemoryStore(CrawlStorage):
    """
    Process-lifetime store. Records are kept in insertion order and handed
    out as copies so callers never share state with the crawl task.
    """

    def __init__(self):
        self._sessions: Dict[str, CrawlSession] = {}
        self._pages: Dict[str, List[CrawledPage]] = {}
        self._pdf_links: Dict[str, Dict[str, None]] = {}

    async def create_session(self, url: str, max_pages: Optional[int], max_depth: int) -> CrawlSession:
        session = CrawlSession(id=new_id(), url=url, max_pages=max_pages, max_depth=max_depth)
        self._sessions[session.id] = session
        return replace(session)

    async def get_session(self, session_id: str) -> Optional[CrawlSession]:
        session = self._sessions.get(session_id)
        return replace(session) if session is not None else None

    async def update_session(self, session_id: str, **changes) -> Optional[CrawlSession]:
        unknown = set(changes) - _SESSION_FIELDS
        if unknown:
            raise ValueError(f"unknown session fields: {sorted(unknown)}")

        session = self._sessions.get(session_id)
        if session is None:
            return None

        updated = replace(session, **changes)
        self._sessions[session_id] = updated
        return replace(updated)

    async def create_page(
        self,
        *,
        session_id: str,
        url: str,
        depth: int,
        status_code: int,
        content_type: str,
        size: int,
        load_time: int,
        content_hash: Optional[str],
    ) -> CrawledPage:
        page = CrawledPage(
            id=new_id(),
            session_id=session_id,
            url=url,
            depth=depth,
            status_code=status_code,
            content_type=content_type or "",
            size=size,
            load_time=load_time,
            content_hash=content_hash,
        )
        self._pages.setdefault(session_id, []).append(page)
        return replace(page)

    async def list_pages(self, session_id: str, status_code: Optional[int] = None) -> List[CrawledPage]:
        return [
            replace(p)
            for p in self._pages.get(session_id, [])
            if status_code is None or p.status_code == status_code
        ]

    async def count_pages(self, session_id: str) -> int:
        return len(self._pages.get(session_id, []))

    async def unique_content_hashes(self, session_id: str) -> List[str]:
        seen: Dict[str, None] = {}
        for p in self._pages.get(session_id, []):
            if p.content_hash:
                seen.setdefault(p.content_hash, None)
        return list(seen)

    async def pages_by_content_hash(self, session_id: str, content_hash: str) -> List[CrawledPage]:
        return [replace(p) for p in self._pages.get(session_id, []) if p.content_hash == content_hash]

    async def add_pdf_link(self, session_id: str, url: str) -> None:
        self._pdf_links.setdefault(session_id, {})[url] = None

    async def count_pdf_links(self, session_id: str) -> int:
        return len(self._pdf_links.get(session_id, {}))

    async def list_pdf_links(self, session_id: str) -> List[str]:
        return list(self._pdf_links.get(session_id, {}))
