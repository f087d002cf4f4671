from abc import ABC, abstractmethod
from typing import List, Optional

from models import CrawledPage, CrawlSession


class CrawlStorage(ABC):
    """
    Persistence contract used by the crawl controller and the service layer.
    """

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    # -------------------- SESSIONS --------------------

    @abstractmethod
    async def create_session(self, url: str, max_pages: Optional[int], max_depth: int) -> CrawlSession:
        """Create a pending session with zeroed counters."""

    @abstractmethod
    async def get_session(self, session_id: str) -> Optional[CrawlSession]:
        pass

    @abstractmethod
    async def update_session(self, session_id: str, **changes) -> Optional[CrawlSession]:
        """Apply field changes; returns the updated session or None if unknown."""

    # -------------------- PAGES --------------------

    @abstractmethod
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
        pass

    @abstractmethod
    async def list_pages(self, session_id: str, status_code: Optional[int] = None) -> List[CrawledPage]:
        """Pages in record order, optionally only those with the given status code."""

    @abstractmethod
    async def count_pages(self, session_id: str) -> int:
        pass

    # -------------------- DUPLICATES --------------------

    @abstractmethod
    async def unique_content_hashes(self, session_id: str) -> List[str]:
        pass

    @abstractmethod
    async def pages_by_content_hash(self, session_id: str, content_hash: str) -> List[CrawledPage]:
        pass

    # -------------------- PDF LINKS --------------------

    @abstractmethod
    async def add_pdf_link(self, session_id: str, url: str) -> None:
        pass

    @abstractmethod
    async def count_pdf_links(self, session_id: str) -> int:
        pass

    @abstractmethod
    async def list_pdf_links(self, session_id: str) -> List[str]:
        pass
