import asyncio
import logging
from typing import Callable, Dict, List, Optional
from urllib.parse import urlparse

from config import Settings
from models import CrawledPage, CrawlProgress, CrawlSession, SessionStatus
from storage.base import CrawlStorage
from storage.memory_store import MemoryStore
from utils import utc_now
from .crawler_core import Crawler
from .export import pages_to_csv
from .http_fetcher import HttpFetcher
from .registry import SessionRegistry
from .stats import collect_stats, duplicate_groups
from .url_filter import canonical_seed

logger = logging.getLogger(__name__)

MAX_PAGES_LIMIT = 10_000
MIN_DEPTH, MAX_DEPTH = 1, 20


class InvalidCrawlRequest(ValueError):
    pass


class SessionNotFound(LookupError):
    pass


class NothingToExport(SessionNotFound):
    pass


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_start_request(url, max_pages, max_depth, default_max_pages: int = 1000):
    """Returns the cleaned (url, max_pages) or raises InvalidCrawlRequest."""
    if not isinstance(url, str) or not url.strip():
        raise InvalidCrawlRequest("url is required")

    url = url.strip()
    try:
        parsed = urlparse(url)
        host = parsed.hostname
    except ValueError:
        raise InvalidCrawlRequest(f"malformed url: {url}")
    if parsed.scheme not in ("http", "https") or not host:
        raise InvalidCrawlRequest(f"url must be an absolute http(s) url: {url}")

    if max_pages is None:
        max_pages = default_max_pages
    if not _is_int(max_pages) or not 1 <= max_pages <= MAX_PAGES_LIMIT:
        raise InvalidCrawlRequest(f"maxPages must be between 1 and {MAX_PAGES_LIMIT}")

    if not _is_int(max_depth) or not MIN_DEPTH <= max_depth <= MAX_DEPTH:
        raise InvalidCrawlRequest(f"maxDepth must be between {MIN_DEPTH} and {MAX_DEPTH}")

    return canonical_seed(url), max_pages


class CrawlService:
    """
    Crawl lifecycle operations: start, progress, stop, export.

    Each started crawl runs as its own asyncio task; the registry holds the
    live stop flag and current URL of every task still running.
    """

    def __init__(
        self,
        storage: Optional[CrawlStorage] = None,
        settings: Optional[Settings] = None,
        registry: Optional[SessionRegistry] = None,
        fetcher_factory: Optional[Callable[[], HttpFetcher]] = None,
        use_sitemap: bool = True,
    ):
        self.settings = settings or Settings()
        self.storage = storage or MemoryStore()
        self.registry = registry or SessionRegistry()
        self.fetcher_factory = fetcher_factory or self._default_fetcher
        self.use_sitemap = use_sitemap
        self._tasks: Dict[str, asyncio.Task] = {}

    def _default_fetcher(self) -> HttpFetcher:
        return HttpFetcher(
            timeout_s=self.settings.request_timeout_s,
            max_redirects=self.settings.max_redirects,
            max_body_bytes=self.settings.max_body_bytes,
            user_agent=self.settings.user_agent,
        )

    async def _require_session(self, session_id: str) -> CrawlSession:
        session = await self.storage.get_session(session_id)
        if session is None:
            raise SessionNotFound(f"session {session_id} not found")
        return session

    # -------------------- LIFECYCLE --------------------

    async def start_crawl(self, url: str, *, max_depth: int, max_pages: Optional[int] = None) -> str:
        url, max_pages = validate_start_request(url, max_pages, max_depth, self.settings.default_max_pages)

        session = await self.storage.create_session(url, max_pages, max_depth)
        await self.registry.register(session.id, current_url=url)

        crawler = Crawler(
            session,
            self.storage,
            self.registry,
            fetcher=self.fetcher_factory(),
            request_delay_s=self.settings.request_delay_s,
            sitemap_timeout_s=self.settings.sitemap_timeout_s,
            use_sitemap=self.use_sitemap,
        )
        task = asyncio.create_task(crawler.run(), name=f"crawl-{session.id}")
        self._tasks[session.id] = task
        task.add_done_callback(lambda _t, sid=session.id: self._tasks.pop(sid, None))

        logger.info("started crawl %s for %s", session.id, url)
        return session.id

    async def get_progress(self, session_id: str) -> CrawlProgress:
        session = await self._require_session(session_id)
        pages = await self.storage.list_pages(session_id)
        stats = await collect_stats(self.storage, session_id)

        live = await self.registry.get(session_id)
        if live is not None and live.current_url:
            session.current_url = live.current_url

        return CrawlProgress(session=session, pages=pages, stats=stats)

    async def stop_crawl(self, session_id: str) -> CrawlSession:
        """Ask a crawl to stop; a no-op for sessions that already finished."""
        await self._require_session(session_id)
        await self.registry.request_stop(session_id)

        session = await self.registry.transition(
            self.storage, session_id, SessionStatus.STOPPED, completed_at=utc_now()
        )
        if session is None:
            raise SessionNotFound(f"session {session_id} not found")

        logger.info("stop requested for %s (status=%s)", session_id, session.status.value)
        return session

    async def export_csv(self, session_id: str) -> bytes:
        await self._require_session(session_id)
        pages = await self.storage.list_pages(session_id)
        pdf_links = await self.storage.list_pdf_links(session_id)
        if not pages and not pdf_links:
            raise NothingToExport(f"session {session_id} has nothing to export")
        return pages_to_csv(pages, pdf_links)

    async def list_pages(self, session_id: str, status_code: Optional[int] = None) -> List[CrawledPage]:
        await self._require_session(session_id)
        return await self.storage.list_pages(session_id, status_code)

    async def get_duplicates(self, session_id: str) -> Dict[str, List[str]]:
        await self._require_session(session_id)
        return await duplicate_groups(self.storage, session_id)

    # -------------------- TASKS --------------------

    async def wait(self, session_id: str, timeout: Optional[float] = None) -> Optional[CrawlSession]:
        """Wait for a crawl task to end and return the stored session."""
        task = self._tasks.get(session_id)
        if task is not None:
            await asyncio.wait_for(asyncio.shield(task), timeout)
        return await self.storage.get_session(session_id)

    async def shutdown(self):
        for session_id in await self.registry.active_ids():
            await self.registry.request_stop(session_id)

        tasks = dict(self._tasks)
        for task in tasks.values():
            task.cancel()
        await asyncio.gather(*tasks.values(), return_exceptions=True)

        # A task cancelled before its first step never reached its own cleanup
        for session_id in tasks:
            await self.registry.remove(session_id)
            await self.registry.transition(
                self.storage, session_id, SessionStatus.STOPPED, completed_at=utc_now()
            )

        await self.storage.close()
