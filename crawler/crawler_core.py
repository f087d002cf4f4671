import asyncio
import logging
from typing import Optional

from models import CrawlSession, FetchResult, SessionStatus, UrlContext
from storage.base import CrawlStorage
from utils import utc_now
from .fingerprint import content_hash, is_html
from .frontier import Frontier
from .http_fetcher import HttpFetcher
from .link_extractor import LinkExtractor, decode_html
from .registry import SessionRegistry
from .sitemap import fetch_sitemap_urls
from .url_filter import LinkKind, canonical_seed, classify_link

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 1000


class Crawler:
    """
    Runs one crawl session: breadth-first over same-site links, one fetch at
    a time, until the frontier is empty, the page limit is reached or a stop
    is requested.

    A stop request is only noticed between pages, so stopping can take up to
    one fetch timeout plus the processing of that page.
    """

    def __init__(
        self,
        session: CrawlSession,
        storage: CrawlStorage,
        registry: SessionRegistry,
        *,
        fetcher: Optional[HttpFetcher] = None,
        request_delay_s: float = 0.1,
        sitemap_timeout_s: float = 5.0,
        use_sitemap: bool = True,
    ):
        self.session_id = session.id
        self.seed_url = canonical_seed(session.url)
        self.max_pages = session.max_pages or DEFAULT_MAX_PAGES
        self.max_depth = session.max_depth

        self.storage = storage
        self.registry = registry
        self.fetcher = fetcher or HttpFetcher()
        self.extractor = LinkExtractor()
        self.frontier = Frontier()

        self.request_delay_s = request_delay_s
        self.sitemap_timeout_s = sitemap_timeout_s
        self.use_sitemap = use_sitemap

        self.total_pages = 0
        self.successful_pages = 0
        self.error_pages = 0
        self.final_status: Optional[SessionStatus] = None

    def _counters(self) -> dict:
        return {
            "total_pages": self.total_pages,
            "successful_pages": self.successful_pages,
            "error_pages": self.error_pages,
        }

    async def _seed(self):
        self.frontier.push(self.seed_url, 0)

        if not self.use_sitemap:
            return

        for url in await fetch_sitemap_urls(self.fetcher, self.seed_url, self.sitemap_timeout_s):
            if len(self.frontier) >= self.max_pages:
                break
            # Sitemap entries are site content in their own right: depth 0
            self.frontier.push(url, 0)

    async def _record(self, ctx: UrlContext, result: FetchResult):
        if result.is_transport_failure:
            await self.storage.create_page(
                session_id=self.session_id,
                url=ctx.url,
                depth=ctx.depth,
                status_code=0,
                content_type="",
                size=0,
                load_time=result.load_time_ms,
                content_hash=None,
            )
            self.total_pages += 1
            self.error_pages += 1
            return

        await self.storage.create_page(
            session_id=self.session_id,
            url=ctx.url,
            depth=ctx.depth,
            status_code=result.status_code,
            content_type=result.content_type,
            size=len(result.body),
            load_time=result.load_time_ms,
            content_hash=content_hash(result.body, result.content_type, result.status_code, result.charset),
        )
        self.total_pages += 1
        if result.is_success:
            self.successful_pages += 1
        else:
            self.error_pages += 1

    async def _enqueue_links(self, ctx: UrlContext, result: FetchResult) -> int:
        base_url = result.final_url or ctx.url
        try:
            hrefs = self.extractor.extract(decode_html(result.body, result.charset))
        except Exception as e:
            logger.warning("[%s] link extraction failed for %s: %s", self.session_id, ctx.url, e)
            return 0

        added = 0
        for href in hrefs:
            decision = classify_link(href, base_url, self.seed_url)

            if decision.kind == LinkKind.PDF:
                await self.storage.add_pdf_link(self.session_id, decision.url)
                continue

            if decision.kind != LinkKind.PAGE or self.frontier.is_known(decision.url):
                continue

            if len(self.frontier) + self.total_pages >= self.max_pages:
                continue

            if self.frontier.push(decision.url, ctx.depth + 1):
                added += 1

        return added

    async def _crawl_loop(self) -> bool:
        """Returns True when the loop ended because a stop was requested."""
        while self.frontier and self.total_pages < self.max_pages:
            if await self.registry.should_stop(self.session_id):
                logger.info("[%s] stop requested, leaving crawl loop", self.session_id)
                return True

            ctx = self.frontier.pop()
            if self.frontier.is_visited(ctx.url) or ctx.depth > self.max_depth:
                continue

            self.frontier.mark_visited(ctx.url)
            await self.registry.set_current_url(self.session_id, ctx.url)

            result = await self.fetcher.fetch(ctx.url)
            await self._record(ctx, result)

            added = 0
            if result.is_success and is_html(result.content_type) and ctx.depth < self.max_depth:
                added = await self._enqueue_links(ctx, result)

            logger.info(
                "[%s] FETCH depth=%d status=%s +%d links %s",
                self.session_id, ctx.depth, result.status_code or "ERR", added, ctx.url,
            )

            await self.storage.update_session(self.session_id, current_url=ctx.url, **self._counters())

            await asyncio.sleep(self.request_delay_s)

        return False

    async def _finish(self, status: SessionStatus, error: Optional[str] = None):
        await self.storage.update_session(self.session_id, **self._counters())
        changes = {"completed_at": utc_now()}
        if error is not None:
            changes["error"] = error
        session = await self.registry.transition(self.storage, self.session_id, status, **changes)
        self.final_status = session.status if session is not None else status
        if session is not None:
            logger.info(
                "[%s] crawl finished: %s (%d pages, %d ok, %d errors)",
                self.session_id, session.status.value,
                self.total_pages, self.successful_pages, self.error_pages,
            )

    async def run(self) -> Optional[SessionStatus]:
        try:
            session = await self.storage.get_session(self.session_id)
            if session is None:
                logger.error("[%s] session vanished before the crawl started", self.session_id)
                return None
            if session.status.is_terminal:
                logger.info("[%s] session already %s, nothing to crawl", self.session_id, session.status.value)
                return session.status

            session = await self.registry.transition(
                self.storage, self.session_id, SessionStatus.RUNNING, started_at=utc_now()
            )
            if session is None or session.status != SessionStatus.RUNNING:
                return session.status if session else None

            logger.info(
                "[%s] crawling %s (max_pages=%d, max_depth=%d)",
                self.session_id, self.seed_url, self.max_pages, self.max_depth,
            )

            await self.fetcher.open()
            await self._seed()
            stopped = await self._crawl_loop()

            if stopped or await self.registry.should_stop(self.session_id):
                await self._finish(SessionStatus.STOPPED)
            else:
                await self._finish(SessionStatus.COMPLETED)

        except asyncio.CancelledError:
            logger.warning("[%s] crawl task cancelled", self.session_id)
            if await self.registry.should_stop(self.session_id):
                await self._finish_quietly(SessionStatus.STOPPED)
            else:
                await self._finish_quietly(SessionStatus.ERROR, "crawl task cancelled")
            raise

        except Exception as e:
            logger.exception("[%s] fatal crawl error", self.session_id)
            await self._finish_quietly(SessionStatus.ERROR, str(e) or type(e).__name__)

        finally:
            await self.fetcher.close()
            await self.registry.remove(self.session_id)

        return self.final_status

    async def _finish_quietly(self, status: SessionStatus, error: Optional[str] = None):
        try:
            await self._finish(status, error)
        except Exception:
            self.final_status = status
            logger.exception("[%s] could not record final session state", self.session_id)
