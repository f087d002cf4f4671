import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from crawler.crawler_core import Crawler
from crawler.http_fetcher import HttpFetcher
from crawler.registry import SessionRegistry
from storage.memory_store import MemoryStore


def html_page(body: str, title: str = "page") -> str:
    return f"<html><head><title>{title}</title></head><body>{body}</body></html>"


def respond(body="", status=200, content_type="text/html", delay=0.0, headers=None):
    """Handler returning a fixed response, optionally after a delay."""

    async def handler(request):
        if delay:
            await asyncio.sleep(delay)
        data = body.encode("utf-8") if isinstance(body, str) else body
        return web.Response(body=data, status=status, content_type=content_type, headers=headers)

    return handler


def sitemap_xml(*locs: str) -> str:
    entries = "".join(f"<url><loc>{loc}</loc></url>" for loc in locs)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</urlset>'
    )


def sitemap_handler(*paths: str, extra=()):
    """sitemap.xml listing ``paths`` on the serving host plus any absolute ``extra`` urls."""

    async def handler(request):
        origin = f"http://{request.host}"
        locs = [origin + p for p in paths] + list(extra)
        return web.Response(text=sitemap_xml(*locs), content_type="application/xml")

    return handler


async def redirect_chain(request):
    """/r/{n} redirects to /r/{n-1}; /r/0 redirects to /final."""
    n = int(request.match_info["n"])
    raise web.HTTPFound(f"/r/{n - 1}" if n > 0 else "/final")


def streamed(chunks: int, chunk_size: int):
    """Chunked response with no Content-Length."""

    async def handler(request):
        resp = web.StreamResponse()
        resp.content_type = "text/plain"
        resp.enable_chunked_encoding()
        await resp.prepare(request)
        for _ in range(chunks):
            await resp.write(b"x" * chunk_size)
        await resp.write_eof()
        return resp

    return handler


class MockSite:
    """aiohttp test server built from a {path: handler} mapping; records every request path."""

    def __init__(self, routes):
        self.hits = []

        @web.middleware
        async def record(request, handler):
            self.hits.append(request.path_qs)
            return await handler(request)

        app = web.Application(middlewares=[record])
        for path, handler in routes.items():
            app.router.add_get(path, handler)
        self.server = TestServer(app)

    async def start(self):
        await self.server.start_server()

    async def close(self):
        await self.server.close()

    def url(self, path: str = "/") -> str:
        return str(self.server.make_url(path))

    def page_hits(self):
        return [h for h in self.hits if h != "/sitemap.xml"]


@pytest.fixture
async def make_site():
    sites = []

    async def factory(routes):
        site = MockSite(routes)
        await site.start()
        sites.append(site)
        return site

    yield factory

    for site in sites:
        await site.close()


@pytest.fixture
async def run_crawl():
    """Runs one crawl to completion directly through the controller."""

    async def runner(url, *, max_depth=1, max_pages=10, timeout_s=2.0, use_sitemap=True, storage=None):
        storage = storage or MemoryStore()
        registry = SessionRegistry()
        session = await storage.create_session(url, max_pages, max_depth)
        await registry.register(session.id, current_url=url)

        crawler = Crawler(
            session,
            storage,
            registry,
            fetcher=HttpFetcher(timeout_s=timeout_s),
            request_delay_s=0,
            sitemap_timeout_s=1.0,
            use_sitemap=use_sitemap,
        )
        status = await crawler.run()
        return storage, await storage.get_session(session.id), status, registry

    return runner
