import asyncio
import logging
import time
from typing import Optional

import aiohttp

from models import FetchResult

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class ResponseTooLarge(Exception):
    pass


def _bare_content_type(header: Optional[str]) -> str:
    return (header or "").split(";", 1)[0].strip().lower()


class HttpFetcher:
    def __init__(
        self,
        timeout_s: float = 10.0,
        max_redirects: int = 5,
        max_body_bytes: int = 50 * 1024 * 1024,
        user_agent: str = "site_crawler/1.0",
    ):
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._max_redirects = max_redirects
        self._max_body_bytes = max_body_bytes
        self._session: Optional[aiohttp.ClientSession] = None
        self._ua = user_agent

    async def open(self):
        if self._session is None or self._session.closed:
            headers = {"User-Agent": self._ua}
            self._session = aiohttp.ClientSession(timeout=self._timeout, headers=headers)

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "HttpFetcher":
        await self.open()
        return self

    async def __aexit__(self, *exc):
        await self.close()

    async def _read_capped(self, resp: aiohttp.ClientResponse) -> bytes:
        if resp.content_length is not None and resp.content_length > self._max_body_bytes:
            raise ResponseTooLarge(f"declared body of {resp.content_length} bytes exceeds cap")

        buf = bytearray()
        async for chunk in resp.content.iter_chunked(CHUNK_SIZE):
            buf.extend(chunk)
            if len(buf) > self._max_body_bytes:
                raise ResponseTooLarge(f"body exceeds {self._max_body_bytes} bytes")
        return bytes(buf)

    async def fetch(self, url: str, timeout_s: Optional[float] = None) -> FetchResult:
        """
        One GET with redirects followed up to the cap.

        Any HTTP status comes back as a normal result. Timeouts, connection
        errors, too many redirects and oversized bodies come back with
        status_code 0 and ``error`` set; nothing is raised.
        """
        await self.open()
        assert self._session is not None

        options = {"allow_redirects": True, "max_redirects": self._max_redirects}
        if timeout_s is not None:
            options["timeout"] = aiohttp.ClientTimeout(total=timeout_s)
        started = time.perf_counter()

        try:
            async with self._session.get(url, **options) as resp:
                body = await self._read_capped(resp)
                return FetchResult(
                    url=url,
                    status_code=resp.status,
                    content_type=_bare_content_type(resp.headers.get("Content-Type")),
                    charset=resp.charset,
                    body=body,
                    load_time_ms=int((time.perf_counter() - started) * 1000),
                    final_url=str(resp.url),
                )
        except (aiohttp.ClientError, asyncio.TimeoutError, ResponseTooLarge, ValueError) as e:
            elapsed = int((time.perf_counter() - started) * 1000)
            reason = f"{type(e).__name__}: {e}".rstrip(": ")
            logger.info("transport failure for %s: %s", url, reason)
            return FetchResult(url=url, status_code=0, load_time_ms=elapsed, error=reason)
