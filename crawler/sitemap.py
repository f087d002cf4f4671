import logging
from typing import List
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from .http_fetcher import HttpFetcher
from .url_filter import LinkKind, classify_link

logger = logging.getLogger(__name__)


def sitemap_url(seed_url: str) -> str:
    return urljoin(seed_url, "/sitemap.xml")


def parse_sitemap(data: bytes) -> List[str]:
    """<loc> entries of a <urlset> document, in document order."""
    soup = BeautifulSoup(data or b"", "xml")
    urlset = soup.find("urlset")
    if urlset is None:
        return []
    return [loc.get_text(strip=True) for loc in urlset.find_all("loc") if loc.get_text(strip=True)]


async def fetch_sitemap_urls(fetcher: HttpFetcher, seed_url: str, timeout_s: float = 5.0) -> List[str]:
    """
    In-scope page URLs listed in the site's sitemap.xml.

    Best effort: a missing or broken sitemap gives an empty list.
    """
    target = sitemap_url(seed_url)
    try:
        result = await fetcher.fetch(target, timeout_s=timeout_s)
        if not result.is_success:
            logger.debug("no sitemap at %s (status=%s)", target, result.status_code or result.error)
            return []

        urls = []
        for loc in parse_sitemap(result.body):
            decision = classify_link(loc, seed_url)
            if decision.kind == LinkKind.PAGE and decision.url not in urls:
                urls.append(decision.url)

        logger.info("sitemap %s listed %d in-scope urls", target, len(urls))
        return urls

    except Exception as e:
        logger.debug("sitemap %s ignored: %s", target, e)
        return []
