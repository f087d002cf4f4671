from collections import Counter
from typing import Dict, Iterable, List

from models import CrawledPage, CrawlStats
from storage.base import CrawlStorage


def page_type(content_type: str) -> str:
    ct = (content_type or "").lower()
    if "html" in ct:
        return "HTML"
    if "pdf" in ct:
        return "PDF"
    if "image" in ct:
        return "Image"
    return "Other"


def summarize(pages: Iterable[CrawledPage], pdf_link_count: int = 0) -> CrawlStats:
    """
    Stats recomputed from page records.

    Transport failures (status 0) count as errors but have no entry in the
    status histogram; pages without a content type are left out of the type
    breakdown. Pages with no hash count toward the total but never toward
    a duplicate group.
    """
    pages = list(pages)
    status_codes: Counter = Counter()
    page_types: Counter = Counter()
    hashes = set()

    for page in pages:
        if page.status_code:
            status_codes[str(page.status_code)] += 1
        if page.content_type:
            page_types[page_type(page.content_type)] += 1
        if page.content_hash:
            hashes.add(page.content_hash)

    total = len(pages)
    successful = sum(1 for p in pages if p.is_success)

    return CrawlStats(
        total_found=total,
        successful=successful,
        errors=total - successful,
        unique_pages=len(hashes),
        duplicate_urls=total - len(hashes),
        pdf_links=pdf_link_count,
        status_codes=dict(status_codes),
        page_types=dict(page_types),
    )


async def collect_stats(storage: CrawlStorage, session_id: str) -> CrawlStats:
    pages = await storage.list_pages(session_id)
    return summarize(pages, await storage.count_pdf_links(session_id))


async def duplicate_groups(storage: CrawlStorage, session_id: str) -> Dict[str, List[str]]:
    """Content hashes shared by more than one URL, mapped to those URLs."""
    groups: Dict[str, List[str]] = {}
    for content_hash in await storage.unique_content_hashes(session_id):
        pages = await storage.pages_by_content_hash(session_id, content_hash)
        if len(pages) > 1:
            groups[content_hash] = [p.url for p in pages]
    return groups
