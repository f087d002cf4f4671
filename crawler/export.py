import csv
import io
from typing import Iterable

from models import CrawledPage

PAGE_HEADER = [
    "URL",
    "Status Code",
    "Content Type",
    "Size (bytes)",
    "Load Time (ms)",
    "Depth",
    "Content Hash",
]


def pages_to_csv(pages: Iterable[CrawledPage], pdf_links: Iterable[str]) -> bytes:
    """Page rows, a blank line, then a "PDF Links" section with one URL per row."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")

    writer.writerow(PAGE_HEADER)
    for page in pages:
        writer.writerow([
            page.url,
            page.status_code,
            page.content_type,
            page.size,
            page.load_time,
            page.depth,
            page.content_hash or "",
        ])

    writer.writerow([])
    writer.writerow(["PDF Links"])
    for url in pdf_links:
        writer.writerow([url])

    return buf.getvalue().encode("utf-8")
