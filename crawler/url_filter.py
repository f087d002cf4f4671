from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import urldefrag, urljoin, urlparse, urlunparse

from utils import get_domain

# Schemes that never lead to a crawlable page
NON_NAVIGABLE_SCHEMES = ("javascript:", "mailto:", "tel:", "ftp:")

# Non-page extensions (PDFs are routed separately, before this list is consulted)
SKIP_EXTENSIONS = (
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".ico", ".svg", ".bmp", ".tif", ".tiff",
    ".js", ".css", ".map",
    ".woff", ".woff2", ".ttf", ".eot", ".otf",
    ".mp4", ".webm", ".avi", ".mov", ".mkv", ".mp3", ".wav", ".ogg", ".flac",
    ".zip", ".rar", ".7z", ".gz", ".tar", ".bz2", ".exe", ".dmg",
    ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".odt", ".ods", ".rtf",
)


class LinkKind(str, Enum):
    PAGE = "page"
    PDF = "pdf"
    REJECT = "reject"


@dataclass(frozen=True)
class LinkDecision:
    kind: LinkKind
    url: Optional[str] = None
    reason: str = ""


def _reject(reason: str) -> LinkDecision:
    return LinkDecision(LinkKind.REJECT, None, reason)


def canonical_seed(url: str) -> str:
    """Drop the fragment and give a bare origin the same "/" path that urljoin produces."""
    parsed = urlparse(url)
    return urlunparse(parsed._replace(path=parsed.path or "/", fragment=""))


def classify_link(href: Optional[str], base_url: str, scope_url: Optional[str] = None) -> LinkDecision:
    """
    Decide what to do with an ``href`` found on ``base_url``.

    ``scope_url`` is the URL whose hostname defines the crawl scope (the seed);
    it defaults to the base. Hostnames are compared after stripping a leading
    ``www.``, so ``www.example.com`` and ``example.com`` are one site while
    ``blog.example.com`` is not.
    """
    raw = (href or "").strip()
    if not raw:
        return _reject("empty")
    if raw.lower().startswith(NON_NAVIGABLE_SCHEMES):
        return _reject("scheme")

    try:
        absolute = urljoin(base_url, raw)
        parsed = urlparse(absolute)
        host = parsed.hostname
    except ValueError:
        return _reject("malformed")

    if parsed.scheme not in ("http", "https") or not host:
        return _reject("malformed")

    if get_domain(absolute) != get_domain(scope_url or base_url):
        return _reject("external")

    clean, fragment = urldefrag(absolute)
    if fragment:
        base_clean, _ = urldefrag(base_url)
        if clean == base_clean or raw.startswith("#"):
            return _reject("anchor")

    path = parsed.path.lower()
    if path.endswith(".pdf"):
        return LinkDecision(LinkKind.PDF, clean)

    if path.endswith(SKIP_EXTENSIONS):
        return _reject("extension")

    return LinkDecision(LinkKind.PAGE, clean)
