"""Content fingerprints used to spot the same content served under different URLs."""

import logging
from typing import Optional

from bs4 import BeautifulSoup

from utils import hash_bytes, hash_text, normalize_text
from .link_extractor import decode_html

logger = logging.getLogger(__name__)

NOISE_TAGS = ["script", "style", "noscript"]


def is_html(content_type: Optional[str]) -> bool:
    return "html" in (content_type or "").lower()


def visible_text(html: str) -> str:
    """Rendered text of a document with script/style/noscript removed, whitespace collapsed."""
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup(NOISE_TAGS):
        tag.decompose()
    return normalize_text(soup.get_text(" "))


def content_hash(
    body: bytes,
    content_type: Optional[str],
    status_code: int,
    charset: Optional[str] = None,
) -> Optional[str]:
    """
    SHA-256 hex digest of a response's semantic content, or None.

    Only 2xx responses are fingerprinted. HTML is reduced to its visible text
    so markup, scripts and styles do not affect the result; anything else is
    hashed byte for byte. Empty content yields None, as does any parse error.
    """
    if not 200 <= status_code < 300:
        return None

    try:
        if is_html(content_type):
            text = visible_text(decode_html(body or b"", charset))
            if not text:
                return None
            return hash_text(text)

        if not body:
            return None
        return hash_bytes(body)

    except Exception as e:
        logger.debug("fingerprint failed (%s): %s", content_type, e)
        return None
