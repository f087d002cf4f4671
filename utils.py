import hashlib
import re
import uuid
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse


def strip_www(host: str) -> str:
    host = (host or "").lower()
    return host[4:] if host.startswith("www.") else host


def get_domain(url: str) -> str:
    """Hostname without port and without a leading ``www.``."""
    try:
        return strip_www(urlparse(url).hostname or "")
    except ValueError:
        return ""


def new_id() -> str:
    return uuid.uuid4().hex


_ws = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    return _ws.sub(" ", text or "").strip()


def hash_text(text: str) -> str:
    return hashlib.sha256(normalize_text(text).encode("utf-8")).hexdigest()


def hash_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None
