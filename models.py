from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from utils import isoformat, utc_now


class SessionStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.STOPPED, SessionStatus.ERROR)

    def can_become(self, target: "SessionStatus") -> bool:
        """Forward-only: pending -> running -> terminal, same status is a no-op."""
        if target == self:
            return True
        if self.is_terminal:
            return False
        if self == SessionStatus.RUNNING:
            return target.is_terminal
        return target in (SessionStatus.RUNNING, SessionStatus.STOPPED, SessionStatus.ERROR)


@dataclass
class CrawlSession:
    id: str
    url: str
    max_depth: int
    max_pages: Optional[int] = None

    status: SessionStatus = SessionStatus.PENDING
    total_pages: int = 0
    successful_pages: int = 0
    error_pages: int = 0
    current_url: Optional[str] = None

    started_at: datetime = field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "maxPages": self.max_pages,
            "maxDepth": self.max_depth,
            "status": self.status.value,
            "totalPages": self.total_pages,
            "successfulPages": self.successful_pages,
            "errorPages": self.error_pages,
            "currentUrl": self.current_url,
            "startedAt": isoformat(self.started_at),
            "completedAt": isoformat(self.completed_at),
            "error": self.error,
        }


@dataclass
class CrawledPage:
    id: str
    session_id: str
    url: str
    depth: int
    status_code: int = 0
    content_type: str = ""
    size: int = 0
    load_time: int = 0
    content_hash: Optional[str] = None
    discovered_at: datetime = field(default_factory=utc_now)

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sessionId": self.session_id,
            "url": self.url,
            "statusCode": self.status_code,
            "contentType": self.content_type,
            "size": self.size,
            "loadTime": self.load_time,
            "depth": self.depth,
            "contentHash": self.content_hash,
            "discoveredAt": isoformat(self.discovered_at),
        }


@dataclass
class UrlContext:
    url: str
    depth: int


@dataclass
class FetchResult:
    """Outcome of a single GET. status_code == 0 means no HTTP response was obtained."""
    url: str
    status_code: int = 0
    content_type: str = ""
    charset: Optional[str] = None
    body: bytes = b""
    load_time_ms: int = 0
    final_url: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_transport_failure(self) -> bool:
        return self.status_code == 0

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass
class ActiveCrawl:
    should_stop: bool = False
    current_url: Optional[str] = None


@dataclass
class CrawlStats:
    total_found: int = 0
    successful: int = 0
    errors: int = 0
    unique_pages: int = 0
    duplicate_urls: int = 0
    pdf_links: int = 0
    status_codes: Dict[str, int] = field(default_factory=dict)
    page_types: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "totalFound": self.total_found,
            "successful": self.successful,
            "errors": self.errors,
            "uniquePages": self.unique_pages,
            "duplicateUrls": self.duplicate_urls,
            "pdfLinks": self.pdf_links,
            "statusCodes": dict(self.status_codes),
            "pageTypes": dict(self.page_types),
        }


@dataclass
class CrawlProgress:
    session: CrawlSession
    pages: List[CrawledPage]
    stats: CrawlStats

    def to_dict(self) -> dict:
        return {
            "session": self.session.to_dict(),
            "pages": [p.to_dict() for p in self.pages],
            "stats": self.stats.to_dict(),
        }
