import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


class ConfigError(RuntimeError):
    pass


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    return float(raw) if raw not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    return int(raw) if raw not in (None, "") else default


@dataclass(frozen=True)
class Settings:
    storage: str = "memory"  # "memory" | "postgres"
    database_url: Optional[str] = None

    request_timeout_s: float = 10.0
    max_redirects: int = 5
    max_body_bytes: int = 50 * 1024 * 1024
    sitemap_timeout_s: float = 5.0
    request_delay_s: float = 0.1
    user_agent: str = "site_crawler/1.0"

    default_max_pages: int = 1000

    log_level: str = "INFO"
    log_file: Optional[str] = None

    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            storage=os.environ.get("CRAWLER_STORAGE", "memory").lower(),
            database_url=os.environ.get("DATABASE_URL") or None,
            request_timeout_s=_env_float("CRAWLER_REQUEST_TIMEOUT", 10.0),
            max_redirects=_env_int("CRAWLER_MAX_REDIRECTS", 5),
            max_body_bytes=_env_int("CRAWLER_MAX_BODY_BYTES", 50 * 1024 * 1024),
            sitemap_timeout_s=_env_float("CRAWLER_SITEMAP_TIMEOUT", 5.0),
            request_delay_s=_env_float("CRAWLER_REQUEST_DELAY", 0.1),
            user_agent=os.environ.get("CRAWLER_USER_AGENT", "site_crawler/1.0"),
            log_level=os.environ.get("CRAWLER_LOG_LEVEL", "INFO").upper(),
            log_file=os.environ.get("CRAWLER_LOG_FILE") or None,
            host=os.environ.get("CRAWLER_HOST", "127.0.0.1"),
            port=_env_int("CRAWLER_PORT", 8000),
        )
