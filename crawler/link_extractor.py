from typing import List, Optional

from bs4 import BeautifulSoup


def decode_html(data: bytes, charset: Optional[str] = None) -> str:
    """Decode an HTML body with the declared charset, falling back to UTF-8."""
    if charset:
        try:
            return data.decode(charset)
        except (LookupError, UnicodeDecodeError):
            pass

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("utf-8", errors="replace")


class LinkExtractor:
    def extract(self, html: str) -> List[str]:
        """Raw href values of <a> tags in document order, first occurrence wins."""
        soup = BeautifulSoup(html or "", "html.parser")

        seen = set()
        out = []
        for a in soup.select("a[href]"):
            href = a.get("href")
            if not href or href in seen:
                continue
            seen.add(href)
            out.append(href)

        return out
