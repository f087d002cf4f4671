# Responsibilities:
# - maintain crawl order (BFS)
# - never hand out the same URL twice within a session
from collections import deque
from typing import Deque, Optional, Set

from models import UrlContext


class Frontier:
    def __init__(self):
        self.queue: Deque[UrlContext] = deque()  # FIFO for BFS
        self.visited: Set[str] = set()           # URLs already fetched
        self.queued: Set[str] = set()            # URLs currently waiting in the queue

    def __len__(self) -> int:
        return len(self.queue)

    def __bool__(self) -> bool:
        return bool(self.queue)

    def is_visited(self, url: str) -> bool:
        return url in self.visited

    def is_known(self, url: str) -> bool:
        return url in self.visited or url in self.queued

    def push(self, url: str, depth: int) -> bool:
        if self.is_known(url):
            return False
        self.queue.append(UrlContext(url, depth))
        self.queued.add(url)
        return True

    def pop(self) -> Optional[UrlContext]:
        if not self.queue:
            return None
        ctx = self.queue.popleft()
        self.queued.discard(ctx.url)
        return ctx

    def mark_visited(self, url: str) -> None:
        self.visited.add(url)
