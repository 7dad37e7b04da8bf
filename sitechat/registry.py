"""
In-process website registry and user directory.

Both collaborators are normally owned by the surrounding application; these
implementations are built from the `websites` and `users` config sections
so the crawler and chat flow can run standalone.
"""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, List, Optional

import aiofiles
import validators

from sitechat.core.base import (
    Website,
    CrawlStatus,
    WebsiteRegistryInterface,
    UserDirectoryInterface,
    ConfigurationError,
    NotFoundError,
    StorageError
)
from sitechat.core.logging import get_logger


class InMemoryWebsiteRegistry(WebsiteRegistryInterface):
    """Websites keyed by id with unique URLs"""

    def __init__(self, websites: Optional[List[Website]] = None):
        self.logger = get_logger('registry')
        self._websites: Dict[str, Website] = {}
        for website in websites or []:
            self.add(website)

    @classmethod
    def from_config(cls, entries: List[Dict[str, Any]]) -> "InMemoryWebsiteRegistry":
        websites = []
        for entry in entries:
            try:
                websites.append(Website(
                    id=str(entry['id']),
                    url=entry['url'],
                    name=entry.get('name') or entry['url'],
                    is_active=entry.get('is_active', True),
                    crawl_depth=int(entry.get('crawl_depth', 1))
                ))
            except (KeyError, TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid website entry {entry!r}: {e}")
        return cls(websites)

    def add(self, website: Website) -> None:
        if not validators.url(website.url):
            raise ConfigurationError(f"Invalid website URL: {website.url}")
        if website.crawl_depth < 1:
            raise ConfigurationError(f"crawl_depth must be at least 1 for website {website.id}")
        if website.id in self._websites:
            raise ConfigurationError(f"Duplicate website id: {website.id}")
        if any(w.url == website.url for w in self._websites.values()):
            raise ConfigurationError(f"Duplicate website URL: {website.url}")
        self._websites[website.id] = website

    def all(self) -> List[Website]:
        return list(self._websites.values())

    async def get(self, website_id: str) -> Optional[Website]:
        return self._websites.get(website_id)

    async def set_crawl_status(self, website_id: str, status: CrawlStatus,
                               last_crawled_at: Optional[datetime] = None,
                               total_pages: Optional[int] = None) -> None:
        website = self._websites.get(website_id)
        if website is None:
            raise NotFoundError(f"Website {website_id} not found")

        website.crawl_status = status
        if last_crawled_at is not None:
            website.last_crawled_at = last_crawled_at
        if total_pages is not None:
            website.total_pages = total_pages
        self.logger.debug(f"Website {website_id} crawl status -> {status.value}")

    async def is_active(self, website_id: str) -> bool:
        website = self._websites.get(website_id)
        return bool(website and website.is_active)


class FileWebsiteRegistry(InMemoryWebsiteRegistry):
    """
    Registry whose crawl state survives restarts.

    Website definitions come from config; crawl status, last crawl time and
    page count are kept in a JSON state file rewritten on every change.
    """

    def __init__(self, websites: Optional[List[Website]] = None, state_path: str = "./data/websites.json"):
        super().__init__(websites)
        self.state_path = Path(state_path)

    @classmethod
    def from_config(cls, entries: List[Dict[str, Any]], state_path: str = "./data/websites.json") -> "FileWebsiteRegistry":
        registry = cls(InMemoryWebsiteRegistry.from_config(entries).all(), state_path)
        registry.load_state()
        return registry

    def load_state(self) -> None:
        if not self.state_path.exists():
            return
        try:
            state = json.loads(self.state_path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read website state {self.state_path}: {e}") from e

        for website_id, entry in state.items():
            website = self._websites.get(website_id)
            if website is None:
                continue
            website.crawl_status = CrawlStatus(entry.get('crawl_status', 'pending'))
            if entry.get('last_crawled_at'):
                website.last_crawled_at = datetime.fromisoformat(entry['last_crawled_at'])
            website.total_pages = entry.get('total_pages', 0)

    async def _save_state(self) -> None:
        state = {
            w.id: {
                'crawl_status': w.crawl_status.value,
                'last_crawled_at': w.last_crawled_at.isoformat() if w.last_crawled_at else None,
                'total_pages': w.total_pages,
            }
            for w in self._websites.values()
        }
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.state_path.with_suffix('.tmp')
        try:
            async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
                await f.write(json.dumps(state, indent=2))
            os.replace(tmp_path, self.state_path)
        except OSError as e:
            raise StorageError(f"Failed to write website state {self.state_path}: {e}") from e

    async def set_crawl_status(self, website_id: str, status: CrawlStatus,
                               last_crawled_at: Optional[datetime] = None,
                               total_pages: Optional[int] = None) -> None:
        await super().set_crawl_status(website_id, status, last_crawled_at, total_pages)
        await self._save_state()


class InMemoryUserDirectory(UserDirectoryInterface):
    """Known user ids with their query counters"""

    def __init__(self, user_ids: Optional[List[str]] = None):
        self.query_counts: Dict[str, int] = {str(u): 0 for u in user_ids or []}

    @classmethod
    def from_config(cls, entries: List[Any]) -> "InMemoryUserDirectory":
        return cls([e['id'] if isinstance(e, dict) else e for e in entries])

    async def exists(self, user_id: str) -> bool:
        return user_id in self.query_counts

    async def increment_query_count(self, user_id: str, amount: int = 1) -> None:
        if user_id not in self.query_counts:
            raise NotFoundError(f"User {user_id} not found")
        self.query_counts[user_id] = max(0, self.query_counts[user_id] + amount)
