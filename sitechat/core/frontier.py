"""
Crawl Frontier

Breadth-first queue of same-site URLs for a single website crawl, bounded
by the website's crawl depth and the configured page budget. Duplicate
URLs are skipped by comparing their normalized form.
"""

import re
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterable, List, Optional, Set
from urllib.parse import urlparse, urlunparse, urldefrag, parse_qsl, urlencode

import tldextract
import validators

from sitechat.core.logging import get_logger


SKIP_PATTERNS = [
    r'\.(pdf|docx?|xlsx?|pptx?|zip|rar|tar|gz)$',
    r'\.(jpe?g|png|gif|svg|webp|ico|css|js)$',
    r'\.(mp4|avi|mov|wmv|mp3|wav|ogg)$',
    r'^(mailto|tel|ftp|javascript):',
]


@dataclass
class FrontierEntry:
    url: str
    depth: int


def normalize_url(url: str) -> str:
    """
    Deduplication key of a URL: lower-cased scheme and host, default port
    and fragment dropped, query parameters sorted and re-encoded.

    The path is kept as is, since `/docs/` and `/docs` resolve relative
    links differently.
    """
    parsed = urlparse(url.strip())

    if not parsed.scheme:
        parsed = urlparse(f"https://{url.strip()}")

    netloc = parsed.netloc.lower()

    if netloc.endswith(':80') and parsed.scheme == 'http':
        netloc = netloc[:-3]
    elif netloc.endswith(':443') and parsed.scheme == 'https':
        netloc = netloc[:-4]

    path = parsed.path or '/'

    query = ''
    if parsed.query:
        params = parse_qsl(parsed.query, keep_blank_values=True)
        query = urlencode(sorted(params), doseq=True)

    return urlunparse((parsed.scheme.lower(), netloc, path, parsed.params, query, ''))


def site_of(url: str) -> str:
    """Registered domain of a URL (example.co.uk for www.example.co.uk)"""
    extracted = tldextract.extract(url)
    if extracted.suffix:
        return f"{extracted.domain}.{extracted.suffix}".lower()
    return urlparse(url).netloc.lower()


def is_crawlable(url: str) -> bool:
    """HTTP(S) URL that does not point at a media or binary file"""
    if not validators.url(url):
        return False
    if urlparse(url).scheme not in ('http', 'https'):
        return False
    return not any(re.search(pattern, url, re.IGNORECASE) for pattern in SKIP_PATTERNS)


class CrawlFrontier:
    """
    Breadth-first frontier rooted at a seed URL.

    Depth counts pages: depth 1 is the seed page only, depth 2 adds the
    pages the seed links to, and so on. Entries carry the URL as given
    (fragment removed); the normalized form is only used to skip
    duplicates.
    """

    def __init__(self, seed_url: str, max_depth: int = 1, max_pages: int = 10):
        self.logger = get_logger('frontier')
        self.seed_url = seed_url.strip()
        self.site = site_of(self.seed_url)
        self.max_depth = max(1, max_depth)
        self.max_pages = max(1, max_pages)
        self._queue: Deque[FrontierEntry] = deque([FrontierEntry(self.seed_url, 1)])
        self._seen: Set[str] = {normalize_url(self.seed_url)}
        self._dispatched = 0

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def dispatched(self) -> int:
        return self._dispatched

    def next(self) -> Optional[FrontierEntry]:
        """Next URL to fetch, or None once the queue or page budget is exhausted"""
        if not self._queue or self._dispatched >= self.max_pages:
            return None
        self._dispatched += 1
        return self._queue.popleft()

    def add_discovered(self, links: Iterable[str], parent_depth: int) -> int:
        """Queue same-site links found on a page at parent_depth"""
        depth = parent_depth + 1
        if depth > self.max_depth:
            return 0

        added = 0
        for link in links:
            try:
                url = urldefrag(link.strip())[0]
                key = normalize_url(url)
            except ValueError:
                self.logger.debug(f"Skipping malformed link: {link}")
                continue

            if key in self._seen:
                continue
            self._seen.add(key)

            if not is_crawlable(url) or site_of(url) != self.site:
                continue

            self._queue.append(FrontierEntry(url, depth))
            added += 1

        if added:
            self.logger.debug(f"Queued {added} link(s) at depth {depth}")
        return added

    def pending(self) -> List[str]:
        return [entry.url for entry in self._queue]
