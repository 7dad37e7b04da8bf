"""
Content Extractor Implementation

Turns rendered page markup into the text, media references, links and
metadata stored as a Document.
"""

from typing import Dict, Any, List, Optional
from urllib.parse import urljoin
import re

from bs4 import BeautifulSoup

from sitechat.core.base import (
    Document,
    ExtractedPage,
    PageMetadata,
    ExtractionError
)
from sitechat.core.logging import get_logger


REMOVED_TAGS = ["script", "style", "nav", "header", "footer", "aside"]
TEXT_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6", "p", "article", "section", "main"]
MAX_IMAGES = 50
MAX_LINKS = 100


def normalize_whitespace(text: str) -> str:
    return re.sub(r'\s+', ' ', text).strip()


def count_words(text: str) -> int:
    return len(text.split())


class ContentExtractor:
    """
    Extracts readable text, images, links and meta tags from HTML.

    Extraction is pure: the same markup and base URL always give the same
    result.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.logger = get_logger('extractor')
        self.max_images = config.get('max_images', MAX_IMAGES)
        self.max_links = config.get('max_links', MAX_LINKS)

    def extract(self, markup: str, base_url: str) -> ExtractedPage:
        """
        Extract page fields from markup

        Args:
            markup: Rendered HTML
            base_url: URL the markup was rendered from, used to resolve
                relative image and link URLs

        Returns:
            ExtractedPage
        """
        try:
            soup = BeautifulSoup(markup or "", 'html.parser')
        except Exception as e:
            raise ExtractionError(f"Failed to parse markup from {base_url}: {e}") from e

        title = self._extract_title(soup)

        for element in soup(REMOVED_TAGS):
            element.decompose()

        text = self._extract_text(soup)

        return ExtractedPage(
            title=title,
            text=text,
            images=self._extract_images(soup, base_url),
            links=self._extract_links(soup, base_url),
            metadata=self._extract_metadata(soup),
            word_count=count_words(text)
        )

    def to_document(self, page: ExtractedPage, website_id: str, source_url: str,
                    generation: str = "") -> Document:
        return Document(
            website_id=website_id,
            source_url=source_url,
            title=page.title,
            text=page.text,
            images=list(page.images),
            links=list(page.links),
            metadata=page.metadata,
            word_count=page.word_count,
            generation=generation
        )

    def _extract_title(self, soup: BeautifulSoup) -> str:
        title_tag = soup.find('title')
        if title_tag:
            title = title_tag.get_text().strip()
            if title:
                return title
        return "No Title"

    def _extract_text(self, soup: BeautifulSoup) -> str:
        """Text of content elements in document order, body text as fallback"""
        parts = []
        for element in soup.find_all(TEXT_TAGS):
            parts.append(element.get_text().strip() + '\n')
        content = ''.join(parts)

        if not content.strip():
            body = soup.body
            content = body.get_text() if body else soup.get_text()

        return normalize_whitespace(content)

    def _resolve(self, url: str, base_url: str) -> Optional[str]:
        try:
            return urljoin(base_url, url)
        except ValueError:
            self.logger.debug(f"Could not resolve {url!r} against {base_url}")
            return None

    def _extract_images(self, soup: BeautifulSoup, base_url: str) -> List[str]:
        images = []
        for img in soup.find_all('img', src=True):
            src = img['src'].strip()
            if not src:
                continue
            resolved = self._resolve(src, base_url)
            if resolved:
                images.append(resolved)
            if len(images) >= self.max_images:
                break
        return images

    def _extract_links(self, soup: BeautifulSoup, base_url: str) -> List[str]:
        links: Dict[str, None] = {}
        for anchor in soup.find_all('a', href=True):
            href = anchor['href'].strip()
            if not href or href.startswith('#') or href.lower().startswith('mailto:'):
                continue
            resolved = self._resolve(href, base_url)
            if resolved:
                links.setdefault(resolved, None)
            if len(links) >= self.max_links:
                break
        return list(links)

    def _extract_metadata(self, soup: BeautifulSoup) -> PageMetadata:
        def meta_content(name: str) -> str:
            tag = soup.find('meta', attrs={'name': name})
            if tag and tag.get('content'):
                return tag['content'].strip()
            return ""

        keywords = [k.strip() for k in meta_content('keywords').split(',')]
        return PageMetadata(
            description=meta_content('description'),
            keywords=[k for k in keywords if k],
            author=meta_content('author')
        )
