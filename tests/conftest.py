"""
Shared fixtures for the SiteChat test suite
"""

import pytest

from sitechat.core.base import Document, Website, CrawlStatus
from sitechat.core.logging import setup_logging
from sitechat.registry import InMemoryWebsiteRegistry, InMemoryUserDirectory


@pytest.fixture(scope="session", autouse=True)
def configure_logging(tmp_path_factory):
    """Send test logs to a throwaway file"""
    log_file = tmp_path_factory.mktemp("logs") / "sitechat.log"
    setup_logging(level="DEBUG", log_file=str(log_file))


@pytest.fixture
def base_config(tmp_path):
    """Configuration dict rooted in a temporary directory"""
    return {
        'crawl': {
            'navigation_timeout': 5.0,
            'operation_timeout': 5.0,
            'settle_delay': 0.0,
            'pool_capacity': 1,
            'max_pages': 10
        },
        'storage': {'base_path': str(tmp_path / "data")},
        'context': {'max_documents': 5, 'max_chars': 8000},
        'model': {'model_id': 'test-model', 'api_key_env': 'SITECHAT_TEST_KEY'},
    }


@pytest.fixture
def registry():
    return InMemoryWebsiteRegistry([
        Website(id="site", url="https://example.com/", name="Example"),
        Website(id="deep", url="https://deep.example.org/", name="Deep", crawl_depth=2),
        Website(id="off", url="https://inactive.example.net/", name="Inactive", is_active=False),
    ])


@pytest.fixture
def users():
    return InMemoryUserDirectory(["alice", "bob"])


@pytest.fixture
def make_document():
    """Factory for documents of the "site" website"""
    def _make(website_id="site", url="https://example.com/", title="Home",
              text="Hello world", generation="") -> Document:
        return Document(
            website_id=website_id,
            source_url=url,
            title=title,
            text=text,
            word_count=len(text.split()),
            generation=generation
        )
    return _make


@pytest.fixture
def mark_completed(registry):
    """Force a website into COMPLETED without running a crawl"""
    def _mark(website_id="site"):
        website = registry._websites[website_id]
        website.crawl_status = CrawlStatus.COMPLETED
        return website
    return _mark
