"""
Headless Browser Session and Pool

Wraps a crawl4ai AsyncWebCrawler as a scoped rendering session with explicit
navigation and operation timeouts, cooperative cancellation and guaranteed
release, plus a capacity-bounded pool that serializes access to the engine.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Dict, Any, List, Optional, Callable, Set, AsyncIterator

from crawl4ai import AsyncWebCrawler, BrowserConfig, CrawlerRunConfig, CacheMode

from sitechat.core.base import (
    BaseComponent,
    RenderResult,
    NavigationError,
    BrowserLaunchError,
    CrawlCancelledError,
    ResourceReleaseError,
)
from sitechat.core.config import CrawlConfig
from sitechat.core.logging import get_logger


class CancelToken:
    """Cooperative cancellation signal checked at suspension points"""

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "stopped") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CrawlCancelledError(f"Crawl cancelled: {self.reason}")

    async def wait(self) -> None:
        await self._event.wait()


class BrowserSession(BaseComponent):
    """
    One headless browser process used by one crawl at a time.

    The session collects non-fatal page events (console errors, failed
    sub-resources reported by crawl4ai) as warnings and returns them with
    the render result instead of failing the render.
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.logger = get_logger('browser')
        self.crawl_config = CrawlConfig(**config.get('crawl', {}))
        self.crawler: Optional[AsyncWebCrawler] = None
        self.browser_config = BrowserConfig(
            headless=self.crawl_config.headless,
            user_agent=self.crawl_config.user_agent,
            viewport_width=self.crawl_config.viewport_width,
            viewport_height=self.crawl_config.viewport_height,
            verbose=False,
            extra_args=[
                "--no-sandbox",
                "--disable-setuid-sandbox",
                "--disable-dev-shm-usage",
                "--disable-accelerated-2d-canvas",
                "--no-first-run",
                "--no-zygote",
                "--disable-gpu"
            ]
        )

    @property
    def navigation_timeout(self) -> float:
        return self.crawl_config.navigation_timeout

    @property
    def operation_timeout(self) -> float:
        return self.crawl_config.operation_timeout

    async def open(self) -> None:
        """Launch the browser, bounded by the operation timeout"""
        if self.crawler is not None:
            return

        self.crawler = AsyncWebCrawler(config=self.browser_config)
        try:
            await asyncio.wait_for(self.crawler.start(), timeout=self.operation_timeout)
        except asyncio.CancelledError:
            await self.close()
            raise
        except Exception as e:
            await self.close()
            raise BrowserLaunchError(f"Failed to launch browser: {e}") from e

        self._initialized = True
        self.logger.debug("Browser session opened")

    async def close(self) -> None:
        """Close pages and the browser process; failures are logged only"""
        crawler, self.crawler = self.crawler, None
        self._initialized = False
        if crawler is None:
            return

        try:
            await crawler.close()
            self.logger.debug("Browser session closed")
        except Exception as e:
            error = ResourceReleaseError(f"Failed to close browser session: {e}")
            self.logger.warning(str(error))

    async def initialize(self) -> None:
        await self.open()

    async def cleanup(self) -> None:
        await self.close()

    async def __aenter__(self) -> "BrowserSession":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _run_config(self) -> CrawlerRunConfig:
        return CrawlerRunConfig(
            cache_mode=CacheMode.BYPASS,
            wait_until="networkidle",
            page_timeout=int(self.navigation_timeout * 1000),
            delay_before_return_html=self.crawl_config.settle_delay,
            capture_console_messages=True,
            verbose=False
        )

    async def render(self, url: str, cancel_token: Optional[CancelToken] = None) -> RenderResult:
        """
        Navigate to a URL and return its rendered markup

        Args:
            url: Page to render
            cancel_token: Optional token; when it fires the render is abandoned

        Returns:
            RenderResult with raw HTML and collected warnings

        Raises:
            NavigationError: timeout, navigation failure or unsuccessful result
            CrawlCancelledError: the token fired before the page rendered
        """
        if self.crawler is None:
            raise NavigationError(url, "browser session is not open")
        if cancel_token:
            cancel_token.raise_if_cancelled()

        start_time = time.monotonic()
        crawl = asyncio.ensure_future(
            asyncio.wait_for(self.crawler.arun(url=url, config=self._run_config()),
                             timeout=self.operation_timeout)
        )

        try:
            if cancel_token is None:
                result = await crawl
            else:
                stopper = asyncio.ensure_future(cancel_token.wait())
                try:
                    done, _ = await asyncio.wait({crawl, stopper}, return_when=asyncio.FIRST_COMPLETED)
                finally:
                    stopper.cancel()
                if crawl not in done:
                    crawl.cancel()
                    await asyncio.gather(crawl, return_exceptions=True)
                    raise CrawlCancelledError(f"Render of {url} cancelled: {cancel_token.reason}")
                result = crawl.result()
        except asyncio.TimeoutError:
            raise NavigationError(url, f"timed out after {self.operation_timeout:.0f}s")
        except asyncio.CancelledError:
            crawl.cancel()
            raise
        except (NavigationError, CrawlCancelledError):
            raise
        except Exception as e:
            raise NavigationError(url, str(e)) from e

        if not getattr(result, 'success', False):
            reason = getattr(result, 'error_message', None) or "render was not successful"
            raise NavigationError(url, reason)

        html = getattr(result, 'html', None) or ""
        if not html.strip():
            raise NavigationError(url, "page returned no content")

        warnings = self._collect_warnings(result)
        for warning in warnings:
            self.logger.warning(f"{url}: {warning}")

        return RenderResult(
            url=url,
            html=html,
            warnings=warnings,
            elapsed=time.monotonic() - start_time
        )

    def _collect_warnings(self, result) -> List[str]:
        """Non-fatal page events reported alongside a successful render"""
        warnings = []
        for message in getattr(result, 'console_messages', None) or []:
            if isinstance(message, dict) and message.get('type') in ('error', 'pageerror'):
                warnings.append(f"Page error: {message.get('text', '')}".strip())

        status_code = getattr(result, 'status_code', None)
        if isinstance(status_code, int) and status_code >= 400:
            warnings.append(f"HTTP status {status_code}")

        return warnings


class BrowserPool(BaseComponent):
    """
    Capacity-bounded pool of browser sessions owned by the orchestrator.

    A session is opened on acquire and closed on release; waiters are
    served in FIFO order by the underlying semaphore.
    """

    def __init__(self, config: Dict[str, Any],
                 session_factory: Optional[Callable[[Dict[str, Any]], BrowserSession]] = None):
        super().__init__(config)
        self.logger = get_logger('browser')
        self.capacity = CrawlConfig(**config.get('crawl', {})).pool_capacity
        if self.capacity < 1:
            raise ValueError("Browser pool capacity must be at least 1")
        self._session_factory = session_factory or BrowserSession
        self._semaphore = asyncio.Semaphore(self.capacity)
        self._in_use: Set[BrowserSession] = set()

    async def initialize(self) -> None:
        self._initialized = True

    async def cleanup(self) -> None:
        """Close sessions still held by crawls"""
        for session in list(self._in_use):
            await self.release(session)

    @property
    def in_use(self) -> int:
        return len(self._in_use)

    async def acquire(self) -> BrowserSession:
        """Wait for a free slot and open a session in it"""
        await self._semaphore.acquire()
        try:
            session = self._session_factory(self.config)
            await session.open()
        except BaseException:
            self._semaphore.release()
            raise

        self._in_use.add(session)
        self.logger.debug(f"Browser session acquired ({self.in_use}/{self.capacity} in use)")
        return session

    async def release(self, session: BrowserSession) -> None:
        """Close a session and free its slot"""
        if session not in self._in_use:
            raise ValueError("Session was not acquired from this pool")

        self._in_use.discard(session)
        try:
            await session.close()
        finally:
            self._semaphore.release()
            self.logger.debug(f"Browser session released ({self.in_use}/{self.capacity} in use)")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[BrowserSession]:
        session = await self.acquire()
        try:
            yield session
        finally:
            await self.release(session)
