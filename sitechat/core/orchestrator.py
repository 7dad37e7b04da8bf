"""
Crawl Orchestrator Implementation

Drives the per-website crawl state machine: claims the website, borrows a
browser session from the pool, renders and extracts pages breadth-first,
stages the documents and swaps them in once the crawl succeeds.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Set, Tuple

from sitechat.core.base import (
    BaseComponent,
    ContentStoreInterface,
    WebsiteRegistryInterface,
    Website,
    CrawlStatus,
    CrawlOutcome,
    CrawlStatusReport,
    NotFoundError,
    ConflictError,
    InvalidTransitionError,
    SiteChatError,
    NavigationError,
    ExtractionError,
    CrawlCancelledError,
    utcnow
)
from sitechat.core.browser import BrowserPool, BrowserSession, CancelToken
from sitechat.core.config import CrawlConfig
from sitechat.core.frontier import CrawlFrontier
from sitechat.core.logging import get_logger, logging_manager
from sitechat.processors.content import ContentExtractor


@dataclass
class ActiveCrawl:
    """Bookkeeping for a crawl running in this process"""
    website_id: str
    token: CancelToken = field(default_factory=CancelToken)
    task: Optional[asyncio.Task] = None


class CrawlOrchestrator(BaseComponent):
    """
    Owns the crawl lifecycle of every website.

    At most one crawl per website runs at a time, and at most
    `crawl.pool_capacity` crawls hold a browser at once.
    """

    def __init__(self, config: Dict[str, Any], registry: WebsiteRegistryInterface,
                 content_store: ContentStoreInterface, pool: Optional[BrowserPool] = None,
                 extractor: Optional[ContentExtractor] = None):
        super().__init__(config)
        self.logger = get_logger('orchestrator')
        self.crawl_config = CrawlConfig(**config.get('crawl', {}))
        self.registry = registry
        self.content_store = content_store
        self.pool = pool or BrowserPool(config)
        self.extractor = extractor or ContentExtractor(config.get('extraction', {}))
        self._active: Dict[str, ActiveCrawl] = {}
        self._tasks: Set[asyncio.Task] = set()

    async def initialize(self) -> None:
        """Initialize owned components"""
        self.logger.info("Initializing crawl orchestrator")
        await self.content_store.initialize()
        await self.pool.initialize()
        self._initialized = True

    async def cleanup(self) -> None:
        """Stop running crawls and release every browser"""
        self.logger.info("Cleaning up crawl orchestrator")
        for active in list(self._active.values()):
            active.token.cancel("shutdown")
        await self.wait_idle()
        await self.pool.cleanup()

    def is_crawling(self, website_id: str) -> bool:
        return website_id in self._active

    async def wait_idle(self) -> None:
        """Wait for every background crawl to finish"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _get_website(self, website_id: str) -> Website:
        website = await self.registry.get(website_id)
        if website is None:
            raise NotFoundError(f"Website {website_id} not found")
        return website

    async def _transition(self, website: Website, target: CrawlStatus, **changes) -> None:
        if not website.crawl_status.can_transition_to(target):
            raise InvalidTransitionError(website.crawl_status, target)
        await self.registry.set_crawl_status(website.id, target, **changes)
        website.crawl_status = target

    async def _claim(self, website_id: str, action: str) -> Tuple[Website, ActiveCrawl]:
        """
        Check and claim a website for crawling.

        The in-process claim is registered before the first status write so
        a concurrent caller sees the conflict even while this one suspends.
        """
        website = await self._get_website(website_id)
        if website_id in self._active or website.crawl_status is CrawlStatus.CRAWLING:
            raise ConflictError(f"Website {website_id} is already being crawled")

        active = ActiveCrawl(website_id)
        self._active[website_id] = active
        try:
            if website.crawl_status is not CrawlStatus.PENDING:
                await self._transition(website, CrawlStatus.PENDING)
            await self._transition(website, CrawlStatus.CRAWLING)
        except BaseException:
            self._active.pop(website_id, None)
            raise

        self.logger.info(f"Starting {action} of website {website_id} ({website.url})")
        return website, active

    async def crawl(self, website_id: str) -> CrawlOutcome:
        """
        Crawl a website and wait for the outcome

        Raises:
            NotFoundError: unknown website
            ConflictError: website is already being crawled
        """
        website, active = await self._claim(website_id, "crawl")
        return await self._run(website, active)

    async def recrawl(self, website_id: str) -> CrawlOutcome:
        """
        Replace a website's documents with a fresh crawl

        The current documents stay in place until the new crawl succeeds.
        """
        website, active = await self._claim(website_id, "recrawl")
        return await self._run(website, active)

    async def start(self, website_id: str, recrawl: bool = False) -> asyncio.Task:
        """
        Claim a website and run its crawl in the background

        Returns once the website is CRAWLING; the returned task resolves to
        the CrawlOutcome.
        """
        website, active = await self._claim(website_id, "recrawl" if recrawl else "crawl")
        task = asyncio.create_task(self._run(website, active), name=f"crawl-{website_id}")
        active.task = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def stop(self, website_id: str) -> CrawlStatus:
        """
        Cancel a running crawl and return the resulting status

        A website left CRAWLING without a crawl in this process is marked
        FAILED directly.
        """
        website = await self._get_website(website_id)
        active = self._active.get(website_id)

        if active is not None:
            self.logger.info(f"Stopping crawl of website {website_id}")
            active.token.cancel("stop requested")
            if active.task is not None:
                await asyncio.gather(active.task, return_exceptions=True)
        elif website.crawl_status is CrawlStatus.CRAWLING:
            self.logger.warning(f"Website {website_id} marked crawling without a running crawl")
            await self._transition(website, CrawlStatus.FAILED)

        return (await self._get_website(website_id)).crawl_status

    async def get_status(self, website_id: str) -> CrawlStatusReport:
        website = await self._get_website(website_id)
        return CrawlStatusReport(
            status=website.crawl_status,
            last_crawled_at=website.last_crawled_at,
            document_count=await self.content_store.count_for_website(website_id)
        )

    async def _run(self, website: Website, active: ActiveCrawl) -> CrawlOutcome:
        start_time = time.monotonic()
        generation: Optional[str] = None
        outcome = CrawlOutcome(website_id=website.id, status=CrawlStatus.FAILED)

        try:
            generation = await self.content_store.begin_generation(website.id)
            session = await self._acquire_session(active.token)
            try:
                pages, warnings = await self._crawl_pages(website, session, active.token, generation)
            finally:
                await self.pool.release(session)

            active.token.raise_if_cancelled()
            await self.content_store.activate_generation(website.id, generation)
            generation = None
            await self._transition(
                website, CrawlStatus.COMPLETED, last_crawled_at=utcnow(), total_pages=pages
            )
            outcome = CrawlOutcome(
                website_id=website.id,
                status=CrawlStatus.COMPLETED,
                document_count=pages,
                pages_crawled=pages,
                warnings=warnings
            )
        except asyncio.CancelledError:
            await self._mark_failed(website)
            raise
        except Exception as e:
            if not isinstance(e, (NavigationError, ExtractionError, CrawlCancelledError)):
                self.logger.error(f"Unexpected error crawling website {website.id}: {e}", exc_info=True)
            outcome.error_message = str(e)
            await self._mark_failed(website)
        finally:
            if generation is not None:
                await self._discard(website.id, generation)
            self._active.pop(website.id, None)

        logging_manager.log_crawl_outcome(outcome, time.monotonic() - start_time)
        return outcome

    async def _acquire_session(self, token: CancelToken) -> BrowserSession:
        """Wait for a pool slot unless the crawl is cancelled first"""
        token.raise_if_cancelled()
        acquire = asyncio.ensure_future(self.pool.acquire())
        stopper = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait({acquire, stopper}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            acquire.cancel()
            await self._release_orphan(acquire)
            raise
        finally:
            stopper.cancel()

        if acquire in done:
            return acquire.result()

        acquire.cancel()
        await self._release_orphan(acquire)
        token.raise_if_cancelled()
        raise CrawlCancelledError("Crawl cancelled while waiting for a browser")

    async def _release_orphan(self, acquire: asyncio.Future) -> None:
        results = await asyncio.gather(acquire, return_exceptions=True)
        if isinstance(results[0], BrowserSession):
            await self.pool.release(results[0])

    async def _crawl_pages(self, website: Website, session: BrowserSession,
                           token: CancelToken, generation: str) -> Tuple[int, List[str]]:
        """
        Render and store pages breadth-first, one at a time

        A failure on the seed page fails the crawl; failures on linked
        pages are recorded as warnings and skipped.
        """
        frontier = CrawlFrontier(website.url, website.crawl_depth, self.crawl_config.max_pages)
        saved = 0
        warnings: List[str] = []

        while True:
            entry = frontier.next()
            if entry is None:
                break
            token.raise_if_cancelled()

            try:
                rendered = await session.render(entry.url, token)
                page = self.extractor.extract(rendered.html, rendered.url)
            except (NavigationError, ExtractionError) as e:
                if entry.depth == 1:
                    raise
                self.logger.warning(f"Skipping {entry.url}: {e}")
                warnings.append(str(e))
                continue

            warnings.extend(rendered.warnings)
            document = self.extractor.to_document(page, website.id, entry.url, generation)
            await self.content_store.save(document)
            saved += 1
            self.logger.info(f"Stored {entry.url} ({page.word_count} words) for website {website.id}")

            frontier.add_discovered(page.links, entry.depth)

        return saved, warnings

    async def _mark_failed(self, website: Website) -> None:
        try:
            await self._transition(website, CrawlStatus.FAILED)
        except SiteChatError as e:
            self.logger.error(f"Could not mark website {website.id} failed: {e}")

    async def _discard(self, website_id: str, generation: str) -> None:
        try:
            await self.content_store.discard_generation(website_id, generation)
        except Exception as e:
            self.logger.warning(f"Failed to discard generation {generation} of website {website_id}: {e}")
