"""
SiteChat service facade

Protocol-neutral operations exposed to callers: crawl control, crawl
status, chat and dialogue history. Results are plain dicts; failures are
SiteChatError subclasses carrying a message.
"""

from typing import Dict, Any, List, Optional

from sitechat.core.base import (
    ContentStoreInterface,
    DialogueStoreInterface,
    DialogueRecord,
    ModelClientInterface,
    UserDirectoryInterface,
    WebsiteRegistryInterface,
    NotFoundError
)
from sitechat.core.logging import get_logger
from sitechat.core.orchestrator import CrawlOrchestrator
from sitechat.ai.context import ContextAssembler
from sitechat.ai.answer import AnswerGenerator


MAX_QUESTION_LENGTH = 1000


def _isoformat(value) -> Optional[str]:
    return value.isoformat() if value else None


class SiteChatService:
    """Wires the crawl and chat components behind the external operations"""

    def __init__(self, config: Dict[str, Any], registry: WebsiteRegistryInterface,
                 users: UserDirectoryInterface, content_store: ContentStoreInterface,
                 dialogue_store: DialogueStoreInterface, model_client: ModelClientInterface,
                 orchestrator: Optional[CrawlOrchestrator] = None):
        self.config = config
        self.logger = get_logger('service')
        self.registry = registry
        self.users = users
        self.content_store = content_store
        self.dialogue_store = dialogue_store
        self.model_client = model_client
        self.orchestrator = orchestrator or CrawlOrchestrator(config, registry, content_store)
        self.assembler = ContextAssembler(config, content_store, registry)
        self.answer_generator = AnswerGenerator(config, self.assembler, model_client)

    async def initialize(self) -> None:
        await self.orchestrator.initialize()
        await self.dialogue_store.initialize()

    async def cleanup(self) -> None:
        await self.orchestrator.cleanup()
        await self.dialogue_store.cleanup()
        await self.model_client.cleanup()

    async def __aenter__(self) -> "SiteChatService":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cleanup()

    async def trigger_crawl(self, website_id: str) -> Dict[str, Any]:
        """Start a crawl in the background"""
        await self.orchestrator.start(website_id)
        return {'website_id': website_id, 'status': 'crawling'}

    async def trigger_recrawl(self, website_id: str) -> Dict[str, Any]:
        """Start a recrawl in the background"""
        await self.orchestrator.start(website_id, recrawl=True)
        return {'website_id': website_id, 'status': 'crawling'}

    async def stop_crawl(self, website_id: str) -> Dict[str, Any]:
        status = await self.orchestrator.stop(website_id)
        return {'website_id': website_id, 'status': status.value}

    async def get_crawl_status(self, website_id: str) -> Dict[str, Any]:
        report = await self.orchestrator.get_status(website_id)
        return {
            'status': report.status.value,
            'last_crawled_at': _isoformat(report.last_crawled_at),
            'document_count': report.document_count
        }

    async def send_message(self, user_id: str, website_id: str, question: str) -> Dict[str, Any]:
        """
        Answer a question about a website and record the exchange

        Raises:
            NotFoundError: unknown user, or unknown or inactive website
            ValueError: empty question or one longer than MAX_QUESTION_LENGTH
        """
        question = (question or "").strip()
        if not question:
            raise ValueError("Question must not be empty")
        if len(question) > MAX_QUESTION_LENGTH:
            raise ValueError(f"Question must be at most {MAX_QUESTION_LENGTH} characters")
        if not await self.users.exists(user_id):
            raise NotFoundError(f"User {user_id} not found")
        if await self.registry.get(website_id) is None or not await self.registry.is_active(website_id):
            raise NotFoundError(f"Website {website_id} not found or inactive")

        answer = await self.answer_generator.answer(question, website_id)

        record = DialogueRecord(
            user_id=user_id,
            website_id=website_id,
            question=question,
            answer=answer.text,
            response_time_ms=answer.response_time_ms,
            relevance_score=answer.relevance_score,
            model_id=answer.model_id,
            degraded=answer.degraded
        )
        await self.dialogue_store.append(record)
        await self.users.increment_query_count(user_id)

        return {
            'id': record.id,
            'answer': record.answer,
            'response_time_ms': record.response_time_ms,
            'relevance_score': record.relevance_score,
            'created_at': _isoformat(record.created_at),
            'degraded': record.degraded
        }

    async def list_dialogue(self, user_id: str, website_id: Optional[str] = None,
                            page: int = 1, page_size: int = 20) -> Dict[str, Any]:
        result = await self.dialogue_store.list_by_user(user_id, website_id, page, page_size)
        return {
            'items': [r.to_dict() for r in result.items],
            'pagination': {
                'current': result.page,
                'pages': result.pages,
                'total': result.total,
                'has_next': result.has_next,
                'has_prev': result.has_prev
            }
        }

    async def delete_dialogue(self, record_id: str, user_id: str) -> None:
        await self.dialogue_store.remove(record_id, user_id)
        await self.users.increment_query_count(user_id, -1)

    async def summarize_websites(self, website_ids: List[str]) -> Dict[str, Any]:
        """
        Summaries of the latest crawled document of each website

        Raises:
            NotFoundError: unknown website
        """
        for website_id in website_ids:
            if await self.registry.get(website_id) is None:
                raise NotFoundError(f"Website {website_id} not found")
        return {'summaries': await self.answer_generator.summarize(website_ids)}
