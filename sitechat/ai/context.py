"""
Context Assembler

Builds the bounded context window of crawled text handed to the model.
"""

from typing import Dict, Any

from sitechat.core.base import (
    AssembledContext,
    ContentStoreInterface,
    CrawlStatus,
    WebsiteRegistryInterface
)
from sitechat.core.config import ContextConfig
from sitechat.core.logging import get_logger


def format_block(title: str, text: str) -> str:
    return f"Title: {title}\nContent: {text}\n\n"


class ContextAssembler:
    """
    Selects the most recent documents of a completed crawl and concatenates
    whole documents until the character budget would be exceeded.
    """

    def __init__(self, config: Dict[str, Any], content_store: ContentStoreInterface,
                 registry: WebsiteRegistryInterface):
        self.logger = get_logger('context')
        self.context_config = ContextConfig(**config.get('context', {}))
        self.content_store = content_store
        self.registry = registry

    async def assemble(self, website_id: str) -> AssembledContext:
        website = await self.registry.get(website_id)
        if website is None or website.crawl_status is not CrawlStatus.COMPLETED:
            return AssembledContext(context="", has_content=False)

        documents = await self.content_store.find_by_website(
            website_id, self.context_config.max_documents
        )
        if not documents:
            return AssembledContext(context="", has_content=False)

        blocks = []
        total = 0
        for document in documents:
            block = format_block(document.title, document.text)
            if total + len(block) > self.context_config.max_chars:
                break
            blocks.append(block)
            total += len(block)

        if len(blocks) < len(documents):
            self.logger.debug(
                f"Context for website {website_id} truncated to {len(blocks)}/{len(documents)} document(s)"
            )

        return AssembledContext(
            context="".join(blocks),
            has_content=True,
            document_count=len(blocks)
        )
