"""
Answer Generator

Grounds the generative model in a website's crawled text. Model failures
never reach the caller: they turn into a fixed apology flagged as degraded.
The same client also writes short summaries of crawled websites.
"""

import time
from typing import Dict, Any, List

from sitechat.core.base import Answer, ModelClientInterface
from sitechat.core.logging import get_logger, logging_manager
from sitechat.ai.context import ContextAssembler
from sitechat.processors import relevance

NO_CONTENT_MESSAGE = (
    "I don't have any content from this website to answer your question. "
    "Please make sure the website has been crawled first."
)

APOLOGY_MESSAGE = (
    "I'm sorry, I encountered an error while processing your question. "
    "Please try again later."
)

PROMPT_TEMPLATE = """You answer questions about a website using only the website content below.
Do not use outside knowledge. If the answer cannot be derived from the content,
say so explicitly and describe what information is missing.

Website Content:
{context}
Question: {question}

Answer:"""

SUMMARY_EXCERPT_CHARS = 1000

SUMMARY_TEMPLATE = """Provide a brief 2-3 sentence summary of this website content:

Title: {title}
Content: {text}...

Summary:"""


def build_prompt(context: str, question: str) -> str:
    return PROMPT_TEMPLATE.format(context=context, question=question.strip())


def _elapsed_ms(start: float) -> int:
    return max(0, int((time.monotonic() - start) * 1000))


class AnswerGenerator:
    """Answers questions from the assembled context of one website"""

    def __init__(self, config: Dict[str, Any], assembler: ContextAssembler,
                 model_client: ModelClientInterface):
        self.config = config
        self.logger = get_logger('answer')
        self.assembler = assembler
        self.model_client = model_client
        self.content_store = assembler.content_store

    @property
    def model_id(self) -> str:
        return self.model_client.model_id

    async def answer(self, question: str, website_id: str) -> Answer:
        start = time.monotonic()
        assembled = await self.assembler.assemble(website_id)

        if not assembled.has_content:
            self.logger.info(f"No crawled content for website {website_id}, skipping model call")
            return Answer(
                text=NO_CONTENT_MESSAGE,
                response_time_ms=_elapsed_ms(start),
                relevance_score=0.0,
                model_id=self.model_id
            )

        prompt = build_prompt(assembled.context, question)

        call_start = time.monotonic()
        try:
            text = await self.model_client.generate(prompt)
        except Exception as e:
            logging_manager.log_model_failure(website_id, self.model_id, e)
            return Answer(
                text=APOLOGY_MESSAGE,
                response_time_ms=0,
                relevance_score=0.0,
                model_id=self.model_id,
                degraded=True
            )
        response_time_ms = _elapsed_ms(call_start)

        return Answer(
            text=text,
            response_time_ms=response_time_ms,
            relevance_score=relevance.score(question, text, assembled.context),
            model_id=self.model_id
        )

    async def summarize(self, website_ids: List[str]) -> List[Dict[str, str]]:
        """
        Short summary of the most recent document of each website

        Websites without documents are skipped. Any model failure drops
        the whole batch and returns an empty list.
        """
        summaries = []
        try:
            for website_id in website_ids:
                documents = await self.content_store.find_by_website(website_id, 1)
                if not documents:
                    continue
                document = documents[0]
                prompt = SUMMARY_TEMPLATE.format(
                    title=document.title, text=document.text[:SUMMARY_EXCERPT_CHARS]
                )
                summaries.append({
                    'website_id': website_id,
                    'summary': await self.model_client.generate(prompt)
                })
        except Exception as e:
            logging_manager.log_model_failure(",".join(website_ids), self.model_id, e)
            return []

        return summaries
