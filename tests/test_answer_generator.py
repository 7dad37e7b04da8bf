"""
Tests for AnswerGenerator

Covers the no-content short circuit, grounded answers with a relevance
score, and degraded answers when the model fails.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from sitechat.ai.answer import (
    AnswerGenerator,
    NO_CONTENT_MESSAGE,
    APOLOGY_MESSAGE,
    SUMMARY_EXCERPT_CHARS,
    build_prompt
)
from sitechat.core.base import AssembledContext, ModelInvocationError


def assembler_returning(context):
    assembler = Mock()
    assembler.assemble = AsyncMock(return_value=context)
    return assembler


def model_client(**kwargs):
    client = Mock()
    client.model_id = "test-model"
    client.generate = AsyncMock(**kwargs)
    return client


class TestAnswerGenerator:
    """Test suite for AnswerGenerator"""

    @pytest.mark.asyncio
    async def test_no_content_skips_model(self, base_config):
        client = model_client(return_value="unused")
        generator = AnswerGenerator(base_config, assembler_returning(AssembledContext("", False)), client)

        answer = await generator.answer("anything", "site")

        assert answer.text == NO_CONTENT_MESSAGE
        assert answer.relevance_score == 0.0
        assert not answer.degraded
        client.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_model_failure_degrades(self, base_config):
        client = model_client(side_effect=ModelInvocationError("quota exceeded"))
        context = AssembledContext("Title: Docs\nContent: python\n\n", True, 1)
        generator = AnswerGenerator(base_config, assembler_returning(context), client)

        answer = await generator.answer("What language is used?", "site")

        assert answer.text == APOLOGY_MESSAGE
        assert answer.relevance_score == 0.0
        assert answer.response_time_ms == 0
        assert answer.degraded
        client.generate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unexpected_error_also_degrades(self, base_config):
        client = model_client(side_effect=RuntimeError("boom"))
        generator = AnswerGenerator(base_config, assembler_returning(AssembledContext("c", True, 1)), client)

        answer = await generator.answer("question", "site")

        assert answer.degraded
        assert answer.text == APOLOGY_MESSAGE

    @pytest.mark.asyncio
    async def test_grounded_answer(self, base_config):
        context = AssembledContext("Title: Docs\nContent: Written in python\n\n", True, 1)
        client = model_client(return_value="It is written in python and nothing else")
        generator = AnswerGenerator(base_config, assembler_returning(context), client)

        answer = await generator.answer("Which python release?", "site")

        assert answer.text == "It is written in python and nothing else"
        assert answer.model_id == "test-model"
        assert not answer.degraded
        assert answer.response_time_ms >= 0
        assert answer.relevance_score == pytest.approx(1 / 3)

        prompt = client.generate.await_args.args[0]
        assert prompt == build_prompt(context.context, "Which python release?")
        assert "Written in python" in prompt
        assert "Which python release?" in prompt


class TestWebsiteSummaries:
    """Summaries of the latest crawled document"""

    def generator(self, base_config, client, documents_by_site):
        assembler = assembler_returning(AssembledContext("", False))
        assembler.content_store.find_by_website = AsyncMock(
            side_effect=lambda website_id, limit: documents_by_site.get(website_id, [])[:limit]
        )
        return AnswerGenerator(base_config, assembler, client)

    @pytest.mark.asyncio
    async def test_summary_uses_latest_document_excerpt(self, base_config, make_document):
        client = model_client(return_value="A site about python.")
        document = make_document(title="Docs", text="python " * 400)
        generator = self.generator(base_config, client, {'site': [document]})

        summaries = await generator.summarize(["site", "empty"])

        assert summaries == [{'website_id': 'site', 'summary': "A site about python."}]
        prompt = client.generate.await_args.args[0]
        assert "Title: Docs" in prompt
        assert document.text[:SUMMARY_EXCERPT_CHARS] + "..." in prompt
        assert document.text not in prompt
        client.generate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_model_failure_returns_no_summaries(self, base_config, make_document):
        client = model_client(side_effect=ModelInvocationError("quota exceeded"))
        generator = self.generator(base_config, client, {
            'site': [make_document()],
            'deep': [make_document(website_id="deep")],
        })

        assert await generator.summarize(["site", "deep"]) == []
