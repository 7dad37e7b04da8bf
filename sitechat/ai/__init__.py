"""
Question answering components for SiteChat
"""

from sitechat.ai.context import ContextAssembler
from sitechat.ai.model_client import GeminiClient
from sitechat.ai.answer import AnswerGenerator

__all__ = ['ContextAssembler', 'GeminiClient', 'AnswerGenerator']
