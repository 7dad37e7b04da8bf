"""
Content processing components for SiteChat

This package contains:
- Content extraction from rendered HTML
- Relevance scoring of answers
"""

from sitechat.processors.content import ContentExtractor
from sitechat.processors.relevance import score

__all__ = [
    'ContentExtractor',
    'score'
]
