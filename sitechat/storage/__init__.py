"""
Storage components for SiteChat

This package contains:
- Versioned file storage for crawled documents
- Append-only file storage for dialogue history
"""

from .content_store import FileContentStore
from .dialogue_store import FileDialogueStore

__all__ = ['FileContentStore', 'FileDialogueStore']
