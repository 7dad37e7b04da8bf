"""
File Content Store

Stores extracted Documents on the local file system, one JSON file per
document, grouped per website into crawl generations. A crawl writes into
a staging generation; activating it swaps the website's ACTIVE pointer in
one os.replace so readers see either the old or the new set, never a mix.
"""

import hashlib
import json
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, List, Optional

import aiofiles

from sitechat.core.base import ContentStoreInterface, Document, StorageError, new_id
from sitechat.core.logging import get_logger

ACTIVE_POINTER = "ACTIVE"


class FileContentStore(ContentStoreInterface):
    """
    Implementation of the content store backed by JSON files
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.logger = get_logger('content_store')
        base_path = config.get('storage', {}).get('base_path', './data')
        self.root = Path(base_path) / "documents"

    async def initialize(self) -> None:
        """Initialize the component"""
        self.root.mkdir(parents=True, exist_ok=True)
        self._initialized = True

    async def cleanup(self) -> None:
        """Clean up resources"""
        pass

    def _website_dir(self, website_id: str) -> Path:
        return self.root / self._safe_name(website_id)

    def _document_path(self, document: Document) -> Path:
        key = hashlib.sha1(document.source_url.encode('utf-8')).hexdigest()
        return self._website_dir(document.website_id) / document.generation / f"{key}.json"

    def _safe_name(self, text: str) -> str:
        safe = "".join(c if c.isalnum() or c in "-_" else "_" for c in text)
        if not safe:
            raise StorageError(f"Invalid identifier: {text!r}")
        return safe

    def active_generation(self, website_id: str) -> Optional[str]:
        pointer = self._website_dir(website_id) / ACTIVE_POINTER
        try:
            generation = pointer.read_text(encoding='utf-8').strip()
        except FileNotFoundError:
            return None
        return generation or None

    async def begin_generation(self, website_id: str) -> str:
        """Create an empty staging generation for a website"""
        generation = f"{datetime.now(timezone.utc).strftime('%Y%m%d%H%M%S')}-{new_id()[:8]}"
        (self._website_dir(website_id) / generation).mkdir(parents=True, exist_ok=False)
        self.logger.debug(f"Opened generation {generation} for website {website_id}")
        return generation

    async def activate_generation(self, website_id: str, generation: str) -> None:
        """Point the website at a generation and drop every other generation"""
        website_dir = self._website_dir(website_id)
        if not (website_dir / generation).is_dir():
            raise StorageError(f"Unknown generation {generation} for website {website_id}")

        pointer = website_dir / ACTIVE_POINTER
        tmp_pointer = website_dir / f"{ACTIVE_POINTER}.tmp"
        try:
            async with aiofiles.open(tmp_pointer, 'w', encoding='utf-8') as f:
                await f.write(generation)
            os.replace(tmp_pointer, pointer)
        except OSError as e:
            raise StorageError(f"Failed to activate generation {generation}: {e}") from e

        for child in website_dir.iterdir():
            if child.is_dir() and child.name != generation:
                shutil.rmtree(child, ignore_errors=True)

        self.logger.info(f"Website {website_id} now serves generation {generation}")

    async def discard_generation(self, website_id: str, generation: str) -> None:
        """Remove a staging generation; the active one is never discarded"""
        if generation == self.active_generation(website_id):
            raise StorageError(f"Refusing to discard active generation {generation}")
        shutil.rmtree(self._website_dir(website_id) / generation, ignore_errors=True)
        self.logger.debug(f"Discarded generation {generation} for website {website_id}")

    async def save(self, document: Document) -> str:
        """
        Save a document into its generation

        Documents without a generation go into the active one, which is
        created if the website has none yet.

        Returns:
            Document ID
        """
        if not document.generation:
            generation = self.active_generation(document.website_id)
            if generation is None:
                generation = await self.begin_generation(document.website_id)
                await self.activate_generation(document.website_id, generation)
            document.generation = generation

        path = self._document_path(document)
        if not path.parent.is_dir():
            raise StorageError(f"Generation {document.generation} does not exist")

        tmp_path = path.with_suffix('.tmp')
        try:
            async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
                await f.write(json.dumps(document.to_dict(), ensure_ascii=False))
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(f"Failed to save document {document.id}: {e}") from e

        self.logger.debug(f"Saved document {document.id} ({document.source_url})")
        return document.id

    async def _load_generation(self, website_id: str, generation: str) -> List[Document]:
        documents = []
        for path in (self._website_dir(website_id) / generation).glob('*.json'):
            try:
                async with aiofiles.open(path, 'r', encoding='utf-8') as f:
                    documents.append(Document.from_dict(json.loads(await f.read())))
            except (OSError, ValueError, KeyError) as e:
                raise StorageError(f"Corrupt document file {path}: {e}") from e
        return documents

    async def find_by_website(self, website_id: str, limit: int) -> List[Document]:
        """Active documents of a website, most recent first"""
        generation = self.active_generation(website_id)
        if generation is None or limit <= 0:
            return []

        documents = await self._load_generation(website_id, generation)
        documents.sort(key=lambda d: d.created_at, reverse=True)
        return documents[:limit]

    async def count_for_website(self, website_id: str) -> int:
        generation = self.active_generation(website_id)
        if generation is None:
            return 0
        return sum(1 for _ in (self._website_dir(website_id) / generation).glob('*.json'))

    async def delete_all_for_website(self, website_id: str) -> int:
        """Delete every generation of a website, returning the active document count"""
        count = await self.count_for_website(website_id)
        shutil.rmtree(self._website_dir(website_id), ignore_errors=True)
        self.logger.info(f"Deleted {count} document(s) for website {website_id}")
        return count
