"""
File Dialogue Store

Append-only JSON-lines log of question/answer exchanges. Removals are
recorded as tombstones in a second log; records themselves are never
rewritten.
"""

import json
from pathlib import Path
from typing import Dict, Any, Optional

import aiofiles

from sitechat.core.base import (
    DialogueStoreInterface,
    DialogueRecord,
    Page,
    NotFoundError,
    AuthorizationError,
    StorageError
)
from sitechat.core.logging import get_logger


class FileDialogueStore(DialogueStoreInterface):
    """
    Implementation of the dialogue store with an in-memory index over
    the on-disk logs
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.logger = get_logger('dialogue_store')
        base_path = Path(config.get('storage', {}).get('base_path', './data'))
        self.log_path = base_path / "dialogues.jsonl"
        self.tombstone_path = base_path / "dialogues.removed.jsonl"
        self._records: Dict[str, DialogueRecord] = {}

    async def initialize(self) -> None:
        """Load the logs into the index"""
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._records.clear()

        for line in await self._read_lines(self.log_path):
            record = DialogueRecord.from_dict(json.loads(line))
            self._records[record.id] = record

        for line in await self._read_lines(self.tombstone_path):
            self._records.pop(json.loads(line)['id'], None)

        self._initialized = True
        self.logger.info(f"Loaded {len(self._records)} dialogue record(s)")

    async def cleanup(self) -> None:
        """Clean up resources"""
        self._records.clear()
        self._initialized = False

    async def _read_lines(self, path: Path):
        if not path.exists():
            return []
        try:
            async with aiofiles.open(path, 'r', encoding='utf-8') as f:
                return [line for line in (await f.read()).splitlines() if line.strip()]
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    async def _append_line(self, path: Path, payload: Dict[str, Any]) -> None:
        try:
            async with aiofiles.open(path, 'a', encoding='utf-8') as f:
                await f.write(json.dumps(payload, ensure_ascii=False) + '\n')
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e

    async def _ensure_initialized(self) -> None:
        if not self._initialized:
            await self.initialize()

    async def append(self, record: DialogueRecord) -> str:
        await self._ensure_initialized()
        if record.id in self._records:
            raise StorageError(f"Dialogue record {record.id} already exists")

        await self._append_line(self.log_path, record.to_dict())
        self._records[record.id] = record
        return record.id

    async def list_by_user(self, user_id: str, website_id: Optional[str] = None,
                           page: int = 1, page_size: int = 20) -> Page:
        """
        Records of a user, most recent first

        Args:
            user_id: Owner of the records
            website_id: Optional website filter
            page: 1-based page number
            page_size: Records per page
        """
        if page < 1 or page_size < 1:
            raise ValueError("page and page_size must be at least 1")
        await self._ensure_initialized()

        # insertion order breaks created_at ties
        matching = [
            r for _, r in sorted(
                enumerate(self._records.values()),
                key=lambda item: (item[1].created_at, item[0]),
                reverse=True
            )
            if r.user_id == user_id and (website_id is None or r.website_id == website_id)
        ]

        start = (page - 1) * page_size
        return Page(
            items=matching[start:start + page_size],
            page=page,
            page_size=page_size,
            total=len(matching)
        )

    async def remove(self, record_id: str, user_id: str) -> None:
        await self._ensure_initialized()
        record = self._records.get(record_id)
        if record is None:
            raise NotFoundError(f"Dialogue record {record_id} not found")
        if record.user_id != user_id:
            raise AuthorizationError(f"Dialogue record {record_id} does not belong to user {user_id}")

        await self._append_line(self.tombstone_path, {'id': record_id})
        del self._records[record_id]
        self.logger.info(f"Removed dialogue record {record_id}")

    async def count_by_user(self, user_id: str) -> int:
        await self._ensure_initialized()
        return sum(1 for r in self._records.values() if r.user_id == user_id)
