"""Flat-file state store for word entries."""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Callable, Iterable, List, Optional, TypeVar

import structlog
from pydantic import TypeAdapter, ValidationError

from .errors import StoreError
from .models import WordEntry, WordStatus

log = structlog.get_logger()

T = TypeVar("T")

_entries_adapter = TypeAdapter(List[WordEntry])


class WordStore:
    """Ordered list of :class:`WordEntry` records kept in one JSON document.

    ``load`` and ``save`` always move the whole collection. Every async
    mutation runs its load-mutate-save cycle under a single lock, so writers
    in the same process serialize and never overwrite each other's changes.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def load(self) -> List[WordEntry]:
        """Read-only load; an unreadable file is logged and treated as empty."""
        try:
            return self.load_for_update()
        except StoreError:
            return []

    def load_for_update(self) -> List[WordEntry]:
        """Load ahead of a write. An unreadable file raises StoreError instead of reading as empty."""
        if not self.path.exists():
            return []
        try:
            return _entries_adapter.validate_json(self.path.read_bytes())
        except (OSError, ValidationError, ValueError) as e:
            log.error("Error loading word queue", path=str(self.path), error=str(e))
            raise StoreError(f"Could not read word queue from {self.path}: {e}") from e

    def save(self, entries: Iterable[WordEntry]):
        payload = json.dumps(
            [entry.model_dump(mode="json") for entry in entries],
            indent=2,
            ensure_ascii=False,
        )
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=f".{self.path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            log.error("Error saving word queue", path=str(self.path), error=str(e))
            raise StoreError(f"Could not save word queue to {self.path}: {e}") from e

    async def read(self) -> List[WordEntry]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.load)

    async def get(self, word_id: str) -> Optional[WordEntry]:
        for entry in await self.read():
            if entry.id == word_id:
                return entry
        return None

    async def mutate(self, fn: Callable[[List[WordEntry]], T]) -> T:
        """Apply ``fn`` to the freshly loaded list in place and persist it."""
        loop = asyncio.get_running_loop()
        async with self._lock:
            entries = await loop.run_in_executor(None, self.load_for_update)
            result = fn(entries)
            await loop.run_in_executor(None, self.save, entries)
            return result

    async def update(self, word_id: str, fn: Callable[[WordEntry], None]) -> Optional[WordEntry]:
        """Apply ``fn`` to one entry. Returns None without writing if the entry is gone."""
        loop = asyncio.get_running_loop()
        async with self._lock:
            entries = await loop.run_in_executor(None, self.load_for_update)
            entry = next((e for e in entries if e.id == word_id), None)
            if entry is None:
                return None
            fn(entry)
            await loop.run_in_executor(None, self.save, entries)
            return entry

    async def add_words(self, words: Iterable[str]) -> List[WordEntry]:
        new_entries = [WordEntry(word=word) for word in words]
        if new_entries:
            await self.mutate(lambda entries: entries.extend(new_entries))
        return new_entries

    async def delete(self, word_id: str) -> Optional[WordEntry]:
        def _remove(entries: List[WordEntry]) -> Optional[WordEntry]:
            for index, entry in enumerate(entries):
                if entry.id == word_id:
                    return entries.pop(index)
            return None

        return await self.mutate(_remove)

    async def clear(self, status: Optional[WordStatus] = None) -> int:
        """Remove every entry, or only those in ``status``. Returns the count removed."""
        def _clear(entries: List[WordEntry]) -> int:
            before = len(entries)
            if status is None:
                entries.clear()
            else:
                entries[:] = [e for e in entries if e.status != status]
            return before - len(entries)

        return await self.mutate(_clear)
