"""Service facade: submission, review, status, export and sync."""

from pathlib import Path
from typing import List, Optional

import structlog

from .anki_client import AnkiConnectClient
from .config import (
    EXPORT_CARD_DELAY,
    MAX_CONCURRENT_GENERATIONS,
    PROMPT_CONFIG_FILE,
    QUEUE_COOLDOWN,
    REQUIRE_APPROVAL,
    WORD_QUEUE_FILE,
)
from .errors import WordNotFoundError
from .exporter import export_to_anki
from .generation_queue import GenerationQueue
from .models import (
    AnkiStatus,
    ExportResult,
    PromptConfig,
    QueueStatus,
    SyncResult,
    WordEntry,
    WordStatus,
)
from .pipeline import WordGenerator
from .prompts import load_prompt_config
from .store import WordStore
from .utils import split_words

log = structlog.get_logger()


class WordQueueService:
    """Wires the store, the generation queue and AnkiConnect together.

    Must be created inside a running event loop; close it with
    ``await service.close()`` or use it as an async context manager.
    """

    def __init__(self,
                 store: Optional[WordStore] = None,
                 anki: Optional[AnkiConnectClient] = None,
                 prompts: Optional[PromptConfig] = None,
                 max_concurrent: int = MAX_CONCURRENT_GENERATIONS,
                 cooldown: float = QUEUE_COOLDOWN,
                 require_approval: bool = REQUIRE_APPROVAL,
                 card_delay: float = EXPORT_CARD_DELAY):
        self.store = store or WordStore(WORD_QUEUE_FILE)
        self.anki = anki or AnkiConnectClient()
        self.prompts = prompts or load_prompt_config(PROMPT_CONFIG_FILE)
        self.require_approval = require_approval
        self.card_delay = card_delay
        self.generator = WordGenerator(self.store, self.prompts)
        self.queue = GenerationQueue(self.generator, max_concurrent=max_concurrent, cooldown=cooldown)

    @classmethod
    def from_paths(cls, queue_file: Path, prompt_file: Path, **kwargs) -> "WordQueueService":
        return cls(store=WordStore(queue_file), prompts=load_prompt_config(prompt_file), **kwargs)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        await self.anki.close()

    async def wait_idle(self):
        await self.queue.join()

    async def submit_words(self, text: str) -> List[WordEntry]:
        """Add one entry per non-blank line of ``text`` and queue each for generation."""
        entries = await self.store.add_words(split_words(text))
        log.info("Adding new words to generation queue", count=len(entries))
        for entry in entries:
            self.queue.submit(entry.id)
        return entries

    async def regenerate(self, word_id: str) -> QueueStatus:
        if await self.store.get(word_id) is None:
            raise WordNotFoundError(word_id)
        self.queue.submit(word_id)
        return self.queue.status()

    async def resume_pending(self) -> int:
        """Queue every entry that never got through generation."""
        pending = [e for e in await self.store.read() if e.status == WordStatus.PENDING]
        queued = sum(1 for entry in pending if self.queue.submit(entry.id))
        log.info("Resumed pending words", count=queued)
        return queued

    async def list_words(self, status: Optional[WordStatus] = None) -> List[WordEntry]:
        entries = await self.store.read()
        if status is not None:
            entries = [e for e in entries if e.status == status]
        return entries

    async def delete(self, word_id: str) -> WordEntry:
        removed = await self.store.delete(word_id)
        if removed is None:
            log.warning("Word not found for deletion", word_id=word_id)
            raise WordNotFoundError(word_id)
        log.info("Word deleted", word_id=word_id, word=removed.word)
        return removed

    async def clear_all(self) -> int:
        removed = await self.store.clear()
        log.info("Cleared all words", removed=removed)
        return removed

    async def clear_by_status(self, status: WordStatus) -> int:
        removed = await self.store.clear(status)
        log.info("Cleared words by status", status=status.value, removed=removed)
        return removed

    async def _set_status(self, word_id: str, status: WordStatus) -> WordEntry:
        updated = await self.store.update(word_id, lambda entry: entry.transition(status))
        if updated is None:
            raise WordNotFoundError(word_id)
        log.info("Word status changed", word_id=word_id, word=updated.word, status=status.value)
        return updated

    async def approve(self, word_id: str) -> WordEntry:
        return await self._set_status(word_id, WordStatus.APPROVED)

    async def reject(self, word_id: str) -> WordEntry:
        return await self._set_status(word_id, WordStatus.REJECTED)

    def queue_status(self) -> QueueStatus:
        return self.queue.status()

    async def anki_status(self) -> AnkiStatus:
        return await self.anki.check_status()

    async def export(self) -> ExportResult:
        return await export_to_anki(self.store, self.anki,
                                    require_approval=self.require_approval,
                                    card_delay=self.card_delay)

    async def sync(self) -> SyncResult:
        return await self.anki.sync()

    def prompt_config(self) -> PromptConfig:
        return self.prompts
