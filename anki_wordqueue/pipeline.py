"""Per-word generation pipeline run by the generation queue."""

import time
from typing import Optional

import structlog

from . import generators
from .models import GeneratedContent, ImageResult, PromptConfig, WordEntry
from .store import WordStore

log = structlog.get_logger()


class WordGenerator:
    """Generate content and an image for one stored word and write them back."""

    def __init__(self, store: WordStore, prompts: PromptConfig):
        self.store = store
        self.prompts = prompts

    async def __call__(self, word_id: str):
        await self.generate(word_id)

    async def generate(self, word_id: str):
        entry = await self.store.get(word_id)
        if entry is None:
            log.warning("Word not found in queue, skipping", word_id=word_id)
            return

        log.info("Starting background generation", word_id=word_id, word=entry.word)
        t0 = time.perf_counter()
        try:
            content = await generators.generate_content(entry.word, self.prompts)
            image = await generators.generate_image(content.image_prompt, self.prompts)
            updated = await self._write_result(word_id, content, image)
        except Exception as e:
            log.error("Background generation failed", word_id=word_id, word=entry.word, error=str(e))
            await self.store.update(word_id, lambda current: current.mark_failed(str(e)))
            return

        elapsed = 1000 * (time.perf_counter() - t0)
        if updated is None:
            log.warning("Word was removed during generation", word_id=word_id, word=entry.word)
        else:
            log.info("Background generation completed", word_id=word_id, word=entry.word,
                     status=updated.status.value, image_status=updated.image_status.value,
                     elapsed_ms=elapsed)

    async def _write_result(self, word_id: str, content: GeneratedContent, image: ImageResult) -> Optional[WordEntry]:
        # Reloads under the store lock so concurrent jobs never write stale copies.
        return await self.store.update(word_id, lambda current: current.apply_generation(content, image))
