"""Live tests for end-to-end generation against OpenAI."""

import asyncio

import pytest

from anki_wordqueue.models import ImageStatus, WordStatus
from anki_wordqueue.prompts import default_prompt_config
from anki_wordqueue.service import WordQueueService
from anki_wordqueue.store import WordStore
from tests.conftest import FakeAnkiClient, cassette, live_guard


def run_word_test(vcr_obj, tmp_path, word: str, cassette_name: str):
    """Generate one word through the real adapters and return the stored entry."""
    live_guard()

    async def run():
        service = WordQueueService(
            store=WordStore(tmp_path / "word-queue.json"),
            anki=FakeAnkiClient(),
            prompts=default_prompt_config(),
            cooldown=0,
        )
        await service.submit_words(word)
        await service.wait_idle()
        return await service.list_words()

    with vcr_obj.use_cassette(cassette(cassette_name)):
        [entry] = asyncio.run(run())

    print(f"\n=== MANUAL CHECK - {word.upper()} ========================")
    print(f"definition  : {entry.definition}")
    print(f"example     : {entry.example}")
    print(f"image prompt: {entry.image_prompt}")
    print(f"image       : {entry.image_status.value} {entry.image_url[:60]}")
    return entry


@pytest.mark.live_llm
def test_roundtrip_live(my_vcr, tmp_path):
    """Live test for the complete generation pipeline."""
    entry = run_word_test(my_vcr, tmp_path, "lucid", "roundtrip")

    assert entry.status == WordStatus.GENERATED
    assert entry.definition
    assert entry.example
    assert entry.image_prompt
    assert entry.image_status in (ImageStatus.GENERATED, ImageStatus.FAILED)


@pytest.mark.live_llm
def test_abstract_word_live(my_vcr, tmp_path):
    """An abstract adjective still gets a concrete scene description."""
    entry = run_word_test(my_vcr, tmp_path, "obdurate", "abstract_word")

    assert entry.status == WordStatus.GENERATED
    assert len(entry.image_prompt.split()) > 3
