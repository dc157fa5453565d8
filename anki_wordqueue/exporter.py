"""Export of generated words to Anki."""

import asyncio
import time
from typing import List

import structlog

from .anki_client import AnkiConnectClient
from .config import EXPORT_CARD_DELAY, REQUIRE_APPROVAL
from .models import ExportDetail, ExportResult, WordEntry, WordStatus
from .store import WordStore

log = structlog.get_logger()


def is_exportable(entry: WordEntry, require_approval: bool = REQUIRE_APPROVAL) -> bool:
    """Approved words export when their content is usable; generated ones only when review is not required."""
    if entry.status == WordStatus.APPROVED:
        return entry.has_usable_content and bool(entry.example)
    if require_approval:
        return False
    return entry.status == WordStatus.GENERATED and bool(entry.definition) and bool(entry.example)


def select_exportable(entries: List[WordEntry], require_approval: bool = REQUIRE_APPROVAL) -> List[WordEntry]:
    return [e for e in entries if is_exportable(e, require_approval)]


async def export_to_anki(store: WordStore,
                         anki: AnkiConnectClient,
                         require_approval: bool = REQUIRE_APPROVAL,
                         card_delay: float = EXPORT_CARD_DELAY) -> ExportResult:
    """Create one Anki card per eligible word, one at a time.

    A failing word is recorded and skipped; the rest of the batch still runs.
    """
    ready_words = select_exportable(await store.read(), require_approval)
    log.info("Starting Anki export", ready=len(ready_words), require_approval=require_approval)

    if not ready_words:
        return ExportResult(success=False, message="No words ready for export. Generate AI content first.")

    try:
        version = await anki.call("version")
    except Exception as e:
        log.error("AnkiConnect connection test failed", error=str(e))
        return ExportResult(
            success=False,
            total=len(ready_words),
            message="Cannot connect to Anki. Please ensure Anki is running with AnkiConnect addon installed.",
            errors=[str(e) or type(e).__name__],
        )
    log.info("AnkiConnect reachable", version=version, deck=anki.deck_name)

    added = 0
    errors: List[str] = []
    details: List[ExportDetail] = []

    for index, entry in enumerate(ready_words, start=1):
        detail = ExportDetail(
            word=entry.word,
            has_definition=bool(entry.definition),
            has_example=bool(entry.example),
            has_image=bool(entry.image_url),
            status="failed",
        )
        t0 = time.perf_counter()
        try:
            detail.note_id = await anki.create_card(
                entry.word,
                entry.definition or f"Definition for {entry.word}",
                entry.example or f"Example sentence with {entry.word}",
                entry.image_url or None,
            )
        except Exception as e:
            message = f"Failed to add {entry.word}: {e}"
            log.error("Could not add word to Anki", word=entry.word, position=index,
                      error_type=type(e).__name__, error=str(e))
            errors.append(message)
            detail.error = str(e)
        else:
            added += 1
            detail.status = "success"
            log.info("Added word to Anki", word=entry.word, position=index, total=len(ready_words),
                     elapsed_ms=1000 * (time.perf_counter() - t0))
        details.append(detail)

        if index < len(ready_words):
            await asyncio.sleep(card_delay)

    log.info("Anki export complete", added=added, failed=len(errors), total=len(ready_words))
    return ExportResult(
        success=True,
        added=added,
        failed=len(errors),
        total=len(ready_words),
        errors=errors,
        message=f'Successfully added {added}/{len(ready_words)} cards to Anki deck "{anki.deck_name}"',
        details=details,
    )
