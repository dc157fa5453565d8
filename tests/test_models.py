"""Tests for data models."""

import json

import pytest
from pydantic import ValidationError

from anki_wordqueue.errors import InvalidTransitionError
from anki_wordqueue.models import (
    GENERATION_FAILURE_PREFIX,
    GeneratedContent,
    ImageResult,
    ImageStatus,
    WordEntry,
    WordStatus,
    is_failure_text,
)


def test_word_entry_creation():
    """Test WordEntry creation and default values."""
    entry = WordEntry(word="  lucid ")

    assert entry.word == "lucid"
    assert len(entry.id) == 32
    assert entry.definition == ""
    assert entry.example == ""
    assert entry.image_prompt == ""
    assert entry.image_url == ""
    assert entry.image_status == ImageStatus.NOT_REQUESTED
    assert entry.status == WordStatus.PENDING
    assert entry.ai_generated is False
    assert entry.added_at.tzinfo is not None


def test_word_entry_rejects_blank_word():
    with pytest.raises(ValidationError):
        WordEntry(word="   ")


def test_word_entry_ids_are_unique():
    ids = {WordEntry(word="lucid").id for _ in range(500)}
    assert len(ids) == 500


def test_apply_generation_marks_generated():
    entry = WordEntry(word="lucid")
    content = GeneratedContent(definition="clear", example="A lucid essay.", imagePrompt="clear water")

    entry.apply_generation(content, ImageResult.generated("https://img.example/lucid.png"))

    assert entry.status == WordStatus.GENERATED
    assert entry.ai_generated is True
    assert entry.definition == "clear"
    assert entry.image_prompt == "clear water"
    assert entry.image_url == "https://img.example/lucid.png"
    assert entry.image_status == ImageStatus.GENERATED
    assert entry.updated_at is not None


def test_apply_generation_with_fallback_content_marks_failed():
    entry = WordEntry(word="lucid")
    content = GeneratedContent(
        definition="Failed to generate definition for lucid. Error: timeout",
        example="Could not generate example sentence for lucid",
        image_prompt="Simple illustration of the concept: lucid",
    )

    entry.apply_generation(content, ImageResult.failed("no image"))

    assert entry.status == WordStatus.GENERATION_FAILED
    assert entry.ai_generated is True
    assert entry.image_status == ImageStatus.FAILED
    assert entry.image_error == "no image"
    assert entry.image_url == ""


def test_mark_failed():
    entry = WordEntry(word="lucid")
    entry.mark_failed("boom")

    assert entry.status == WordStatus.GENERATION_FAILED
    assert entry.ai_generated is True
    assert entry.definition == f"{GENERATION_FAILURE_PREFIX}boom"
    assert is_failure_text(entry.definition)


@pytest.mark.parametrize("current,target", [
    (WordStatus.PENDING, WordStatus.APPROVED),
    (WordStatus.PENDING, WordStatus.REJECTED),
    (WordStatus.GENERATION_FAILED, WordStatus.APPROVED),
    (WordStatus.APPROVED, WordStatus.APPROVED),
])
def test_invalid_transitions(current, target):
    entry = WordEntry(word="lucid", status=current)
    with pytest.raises(InvalidTransitionError):
        entry.transition(target)
    assert entry.status == current


def test_review_cycle():
    entry = WordEntry(word="lucid", definition="clear", example="A lucid essay.", status=WordStatus.GENERATED)
    entry.transition(WordStatus.APPROVED)
    entry.transition(WordStatus.REJECTED)
    entry.transition(WordStatus.APPROVED)
    assert entry.status == WordStatus.APPROVED


def test_serialization_round_trip_keeps_status():
    entry = WordEntry(word="lucid", status=WordStatus.REJECTED)
    data = json.loads(entry.model_dump_json())

    assert data["ai_generated"] is True
    assert data["status"] == "rejected"
    restored = WordEntry.model_validate(data)
    assert restored.model_dump() == entry.model_dump()


def test_generated_content_accepts_both_field_names():
    by_alias = GeneratedContent.model_validate({"definition": "d", "example": "e", "imagePrompt": "i"})
    by_name = GeneratedContent(definition="d", example="e", image_prompt="i")
    assert by_alias.model_dump() == by_name.model_dump()


def test_image_result_tags():
    assert ImageResult.not_requested().status == ImageStatus.NOT_REQUESTED
    assert ImageResult.generated("u").url == "u"
    failed = ImageResult.failed("err")
    assert failed.status == ImageStatus.FAILED
    assert failed.url == ""


def test_failed_entry_cannot_be_approved_through_rejection():
    entry = WordEntry(word="lucid")
    entry.mark_failed("boom")
    entry.transition(WordStatus.REJECTED)

    with pytest.raises(InvalidTransitionError, match="no usable generated content"):
        entry.transition(WordStatus.APPROVED)
    assert entry.status == WordStatus.REJECTED


def test_mark_failed_clears_previous_image():
    entry = WordEntry(word="lucid")
    content = GeneratedContent(definition="clear", example="A lucid essay.", image_prompt="clear water")
    entry.apply_generation(content, ImageResult.generated("https://img.example/lucid.png"))

    entry.mark_failed("boom")

    assert entry.image_url == ""
    assert entry.image_prompt == ""
    assert entry.image_status == ImageStatus.NOT_REQUESTED
    assert entry.image_error is None
