"""Data models for the Anki word queue."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from .errors import InvalidTransitionError

# Error-message conventions. Generated content is told apart from a failure
# only by its text starting with one of these.
TEXT_FAILURE_PREFIX = "Failed to generate definition for "
GENERATION_FAILURE_PREFIX = "AI generation failed: "
GENERATION_FAILURE_EXAMPLE = "Error occurred during generation"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_failure_text(text: str) -> bool:
    """Return True if ``text`` is a generation error message rather than content."""
    return text.startswith((TEXT_FAILURE_PREFIX, GENERATION_FAILURE_PREFIX))


class WordStatus(str, Enum):
    """Lifecycle of a word entry."""

    PENDING = "pending"
    GENERATED = "generated"
    GENERATION_FAILED = "generation_failed"
    APPROVED = "approved"
    REJECTED = "rejected"


# Allowed status changes. Generation results may land in any state so that a
# regenerated word re-enters review.
TRANSITIONS: Dict[WordStatus, FrozenSet[WordStatus]] = {
    WordStatus.PENDING: frozenset({
        WordStatus.GENERATED, WordStatus.GENERATION_FAILED,
    }),
    WordStatus.GENERATED: frozenset({
        WordStatus.GENERATED, WordStatus.GENERATION_FAILED,
        WordStatus.APPROVED, WordStatus.REJECTED,
    }),
    WordStatus.GENERATION_FAILED: frozenset({
        WordStatus.GENERATED, WordStatus.GENERATION_FAILED, WordStatus.REJECTED,
    }),
    WordStatus.APPROVED: frozenset({
        WordStatus.GENERATED, WordStatus.GENERATION_FAILED, WordStatus.REJECTED,
    }),
    WordStatus.REJECTED: frozenset({
        WordStatus.GENERATED, WordStatus.GENERATION_FAILED, WordStatus.APPROVED,
    }),
}


class ImageStatus(str, Enum):
    """Outcome of the image stage."""

    NOT_REQUESTED = "not_requested"
    GENERATED = "generated"
    FAILED = "failed"


class ImageResult(BaseModel):
    """Tagged result of an image generation attempt."""

    status: ImageStatus
    url: str = ""
    error: Optional[str] = None

    @classmethod
    def not_requested(cls) -> "ImageResult":
        return cls(status=ImageStatus.NOT_REQUESTED)

    @classmethod
    def generated(cls, url: str) -> "ImageResult":
        return cls(status=ImageStatus.GENERATED, url=url)

    @classmethod
    def failed(cls, error: str) -> "ImageResult":
        return cls(status=ImageStatus.FAILED, error=error)


class GeneratedContent(BaseModel):
    """Definition, example and image description returned by the text model."""

    model_config = ConfigDict(populate_by_name=True)

    definition: str
    example: str
    image_prompt: str = Field(alias="imagePrompt")


class WordEntry(BaseModel):
    """A vocabulary word and its generated flashcard content."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    word: str
    definition: str = ""
    example: str = ""
    image_prompt: str = ""
    image_url: str = ""
    image_status: ImageStatus = ImageStatus.NOT_REQUESTED
    image_error: Optional[str] = None
    status: WordStatus = WordStatus.PENDING
    added_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

    @field_validator("word")
    @classmethod
    def _strip_word(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("word must not be empty")
        return value

    @computed_field
    @property
    def ai_generated(self) -> bool:
        """True once the generation stage has run, successfully or not."""
        return self.status != WordStatus.PENDING

    @property
    def has_usable_content(self) -> bool:
        return bool(self.definition) and not is_failure_text(self.definition)

    def transition(self, target: WordStatus):
        if target not in TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.status, target)
        if target == WordStatus.APPROVED and not self.has_usable_content:
            raise InvalidTransitionError(self.status, target, "no usable generated content")
        self.status = target
        self.updated_at = utcnow()

    def apply_generation(self, content: GeneratedContent, image: ImageResult):
        """Write generated content onto the entry and move it out of pending."""
        self.definition = content.definition
        self.example = content.example
        self.image_prompt = content.image_prompt
        self.image_url = image.url
        self.image_status = image.status
        self.image_error = image.error
        if is_failure_text(content.definition):
            self.transition(WordStatus.GENERATION_FAILED)
        else:
            self.transition(WordStatus.GENERATED)

    def mark_failed(self, message: str):
        """Record a pipeline failure so the entry does not stay pending."""
        self.definition = f"{GENERATION_FAILURE_PREFIX}{message}"
        self.example = GENERATION_FAILURE_EXAMPLE
        self.image_prompt = ""
        self.image_url = ""
        self.image_status = ImageStatus.NOT_REQUESTED
        self.image_error = None
        self.transition(WordStatus.GENERATION_FAILED)


class QueueJob(BaseModel):
    """In-flight generation request; never persisted."""

    word_id: str
    enqueued_at: datetime = Field(default_factory=utcnow)


class QueueStatus(BaseModel):
    pending: int = 0
    active: int = 0
    total: int = 0


class AnkiStatus(BaseModel):
    """Connectivity report for AnkiConnect."""

    connected: bool = False
    version: Optional[int] = None
    deck_exists: bool = False
    deck_name: str
    message: str = ""
    error: Optional[str] = None


class ExportDetail(BaseModel):
    word: str
    has_definition: bool
    has_example: bool
    has_image: bool
    status: str  # success | failed
    note_id: Optional[int] = None
    error: Optional[str] = None


class ExportResult(BaseModel):
    """Outcome of an export run."""

    success: bool
    added: int = 0
    failed: int = 0
    total: int = 0
    errors: List[str] = Field(default_factory=list)
    message: str = ""
    details: List[ExportDetail] = Field(default_factory=list)


class SyncResult(BaseModel):
    success: bool
    message: str
    error: Optional[str] = None


class PromptConfig(BaseModel):
    """Prompt templates in effect and whether they came from the override file."""

    system_prompt: str
    user_prompt_template: str
    image_prompt_prefix: str
    is_custom: bool = False
