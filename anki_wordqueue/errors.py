"""Exceptions raised by the word queue."""


class WordQueueError(Exception):
    """Base class for all errors surfaced to callers."""


class StoreError(WordQueueError):
    """The word queue file could not be written."""


class WordNotFoundError(WordQueueError):
    """No entry exists for the requested id."""

    def __init__(self, word_id: str):
        super().__init__(f"Word not found: {word_id}")
        self.word_id = word_id


class InvalidTransitionError(WordQueueError):
    """A status change that the lifecycle does not allow."""

    def __init__(self, current, target, reason=None):
        message = f"Cannot move word from {current.value!r} to {target.value!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.current = current
        self.target = target


class AnkiConnectError(WordQueueError):
    """AnkiConnect answered with an error field."""
