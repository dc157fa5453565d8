"""Pytest configuration and fixtures."""

import hashlib
import itertools
import os
import pathlib

import pytest
import vcr

from anki_wordqueue import generators
from anki_wordqueue.anki_client import AnkiConnectClient
from anki_wordqueue.models import GeneratedContent, ImageResult
from anki_wordqueue.prompts import default_prompt_config
from anki_wordqueue.store import WordStore

# Calculate hash of prompts.py for cassette invalidation
PROMPTS_HASH = hashlib.sha256(
    (pathlib.Path(__file__).parent.parent / "anki_wordqueue" / "prompts.py").read_bytes()
).hexdigest()[:8]


def cassette(name: str) -> str:
    """Generate cassette filename with prompt hash."""
    return f"fixtures/{name}_{PROMPTS_HASH}.yaml"


@pytest.fixture
def my_vcr():
    """VCR fixture for recording/replaying HTTP interactions."""
    return vcr.VCR(
        cassette_library_dir="tests",
        filter_headers=[("authorization", "DUMMY")],
        record_mode="once",
    )


def live_guard():
    """Check if live testing is enabled."""
    if not os.getenv("WORDQUEUE_LIVE"):
        pytest.skip("Live LLM disabled (set WORDQUEUE_LIVE=1)")


class FakeAnkiClient(AnkiConnectClient):
    """AnkiConnect client that answers requests in memory instead of over HTTP."""

    def __init__(self, fail_actions=None, **kwargs):
        kwargs.setdefault("request_delay", 0)
        kwargs.setdefault("retry_backoff", 0)
        kwargs.setdefault("deck_name", "Test Deck")
        super().__init__(**kwargs)
        self.requests = []
        self.fail_actions = dict(fail_actions or {})
        self._note_ids = itertools.count(1000)

    def actions(self, name=None):
        names = [r["action"] for r in self.requests]
        return [n for n in names if n == name] if name else names

    async def _post(self, payload):
        self.requests.append(payload)
        action = payload["action"]
        if action in self.fail_actions:
            failure = self.fail_actions[action]
            if isinstance(failure, BaseException):
                raise failure
            return {"result": None, "error": failure}
        if action == "version":
            return {"result": 6, "error": None}
        if action == "addNote":
            return {"result": next(self._note_ids), "error": None}
        if action == "storeMediaFile":
            return {"result": payload["params"]["filename"], "error": None}
        return {"result": None, "error": None}


@pytest.fixture
def fake_anki():
    return FakeAnkiClient()


@pytest.fixture
def store(tmp_path):
    return WordStore(tmp_path / "word-queue.json")


@pytest.fixture
def prompts():
    return default_prompt_config()


@pytest.fixture
def fake_openai(monkeypatch):
    """Replace both adapters with deterministic fakes; records the words seen."""
    seen = []

    async def fake_content(word, prompt_config, model=None):
        seen.append(word)
        return GeneratedContent(
            definition=f"{word}: a test definition",
            example=f"A sentence using {word}.",
            image_prompt=f"A picture of {word}",
        )

    async def fake_image(description, prompt_config):
        return ImageResult.generated("data:image/png;base64,aGVsbG8=")

    monkeypatch.setattr(generators, "generate_content", fake_content)
    monkeypatch.setattr(generators, "generate_image", fake_image)
    return seen


@pytest.fixture
def sample_words():
    """Sample GRE words for testing."""
    return ["lucid", "opaque", "laconic", "obdurate"]
