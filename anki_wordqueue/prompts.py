"""Default prompt templates and the ``.config.txt`` override file."""

import re
from pathlib import Path

import structlog

from .models import PromptConfig

log = structlog.get_logger()

WORD_PLACEHOLDER = "{{WORD}}"
IMAGE_DESCRIPTION_PLACEHOLDER = "{{IMAGE_DESCRIPTION}}"

DEFAULT_SYSTEM_PROMPT = (
    "You are a GRE vocabulary tutor. Create educational content for vocabulary words. "
    "Always respond with valid JSON format."
)

DEFAULT_USER_PROMPT_TEMPLATE = """For the GRE word "{{WORD}}", provide:
1. A clear, concise definition suitable for GRE test preparation
2. An example sentence that demonstrates the word's usage in context
3. A vivid, memorable visual scene description that would help someone remember this word (describe an image that connects the word's meaning to a memorable scenario)

Format your response as JSON:
{
  "definition": "...",
  "example": "...",
  "imagePrompt": "..."
}"""

DEFAULT_IMAGE_PROMPT_PREFIX = (
    "Educational illustration: {{IMAGE_DESCRIPTION}}. "
    "Style: clean, simple, educational diagram suitable for vocabulary learning."
)

# Section header -> PromptConfig field
SECTIONS = {
    "SYSTEM_PROMPT": "system_prompt",
    "USER_PROMPT_TEMPLATE": "user_prompt_template",
    "IMAGE_PROMPT_PREFIX": "image_prompt_prefix",
}

_HEADER = re.compile(r"^\[([A-Z_]+)\]\s*$")


def default_prompt_config() -> PromptConfig:
    return PromptConfig(
        system_prompt=DEFAULT_SYSTEM_PROMPT,
        user_prompt_template=DEFAULT_USER_PROMPT_TEMPLATE,
        image_prompt_prefix=DEFAULT_IMAGE_PROMPT_PREFIX,
    )


def parse_prompt_sections(text: str) -> dict:
    """Split an override file into its known sections.

    A section runs from its ``[NAME]`` header line to the next header.
    Lines starting with ``#`` are comments. Unknown sections are ignored.
    """
    sections = {}
    current = None
    lines = []

    def flush():
        if current in SECTIONS:
            body = "\n".join(lines).strip()
            if body:
                sections[SECTIONS[current]] = body

    for line in text.splitlines():
        match = _HEADER.match(line.strip())
        if match:
            flush()
            current = match.group(1)
            lines = []
        elif not line.lstrip().startswith("#"):
            lines.append(line)
    flush()
    return sections


def load_prompt_config(path: Path) -> PromptConfig:
    """Load prompt templates, overriding defaults with sections found in ``path``."""
    config = default_prompt_config()
    if not path.exists():
        log.info("Using default prompts", config_file=str(path))
        return config

    try:
        overrides = parse_prompt_sections(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        log.error("Failed to read prompt config, using defaults", config_file=str(path), error=str(e))
        return config

    log.info("Custom prompt config loaded", config_file=str(path), sections=sorted(overrides))
    return config.model_copy(update={**overrides, "is_custom": True})


def render_user_prompt(config: PromptConfig, word: str) -> str:
    return config.user_prompt_template.replace(WORD_PLACEHOLDER, word)


def render_image_prompt(config: PromptConfig, description: str) -> str:
    return config.image_prompt_prefix.replace(IMAGE_DESCRIPTION_PLACEHOLDER, description)
