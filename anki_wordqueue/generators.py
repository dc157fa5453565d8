"""Text and image adapters used by the generation pipeline.

Neither adapter raises. The text adapter falls back to a document whose
definition carries the failure message; the image adapter returns a tagged
:class:`ImageResult`.
"""

import time

import structlog
from pydantic import ValidationError

from .config import MODEL_NAME
from .models import TEXT_FAILURE_PREFIX, GeneratedContent, ImageResult, PromptConfig
from .openai_client import call_chat_json, generate_image as openai_generate_image
from .prompts import render_image_prompt, render_user_prompt

log = structlog.get_logger()


def fallback_content(word: str, error: str) -> GeneratedContent:
    return GeneratedContent(
        definition=f"{TEXT_FAILURE_PREFIX}{word}. Error: {error}",
        example=f"Could not generate example sentence for {word}",
        image_prompt=f"Simple illustration of the concept: {word}",
    )


async def generate_content(word: str, prompts: PromptConfig, model: str = MODEL_NAME) -> GeneratedContent:
    """Ask the text model for a definition, an example and an image description."""
    messages = [
        {"role": "system", "content": prompts.system_prompt},
        {"role": "user", "content": render_user_prompt(prompts, word)},
    ]

    t0 = time.perf_counter()
    try:
        data = await call_chat_json(model, messages)
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
        content = GeneratedContent.model_validate(data)
    except ValidationError as e:
        log.error("Malformed content from text model", word=word, error=str(e))
        return fallback_content(word, f"Malformed response: {e.error_count()} field error(s)")
    except Exception as e:
        log.error("Content generation failed", word=word, error=str(e))
        return fallback_content(word, str(e))

    elapsed = 1000 * (time.perf_counter() - t0)
    log.info("Content generated", word=word, elapsed_ms=elapsed,
             definition=content.definition[:50], image_prompt=content.image_prompt[:50])
    return content


async def generate_image(description: str, prompts: PromptConfig) -> ImageResult:
    """Render ``description`` into an illustration; never raises."""
    if not description or not description.strip():
        return ImageResult.not_requested()

    full_prompt = render_image_prompt(prompts, description.strip())
    log.info("Generating image", prompt=full_prompt[:100])
    try:
        url = await openai_generate_image(full_prompt)
    except Exception as e:
        log.warning("Proceeding without image", error=str(e))
        return ImageResult.failed(str(e))
    return ImageResult.generated(url)
