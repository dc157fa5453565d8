"""OpenAI API client with retry logic."""

import asyncio
import json
from functools import lru_cache
from typing import Any, Dict, List

import openai
import structlog
from tenacity import (
    RetryError,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from .config import IMAGE_MODEL, IMAGE_QUALITY, IMAGE_SIZE, OPENAI_API_KEY, OPENAI_TIMEOUT

VALID_IMAGE_SIZES = {"1024x1024", "1792x1024", "1024x1792", "1536x1024", "1024x1536"}

log = structlog.get_logger()


@lru_cache(maxsize=1)
def get_client() -> openai.OpenAI:
    """Return the shared OpenAI client, created on first use."""
    return openai.OpenAI(api_key=OPENAI_API_KEY or None, timeout=OPENAI_TIMEOUT)


def create_openai_retry_decorator():
    """Create a retry decorator for OpenAI API calls."""
    return retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential_jitter(initial=2, max=30, jitter=1),
        retry=retry_if_exception_type((
            openai.RateLimitError,
            openai.APITimeoutError,
            openai.APIConnectionError,
            openai.InternalServerError,  # 500, 502, 503, 504
        ))
    )


def _unwrap(e: Exception) -> Exception:
    if isinstance(e, RetryError):
        return e.last_attempt.exception()
    return e


async def call_chat(model: str, messages: List[Dict[str, str]]) -> str:
    """Call OpenAI Chat API with retry logic."""

    @create_openai_retry_decorator()
    async def _make_api_call():
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(
            None,
            lambda: get_client().chat.completions.create(
                model=model,
                messages=messages,
            )
        )
        return response.choices[0].message.content

    try:
        return await _make_api_call()
    except RetryError as e:
        actual_exception = _unwrap(e)
        log.error("OpenAI API call failed after retries",
                  error=str(actual_exception),
                  model=model,
                  attempts=e.last_attempt.attempt_number)
        raise actual_exception
    except Exception as e:
        log.error("OpenAI API call failed", error=str(e), model=model)
        raise


def parse_json_response(response: str) -> Any:
    """Parse a model response as JSON, tolerating a markdown code fence."""
    response = (response or "").strip()
    if response.startswith("```json"):
        response = response[7:]
    elif response.startswith("```"):
        response = response[3:]
    if response.endswith("```"):
        response = response[:-3]
    response = response.strip()

    try:
        return json.loads(response)
    except json.JSONDecodeError as e:
        log.error("Failed to parse JSON response", error=str(e), response=response)
        raise ValueError(f"Invalid JSON response: {response}")


async def call_chat_json(model: str, messages: List[Dict[str, str]]) -> Any:
    """Call OpenAI Chat API and parse JSON response."""
    response = await call_chat(model, messages)
    return parse_json_response(response)


async def generate_image(prompt: str,
                         size: str = IMAGE_SIZE,
                         quality: str = IMAGE_QUALITY) -> str:
    """
    Generate one image with the model configured in ``IMAGE_MODEL``.

    Returns a ``data:image/png;base64,...`` URL when the API answers with
    inline bytes (gpt-image-1) and the hosted URL when it answers with a
    link (dall-e-3). Raises on any failure.
    """
    if size not in VALID_IMAGE_SIZES:
        raise ValueError(f"Unsupported image size {size!r}")

    @create_openai_retry_decorator()
    async def _make_image_call() -> str:
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(
            None,
            lambda: get_client().images.generate(
                model=IMAGE_MODEL,
                prompt=prompt,
                size=size,
                quality=quality,
                n=1,
            )
        )

        if not getattr(response, "data", None):
            raise RuntimeError(f"Image generation response missing data: {response}")

        image = response.data[0]
        b64_blob = getattr(image, "b64_json", None)
        if b64_blob:
            return f"data:image/png;base64,{b64_blob}"
        url = getattr(image, "url", None)
        if url:
            return url
        raise RuntimeError(f"Image generation response has neither b64_json nor url: {response.data}")

    try:
        return await _make_image_call()
    except Exception as e:
        actual_exception = _unwrap(e)
        error_details = str(actual_exception)
        if hasattr(actual_exception, "status_code"):
            error_details = f"{error_details} - Status Code: {actual_exception.status_code}"

        log.error("Image generation failed", error=error_details, model=IMAGE_MODEL)
        raise RuntimeError(f"Image generation failed: {error_details}") from actual_exception
