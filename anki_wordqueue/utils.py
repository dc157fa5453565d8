"""Utility functions for word parsing, image downloads and media filenames."""

import asyncio
import base64
import binascii
import hashlib
import re
import secrets
import time
from pathlib import Path
from typing import List, NamedTuple, Optional

import aiohttp
import structlog

from .config import ANKI_MEDIA_PREFIX, IMAGE_DOWNLOAD_TIMEOUT

log = structlog.get_logger()

_DATA_URL = re.compile(r"^data:(?P<mime>[^;,]+)?(?P<b64>;base64)?,(?P<data>.*)$", re.DOTALL)


class ImageData(NamedTuple):
    base64: str
    mime_type: str


def split_words(text: str) -> List[str]:
    """Split newline-separated input into trimmed, non-empty words."""
    return [line.strip() for line in text.splitlines() if line.strip()]


def load_words_from_file(file_path: Path) -> List[str]:
    """Load words from a text file, one word per line. ``#`` starts a comment line."""
    if not file_path.exists():
        raise FileNotFoundError(f"Input file not found: {file_path}")

    words = [w for w in split_words(file_path.read_text(encoding="utf-8")) if not w.startswith("#")]
    log.info("Loaded words from file", count=len(words), file=str(file_path))
    return words


def is_data_url(url: str) -> bool:
    return url.startswith("data:")


def decode_data_url(url: str) -> ImageData:
    """Split a ``data:image/...;base64,`` URL into its payload and mime type."""
    match = _DATA_URL.match(url)
    if not match or not match.group("b64"):
        raise ValueError("Not a base64 data URL")
    data = match.group("data")
    # Validates the payload; AnkiConnect gets the original string.
    base64.b64decode(data, validate=True)
    return ImageData(base64=data, mime_type=match.group("mime") or "image/png")


async def download_image_as_base64(image_url: str,
                                   session: Optional[aiohttp.ClientSession] = None,
                                   timeout: float = IMAGE_DOWNLOAD_TIMEOUT) -> Optional[ImageData]:
    """Return base64 image bytes for a data URL or a remote URL, or None on failure."""
    if is_data_url(image_url):
        try:
            image = decode_data_url(image_url)
        except (ValueError, binascii.Error) as e:
            log.error("Invalid image data URL", error=str(e))
            return None
        log.info("Inline image processed", mime_type=image.mime_type)
        return image

    owns_session = session is None
    if owns_session:
        session = aiohttp.ClientSession()
    try:
        async with session.get(image_url, timeout=aiohttp.ClientTimeout(total=timeout)) as response:
            if response.status != 200:
                log.error("Image download failed", url=image_url, status=response.status)
                return None
            content = await response.read()
            mime_type = response.headers.get("Content-Type", "image/png").split(";")[0].strip()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        log.error("Image download failed", url=image_url, error=str(e) or type(e).__name__)
        return None
    finally:
        if owns_session:
            await session.close()

    log.info("Image downloaded", url=image_url, size=len(content), mime_type=mime_type)
    return ImageData(base64=base64.b64encode(content).decode("ascii"), mime_type=mime_type)


def generate_media_filename(word: str, mime_type: str, prefix: str = ANKI_MEDIA_PREFIX) -> str:
    """Build a unique media filename from the word, the current time and a random salt."""
    digest = hashlib.md5(f"{word}{time.time_ns()}{secrets.token_hex(4)}".encode("utf-8")).hexdigest()
    extension = "jpg" if mime_type in ("image/jpeg", "image/jpg") else "png"
    safe_word = re.sub(r"[^a-z0-9]", "_", word.lower())
    return f"{prefix}_{safe_word}_{digest}.{extension}"
