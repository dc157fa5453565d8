"""AnkiConnect client: RPC calls with reconnect retries, and card assembly."""

import asyncio
import errno
import html
from typing import Any, Dict, List, Optional

import aiohttp
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from .config import (
    ANKI_CONNECT_URL,
    ANKI_DECK_NAME,
    ANKI_MEDIA_PREFIX,
    ANKI_MODEL_NAME,
    ANKI_TAGS,
    ANKI_TIMEOUT,
    IMAGE_DOWNLOAD_TIMEOUT,
)
from .errors import AnkiConnectError
from .models import AnkiStatus, SyncResult
from .utils import download_image_as_base64, generate_media_filename, is_data_url

ANKI_CONNECT_VERSION = 6
ANKI_CONNECT_ADDON_CODE = "2055492159"

IMAGE_NOTE = '\n<p style="color: #666; font-size: 12px;">Note: AI image {reason}</p>'

log = structlog.get_logger()


def is_connection_reset(exc: BaseException) -> bool:
    """True for errors where the peer dropped an established connection."""
    if isinstance(exc, (aiohttp.ServerDisconnectedError, ConnectionResetError)):
        return True
    if isinstance(exc, aiohttp.ClientConnectorError):
        return False
    if isinstance(exc, aiohttp.ClientOSError):
        return exc.errno == errno.ECONNRESET
    return False


def is_connection_refused(exc: BaseException) -> bool:
    if isinstance(exc, ConnectionRefusedError):
        return True
    if isinstance(exc, aiohttp.ClientConnectorError):
        return exc.errno == errno.ECONNREFUSED or isinstance(exc.os_error, ConnectionRefusedError)
    return False


def _log_retry(retry_state):
    log.warning("AnkiConnect connection reset, retrying",
                attempt=retry_state.attempt_number,
                wait_ms=int(1000 * retry_state.next_action.sleep),
                error=str(retry_state.outcome.exception()))


class AnkiConnectClient:
    """Talks to the AnkiConnect add-on over one keep-alive HTTP session.

    Use as an async context manager, or call :meth:`close` when done.
    """

    def __init__(self,
                 url: str = ANKI_CONNECT_URL,
                 deck_name: str = ANKI_DECK_NAME,
                 model_name: str = ANKI_MODEL_NAME,
                 tags: Optional[List[str]] = None,
                 timeout: float = ANKI_TIMEOUT,
                 request_delay: float = 0.1,
                 retry_backoff: float = 0.5,
                 max_retries: int = 2,
                 media_prefix: str = ANKI_MEDIA_PREFIX,
                 image_timeout: float = IMAGE_DOWNLOAD_TIMEOUT):
        self.url = url
        self.deck_name = deck_name
        self.model_name = model_name
        self.tags = list(ANKI_TAGS if tags is None else tags)
        self.timeout = timeout
        self.request_delay = request_delay
        self.retry_backoff = retry_backoff
        self.max_retries = max_retries
        self.media_prefix = media_prefix
        self.image_timeout = image_timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"Connection": "keep-alive"},
            )
        return self._session

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        async with self._get_session().post(self.url, json=payload) as response:
            response.raise_for_status()
            return await response.json(content_type=None)

    async def call(self, action: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Invoke an AnkiConnect action and return its ``result``.

        Connection resets are retried ``max_retries`` times with a backoff of
        ``retry_backoff`` seconds times the attempt number. Everything else,
        including refused connections, propagates on the first failure.
        """
        payload: Dict[str, Any] = {"action": action, "version": ANKI_CONNECT_VERSION}
        if params:
            payload["params"] = params

        # Spacing between consecutive requests; retries wait via the backoff instead.
        await asyncio.sleep(self.request_delay)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_incrementing(start=self.retry_backoff, increment=self.retry_backoff),
            retry=retry_if_exception(is_connection_reset),
            before_sleep=_log_retry,
            sleep=asyncio.sleep,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    data = await self._post(payload)
        except Exception as e:
            if is_connection_refused(e):
                log.error("Cannot connect to Anki. Please ensure Anki is running, "
                          "the AnkiConnect add-on is installed and it allows connections from localhost",
                          addon_code=ANKI_CONNECT_ADDON_CODE, url=self.url)
            log.error("AnkiConnect request failed", action=action, error=str(e) or type(e).__name__)
            raise

        if data.get("error"):
            log.error("AnkiConnect returned an error", action=action, error=data["error"])
            raise AnkiConnectError(data["error"])
        return data.get("result")

    async def _store_image(self, word: str, image_url: str) -> str:
        """Store the image in Anki's media folder and return the HTML to append."""
        try:
            session = None if is_data_url(image_url) else self._get_session()
            image = await download_image_as_base64(image_url, session, timeout=self.image_timeout)
            if image is None:
                log.warning("Could not download image", word=word)
                return IMAGE_NOTE.format(reason="could not be downloaded")

            filename = generate_media_filename(word, image.mime_type, prefix=self.media_prefix)
            try:
                stored = await self.call("storeMediaFile", {"filename": filename, "data": image.base64})
            except Exception as e:
                log.warning("Could not store image in Anki", word=word, filename=filename, error=str(e))
                return IMAGE_NOTE.format(reason="could not be stored")

            stored_name = stored if isinstance(stored, str) and stored else filename
            log.info("Image stored in Anki", word=word, filename=stored_name)
            return f'\n<br><img src="{html.escape(stored_name)}" style="max-width: 300px; margin-top: 10px;">'
        except Exception as e:
            log.error("Error processing image", word=word, error=str(e))
            return IMAGE_NOTE.format(reason="processing failed")

    def build_back(self, definition: str, example: str) -> str:
        return ('<div style="font-family: Arial, sans-serif;">\n'
                f"<p><strong>Definition:</strong> {html.escape(definition)}</p>\n"
                f"<p><strong>Example:</strong> <em>{html.escape(example)}</em></p>")

    async def create_card(self, word: str, definition: str, example: str,
                          image_url: Optional[str] = None) -> int:
        """Add a Basic note for ``word`` and return its note id.

        Image problems only replace the picture with a note on the card;
        a failing ``addNote`` raises.
        """
        log.info("Creating card", word=word, has_image=bool(image_url))
        back = self.build_back(definition, example)
        if image_url:
            back += await self._store_image(word, image_url)
        back += "\n</div>"

        note = {
            "deckName": self.deck_name,
            "modelName": self.model_name,
            "fields": {"Front": word, "Back": back},
            "tags": self.tags,
        }
        note_id = await self.call("addNote", {"note": note})
        log.info("Card created", word=word, note_id=note_id)
        return note_id

    async def check_status(self) -> AnkiStatus:
        """Report whether AnkiConnect answers. The deck is assumed to exist."""
        status = AnkiStatus(deck_name=self.deck_name)
        try:
            status.version = await self.call("version")
        except Exception as e:
            status.error = str(e) or type(e).__name__
            status.message = ("Cannot connect to Anki. Please ensure Anki is running "
                              "with AnkiConnect addon installed.")
            return status

        status.connected = True
        status.deck_exists = True
        status.message = "AnkiConnect is working"
        return status

    async def sync(self) -> SyncResult:
        """Trigger Anki's sync with AnkiWeb."""
        log.info("Triggering Anki sync")
        try:
            await self.call("version")
            await self.call("sync")
        except Exception as e:
            log.error("Anki sync failed", error=str(e))
            return SyncResult(
                success=False,
                message="Make sure Anki is logged into AnkiWeb and has sync enabled",
                error=f"Sync failed: {e}",
            )
        log.info("Anki sync completed")
        return SyncResult(success=True, message="Anki sync completed successfully")
