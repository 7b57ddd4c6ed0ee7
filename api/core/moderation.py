"""
Profanity screening through the apilayer bad-words HTTP API.

Used endpoint:
- POST /bad_words?censor_character=*  (header `apikey`, raw text body)
  -> {"bad_words_total": int, "bad_words_list": [...], "censored_content": "..."}

`ModerationGateway.screen()` never raises for provider problems. It returns a
`ScreenResult` and leaves the fail-closed decision to the caller.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
import random
from typing import Any, Protocol

import httpx

from .config import Settings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429}


class ScreenResult(enum.Enum):
    CLEAN = "clean"
    FLAGGED = "flagged"
    UNAVAILABLE = "unavailable"


class Moderator(Protocol):
    async def screen(self, text: str) -> ScreenResult: ...


# Transient failures are retried; permanent ones end the attempt loop.
class _TransientFailure(Exception):
    pass


class _PermanentFailure(Exception):
    pass


class ModerationGateway:
    def __init__(
        self,
        *,
        api_url: str,
        api_key: str,
        timeout_s: float = 5.0,
        max_retries: int = 3,
        backoff_base_s: float = 0.2,
        backoff_max_s: float = 2.0,
        max_response_bytes: int = 64 * 1024,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_url = (api_url or "").strip()
        self._api_key = (api_key or "").strip()
        self._timeout_s = timeout_s
        self._max_retries = max(0, max_retries)
        self._backoff_base_s = max(0.0, backoff_base_s)
        self._backoff_max_s = max(0.0, backoff_max_s)
        self._max_response_bytes = max_response_bytes
        self._client = client or httpx.AsyncClient(timeout=timeout_s)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ModerationGateway":
        return cls(
            api_url=settings.moderation_api_url,
            api_key=settings.moderation_api_key,
            timeout_s=settings.moderation_timeout_s,
            max_retries=settings.moderation_max_retries,
            backoff_base_s=settings.moderation_backoff_base_s,
            backoff_max_s=settings.moderation_backoff_max_s,
            max_response_bytes=settings.moderation_max_response_bytes,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def backoff_delay(self, attempt: int) -> float:
        """
        Full-jitter exponential backoff for retry number `attempt` (0-based).
        """
        ceiling = min(self._backoff_max_s, self._backoff_base_s * (2**attempt))
        return random.uniform(0.0, ceiling)

    async def screen(self, text: str) -> ScreenResult:
        if not self._api_url or not self._api_key:
            logger.error("moderation_misconfigured api_url_set=%s api_key_set=%s", bool(self._api_url), bool(self._api_key))
            return ScreenResult.UNAVAILABLE

        attempts = self._max_retries + 1
        for attempt in range(attempts):
            try:
                total = await self._request(text)
            except _PermanentFailure as exc:
                logger.warning("moderation_failed attempt=%s reason=%s", attempt + 1, exc)
                return ScreenResult.UNAVAILABLE
            except _TransientFailure as exc:
                logger.warning("moderation_retryable attempt=%s/%s reason=%s", attempt + 1, attempts, exc)
                if attempt + 1 < attempts:
                    await asyncio.sleep(self.backoff_delay(attempt))
                continue

            return ScreenResult.FLAGGED if total > 0 else ScreenResult.CLEAN

        logger.error("moderation_unavailable attempts=%s", attempts)
        return ScreenResult.UNAVAILABLE

    async def _request(self, text: str) -> int:
        try:
            async with self._client.stream(
                "POST",
                self._api_url,
                params={"censor_character": "*"},
                headers={"apikey": self._api_key, "Content-Type": "text/plain; charset=utf-8"},
                content=text.encode("utf-8"),
                timeout=self._timeout_s,
            ) as resp:
                if resp.status_code >= 500 or resp.status_code in RETRYABLE_STATUS:
                    raise _TransientFailure(f"status {resp.status_code}")
                if resp.status_code != 200:
                    raise _PermanentFailure(f"status {resp.status_code}")
                body = await self._read_capped(resp)
        except httpx.TimeoutException as exc:
            raise _TransientFailure("timeout") from exc
        except httpx.TransportError as exc:
            raise _TransientFailure(f"transport error: {type(exc).__name__}") from exc
        except httpx.HTTPError as exc:
            # e.g. DecodingError on a body that does not match its Content-Encoding.
            raise _PermanentFailure(f"unreadable response: {type(exc).__name__}") from exc

        return self._parse_total(body)

    async def _read_capped(self, resp: httpx.Response) -> bytes:
        buf = bytearray()
        async for chunk in resp.aiter_bytes():
            buf.extend(chunk)
            if len(buf) > self._max_response_bytes:
                raise _PermanentFailure(f"response larger than {self._max_response_bytes} bytes")
        return bytes(buf)

    @staticmethod
    def _parse_total(body: bytes) -> int:
        try:
            data: Any = json.loads(body)
        except (ValueError, RecursionError) as exc:
            raise _PermanentFailure("response is not JSON") from exc

        if not isinstance(data, dict):
            raise _PermanentFailure("response is not a JSON object")
        total = data.get("bad_words_total")
        if isinstance(total, bool) or not isinstance(total, int) or total < 0:
            raise _PermanentFailure("response has no valid bad_words_total")
        return total


class PassThroughModerator:
    """
    Local-development stand-in used when MODERATION_ENABLED=false.
    """

    async def screen(self, text: str) -> ScreenResult:
        return ScreenResult.CLEAN

    async def aclose(self) -> None:
        return None
